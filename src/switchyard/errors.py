"""Exceptions raised on contract violations.

Normal gameplay never raises: a denied spawn is a regular return value and
generation gaps are repaired inside the generator.  Only a caller handing in
an impossible configuration (no tracks, no speed variants) gets an error.
"""

from __future__ import annotations


class ConfigurationInconsistencyError(ValueError):
    """Precondition violated: empty track set, empty speed set, unknown track."""
