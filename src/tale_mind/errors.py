"""Error taxonomy. Validation fails fast, store failures propagate."""

from __future__ import annotations


class TaleMindError(Exception):
    """Base class for every error raised by tale-mind."""


class ValidationError(TaleMindError, ValueError):
    """Malformed input: blank text, out-of-range number, too few memories."""


class NotFoundError(TaleMindError, LookupError):
    """A character or memory id is absent from the store."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class StoreError(TaleMindError):
    """The persistence collaborator failed."""
