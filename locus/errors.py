"""Exceptions raised inside the estimation pipeline."""


class ProviderUnavailable(Exception):
    """A single external lookup failed. Never escapes a provider's lookup()."""


class MalformedInputError(ValueError):
    """Caller supplied an out-of-range or half-present coordinate."""
