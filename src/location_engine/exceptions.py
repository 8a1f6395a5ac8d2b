"""Custom exception hierarchy for the location engine."""

from __future__ import annotations

from location_engine.models.domain import ErrorKind


class LocationEngineError(Exception):
    """Base exception for all location engine errors."""


class ConfigurationError(LocationEngineError):
    """Error in provider or engine configuration."""


class ProviderError(LocationEngineError):
    """A single provider failed to produce a location."""

    kind: ErrorKind = ErrorKind.TRANSPORT


class ProviderUnavailable(ProviderError):
    """A provider prerequisite (credential, service, config) is missing."""

    kind = ErrorKind.UNAVAILABLE


class AccuracyUnsupported(ProviderUnavailable):
    """The device location service cannot honor the requested accuracy."""


class ConsentDenied(ProviderError):
    """The user has not granted permission for a privacy-sensitive provider."""

    kind = ErrorKind.CONSENT_DENIED


class ProviderTimeout(ProviderError):
    """A provider exceeded its bounded wait."""

    kind = ErrorKind.TIMEOUT


class ProviderTransportError(ProviderError):
    """Network failure talking to a remote endpoint."""

    kind = ErrorKind.TRANSPORT


class ProviderParseError(ProviderError):
    """A remote endpoint returned a malformed or unusable response."""

    kind = ErrorKind.PARSE


class AllProvidersExhausted(LocationEngineError):
    """No provider produced a location in a resolution cycle."""

    kind = ErrorKind.ALL_PROVIDERS_EXHAUSTED
