"""
Error taxonomy for the proxy.

ValidationError and ConfigurationError fail fast before the provider is
contacted. Provider failures are always surfaced as a ProviderError
subclass; `classify_error` is the only place that knows how the provider
SDKs shape their exceptions.
"""

from typing import Optional

import groq
import httpx

TRANSIENT_STATUSES = frozenset({429, 503})


class ValidationError(Exception):
    """A required request field is missing or blank."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing {field} field")


class ConfigurationError(Exception):
    """The provider client has no credential."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider.capitalize()} client not configured")


class ProviderError(Exception):
    """
    A failed provider call.

    `status` is the HTTP status reported by the provider (None for network
    and malformed-response failures). `attempts` and `operation` are filled
    in by the retry controller and the proxy service on the way out.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.attempts = 0
        self.operation: Optional[str] = None

    @property
    def transient(self) -> bool:
        return self.status in TRANSIENT_STATUSES


class TransientProviderError(ProviderError):
    """Rate limited (429) or temporarily unavailable (503). Retried."""


class PermanentProviderError(ProviderError):
    """Any other provider, network or response-shape failure. Not retried."""


def provider_error(message: str, status: Optional[int] = None) -> ProviderError:
    """Build the taxonomy member matching `status`."""
    if status in TRANSIENT_STATUSES:
        return TransientProviderError(message, status)
    return PermanentProviderError(message, status)


def _status_from_attributes(exc: Exception) -> Optional[int]:
    response = getattr(exc, "response", None)
    for candidate in (
        getattr(response, "status_code", None),
        getattr(exc, "status_code", None),
        getattr(exc, "status", None),
    ):
        if isinstance(candidate, int) and not isinstance(candidate, bool):
            return candidate
    return None


def classify_error(exc: Exception) -> ProviderError:
    """
    Map any exception raised by a provider call onto the taxonomy.

    Already-classified errors pass through unchanged.
    """
    if isinstance(exc, ProviderError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return provider_error(f"Provider responded with HTTP {status}", status)

    if isinstance(exc, groq.APIStatusError):
        return provider_error(f"Provider responded with HTTP {exc.status_code}", exc.status_code)

    if isinstance(exc, (httpx.TransportError, groq.APIConnectionError)):
        return PermanentProviderError(f"Network error: {type(exc).__name__}")

    status = _status_from_attributes(exc)
    if status is not None:
        return provider_error(f"Provider responded with HTTP {status}", status)

    return PermanentProviderError(f"Unexpected provider error: {type(exc).__name__}: {exc}")
