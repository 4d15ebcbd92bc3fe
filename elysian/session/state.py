"""Error slot types and the classification of completion failures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from google.genai import errors as genai_errors

from elysian.errors import CapabilityUnavailable, CredentialMissing, EmptyCompletion, ProviderTimeout

CREDENTIAL_MESSAGE = "API configuration needs adjustment. Please ensure a valid API key is selected."
TIMEOUT_MESSAGE = "My reflection is taking longer than expected. Please try again."
CONNECTION_MESSAGE = (
    "I'm having trouble connecting to my neural core. "
    "Please check your internet and try again."
)
VOICE_UNSUPPORTED_MESSAGE = "Voice recognition is not supported on this device."

_INVALID_KEY_MARKERS = ("api key not valid", "api_key_invalid", "invalid api key")


class ErrorKind(str, Enum):
    CREDENTIAL_MISSING = "credential_missing"
    EMPTY_COMPLETION = "empty_completion"
    PROVIDER_ERROR = "provider_error"
    PROVIDER_TIMEOUT = "provider_timeout"
    CAPABILITY_UNAVAILABLE = "capability_unavailable"


@dataclass(frozen=True)
class SessionError:
    kind: ErrorKind
    message: str

    @property
    def needs_credentials(self) -> bool:
        return self.kind == ErrorKind.CREDENTIAL_MISSING


def is_auth_error(exc: BaseException) -> bool:
    """True if the provider rejected the request because of the API key."""
    if not isinstance(exc, genai_errors.ClientError):
        return False
    if getattr(exc, "code", None) in (401, 403):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _INVALID_KEY_MARKERS)


def classify_error(exc: BaseException) -> SessionError:
    if isinstance(exc, CredentialMissing) or is_auth_error(exc):
        return SessionError(ErrorKind.CREDENTIAL_MISSING, CREDENTIAL_MESSAGE)
    if isinstance(exc, ProviderTimeout):
        return SessionError(ErrorKind.PROVIDER_TIMEOUT, TIMEOUT_MESSAGE)
    if isinstance(exc, EmptyCompletion):
        return SessionError(ErrorKind.EMPTY_COMPLETION, CONNECTION_MESSAGE)
    if isinstance(exc, CapabilityUnavailable):
        return SessionError(ErrorKind.CAPABILITY_UNAVAILABLE, str(exc))
    return SessionError(ErrorKind.PROVIDER_ERROR, CONNECTION_MESSAGE)
