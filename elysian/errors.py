"""Exception types raised by Elysian components.

Provider and network failures are not wrapped here: they propagate as the
``google.genai`` errors they are and get classified by the session.
"""

from __future__ import annotations


class ElysianError(Exception):
    """Base class for all Elysian errors."""


class CredentialMissing(ElysianError):
    """No provider API key is configured."""

    def __init__(self, message: str = "No Gemini API key configured."):
        super().__init__(message)


class EmptyCompletion(ElysianError):
    """The provider answered without any usable text."""


class ProviderTimeout(ElysianError):
    """A remote call did not finish within the configured timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"Provider call timed out after {timeout:.0f}s")
        self.timeout = timeout


class MalformedBlueprint(ElysianError):
    """The structured blueprint payload could not be parsed or validated."""


class CapabilityUnavailable(ElysianError):
    """A platform capability (microphone, speaker, recognizer) is missing."""
