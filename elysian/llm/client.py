"""Gemini connection shared by the completion, blueprint and speech clients."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional

from google import genai
from google.genai import types

from elysian.config import CredentialSource, mask_key
from elysian.errors import CredentialMissing, ProviderTimeout

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]


def _default_client_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


class GeminiClient:
    """Builds a ``genai.Client`` for whatever key is configured right now.

    The key is looked up on every request. The underlying client is reused
    while the key stays the same and rebuilt when it changes.
    """

    def __init__(
        self,
        credentials: Optional[CredentialSource] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._credentials = credentials or CredentialSource()
        self._client_factory = client_factory or _default_client_factory
        self._client: Any = None
        self._client_key: Optional[str] = None

    def has_credential(self) -> bool:
        return self._credentials() is not None

    def _client_for(self, api_key: Optional[str]) -> Any:
        if not api_key:
            raise CredentialMissing(
                "Gemini API key not found. Either:\n"
                "  • Run: elysian set-key\n"
                "  • Or:  export API_KEY='your-key'"
            )
        if self._client is None or api_key != self._client_key:
            logger.info("Connecting to Gemini with key %s", mask_key(api_key))
            self._client = self._client_factory(api_key)
            self._client_key = api_key
        return self._client

    async def generate(
        self,
        model: str,
        contents: Any,
        config: types.GenerateContentConfig,
        timeout: Optional[float] = None,
    ) -> types.GenerateContentResponse:
        """Run one ``generate_content`` call on the async API.

        Raises CredentialMissing before any network traffic when no key is set,
        and ProviderTimeout when ``timeout`` elapses. Provider errors propagate.
        """
        # The Keychain lookup shells out, so keep it off the event loop.
        api_key = await asyncio.to_thread(self._credentials)
        client = self._client_for(api_key)
        call = client.aio.models.generate_content(model=model, contents=contents, config=config)
        if not timeout:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeout(timeout) from None


# ══════════════════════════════════════════════════════════════════
# Response helpers
# ══════════════════════════════════════════════════════════════════

def response_parts(response: Any) -> List[types.Part]:
    """Parts of the first candidate, or an empty list."""
    if response is None or not response.candidates:
        return []
    content = response.candidates[0].content
    if not content or not content.parts:
        return []
    return list(content.parts)


def extract_text(response: Any) -> str:
    """Concatenate answer text, skipping thought parts."""
    text_parts = []
    for part in response_parts(response):
        if part.text and not getattr(part, "thought", False):
            text_parts.append(part.text)
    return "".join(text_parts)


def extract_thoughts(response: Any) -> Optional[str]:
    """Concatenate thought-summary parts; None when the response has none."""
    thoughts = [
        part.text for part in response_parts(response)
        if part.text and getattr(part, "thought", False)
    ]
    joined = "\n".join(t.strip() for t in thoughts if t.strip())
    return joined or None


def extract_inline_data(response: Any) -> Optional[Any]:
    """First inline-data payload (bytes, or base64 text) in the response."""
    for part in response_parts(response):
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return inline.data
    return None
