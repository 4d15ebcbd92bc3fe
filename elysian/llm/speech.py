"""Text-to-speech through Gemini's audio output modality.

Synthesis is best effort: every failure is logged and reported as None.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional

from google.genai import types

from elysian.config import ElysianConfig
from elysian.llm.client import GeminiClient, extract_inline_data
from elysian.llm.prompts import build_speech_prompt

logger = logging.getLogger(__name__)


def _as_bytes(data) -> Optional[bytes]:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.warning("Speech payload is not valid base64: %s", e)
    return None


class SpeechSynthesizer:
    def __init__(self, gemini: GeminiClient, config: Optional[ElysianConfig] = None):
        self.gemini = gemini
        self.config = config or ElysianConfig()

    def build_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_modalities=[types.Modality.AUDIO],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.config.voice_name),
                ),
            ),
        )

    async def synthesize(self, text: str) -> Optional[bytes]:
        """Return raw PCM bytes for ``text``, or None on any failure."""
        if not text or not text.strip():
            return None
        try:
            response = await self.gemini.generate(
                model=self.config.speech_model,
                contents=[types.Content(role="user", parts=[types.Part.from_text(text=build_speech_prompt(text))])],
                config=self.build_config(),
                timeout=self.config.speech_timeout,
            )
        except Exception as e:
            logger.warning("Speech synthesis failed: %s", e)
            return None

        data = extract_inline_data(response)
        if data is None:
            logger.warning("Speech response carried no audio")
            return None
        return _as_bytes(data)
