"""Tests for elysian/llm/speech.py."""

import base64
from types import SimpleNamespace

import pytest
from google.genai import types

from conftest import make_response
from elysian.llm.speech import SpeechSynthesizer


PCM = b"\x00\x00\xff\x7f\x00\x80"


def _base64_response(payload: str):
    part = SimpleNamespace(text=None, thought=None, inline_data=SimpleNamespace(data=payload))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


class TestSpeechSynthesizer:
    @pytest.mark.asyncio
    async def test_returns_raw_audio(self, gemini, fake_models, config):
        fake_models.responses.append(make_response(inline_data=PCM))
        audio = await SpeechSynthesizer(gemini, config).synthesize("Breathe slowly.")

        assert audio == PCM
        call = fake_models.calls[0]
        assert call["model"] == config.speech_model
        assert call["config"].response_modalities == [types.Modality.AUDIO]
        voice = call["config"].speech_config.voice_config.prebuilt_voice_config
        assert voice.voice_name == "Kore"
        prompt = call["contents"][0].parts[0].text
        assert prompt == "Speak with clinical empathy and deep warmth: Breathe slowly."

    @pytest.mark.asyncio
    async def test_base64_payload_is_decoded(self, gemini, fake_models, config):
        fake_models.responses.append(_base64_response(base64.b64encode(PCM).decode()))
        assert await SpeechSynthesizer(gemini, config).synthesize("hello") == PCM

    @pytest.mark.asyncio
    async def test_invalid_base64(self, gemini, fake_models, config):
        fake_models.responses.append(_base64_response("not base64 !!"))
        assert await SpeechSynthesizer(gemini, config).synthesize("hello") is None

    @pytest.mark.asyncio
    async def test_no_audio_part(self, gemini, fake_models, config):
        fake_models.responses.append(make_response(text="I can only write"))
        assert await SpeechSynthesizer(gemini, config).synthesize("hello") is None

    @pytest.mark.asyncio
    async def test_failure_returns_none(self, gemini, fake_models, config):
        fake_models.responses.append(ConnectionError("offline"))
        assert await SpeechSynthesizer(gemini, config).synthesize("hello") is None

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self, gemini, fake_models, key_box, config):
        key_box.key = None
        assert await SpeechSynthesizer(gemini, config).synthesize("hello") is None
        assert fake_models.calls == []

    @pytest.mark.asyncio
    async def test_blank_text_skips_request(self, gemini, fake_models, config):
        assert await SpeechSynthesizer(gemini, config).synthesize("  ") is None
        assert fake_models.calls == []
