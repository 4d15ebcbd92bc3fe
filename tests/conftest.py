"""Shared fakes for the Gemini SDK, the session collaborators and audio devices."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, List, Optional

import pytest
from google.genai import types

from elysian.config import CredentialSource, ElysianConfig
from elysian.llm.client import GeminiClient
from elysian.llm.completion import CompletionResult
from elysian.models import RestorationBlueprint


# ===================================================================
# Gemini SDK fakes
# ===================================================================

def make_response(
    text: Optional[str] = None,
    thoughts: Optional[List[str]] = None,
    inline_data: Any = None,
) -> types.GenerateContentResponse:
    parts = [types.Part(text=t, thought=True) for t in (thoughts or [])]
    if text is not None:
        parts.append(types.Part(text=text))
    if inline_data is not None:
        parts.append(types.Part(inline_data=types.Blob(data=inline_data, mime_type="audio/pcm;rate=24000")))
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=parts))]
    )


class FakeModels:
    """Stands in for ``client.aio.models``; replays scripted responses."""

    def __init__(self, responses: Optional[list] = None, delay: float = 0.0):
        self.responses = list(responses or [])
        self.calls: list[dict] = []
        self.delay = delay

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.responses.pop(0) if self.responses else make_response(text="ok")
        if isinstance(result, BaseException):
            raise result
        return result


class FakeGenaiClient:
    def __init__(self, api_key: str, models: FakeModels):
        self.api_key = api_key
        self.aio = SimpleNamespace(models=models)


class KeyBox:
    """Mutable credential so tests can add or change the key between calls."""

    def __init__(self, key: Optional[str] = "AIzaTEST-KEY-1234"):
        self.key = key
        self.reads = 0

    def __call__(self) -> Optional[str]:
        self.reads += 1
        return self.key


@pytest.fixture
def fake_models():
    return FakeModels()


@pytest.fixture
def key_box():
    return KeyBox()


@pytest.fixture
def built_clients():
    return []


@pytest.fixture
def gemini(fake_models, key_box, built_clients):
    def factory(api_key):
        client = FakeGenaiClient(api_key, fake_models)
        built_clients.append(client)
        return client

    return GeminiClient(CredentialSource(key_box), client_factory=factory)


@pytest.fixture
def config(tmp_path):
    return ElysianConfig(request_timeout=5, speech_timeout=5, store_path=str(tmp_path / "store.json"))


# ===================================================================
# Session collaborator fakes
# ===================================================================

def make_blueprint(marker: str = "v1") -> RestorationBlueprint:
    return RestorationBlueprint.model_validate({
        "rootAnalysis": f"Root {marker}",
        "coreShift": f"Shift {marker}",
        "actionSteps": [
            {"title": "Breathe", "description": "Box breathing twice a day", "whyItWorks": "Calms the vagus nerve"},
        ],
        "suggestedRitual": f"Ritual {marker}",
        "lastUpdated": 1_700_000_000_000,
    })


class FakeCompletion:
    def __init__(self, results: Optional[list] = None):
        self.results = list(results or [])
        self.calls: list[dict] = []
        self.gate: Optional[asyncio.Event] = None

    async def complete(self, message, history, mode, profile=None):
        self.calls.append({"message": message, "history": list(history), "mode": mode, "profile": profile})
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if self.results else CompletionResult(text=f"Reply to: {message}")
        if isinstance(result, BaseException):
            raise result
        return result


class FakeSynthesizer:
    def __init__(self, results: Optional[list] = None):
        self.results = list(results or [])
        self.calls: list[dict] = []

    async def synthesize(self, history, profile=None):
        self.calls.append({"history": list(history), "profile": profile})
        result = self.results.pop(0) if self.results else make_blueprint()
        if isinstance(result, BaseException):
            raise result
        return result


class FakeSpeech:
    def __init__(self, audio: Optional[bytes] = b"\x00\x10" * 8):
        self.audio = audio
        self.calls: list[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.error: Optional[BaseException] = None

    async def synthesize(self, text):
        self.calls.append(text)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.audio


class FakePlayer:
    def __init__(self):
        self.played: list[bytes] = []

    async def play(self, data):
        self.played.append(data)
        return True


class FakeVoice:
    """VoiceCapture lookalike driven directly by tests."""

    def __init__(self, on_transcript, on_state_change):
        self.on_transcript = on_transcript
        self.on_state_change = on_state_change
        self.listening = False
        self.starts = 0
        self.stops = 0

    def start(self):
        self.starts += 1
        self.listening = True
        self.on_state_change(True)

    def stop(self):
        self.stops += 1
        if self.listening:
            self.listening = False
            self.on_state_change(False)

    def hear(self, text: str):
        self.on_transcript(text)


class FakeKeySelector:
    def __init__(self, has_key: bool = True):
        self.has_key = has_key
        self.opened = 0

    def has_selected_key(self) -> bool:
        return self.has_key

    def open_select_key(self) -> None:
        self.opened += 1


# ===================================================================
# Audio device fakes
# ===================================================================

class FakeStream:
    def __init__(self, fail: bool = False):
        self.written: list[bytes] = []
        self.closed = False
        self.fail = fail

    def write(self, data):
        if self.fail:
            raise OSError("device unplugged")
        self.written.append(data)

    def stop_stream(self):
        pass

    def close(self):
        self.closed = True


class FakePyAudio:
    def __init__(self, fail_write: bool = False):
        self.opened: list[dict] = []
        self.stream = FakeStream(fail=fail_write)
        self.terminated = False

    def open(self, **kwargs):
        self.opened.append(kwargs)
        return self.stream

    def terminate(self):
        self.terminated = True
