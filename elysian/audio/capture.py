"""Microphone speech-to-text via SpeechRecognition.

Continuous mode keeps a background listener running until stop(); single-shot
mode transcribes one phrase and stops by itself. Only final transcripts are
reported: the recognizer does not produce interim fragments.

Callbacks fire on the recognizer's worker thread. Callers that own an event
loop must hop back onto it themselves.

Requirements:
    pip install SpeechRecognition pyaudio
"""

from __future__ import annotations

import importlib.util
import logging
import threading
from typing import Any, Callable, Optional

from elysian.errors import CapabilityUnavailable

logger = logging.getLogger(__name__)

AMBIENT_CALIBRATION_SECONDS = 0.5
PHRASE_TIME_LIMIT = 30
LISTEN_TIMEOUT = 10


class VoiceCapture:

    def __init__(
        self,
        on_transcript: Callable[[str], None],
        on_state_change: Optional[Callable[[bool], None]] = None,
        language: str = "en-US",
        continuous: bool = True,
        recognizer: Any = None,
        microphone_factory: Optional[Callable[[], Any]] = None,
    ):
        if recognizer is None:
            if not self.is_supported():
                raise CapabilityUnavailable(
                    "Voice input not available. Install: pip install SpeechRecognition pyaudio"
                )
            import speech_recognition as sr
            recognizer = sr.Recognizer()
            microphone_factory = microphone_factory or sr.Microphone
        if microphone_factory is None:
            raise CapabilityUnavailable("No microphone backend configured")

        self.language = language
        self.continuous = continuous
        self._recognizer = recognizer
        self._microphone_factory = microphone_factory
        self._on_transcript = on_transcript
        self._on_state_change = on_state_change
        self._stopper: Optional[Callable[..., None]] = None
        self._listening = False
        self._lock = threading.Lock()

    @staticmethod
    def is_supported() -> bool:
        return all(
            importlib.util.find_spec(mod) is not None
            for mod in ("speech_recognition", "pyaudio")
        )

    @property
    def listening(self) -> bool:
        return self._listening

    def _set_listening(self, value: bool):
        with self._lock:
            changed = self._listening != value
            self._listening = value
        if changed and self._on_state_change:
            self._on_state_change(value)

    def start(self):
        if self._listening:
            return
        self._set_listening(True)
        try:
            source = self._microphone_factory()
            if self.continuous:
                with source as mic:
                    self._recognizer.adjust_for_ambient_noise(mic, duration=AMBIENT_CALIBRATION_SECONDS)
                self._stopper = self._recognizer.listen_in_background(
                    source, self._handle_audio, phrase_time_limit=PHRASE_TIME_LIMIT,
                )
            else:
                thread = threading.Thread(target=self._listen_once, args=(source,), daemon=True)
                thread.start()
        except Exception as e:
            logger.warning("Failed to start speech recognition: %s", e)
            self._stopper = None
            self._set_listening(False)

    def stop(self):
        stopper, self._stopper = self._stopper, None
        if stopper is not None:
            try:
                stopper(wait_for_stop=False)
            except Exception as e:
                logger.debug("Error stopping background listener: %s", e)
        self._set_listening(False)

    def _listen_once(self, source: Any):
        try:
            with source as mic:
                self._recognizer.adjust_for_ambient_noise(mic, duration=AMBIENT_CALIBRATION_SECONDS)
                audio = self._recognizer.listen(mic, timeout=LISTEN_TIMEOUT, phrase_time_limit=PHRASE_TIME_LIMIT)
        except Exception as e:
            logger.warning("Voice capture error: %s", e)
            self._set_listening(False)
            return
        self._handle_audio(self._recognizer, audio)
        self.stop()

    def _handle_audio(self, recognizer: Any, audio: Any):
        if not self._listening:
            return
        try:
            text = recognizer.recognize_google(audio, language=self.language)
        except Exception as e:
            logger.warning("Speech recognition stopped: %s", e)
            self.stop()
            return
        text = (text or "").strip()
        if text:
            logger.debug("Final transcript: %s", text)
            self._on_transcript(text)
