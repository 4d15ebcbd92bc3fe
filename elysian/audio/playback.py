"""PCM playback through the default output device.

Requirements:
    pip install pyaudio numpy
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
from typing import Any, Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

# Gemini TTS returns raw little-endian 16-bit PCM, mono, at this rate.
PLAYBACK_SAMPLE_RATE = 24000
PLAYBACK_CHANNELS = 1
PA_FLOAT32 = 1  # pyaudio.paFloat32


def decode_pcm16(data: bytes) -> np.ndarray:
    """Little-endian signed 16-bit PCM to float32 samples in [-1, 1).

    A trailing odd byte cannot form a sample and is dropped.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Expected bytes, got {type(data).__name__}")
    usable = len(data) - (len(data) % 2)
    if usable != len(data):
        logger.debug("Dropping trailing odd byte from %d-byte PCM buffer", len(data))
    samples = np.frombuffer(bytes(data[:usable]), dtype="<i2")
    return samples.astype(np.float32) / 32768.0


class AudioPlayer:
    """Plays decoded speech on a worker thread. Failures never escape."""

    def __init__(
        self,
        sample_rate: int = PLAYBACK_SAMPLE_RATE,
        channels: int = PLAYBACK_CHANNELS,
        backend_factory: Optional[Callable[[], Any]] = None,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self._backend_factory = backend_factory

    @staticmethod
    def is_supported() -> bool:
        return importlib.util.find_spec("pyaudio") is not None

    def _open_backend(self) -> Any:
        if self._backend_factory is not None:
            return self._backend_factory()
        import pyaudio
        return pyaudio.PyAudio()

    def _write(self, samples: np.ndarray):
        pya = self._open_backend()
        try:
            stream = pya.open(
                format=PA_FLOAT32, channels=self.channels,
                rate=self.sample_rate, output=True,
            )
            try:
                stream.write(samples.tobytes())
            finally:
                stream.stop_stream()
                stream.close()
        finally:
            pya.terminate()

    async def play(self, data: bytes) -> bool:
        """Decode and play ``data``. Returns True if audio reached the device."""
        try:
            samples = decode_pcm16(data)
        except (TypeError, ValueError) as e:
            logger.warning("Could not decode speech audio: %s", e)
            return False
        if samples.size == 0:
            logger.warning("Speech audio was empty, nothing to play")
            return False

        duration = samples.size / float(self.sample_rate * self.channels)
        logger.debug("Playing %.1fs of audio", duration)
        try:
            await asyncio.to_thread(self._write, samples)
        except Exception as e:
            logger.warning("Audio playback failed: %s", e)
            return False
        return True
