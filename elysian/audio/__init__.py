from elysian.audio.capture import VoiceCapture
from elysian.audio.playback import AudioPlayer, decode_pcm16

__all__ = [
    "AudioPlayer",
    "VoiceCapture",
    "decode_pcm16",
]
