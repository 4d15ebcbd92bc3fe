"""Session orchestration: message log, mode, turn-taking and voice lifecycle.

One TherapySession owns all mutable session state. It is driven from a
single asyncio event loop; the only work that runs elsewhere is voice
capture, whose callbacks are marshalled back onto the loop.

Turn flow:
    user text -> append user message -> completion (history + mode + profile)
      -> append assistant message -> (from the second turn) background blueprint
    failures -> classified into the single error slot
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from elysian.audio.capture import VoiceCapture
from elysian.audio.playback import AudioPlayer
from elysian.errors import CapabilityUnavailable, MalformedBlueprint
from elysian.llm.blueprint import BlueprintSynthesizer
from elysian.llm.completion import CompletionClient
from elysian.llm.prompts import build_welcome_message
from elysian.llm.speech import SpeechSynthesizer
from elysian.models import Message, RestorationBlueprint, Role, SessionMode, UserProfile
from elysian.session.state import (
    VOICE_UNSUPPORTED_MESSAGE,
    ErrorKind,
    SessionError,
    classify_error,
)
from elysian.storage import LocalStore, load_blueprint, save_blueprint

logger = logging.getLogger(__name__)

# Blueprints start once the log held this many entries before the turn.
BLUEPRINT_MIN_LOG_ENTRIES = 2

VoiceFactory = Callable[[Callable[[str], None], Callable[[bool], None]], VoiceCapture]


class KeySelector(Protocol):
    """Host hook for choosing or re-entering the provider credential."""

    def has_selected_key(self) -> bool: ...

    def open_select_key(self) -> None: ...


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class TherapySession:

    def __init__(
        self,
        completion: CompletionClient,
        synthesizer: BlueprintSynthesizer,
        speech: Optional[SpeechSynthesizer] = None,
        player: Optional[AudioPlayer] = None,
        voice_factory: Optional[VoiceFactory] = None,
        store: Optional[LocalStore] = None,
        key_selector: Optional[KeySelector] = None,
    ):
        self._completion = completion
        self._synthesizer = synthesizer
        self._speech = speech
        self._player = player
        self._voice_factory = voice_factory
        self._store = store
        self._key_selector = key_selector

        self.profile: Optional[UserProfile] = None
        self.messages: List[Message] = []
        self.mode = SessionMode.FAST
        self.loading = False
        self.error: Optional[SessionError] = None
        self.blueprint: Optional[RestorationBlueprint] = None
        self.input_buffer = ""
        self.listening = False
        self.is_playing = False

        self._welcome_id: Optional[str] = None
        self._voice: Optional[VoiceCapture] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._background: Set[asyncio.Task] = set()

    # ── Lifecycle ──

    def initialize(self, profile: Optional[UserProfile] = None):
        """Start a fresh session log with a personalized welcome."""
        self.profile = profile
        welcome = Message.create(Role.ASSISTANT, build_welcome_message(profile))
        self._welcome_id = welcome.id
        self.messages = [welcome]
        self.mode = SessionMode.FAST
        self.error = None
        self.loading = False
        self.input_buffer = ""
        self._loop = _running_loop()

        if self._store is not None:
            self.blueprint = load_blueprint(self._store)

        self._init_voice()

    def _init_voice(self):
        if self._voice is not None:
            self._voice.stop()
        self._voice = None
        self.listening = False
        if self._voice_factory is None:
            return
        try:
            self._voice = self._voice_factory(self._on_transcript, self._on_listening_changed)
        except CapabilityUnavailable as e:
            logger.info("Voice capture disabled: %s", e)

    @property
    def voice_available(self) -> bool:
        return self._voice is not None

    @property
    def background_tasks(self) -> Set[asyncio.Task]:
        return set(self._background)

    async def wait_for_background(self):
        """Join outstanding blueprint regenerations."""
        while True:
            pending = [t for t in self._background if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self):
        if self._voice is not None:
            self._voice.stop()
        await self.wait_for_background()

    # ── State ──

    def set_mode(self, mode: SessionMode):
        mode = SessionMode(mode)
        if mode == SessionMode.DEEP and self._key_selector is not None:
            try:
                if not self._key_selector.has_selected_key():
                    self._key_selector.open_select_key()
            except Exception as e:
                logger.warning("Key selection failed: %s", e)
        self.mode = mode

    def dismiss_error(self):
        self.error = None

    def conversation_history(self) -> List[Dict[str, str]]:
        """The log as role/content pairs, without the local welcome greeting."""
        return [m.to_history() for m in self.messages if m.id != self._welcome_id]

    def find_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def _append(self, role: Role, content: str, thinking: Optional[str] = None) -> Message:
        # Keep timestamps strictly increasing even when the clock does not move.
        now = time.time()
        if self.messages and now <= self.messages[-1].timestamp:
            now = self.messages[-1].timestamp + 1e-6
        message = Message.create(role, content, thinking=thinking, timestamp=now)
        self.messages.append(message)
        return message

    # ── Turns ──

    async def send_message(self, text: Optional[str] = None) -> Optional[Message]:
        """Run one chat turn. Returns the assistant message, or None if nothing was added."""
        if text is None:
            text = self.input_buffer
        if not text or not text.strip() or self.loading:
            return None

        if self._voice is not None and self.listening:
            self._voice.stop()

        mode = self.mode
        log_size_before = len(self.messages)
        history = self.conversation_history()

        self._append(Role.USER, text)
        self.input_buffer = ""
        self.error = None
        self.loading = True
        try:
            result = await self._completion.complete(text, history, mode, self.profile)
            thinking = result.thinking if mode == SessionMode.DEEP else None
            reply = self._append(Role.ASSISTANT, result.text, thinking=thinking)

            if log_size_before >= BLUEPRINT_MIN_LOG_ENTRIES:
                self._spawn_blueprint(self.conversation_history())
            return reply
        except Exception as e:
            logger.error("Chat send error: %s", e)
            self.error = classify_error(e)
            if self.error.needs_credentials:
                self._open_key_picker()
            return None
        finally:
            self.loading = False

    def _open_key_picker(self):
        if self._key_selector is None:
            return
        try:
            self._key_selector.open_select_key()
        except Exception as e:
            logger.warning("Could not open key selection: %s", e)

    # ── Blueprint ──

    def _spawn_blueprint(self, history: List[Dict[str, str]]):
        task = asyncio.create_task(self._regenerate_blueprint(history, self.profile))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _regenerate_blueprint(self, history: List[Dict[str, str]], profile: Optional[UserProfile]):
        try:
            blueprint = await self._synthesizer.synthesize(history, profile)
        except MalformedBlueprint as e:
            logger.warning("Discarding malformed blueprint: %s", e)
            return
        except Exception as e:
            logger.warning("Blueprint generation failed: %s", e)
            return

        self.blueprint = blueprint
        if self._store is not None:
            try:
                save_blueprint(self._store, blueprint)
            except OSError as e:
                logger.warning("Could not persist blueprint: %s", e)

    # ── Voice ──

    def toggle_voice_capture(self) -> bool:
        """Start or stop listening. Returns the new listening state."""
        if self._voice is None:
            self.error = SessionError(ErrorKind.CAPABILITY_UNAVAILABLE, VOICE_UNSUPPORTED_MESSAGE)
            return False
        self._loop = _running_loop() or self._loop
        if self.listening:
            self._voice.stop()
        else:
            self._voice.start()
        self.listening = self._voice.listening
        return self.listening

    def _dispatch(self, fn: Callable[..., Any], *args: Any):
        loop = self._loop
        if loop is None or loop.is_closed() or _running_loop() is loop:
            fn(*args)
        else:
            loop.call_soon_threadsafe(fn, *args)

    def _on_transcript(self, text: str):
        self._dispatch(self._append_transcript, text)

    def _on_listening_changed(self, listening: bool):
        self._dispatch(setattr, self, "listening", listening)

    def _append_transcript(self, text: str):
        if self.input_buffer and not self.input_buffer[-1].isspace():
            self.input_buffer += " "
        self.input_buffer += text

    # ── Playback ──

    async def speak(self, message_id: str) -> bool:
        """Read a message aloud. Ignored while another playback is running."""
        if self.is_playing:
            return False
        message = self.find_message(message_id)
        if message is None:
            logger.warning("No message with id %s to speak", message_id)
            return False
        if self._speech is None or self._player is None:
            logger.info("Speech output is not configured")
            return False

        self.is_playing = True
        try:
            audio = await self._speech.synthesize(message.content)
            if not audio:
                return False
            return await self._player.play(audio)
        except Exception as e:
            logger.error("TTS play error: %s", e)
            return False
        finally:
            self.is_playing = False
