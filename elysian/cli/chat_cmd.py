"""Interactive chat session in the terminal.

Commands inside the session:
  /fast, /deep     switch request mode for the next message
  /voice           start or stop dictation into the pending input
  /speak [n]       read reply #n (default: latest) aloud
  /more [n]        show reply #n in full
  /blueprint       show the current restoration blueprint
  /help            list commands
  /quit            end the session
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from elysian.advice import get_category
from elysian.audio.capture import VoiceCapture
from elysian.audio.playback import AudioPlayer
from elysian.cli.blueprint_cmd import render_blueprint
from elysian.cli.profile_cmd import ensure_profile
from elysian.config import CredentialSource, ElysianConfig, load_config
from elysian.llm import BlueprintSynthesizer, CompletionClient, GeminiClient, SpeechSynthesizer
from elysian.models import Message, Role, SessionMode, UserProfile
from elysian.session import TherapySession
from elysian.storage import LocalStore

console = Console()
logger = logging.getLogger(__name__)

COLLAPSE_THRESHOLD = 450

HELP_TEXT = """[cyan]/fast[/cyan]       Mindful check-in (quick replies)
[cyan]/deep[/cyan]       Deep resonance (extended reasoning)
[cyan]/voice[/cyan]      Start or stop dictation
[cyan]/speak [n][/cyan]  Read a reply aloud
[cyan]/more [n][/cyan]   Show a reply in full
[cyan]/blueprint[/cyan]  Show your restoration blueprint
[cyan]/quit[/cyan]       End the session
Press Enter on an empty line to send dictated text."""

MODE_LABELS = {
    SessionMode.FAST: "Mindful Check-in",
    SessionMode.DEEP: "Deep Therapeutic Reasoning",
    SessionMode.VOICE: "Voice Session",
}


class ConsoleKeySelector:
    """Points the user at `elysian set-key` when no usable key is configured."""

    def __init__(self, gemini: GeminiClient):
        self._gemini = gemini

    def has_selected_key(self) -> bool:
        return self._gemini.has_credential()

    def open_select_key(self) -> None:
        console.print(
            "[yellow]No valid Gemini API key.[/yellow] "
            "Run [cyan]elysian set-key[/cyan] or export [cyan]API_KEY[/cyan], then send again."
        )


class PromptReader:
    """Reads input lines on daemon threads and hands them to the event loop.

    A read still blocked in ``input()`` when Ctrl-C arrives must not hold up
    interpreter exit.
    """

    def __init__(self, read_line: Optional[Callable[[str], str]] = None):
        self._read_line = read_line
        self._queue: Optional[asyncio.Queue] = None
        self._pending = False

    def _worker(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue, prompt: str):
        read = self._read_line or console.input
        try:
            item = read(prompt)
        except Exception as e:
            item = e
        try:
            loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            logger.debug("Event loop closed before input arrived")

    async def readline(self, prompt: str) -> str:
        """Next line of input. Re-raises EOFError from the underlying read."""
        if self._queue is None:
            self._queue = asyncio.Queue()
        if not self._pending:
            self._pending = True
            thread = threading.Thread(
                target=self._worker,
                args=(asyncio.get_running_loop(), self._queue, prompt),
                daemon=True,
            )
            thread.start()
        item = await self._queue.get()
        self._pending = False
        if isinstance(item, BaseException):
            raise item
        return item


def build_session(config: ElysianConfig, store: LocalStore, voice: bool = True) -> TherapySession:
    gemini = GeminiClient(CredentialSource())

    voice_factory = None
    if voice:
        def voice_factory(on_transcript, on_state_change):
            return VoiceCapture(
                on_transcript,
                on_state_change,
                language=config.voice_language,
                continuous=config.voice_continuous,
            )

    return TherapySession(
        completion=CompletionClient(gemini, config),
        synthesizer=BlueprintSynthesizer(gemini, config),
        speech=SpeechSynthesizer(gemini, config),
        player=AudioPlayer() if AudioPlayer.is_supported() else None,
        voice_factory=voice_factory,
        store=store,
        key_selector=ConsoleKeySelector(gemini),
    )


# ══════════════════════════════════════════════════════════════════
# Rendering
# ══════════════════════════════════════════════════════════════════

def _reply_number(session: TherapySession, message: Message) -> int:
    replies = [m for m in session.messages if m.role == Role.ASSISTANT]
    return replies.index(message) + 1


def render_message(session: TherapySession, message: Message, full: bool = False):
    if message.role == Role.USER:
        console.print(Text(f"You: {message.content}", style="bold"), justify="right")
        return

    if message.thinking:
        console.print(Panel(
            Text(message.thinking, style="italic"),
            title="[magenta]AI Path of Reason[/magenta]",
            border_style="magenta",
        ))

    body = message.content
    note = ""
    if not full and len(body) > COLLAPSE_THRESHOLD:
        body = f"{body[:COLLAPSE_THRESHOLD]}..."
        note = "  [dim](/more to read full wisdom)[/dim]"

    number = _reply_number(session, message)
    console.print(Panel(
        body,
        title=f"[bold green]Elysian[/bold green] [dim]#{number}[/dim]",
        subtitle=f"[dim]/speak {number}[/dim]{note}",
        subtitle_align="left",
        border_style="green",
    ))


def _pick_reply(session: TherapySession, arg: str) -> Optional[Message]:
    replies = [m for m in session.messages if m.role == Role.ASSISTANT]
    if not arg:
        return replies[-1] if replies else None
    try:
        number = int(arg)
    except ValueError:
        return None
    return replies[number - 1] if 1 <= number <= len(replies) else None


# ══════════════════════════════════════════════════════════════════
# REPL
# ══════════════════════════════════════════════════════════════════

async def _handle_command(session: TherapySession, line: str) -> bool:
    """Run a slash command. Returns False when the session should end."""
    cmd, _, arg = line.partition(" ")
    cmd, arg = cmd.lower(), arg.strip()

    if cmd in ("/quit", "/exit", "/bye"):
        return False
    if cmd == "/help":
        console.print(Panel(HELP_TEXT, title="Commands", border_style="dim"))
    elif cmd in ("/fast", "/deep"):
        session.set_mode(SessionMode.DEEP if cmd == "/deep" else SessionMode.FAST)
        console.print(f"[dim]Mode: {MODE_LABELS[session.mode]}[/dim]")
    elif cmd == "/voice":
        listening = session.toggle_voice_capture()
        if session.error:
            console.print(f"[yellow]{session.error.message}[/yellow]")
            session.dismiss_error()
        else:
            console.print("[red]● Listening...[/red]" if listening else "[dim]Stopped listening.[/dim]")
    elif cmd in ("/speak", "/more"):
        message = _pick_reply(session, arg)
        if message is None:
            console.print("[yellow]No such reply.[/yellow]")
        elif cmd == "/more":
            render_message(session, message, full=True)
        else:
            with console.status("[bold green]Vocalizing wisdom..."):
                played = await session.speak(message.id)
            if not played:
                console.print("[dim]Audio unavailable for this reply.[/dim]")
    elif cmd == "/blueprint":
        if session.blueprint is None:
            console.print("[yellow]No blueprint yet.[/yellow] Keep talking; it updates as we go.")
        else:
            console.print(render_blueprint(session.blueprint))
    else:
        console.print(f"[yellow]Unknown command {cmd}.[/yellow] Try /help")
    return True


async def _send(session: TherapySession, full: bool):
    before = len(session.messages)
    spawned = len(session.background_tasks)
    label = "Navigating therapeutic frameworks..." if session.mode == SessionMode.DEEP else "Analyzing emotional patterns..."
    with console.status(f"[bold green]{label}"):
        reply = await session.send_message()

    if reply is not None:
        render_message(session, reply, full=full)
        if len(session.background_tasks) > spawned:
            console.print("[dim]Refreshing your restoration blueprint in the background...[/dim]")
    elif session.error:
        console.print(Panel(f"[red]{session.error.message}[/red]", border_style="red"))
    elif len(session.messages) == before:
        console.print("[dim]Nothing to send.[/dim]")


async def run_chat(
    session: TherapySession,
    profile: Optional[UserProfile],
    deep: bool = False,
    prefill: str = "",
    full: bool = False,
    reader: Optional[PromptReader] = None,
):
    reader = reader or PromptReader()
    session.initialize(profile)
    if deep:
        session.set_mode(SessionMode.DEEP)
    session.input_buffer = prefill

    console.print(f"[bold]{MODE_LABELS[session.mode]}[/bold]  [dim]/help for commands[/dim]")
    render_message(session, session.messages[0], full=full)

    try:
        while True:
            if session.input_buffer:
                console.print(f"[dim]Pending: {session.input_buffer}[/dim]")
            line = await reader.readline("[bold cyan]› [/bold cyan]")
            line = line.strip()

            if line.startswith("/"):
                if not await _handle_command(session, line):
                    break
                continue

            if line:
                session.input_buffer = f"{session.input_buffer} {line}".strip()
            await _send(session, full)
    finally:
        if session.background_tasks:
            with console.status("[dim]Saving your restoration blueprint..."):
                await session.close()
        else:
            await session.close()


@click.command("chat")
@click.option("--deep", is_flag=True, help="Start in deep reasoning mode")
@click.option("--path", "path_number", type=int, default=None,
              help="Pre-fill the first message from a restorative path (see `elysian paths`)")
@click.option("--full", is_flag=True, help="Never collapse long replies")
@click.option("--no-voice", is_flag=True, help="Disable microphone dictation")
def chat(deep: bool, path_number: Optional[int], full: bool, no_voice: bool):
    """Start a conversation with Elysian.

    \b
    Examples:
        elysian chat
        elysian chat --deep
        elysian chat --path 3
    """
    prefill = ""
    if path_number is not None:
        category = get_category(path_number)
        if category is None:
            raise click.BadParameter(f"no path #{path_number}; see `elysian paths`", param_hint="--path")
        prefill = category.prompt

    config = load_config()
    store = LocalStore(config.store_path)
    profile = ensure_profile(store)
    session = build_session(config, store, voice=not no_voice)

    try:
        asyncio.run(run_chat(session, profile, deep=deep, prefill=prefill, full=full))
    except (KeyboardInterrupt, EOFError):
        console.print("\n\n✓ Session ended.")
