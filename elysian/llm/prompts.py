"""Prompt text for Elysian's remote calls and the session greeting."""

from __future__ import annotations

from typing import Dict, List, Optional

from elysian.models import UserProfile

DEFAULT_NAME = "Friend"
DEFAULT_FOCUS = "Emotional Well-being"
DEFAULT_CONTEXT = "First session."

SPEECH_TONE = "Speak with clinical empathy and deep warmth:"

SYSTEM_INSTRUCTION = """You are Elysian, an elite AI emotional therapist and strategist.
Role: You don't just listen; you ANALYZE and FIX.
Tone: Empathetic but clinical, authoritative on psychology, and intensely focused on actionable recovery.
Objective: For every problem the user shares, provide a "Fix Protocol." Use psychological frameworks (CBT, DBT, Gottman Method) to intelligently suggest how the user can change their situation.
User Identity: {name}.
Current Focus Area: {focus}.
Additional User Context: {context}"""

BLUEPRINT_PROMPT = """Based on the following therapy session history, generate a "Restoration Blueprint" JSON object to FIX the user's emotional state or relationship.
Be specific, directive, and intelligently strategic.
{profile_lines}
Session History:
{history}"""


def build_system_instruction(profile: Optional[UserProfile]) -> str:
    name = (profile.name if profile else None) or DEFAULT_NAME
    focus = (profile.focus_label if profile else None) or DEFAULT_FOCUS
    context = (profile.context if profile else None) or DEFAULT_CONTEXT
    return SYSTEM_INSTRUCTION.format(name=name, focus=focus, context=context)


def build_welcome_message(profile: Optional[UserProfile]) -> str:
    name = (profile.name if profile else None) or "there"
    focus = profile.focus_label if profile else None
    focus_clause = f" regarding your focus on {focus}" if focus else ""
    return (
        f"Welcome back, {name}. I've been reflecting on our previous journey. "
        f"How is your heart feeling today{focus_clause}?"
    )


def format_history(history: List[Dict[str, str]]) -> str:
    return "\n".join(f"{h['role']}: {h['content']}" for h in history)


def build_blueprint_prompt(history: List[Dict[str, str]], profile: Optional[UserProfile]) -> str:
    profile_lines = []
    if profile and profile.name:
        profile_lines.append(f"User: {profile.name}")
    if profile and profile.focus_label:
        profile_lines.append(f"Focus Area: {profile.focus_label}")
    block = ("\n" + "\n".join(profile_lines) + "\n") if profile_lines else ""
    return BLUEPRINT_PROMPT.format(profile_lines=block, history=format_history(history))


def build_speech_prompt(text: str) -> str:
    return f"{SPEECH_TONE} {text}"
