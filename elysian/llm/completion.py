"""Chat completions against Gemini, shaped by the session mode."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from google.genai import types

from elysian.config import ElysianConfig
from elysian.errors import EmptyCompletion
from elysian.llm.client import GeminiClient, extract_text, extract_thoughts
from elysian.llm.prompts import build_system_instruction
from elysian.models import SessionMode, UserProfile

logger = logging.getLogger(__name__)

PROVIDER_ROLES = {"user": "user", "assistant": "model"}


@dataclass(frozen=True)
class CompletionResult:
    text: str
    thinking: Optional[str] = None


def build_contents(message: str, history: List[Dict[str, str]]) -> List[types.Content]:
    """Prior turns in order followed by the new user message."""
    contents = [
        types.Content(
            role=PROVIDER_ROLES.get(h["role"], "user"),
            parts=[types.Part.from_text(text=h["content"])],
        )
        for h in history
    ]
    contents.append(types.Content(role="user", parts=[types.Part.from_text(text=message)]))
    return contents


class CompletionClient:
    """Issues one chat-completion request per turn."""

    def __init__(self, gemini: GeminiClient, config: Optional[ElysianConfig] = None):
        self.gemini = gemini
        self.config = config or ElysianConfig()

    def model_for(self, mode: SessionMode) -> str:
        return self.config.deep_model if mode == SessionMode.DEEP else self.config.fast_model

    def build_config(self, mode: SessionMode, profile: Optional[UserProfile]) -> types.GenerateContentConfig:
        system_instruction = build_system_instruction(profile)
        if mode == SessionMode.DEEP:
            return types.GenerateContentConfig(
                system_instruction=system_instruction,
                thinking_config=types.ThinkingConfig(
                    thinking_budget=self.config.thinking_budget,
                    include_thoughts=True,
                ),
            )
        return types.GenerateContentConfig(system_instruction=system_instruction)

    async def complete(
        self,
        message: str,
        history: List[Dict[str, str]],
        mode: SessionMode,
        profile: Optional[UserProfile] = None,
    ) -> CompletionResult:
        """Send the transcript and return answer text plus, in DEEP mode, the reasoning trace.

        Raises CredentialMissing, EmptyCompletion or ProviderTimeout; any other
        provider error propagates unchanged.
        """
        model = self.model_for(mode)
        logger.debug("Completion request: model=%s mode=%s history=%d", model, mode.value, len(history))

        response = await self.gemini.generate(
            model=model,
            contents=build_contents(message, history),
            config=self.build_config(mode, profile),
            timeout=self.config.request_timeout,
        )

        text = extract_text(response).strip()
        if not text:
            raise EmptyCompletion(f"{model} returned no text")

        thinking = extract_thoughts(response) if mode == SessionMode.DEEP else None
        return CompletionResult(text=text, thinking=thinking)
