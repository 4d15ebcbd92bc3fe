"""Restoration blueprint synthesis.

Turns the running conversation into a structured improvement plan using
Gemini's schema-constrained JSON output. The result is validated with
pydantic; anything that does not fit raises MalformedBlueprint.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from google.genai import types
from json_repair import repair_json
from pydantic import ValidationError

from elysian.config import ElysianConfig
from elysian.errors import MalformedBlueprint
from elysian.llm.client import GeminiClient, extract_text
from elysian.llm.prompts import build_blueprint_prompt
from elysian.models import BlueprintPayload, RestorationBlueprint, UserProfile

logger = logging.getLogger(__name__)

_STRING = types.Type.STRING

ACTION_STEP_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "title": types.Schema(type=_STRING),
        "description": types.Schema(type=_STRING),
        "whyItWorks": types.Schema(type=_STRING, description="The psychological logic behind this step."),
    },
    required=["title", "description", "whyItWorks"],
)

BLUEPRINT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "rootAnalysis": types.Schema(
            type=_STRING,
            description="A deep dive into the hidden psychological cause of the user's pain.",
        ),
        "coreShift": types.Schema(
            type=_STRING,
            description="The single most important mindset change required to fix this.",
        ),
        "actionSteps": types.Schema(type=types.Type.ARRAY, items=ACTION_STEP_SCHEMA, min_items=1),
        "suggestedRitual": types.Schema(type=_STRING, description="A daily habit to solidify the healing."),
    },
    required=["rootAnalysis", "coreShift", "actionSteps", "suggestedRitual"],
)


def _strip_fences(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = [line for line in cleaned.split("\n") if not line.strip().startswith("```")]
        cleaned = "\n".join(lines).strip()
    return cleaned


def parse_blueprint(raw: str, now_ms: Optional[int] = None) -> RestorationBlueprint:
    """Parse model output into a stamped blueprint.

    Uses json_repair for slightly broken JSON, then pydantic for validation.
    """
    cleaned = _strip_fences(raw or "")
    if not cleaned:
        raise MalformedBlueprint("Empty blueprint payload")

    try:
        obj: Any = repair_json(cleaned, return_objects=True)
    except Exception as e:
        raise MalformedBlueprint(f"Unparseable blueprint payload: {e}") from e

    if not isinstance(obj, dict):
        raise MalformedBlueprint(f"Blueprint payload is not an object: {cleaned[:120]!r}")

    try:
        payload = BlueprintPayload.model_validate(obj)
    except ValidationError as e:
        missing = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise MalformedBlueprint(f"Blueprint failed validation ({', '.join(missing)})") from e

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return RestorationBlueprint.model_validate(
        {**payload.model_dump(by_alias=True), "lastUpdated": stamp}
    )


class BlueprintSynthesizer:
    """Generates a fresh RestorationBlueprint from the conversation so far."""

    def __init__(self, gemini: GeminiClient, config: Optional[ElysianConfig] = None):
        self.gemini = gemini
        self.config = config or ElysianConfig()

    def _window(self, history: List[Dict[str, str]]) -> List[Dict[str, str]]:
        limit = self.config.blueprint_history_messages
        return history[-limit:] if limit and limit > 0 else list(history)

    async def synthesize(
        self,
        history: List[Dict[str, str]],
        profile: Optional[UserProfile] = None,
    ) -> RestorationBlueprint:
        prompt = build_blueprint_prompt(self._window(history), profile)
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=BLUEPRINT_SCHEMA,
        )

        start = time.time()
        response = await self.gemini.generate(
            model=self.config.blueprint_model,
            contents=[types.Content(role="user", parts=[types.Part.from_text(text=prompt)])],
            config=config,
            timeout=self.config.request_timeout,
        )
        blueprint = parse_blueprint(extract_text(response))
        logger.info(
            "Blueprint synthesized from %d messages in %.1fs (%d steps)",
            len(history), time.time() - start, len(blueprint.action_steps),
        )
        return blueprint
