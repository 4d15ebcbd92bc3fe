"""Core data types shared by the session, the LLM clients and the CLI."""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_id_counter = itertools.count(1)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class SessionMode(str, Enum):
    """Request shaping for the next outgoing turn.

    VOICE is accepted but shapes requests exactly like FAST.
    """

    FAST = "FAST"
    DEEP = "DEEP"
    VOICE = "VOICE"


class FocusArea(str, Enum):
    RELATIONSHIP_REPAIR = "Relationship Repair"
    MARRIAGE_COUNSELING = "Marriage Counseling"
    FINDING_INNER_PEACE = "Finding Inner Peace"
    LIFE_TRANSITION_SUPPORT = "Life Transition Support"
    GENERAL_HAPPINESS = "General Happiness"
    WORK_LIFE_BALANCE = "Work-Life Balance"
    RESTORING_THE_UNION = "Restoring the Union"
    TRUST_RECLAMATION = "Trust Reclamation"
    INNER_EQUANIMITY = "Inner Equanimity"
    THE_PATH_AHEAD = "The Path Ahead"


def new_message_id() -> str:
    """Ids sort by creation: millisecond clock plus a process-wide counter."""
    return f"{int(time.time() * 1000)}-{next(_id_counter):06d}"


@dataclass(frozen=True)
class Message:
    """One entry in the session log. Never mutated after creation."""

    role: Role
    content: str
    id: str = ""
    timestamp: float = 0.0
    thinking: Optional[str] = None
    is_audio: bool = False

    @classmethod
    def create(
        cls,
        role: Role,
        content: str,
        thinking: Optional[str] = None,
        timestamp: Optional[float] = None,
    ) -> "Message":
        return cls(
            role=role,
            content=content,
            id=new_message_id(),
            timestamp=time.time() if timestamp is None else timestamp,
            thinking=thinking,
        )

    def to_history(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class UserProfile(BaseModel):
    """Profile collected once at setup and read by every completion request."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, frozen=True)

    name: Optional[str] = None
    main_focus: Optional[FocusArea] = Field(default=None, alias="mainFocus")
    context: Optional[str] = None

    @field_validator("name", "context", "main_focus", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def focus_label(self) -> Optional[str]:
        return self.main_focus.value if self.main_focus else None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str) -> "UserProfile":
        return cls.model_validate_json(raw)


class ActionStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    why_it_works: str = Field(
        min_length=1,
        alias="whyItWorks",
        description="The psychological logic behind this step.",
    )


class BlueprintPayload(BaseModel):
    """The four fields the model is asked to produce."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    root_analysis: str = Field(
        min_length=1,
        alias="rootAnalysis",
        description="A deep dive into the hidden psychological cause of the user's pain.",
    )
    core_shift: str = Field(
        min_length=1,
        alias="coreShift",
        description="The single most important mindset change required to fix this.",
    )
    action_steps: List[ActionStep] = Field(min_length=1, alias="actionSteps")
    suggested_ritual: str = Field(
        min_length=1,
        alias="suggestedRitual",
        description="A daily habit to solidify the healing.",
    )


class RestorationBlueprint(BlueprintPayload):
    """A synthesized improvement plan. Replaced wholesale on every regeneration."""

    last_updated: int = Field(alias="lastUpdated", description="Epoch milliseconds.")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> "RestorationBlueprint":
        return cls.model_validate_json(raw)
