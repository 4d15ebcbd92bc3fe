"""Curated restorative paths offered before a session starts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from elysian.models import FocusArea


@dataclass(frozen=True)
class AdviceCategory:
    title: str
    description: str
    prompt: str
    focus: FocusArea


CATEGORIES: List[AdviceCategory] = [
    AdviceCategory(
        title="Restoring the Union",
        description="Navigate marital storms, revive intimacy, and bridge communication gaps.",
        prompt="I want deep advice on how to start repairing a marriage where we feel like strangers.",
        focus=FocusArea.RESTORING_THE_UNION,
    ),
    AdviceCategory(
        title="Trust Reclamation",
        description="Strategies for healing after betrayal or deep disappointment.",
        prompt="How can I begin to rebuild trust when it has been fundamentally broken by a partner?",
        focus=FocusArea.TRUST_RECLAMATION,
    ),
    AdviceCategory(
        title="Inner Equanimity",
        description="Rediscover joy and self-worth during isolated life phases.",
        prompt="I've lost my sense of self. How do I cultivate happiness from within?",
        focus=FocusArea.INNER_EQUANIMITY,
    ),
    AdviceCategory(
        title="The Path Ahead",
        description="Clarity for career shifts, major losses, and personal rebirths.",
        prompt="I am at a crossroads in life and feel paralyzed. What is the path to clarity?",
        focus=FocusArea.THE_PATH_AHEAD,
    ),
]


def get_category(number: int) -> Optional[AdviceCategory]:
    """1-based lookup, as shown by `elysian paths`."""
    if 1 <= number <= len(CATEGORIES):
        return CATEGORIES[number - 1]
    return None
