"""
agents/strategist_agent.py — Proposes 2-3 narrative angles for a topic.
Falls back to keyword-bucketed canned angles when the model output is unusable.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from config import Settings, get_settings
from engine.errors import ContractViolation
from engine.model_gateway import ModelGateway
from engine.pipeline_logger import PipelineLogger
from engine.schema_validator import sanitize_strategy
from models import Angle, Strategy
from prompts.strategy_prompts import ANGLES_USER_PROMPT, angles_system_prompt
from prompts.variants import PromptVariant


# ── Fallback angle library ──────────────────────────────────

_ANGLES: Dict[str, Dict[str, object]] = {
    "technical": {
        "title": "Technical Deep-Dive",
        "description": "Explain the mechanisms and architecture.",
        "audience": "Technical",
        "emphasis_keywords": ["architecture", "performance", "scalability"],
    },
    "business": {
        "title": "Business Impact",
        "description": "Show the value, costs and opportunities for organisations.",
        "audience": "Executive",
        "emphasis_keywords": ["value", "roi", "strategy"],
    },
    "scientific": {
        "title": "Scientific Foundations",
        "description": "Walk through the evidence, methods and open questions.",
        "audience": "Academic",
        "emphasis_keywords": ["evidence", "research", "methods"],
    },
    "human": {
        "title": "Human Impact",
        "description": "Focus on the people affected and what changes for them.",
        "audience": "General",
        "emphasis_keywords": ["people", "wellbeing", "stories"],
    },
    "inspirational": {
        "title": "Vision and Impact",
        "description": "Tell a story that inspires action.",
        "audience": "General",
        "emphasis_keywords": ["story", "impact", "future"],
    },
    "practical": {
        "title": "Practical Guide",
        "description": "Focus on actionable steps the audience can apply right away.",
        "audience": "General",
        "emphasis_keywords": ["steps", "tips", "actionable"],
    },
    "analytical": {
        "title": "Analytical Breakdown",
        "description": "Break the topic down with data, trade-offs and comparisons.",
        "audience": "Executive",
        "emphasis_keywords": ["data", "metrics", "trade-offs"],
    },
}

_BUCKETS: List[Tuple[frozenset, Tuple[str, ...]]] = [
    (
        frozenset({"tech", "technology", "software", "computing", "computer", "ai",
                   "data", "cloud", "digital", "engineering", "code", "programming"}),
        ("technical", "business"),
    ),
    (
        frozenset({"health", "healthcare", "medical", "medicine", "science", "scientific",
                   "biology", "climate"}),
        ("scientific", "human"),
    ),
]
_DEFAULT_BUCKET = ("inspirational", "practical", "analytical")


def fallback_strategy(topic: str) -> Strategy:
    """Deterministic canned angles chosen by keywords in the topic."""
    words = set(re.findall(r"[a-z]+", topic.lower()))
    angle_ids = _DEFAULT_BUCKET
    for keywords, ids in _BUCKETS:
        if words & keywords:
            angle_ids = ids
            break
    return Strategy(angles=[Angle(angle_id=a, **_ANGLES[a]) for a in angle_ids])


def topic_slug(topic: str) -> str:
    return re.sub(r"\s+", "_", topic.strip()).lower()


class StrategistAgent:
    """Generates candidate narrative angles for a topic."""

    def __init__(
        self,
        gateway: Optional[ModelGateway] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._gateway = gateway or ModelGateway(self._settings)
        self._log = PipelineLogger("Strategist")

    async def run(self, topic: str, variant: PromptVariant = PromptVariant.DEFAULT) -> Strategy:
        """Propose 2-3 angles with unique ids.

        Raises:
            ContractViolation: if ``topic`` is missing or not a string.
        """
        if not isinstance(topic, str) or not topic.strip():
            raise ContractViolation("topic must be a non-empty string")

        with self._log.step_start(f"Strategy: {topic[:60]}"):
            out = await self._gateway.call(
                system=angles_system_prompt(variant),
                user=ANGLES_USER_PROMPT.format(topic=topic),
                expect_json=True,
                cache_key=f"angles_{topic_slug(topic)}",
            )

            angles = out.get("angles") if isinstance(out, dict) else None
            if not isinstance(angles, list) or len(angles) < 2:
                self._log.fallback("angles", "model returned fewer than 2 angles or nothing usable")
                return fallback_strategy(topic)

            strategy = sanitize_strategy(out)
            self._log.decision(
                f"Angles: {[a.angle_id for a in strategy.angles]}",
                reason=f"variant={PromptVariant.parse(variant).value}",
            )
            return strategy
