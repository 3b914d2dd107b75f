"""
engine/feature_flags.py — Deterministic per-user prompt-variant selection.

Users are bucketed by a stable hash of their id so the same user always sees
the same prompt variant. No remote flag service is contacted; a configured
token is only noted in the log.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from config import Settings, get_settings
from engine.pipeline_logger import PipelineLogger
from prompts.variants import PromptVariant

ANGLES_FLAG = "blueprint_prompt_logic"
STYLE_FLAG = "blueprint_style_preference"

FLAG_OPTIONS: Dict[str, Sequence[str]] = {
    ANGLES_FLAG: ("default", "creative", "concise", "analytical"),
    STYLE_FLAG: ("default", "detailed", "minimal", "visual"),
}


def stable_hash(value: str) -> int:
    """31-multiplier string hash folded to signed 32 bits, returned as its absolute value."""
    h = 0
    for ch in value:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


class VariantSelector:
    """Maps a user id onto one option of a named flag."""

    def __init__(self, remote_token: Optional[str] = None) -> None:
        self._log = PipelineLogger("VariantSelector")
        if remote_token:
            self._log.info("Remote flag token configured; using local deterministic selection")

    @classmethod
    def create(cls, settings: Optional[Settings] = None) -> "VariantSelector":
        settings = settings or get_settings()
        return cls(remote_token=settings.hypertune_api_key)

    def flag(self, flag_name: str, user_id: Optional[str] = None) -> str:
        options = FLAG_OPTIONS.get(flag_name, ("default",))
        return options[stable_hash(user_id or "anonymous") % len(options)]

    def variant_for(self, user_id: Optional[str] = None) -> PromptVariant:
        return PromptVariant.parse(self.flag(ANGLES_FLAG, user_id))

    def blueprint_variant_for(self, user_id: Optional[str] = None) -> PromptVariant:
        """The blueprint prompt follows the user's style bucket, not the angles bucket."""
        return PromptVariant.from_style(self.flag(STYLE_FLAG, user_id))

    def track(self, event: str, user_id: Optional[str] = None, **properties: object) -> None:
        """Record an experiment event. Only logged locally."""
        detail = " ".join(f"{k}={v}" for k, v in properties.items())
        self._log.debug(f"TRACK: {event} user={user_id or 'anonymous'} {detail}".rstrip())
