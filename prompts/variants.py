"""
prompts/variants.py — Closed set of prompt variants used for A/B selection.
"""

from enum import Enum
from typing import Any


class PromptVariant(str, Enum):
    DEFAULT = "default"
    CREATIVE = "creative"
    CONCISE = "concise"
    ANALYTICAL = "analytical"

    @classmethod
    def parse(cls, value: Any) -> "PromptVariant":
        """Unknown or missing values map to DEFAULT."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.DEFAULT

    @classmethod
    def from_style(cls, style: Any) -> "PromptVariant":
        """Blueprint style preference → the prompt variant that writes in that style."""
        return STYLE_VARIANTS.get(str(style).strip().lower(), cls.DEFAULT)


STYLE_VARIANTS = {
    "default": PromptVariant.DEFAULT,
    "visual": PromptVariant.CREATIVE,
    "minimal": PromptVariant.CONCISE,
    "detailed": PromptVariant.ANALYTICAL,
}
