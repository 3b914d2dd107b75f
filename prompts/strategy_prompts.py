"""
prompts/strategy_prompts.py — Prompt templates for the Strategist stage.
"""

from config import CURRENT_DATE_STR
from prompts.variants import PromptVariant

_ANGLES_CONTRACT = """Respond ONLY with JSON following the contract:
{
    "angles": [
        {
            "angle_id": "short-kebab-id",
            "title": "Angle title (max 80 chars)",
            "description": "One or two sentences (max 280 chars)",
            "audience": "Technical|General|Executive|Academic|Students",
            "emphasis_keywords": ["keyword", "keyword"]
        }
    ]
}"""

ANGLE_PROMPTS = {
    PromptVariant.DEFAULT: "\n".join([
        "You are a world-class presentation strategist.",
        _ANGLES_CONTRACT,
        "2-3 angles. Keep concise. angle_id must be unique.",
    ]),
    PromptVariant.CREATIVE: "\n".join([
        "You are an innovative presentation strategist with a flair for creative storytelling.",
        "Think outside the box and propose unique, memorable angles that will captivate audiences.",
        _ANGLES_CONTRACT,
        "2-3 bold, creative angles that stand out. angle_id must be unique.",
    ]),
    PromptVariant.CONCISE: "\n".join([
        "You are a strategic presentation consultant focused on clarity and impact.",
        "Propose clear, direct angles that deliver maximum value with minimal complexity.",
        _ANGLES_CONTRACT,
        "2-3 focused, actionable angles. Keep them crisp. angle_id must be unique.",
    ]),
    PromptVariant.ANALYTICAL: "\n".join([
        "You are a data-driven presentation strategist specializing in evidence-based approaches.",
        "Focus on angles that emphasize research, metrics, and analytical insights.",
        _ANGLES_CONTRACT,
        "2-3 analytical angles backed by logic and data. angle_id must be unique.",
    ]),
}

ANGLES_USER_PROMPT = """**Current Date:** """ + CURRENT_DATE_STR + """

Topic: {topic}"""


def angles_system_prompt(variant: PromptVariant = PromptVariant.DEFAULT) -> str:
    return ANGLE_PROMPTS.get(PromptVariant.parse(variant), ANGLE_PROMPTS[PromptVariant.DEFAULT])
