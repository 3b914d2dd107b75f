"""
agents/recipe_agent.py — Composes one renderable recipe per blueprint slide.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from config import Settings, get_settings
from engine.errors import ContractViolation
from engine.model_gateway import ModelGateway
from engine.pipeline_logger import PipelineLogger
from engine.schema_validator import SchemaId, default_recipe_elements, sanitize_recipe_set, validate
from models import Blueprint, Recipe, RecipeSet, ThemeRuntime
from prompts.recipe_prompts import RECIPE_SYSTEM_PROMPT
from agents.strategist_agent import topic_slug


def default_recipe_set(blueprint: Blueprint) -> RecipeSet:
    """Title + bulleted list on black for every slide, ids and order preserved."""
    runtime = ThemeRuntime()
    return RecipeSet(
        theme_runtime=runtime,
        recipes=[
            Recipe(
                slide_id=slide.slide_id,
                layout_type="TitleAndBullets",
                background={"color": runtime.background, "overlay": False},
                elements=default_recipe_elements(slide),
            )
            for slide in blueprint.slides
        ],
    )


class RecipeComposer:
    """Chooses layouts and components for a finalized blueprint."""

    def __init__(
        self,
        gateway: Optional[ModelGateway] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._gateway = gateway or ModelGateway(self._settings)
        self._log = PipelineLogger("RecipeComposer")

    async def run(self, blueprint: Union[Blueprint, Dict[str, Any]]) -> RecipeSet:
        """Return exactly one recipe per slide, aligned to the blueprint's slide ids.

        Raises:
            ContractViolation: if ``blueprint`` is missing or invalid.
        """
        if not isinstance(blueprint, Blueprint):
            result = validate(blueprint, SchemaId.BLUEPRINT)
            if not result.ok:
                raise ContractViolation(f"a valid blueprint is required: {result.errors}")
            blueprint = result.artifact

        theme_name = blueprint.theme.name if blueprint.theme and blueprint.theme.name else "default"
        count = len(blueprint.slides)

        with self._log.step_start(f"Recipes: {count} slides"):
            out = await self._gateway.call(
                system=RECIPE_SYSTEM_PROMPT,
                user=json.dumps({"blueprint": blueprint.model_dump(mode="json", exclude_none=True)}),
                expect_json=True,
                cache_key=f"recipes_{topic_slug(blueprint.topic)}_{count}_{theme_name}",
            )

            recipes = out.get("recipes") if isinstance(out, dict) else None
            if not isinstance(recipes, list) or len(recipes) != count:
                got = len(recipes) if isinstance(recipes, list) else "none"
                self._log.fallback("recipes", f"expected {count} recipes, got {got}")
                return default_recipe_set(blueprint)

            recipe_set = sanitize_recipe_set(out, blueprint)
            layouts = [r.layout_type for r in recipe_set.recipes]
            self._log.info(f"Recipes ready: layouts={layouts}")
            return recipe_set
