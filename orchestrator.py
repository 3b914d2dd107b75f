"""
orchestrator.py — Pipeline controller and state machine.
Manages the end-to-end flow from topic input to a frozen presentation bundle.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union

from agents.blueprint_agent import BlueprintBuilder, BlueprintRefiner
from agents.recipe_agent import RecipeComposer
from agents.strategist_agent import StrategistAgent
from config import DEFAULT_SLIDE_COUNT, Settings, get_settings
from engine.errors import PipelineError
from engine.model_gateway import ModelGateway
from engine.pipeline_logger import PipelineLogger
from models import (
    Angle,
    Blueprint,
    Bundle,
    BundleMetadata,
    PipelineState,
    RecipeSet,
    StreamEvent,
    Strategy,
)
from prompts.variants import PromptVariant


class PipelineOrchestrator:
    """Orchestrates the full presentation generation pipeline.

    State machine: idle → strategy → blueprint → recipes → done (or error)

    Each stage heals itself with a deterministic fallback, so the only
    exceptions that reach this level are contract violations or bugs. Those
    abort the run and surface as a single ``PipelineError``; an incomplete
    bundle is never returned.

    The orchestrator provides a callback hook for UI integration:
    - on_status_change: Called when pipeline status changes
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[ModelGateway] = None,
        on_status_change: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._gateway = gateway or ModelGateway(self._settings)
        self._log = PipelineLogger("Orchestrator")

        # Every stage shares one gateway
        self._strategist = StrategistAgent(gateway=self._gateway, settings=self._settings)
        self._builder = BlueprintBuilder(gateway=self._gateway, settings=self._settings)
        self._refiner = BlueprintRefiner(gateway=self._gateway, settings=self._settings)
        self._composer = RecipeComposer(gateway=self._gateway, settings=self._settings)

        # State of the most recent run; runs never share artifacts
        self.state = PipelineState()
        self._on_status_change = on_status_change

    @property
    def gateway(self) -> ModelGateway:
        return self._gateway

    def _set_status(self, state: PipelineState, status: str, step: str = "") -> None:
        """Update pipeline status and notify UI."""
        state.status = status
        state.current_step = step
        self._log.info(f"Pipeline status: {status} | {step}")
        if self._on_status_change:
            self._on_status_change(status, step)

    # ── Stage entry points ──────────────────────────────────

    async def generate_angles(
        self,
        topic: str,
        variant: PromptVariant = PromptVariant.DEFAULT,
    ) -> Strategy:
        return await self._strategist.run(topic, variant)

    async def generate_blueprint(
        self,
        topic: str,
        angle: Union[Angle, Dict[str, Any]],
        slide_count: Any = DEFAULT_SLIDE_COUNT,
        stream: bool = False,
        variant: PromptVariant = PromptVariant.DEFAULT,
    ) -> Union[Blueprint, AsyncIterator[StreamEvent]]:
        """Build the outline, or return its event stream when ``stream`` is set."""
        if stream:
            return self._builder.stream(topic, angle, slide_count, variant)
        return await self._builder.run(topic, angle, slide_count, variant)

    async def refine_blueprint(
        self,
        blueprint: Union[Blueprint, Dict[str, Any]],
        chat_history: Optional[List[Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Blueprint:
        return await self._refiner.run(blueprint, chat_history, context)

    async def generate_recipes(self, blueprint: Union[Blueprint, Dict[str, Any]]) -> RecipeSet:
        return await self._composer.run(blueprint)

    # ── Full run ────────────────────────────────────────────

    async def run_pipeline(
        self,
        topic: str,
        slide_count: Any = DEFAULT_SLIDE_COUNT,
        variant: PromptVariant = PromptVariant.DEFAULT,
        blueprint_variant: Optional[PromptVariant] = None,
    ) -> Bundle:
        """Run Strategy → first angle → Blueprint → Recipes and package the bundle.

        Args:
            topic: Presentation topic.
            slide_count: Requested slide count, clamped to [3, 15].
            variant: Prompt variant used by the strategy stage, and by the
                blueprint stage unless ``blueprint_variant`` is given.
            blueprint_variant: Prompt variant for the blueprint stage.

        Returns:
            A deep-copied, frozen Bundle owned by the caller.

        Raises:
            PipelineError: wrapping whatever a stage raised, with stage and topic.
        """
        state = PipelineState(topic=topic if isinstance(topic, str) else "")
        self.state = state
        with PipelineLogger.run_scope(state.run_id):
            return await self._run(state, topic, slide_count, variant, blueprint_variant or variant)

    async def _run(
        self,
        state: PipelineState,
        topic: str,
        slide_count: Any,
        variant: PromptVariant,
        blueprint_variant: PromptVariant,
    ) -> Bundle:
        self._log.action("Full Pipeline", f"topic={str(topic)[:60]} slides={slide_count}")

        stage = "strategy"
        try:
            self._set_status(state, "strategy", "Generating narrative angles")
            strategy = await self.generate_angles(topic, variant)
            angle = strategy.angles[0]
            self._log.decision(f"Chosen angle: {angle.angle_id}", reason="first proposed angle")

            stage = "blueprint"
            self._set_status(state, "blueprint", f"Outlining with angle '{angle.title}'")
            blueprint = await self._builder.run(topic, angle, slide_count, blueprint_variant)

            stage = "recipes"
            self._set_status(state, "recipes", f"Composing {blueprint.slide_count} recipes")
            recipes = await self.generate_recipes(blueprint)

            stage = "bundle"
            bundle = Bundle(
                topic=blueprint.topic,
                chosen_angle=angle,
                available_angles=list(strategy.angles),
                blueprint=blueprint,
                recipes=recipes,
                metadata=BundleMetadata(
                    slide_count=blueprint.slide_count,
                    theme=blueprint.theme.name if blueprint.theme and blueprint.theme.name else "Default",
                ),
            )
        except Exception as e:
            self._set_status(state, "error", f"{stage} failed: {e}")
            state.errors.append(str(e))
            raise PipelineError(stage, str(topic), e) from e

        self._set_status(state, "done", f"{bundle.metadata.slide_count} slides ready")
        return bundle.model_copy(deep=True)
