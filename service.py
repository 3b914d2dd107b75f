"""
service.py — Request-layer facade over the pipeline.
Applies per-client rate limiting and per-user prompt variants, runs the
pipeline, optionally persists the deck with generated slide content, and
reviews persisted decks.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from agents.deck_reviewer import review_slides
from agents.slide_content_agent import ContentReport, SlideContentWriter
from config import DEFAULT_SLIDE_COUNT, Settings, get_settings
from engine.feature_flags import VariantSelector
from engine.model_gateway import ModelGateway
from engine.persistence import PresentationStore
from engine.pipeline_logger import PipelineLogger
from engine.rate_limiter import RateLimiter
from models import Blueprint, Bundle, RecipeSet, ReviewReport, Strategy
from orchestrator import PipelineOrchestrator
from prompts.variants import PromptVariant


class PresentationService:
    """Everything a thin HTTP or CLI layer needs, with collaborators injected."""

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        rate_limiter: RateLimiter,
        selector: VariantSelector,
        writer: SlideContentWriter,
    ) -> None:
        self._orchestrator = orchestrator
        self._limiter = rate_limiter
        self._selector = selector
        self._writer = writer
        self._log = PipelineLogger("PresentationService")

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        gateway: Optional[ModelGateway] = None,
        store: Optional[PresentationStore] = None,
    ) -> "PresentationService":
        settings = settings or get_settings()
        gateway = gateway or ModelGateway(settings)
        return cls(
            orchestrator=PipelineOrchestrator(settings, gateway=gateway),
            rate_limiter=RateLimiter.create(settings),
            selector=VariantSelector.create(settings),
            writer=SlideContentWriter(gateway=gateway, store=store, settings=settings),
        )

    @property
    def orchestrator(self) -> PipelineOrchestrator:
        return self._orchestrator

    def _admit(self, client_key: str, user_id: Optional[str], feature: str) -> PromptVariant:
        self._limiter.hit(client_key or user_id or "anon")
        variant = self._selector.variant_for(user_id)
        self._selector.track("request", user_id, feature=feature, variant=variant.value)
        return variant

    # ── Stage requests ──────────────────────────────────────

    async def generate_angles(self, topic: str, *, user_id: Optional[str] = None, client_key: str = "") -> Strategy:
        variant = self._admit(client_key, user_id, "angles_generation")
        return await self._orchestrator.generate_angles(topic, variant)

    async def generate_blueprint(
        self,
        topic: str,
        angle: Any,
        slide_count: Any = DEFAULT_SLIDE_COUNT,
        *,
        stream: bool = False,
        user_id: Optional[str] = None,
        client_key: str = "",
    ):
        self._admit(client_key, user_id, "blueprint_generation")
        variant = self._selector.blueprint_variant_for(user_id)
        self._log.debug(f"Blueprint prompt for {user_id or 'anonymous'}: {variant.value}")
        return await self._orchestrator.generate_blueprint(topic, angle, slide_count, stream, variant)

    async def refine_blueprint(
        self,
        blueprint: Any,
        chat_history: Optional[List[Any]] = None,
        context: Optional[Dict[str, Any]] = None,
        *,
        user_id: Optional[str] = None,
        client_key: str = "",
    ) -> Blueprint:
        self._admit(client_key, user_id, "blueprint_refine")
        return await self._orchestrator.refine_blueprint(blueprint, chat_history, context)

    async def generate_recipes(self, blueprint: Any, *, user_id: Optional[str] = None, client_key: str = "") -> RecipeSet:
        self._admit(client_key, user_id, "recipes_generation")
        return await self._orchestrator.generate_recipes(blueprint)

    # ── Full deck ───────────────────────────────────────────

    async def create_presentation(
        self,
        topic: str,
        slide_count: Any = DEFAULT_SLIDE_COUNT,
        *,
        user_id: Optional[str] = None,
        client_key: str = "",
        persist: bool = True,
    ) -> Tuple[Bundle, Optional[ContentReport]]:
        """Run the full pipeline and, when ``persist`` is set, write the deck with content.

        Raises:
            RateLimitExceeded: when the client is over budget.
            PipelineError: when a stage fails hard.
        """
        variant = self._admit(client_key, user_id, "presentation")
        bundle = await self._orchestrator.run_pipeline(
            topic, slide_count, variant,
            blueprint_variant=self._selector.blueprint_variant_for(user_id),
        )

        report = None
        if persist:
            report = await self._writer.run(bundle.blueprint, user_id=user_id)
        self._selector.track(
            "presentation_created", user_id,
            variant=variant.value, slides=bundle.metadata.slide_count,
        )
        return bundle, report

    # ── Review ──────────────────────────────────────────────

    async def review_presentation(
        self,
        slides: Union[ContentReport, List[Any]],
        *,
        user_id: Optional[str] = None,
        client_key: str = "",
    ) -> ReviewReport:
        """Review slide rows, or the persisted rows behind a ContentReport.

        Raises:
            RateLimitExceeded: when the client is over budget.
            ContractViolation: when ``slides`` is not a list.
        """
        self._admit(client_key, user_id, "review")
        if isinstance(slides, ContentReport):
            slides = await self._writer.load_rows(slides)
        return review_slides(slides)
