"""
agents/slide_content_agent.py — Persists a deck skeleton and fills each slide's content.
Writes presentation and slide rows, then fans out per-slide content calls concurrently.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from config import Settings, get_settings
from engine.errors import ContractViolation
from engine.model_gateway import ModelGateway
from engine.persistence import PRESENTATIONS, SLIDES, InMemoryPresentationStore, PresentationStore
from engine.pipeline_logger import PipelineLogger
from engine.schema_validator import SchemaId, sanitize_slide_content, validate
from models import Blueprint, BlueprintSlide, SlideContent, SlideRow
from prompts.content_prompts import SLIDE_CONTENT_PROMPT

PLACEHOLDER_NOTES = "Generating content..."


class ContentReport(BaseModel):
    """Outcome of one content fan-out."""

    presentation_id: str
    slide_row_ids: Dict[str, str] = Field(
        default_factory=dict,
        description="blueprint slide_id → persisted slide row id",
    )
    failures: Dict[str, str] = Field(
        default_factory=dict,
        description="blueprint slide_id → error message for slides left as placeholders",
    )

    @property
    def succeeded(self) -> List[str]:
        return [sid for sid in self.slide_row_ids if sid not in self.failures]


# ── Layout heuristic ────────────────────────────────────────

def pick_layout(row: Dict[str, Any]) -> str:
    """Choose a layout from what a slide row holds."""
    elements = row.get("elements") or []
    title = next((e.get("content") for e in elements if e.get("type") == "title"), "") or ""
    points = next((e.get("content") for e in elements if e.get("type") == "content"), []) or []
    has_image = bool(row.get("image_url")) or any(e.get("type") == "image_suggestion" for e in elements)
    bullets = len(points) if isinstance(points, list) else 0

    if has_image:
        return "image-right" if bullets <= 2 else "image-left"
    if bullets >= 5:
        return "three-column"
    if bullets >= 3:
        return "two-column"
    if bullets <= 1 and len(title) <= 40:
        return "quote"
    return "cards"


def layout_element(layout: str) -> Dict[str, str]:
    return {"id": f"layout-{layout}", "type": "layout", "layout": layout}


def skeleton_row(presentation_id: str, slide: BlueprintSlide, topic: str) -> SlideRow:
    visual = slide.visual_suggestion.description if slide.visual_suggestion else ""
    row: Dict[str, Any] = {
        "presentation_id": presentation_id,
        "order": slide.slide_index,
        "elements": [
            {"id": str(uuid.uuid4()), "type": "title", "content": slide.slide_title,
             "position": {"x": 5, "y": 10}, "size": {"width": 90, "height": 15}},
            {"id": str(uuid.uuid4()), "type": "content", "content": [],
             "position": {"x": 10, "y": 30}, "size": {"width": 80, "height": 60}},
            {"id": str(uuid.uuid4()), "type": "image_suggestion",
             "content": visual or f"{topic} conceptual minimal illustration"},
        ],
        "notes": PLACEHOLDER_NOTES,
    }
    row["elements"].append(layout_element(pick_layout(row)))
    return SlideRow.model_validate(row)


# ── Writer ──────────────────────────────────────────────────

class SlideContentWriter:
    """Generates final per-slide content and writes it to the store."""

    def __init__(
        self,
        gateway: Optional[ModelGateway] = None,
        store: Optional[PresentationStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._gateway = gateway or ModelGateway(self._settings)
        self._store = store if store is not None else InMemoryPresentationStore()
        self._log = PipelineLogger("SlideContentWriter")

    @property
    def store(self) -> PresentationStore:
        return self._store

    async def generate_content(self, presentation_title: str, slide: BlueprintSlide) -> SlideContent:
        """Content for one slide; the outline itself is used when the model gives nothing usable."""
        visual = slide.visual_suggestion.description if slide.visual_suggestion else ""
        out = await self._gateway.call(
            system="You are a professional presentation content writer. Respond with valid JSON.",
            user=SLIDE_CONTENT_PROMPT.format(
                presentation_title=presentation_title,
                slide_title=slide.slide_title,
                visual_prompt=visual or "none",
                outline_points="; ".join(slide.content_points),
            ),
            expect_json=True,
        )
        if isinstance(out, dict) and isinstance(out.get("content_points"), list) and out["content_points"]:
            return sanitize_slide_content(out)

        self._log.fallback(f"content {slide.slide_id}", "no usable model content; using outline points")
        return sanitize_slide_content({
            "notes": slide.speaker_notes or f"Walk the audience through: {slide.slide_title}",
            "content_points": slide.content_points,
        })

    async def run(
        self,
        blueprint: Union[Blueprint, Dict[str, Any]],
        user_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> ContentReport:
        """Insert the presentation and skeleton slides, then fill every slide concurrently.

        Per-slide failures are collected in the report and leave the slide's
        placeholder content in place. If a step other than a single slide's
        fill fails, the slide rows written so far and the presentation row
        are deleted and the error re-raised.

        Raises:
            ContractViolation: if ``blueprint`` is missing or invalid.
        """
        if not isinstance(blueprint, Blueprint):
            result = validate(blueprint, SchemaId.BLUEPRINT)
            if not result.ok:
                raise ContractViolation(f"a valid blueprint is required: {result.errors}")
            blueprint = result.artifact

        presentation_title = (title or blueprint.topic)[:70]
        presentation_id = await self._store.insert(PRESENTATIONS, {
            "user_id": user_id,
            "title": presentation_title,
            "theme": blueprint.theme.name if blueprint.theme else None,
        })
        self._log.action("Content Fan-out", f"presentation={presentation_id} slides={len(blueprint.slides)}")

        report = ContentReport(presentation_id=presentation_id)
        try:
            rows: List[SlideRow] = []
            for slide in blueprint.slides:
                row = skeleton_row(presentation_id, slide, blueprint.topic)
                report.slide_row_ids[slide.slide_id] = await self._store.insert(
                    SLIDES, row.model_dump(mode="json")
                )
                rows.append(row)

            semaphore = asyncio.Semaphore(self._settings.content_concurrency)

            async def _fill(slide: BlueprintSlide, row: SlideRow) -> None:
                async with semaphore:
                    content = await self.generate_content(presentation_title, slide)
                elements = [
                    {**e, "content": content.content_points} if e["type"] == "content" else e
                    for e in row.model_dump(mode="json")["elements"]
                    if e["type"] != "layout"
                ]
                elements.append(layout_element(pick_layout({"elements": elements})))
                await self._store.update(
                    SLIDES,
                    report.slide_row_ids[slide.slide_id],
                    {"elements": elements, "notes": content.notes},
                )

            results = await asyncio.gather(
                *(_fill(slide, row) for slide, row in zip(blueprint.slides, rows)),
                return_exceptions=True,
            )
        except Exception as e:
            self._log.error(f"Content generation aborted, removing presentation {presentation_id}: {e}")
            for row_id in report.slide_row_ids.values():
                await self._store.delete(SLIDES, row_id)
            await self._store.delete(PRESENTATIONS, presentation_id)
            raise

        for slide, outcome in zip(blueprint.slides, results):
            if isinstance(outcome, Exception):
                report.failures[slide.slide_id] = str(outcome) or type(outcome).__name__
                self._log.error(f"Content generation failed for slide {slide.slide_id}: {outcome}")

        self._log.info(
            f"Content done: {len(report.succeeded)}/{len(blueprint.slides)} slides filled"
            + (f", failed={sorted(report.failures)}" if report.failures else "")
        )
        return report

    async def load_rows(self, report: ContentReport) -> List[Dict[str, Any]]:
        """Read back a deck's slide rows in slide order, skipping rows that are gone."""
        rows = []
        for row_id in report.slide_row_ids.values():
            row = await self._store.select(SLIDES, row_id)
            if row is not None:
                rows.append(row)
        return sorted(rows, key=lambda r: r.get("order", 0))
