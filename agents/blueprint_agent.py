"""
agents/blueprint_agent.py — Slide outline generation, streaming, and chat-driven refinement.
Handles the outline phase of the pipeline between angle selection and recipes.
"""

from __future__ import annotations

import json
import re
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Set, Union

from config import DEFAULT_SLIDE_COUNT, SLIDE_COUNT_MAX, SLIDE_COUNT_MIN, Settings, clamp_slide_count, get_settings
from engine.errors import ContractViolation
from engine.model_gateway import ModelGateway
from engine.pipeline_logger import PipelineLogger
from engine.schema_validator import (
    SchemaId,
    next_free_slide_id,
    placeholder_slide,
    sanitize_slide,
    sanitize_slides,
    sanitize_theme,
    validate,
)
from engine.stream_demux import demultiplex
from models import (
    Angle,
    Blueprint,
    BlueprintSlide,
    ChatMessage,
    CompleteEvent,
    ErrorEvent,
    MetadataEvent,
    SlideEvent,
    StreamEvent,
)
from prompts.blueprint_prompts import (
    BLUEPRINT_INSTRUCTIONS,
    BLUEPRINT_STREAM_PROMPT,
    REFINE_SYSTEM_PROMPT,
    blueprint_system_prompt,
)
from prompts.variants import PromptVariant
from agents.strategist_agent import topic_slug

_TARGET_SLIDE_RE = re.compile(r"@slide\s*(\d+)", re.IGNORECASE)


# ── Input checks ────────────────────────────────────────────

def _require_topic(topic: Any) -> str:
    if not isinstance(topic, str) or not topic.strip():
        raise ContractViolation("topic must be a non-empty string")
    return topic.strip()


def _require_angle(angle: Any) -> Angle:
    if isinstance(angle, Angle):
        return angle
    result = validate(angle, SchemaId.ANGLE)
    if not result.ok:
        raise ContractViolation(f"angle is required and must be a valid Angle: {result.errors}")
    return result.artifact


def _require_blueprint(blueprint: Any) -> Blueprint:
    if isinstance(blueprint, Blueprint):
        return blueprint
    result = validate(blueprint, SchemaId.BLUEPRINT)
    if not result.ok:
        raise ContractViolation(f"a valid blueprint is required: {result.errors}")
    return result.artifact


def fallback_blueprint(topic: str, angle: Angle, slide_count: int) -> Blueprint:
    """Deterministic outline: Introduction, Key Idea 1..N-2, Conclusion."""
    count = clamp_slide_count(slide_count)
    slides = [BlueprintSlide(**placeholder_slide(i, count)) for i in range(1, count + 1)]
    return Blueprint(topic=topic, chosen_angle=angle, slide_count=count, slides=slides)


# ── Builder ─────────────────────────────────────────────────

class BlueprintBuilder:
    """Turns a topic + chosen angle into an outline of exactly ``slide_count`` slides."""

    def __init__(
        self,
        gateway: Optional[ModelGateway] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._gateway = gateway or ModelGateway(self._settings)
        self._log = PipelineLogger("BlueprintBuilder")

    def _request(self, topic: str, angle: Angle, count: int) -> str:
        return json.dumps({
            "topic": topic,
            "chosen_angle": angle.model_dump(),
            "slide_count": count,
            "instructions": BLUEPRINT_INSTRUCTIONS,
        })

    async def run(
        self,
        topic: str,
        angle: Union[Angle, Dict[str, Any]],
        slide_count: Any = DEFAULT_SLIDE_COUNT,
        variant: PromptVariant = PromptVariant.DEFAULT,
    ) -> Blueprint:
        """Generate the outline.

        Args:
            topic: Presentation topic.
            angle: The chosen Angle (or a dict that validates as one).
            slide_count: Requested count, clamped to [3, 15].
            variant: Prompt variant selected for this user.

        Returns:
            A Blueprint with exactly the clamped number of slides.

        Raises:
            ContractViolation: if topic or angle is missing/invalid.
        """
        topic = _require_topic(topic)
        angle = _require_angle(angle)
        count = clamp_slide_count(slide_count)
        if count != slide_count:
            self._log.decision(f"Clamped slide_count {slide_count!r} -> {count}")

        with self._log.step_start(f"Blueprint: {topic[:50]} ({count} slides)"):
            out = await self._gateway.call(
                system=blueprint_system_prompt(variant),
                user=self._request(topic, angle, count),
                expect_json=True,
                cache_key=f"blueprint_{topic_slug(topic)}_{angle.angle_id}_{count}",
            )

            raw_slides = out.get("slides") if isinstance(out, dict) else None
            if not isinstance(raw_slides, list) or len(raw_slides) != count:
                got = len(raw_slides) if isinstance(raw_slides, list) else "none"
                self._log.fallback("blueprint", f"expected {count} slides, got {got}")
                return fallback_blueprint(topic, angle, count)

            blueprint = Blueprint(
                topic=topic,
                chosen_angle=angle,
                slide_count=count,
                theme=sanitize_theme(out.get("theme")),
                slides=sanitize_slides(raw_slides),
            )
            self._log.info(
                f"Blueprint ready: {count} slides, theme={blueprint.theme.name if blueprint.theme else 'none'}"
            )
            return blueprint

    def stream(
        self,
        topic: str,
        angle: Union[Angle, Dict[str, Any]],
        slide_count: Any = DEFAULT_SLIDE_COUNT,
        variant: PromptVariant = PromptVariant.DEFAULT,
    ) -> AsyncIterator[StreamEvent]:
        """Stream the outline as ``metadata``, one ``slide`` per slide, then ``complete``.

        Inputs are checked before the iterator is returned, so a contract
        violation raises here rather than arriving as an ``error`` event.
        """
        topic = _require_topic(topic)
        angle = _require_angle(angle)
        count = clamp_slide_count(slide_count)
        return self._stream_events(topic, angle, count, variant)

    async def _stream_events(
        self,
        topic: str,
        angle: Angle,
        count: int,
        variant: PromptVariant,
    ) -> AsyncIterator[StreamEvent]:
        self._log.action("Stream Blueprint", f"topic={topic[:50]} slides={count}")
        try:
            yield MetadataEvent(topic=topic, chosen_angle=angle, slide_count=count, theme=None)

            fallback = fallback_blueprint(topic, angle, count)
            if self._gateway.has_credential:
                chunks = self._gateway.stream(
                    system=BLUEPRINT_STREAM_PROMPT + "\n" + blueprint_system_prompt(variant),
                    user=self._request(topic, angle, count),
                )
            else:
                self._log.decision("Synthetic slide stream", "no provider credential configured")
                chunks = _synthetic_chunks(fallback.slides)

            slides: List[BlueprintSlide] = []
            used: Set[str] = set()
            partials = demultiplex(chunks, SchemaId.BLUEPRINT_SLIDE)
            try:
                async for partial in partials:
                    slide = sanitize_slide(partial, len(slides) + 1, used)
                    slides.append(slide)
                    yield SlideEvent(slide=slide)
                    if len(slides) == count:
                        break
            finally:
                await partials.aclose()

            if len(slides) < count:
                self._log.fallback("stream slides", f"stream produced {len(slides)}/{count} slides")
            for position in range(len(slides) + 1, count + 1):
                filler = fallback.slides[position - 1].model_dump(exclude_none=True)
                slide = sanitize_slide(filler, position, used)
                slides.append(slide)
                yield SlideEvent(slide=slide)

            yield CompleteEvent(
                blueprint=Blueprint(topic=topic, chosen_angle=angle, slide_count=count, slides=slides)
            )
        except Exception as e:
            self._log.error(f"Blueprint stream aborted: {e}")
            yield ErrorEvent(message=str(e))


async def _synthetic_chunks(slides: Sequence[BlueprintSlide]) -> AsyncIterator[str]:
    """Emit slides back-to-back the way a model stream would."""
    for slide in slides:
        yield json.dumps(slide.model_dump(exclude_none=True))


# ── Refiner ─────────────────────────────────────────────────

def extract_target_slides(messages: Sequence[ChatMessage], instructions: str = "") -> List[int]:
    """Slide numbers referenced as ``@slideN`` in the latest user message or instructions."""
    texts = [instructions or ""]
    for message in reversed(messages):
        if message.role == "user":
            texts.append(message.content)
            break
    found = {int(n) for text in texts for n in _TARGET_SLIDE_RE.findall(text)}
    return sorted(n for n in found if n >= 1)


def _coerce_history(chat_history: Any) -> List[ChatMessage]:
    if not isinstance(chat_history, list):
        return []
    messages = []
    for item in chat_history:
        if isinstance(item, ChatMessage):
            messages.append(item)
        elif isinstance(item, dict):
            role = item.get("role") if item.get("role") in ("user", "assistant", "system") else "user"
            messages.append(ChatMessage(role=role, content=str(item.get("content", ""))))
        elif isinstance(item, str):
            messages.append(ChatMessage(content=item))
    return messages


def resolve_slide_ids(original: Sequence[str], returned: Sequence[Dict[str, Any]]) -> List[str]:
    """Pick a stable id for every returned slide.

    A returned id is kept only when it names an existing slide not yet used.
    With an unchanged slide count the original id at the same index is the
    next choice; anything left gets a fresh ``s-NN`` above the current max.
    """
    known = set(original)
    same_length = len(original) == len(returned)
    taken: Set[str] = set()
    ids: List[str] = []
    for i, raw in enumerate(returned):
        sid = raw.get("slide_id")
        if not (isinstance(sid, str) and sid in known and sid not in taken):
            sid = original[i] if same_length and original[i] not in taken else None
        if sid is None:
            sid = next_free_slide_id(known | taken)
        taken.add(sid)
        ids.append(sid)
    return ids


class BlueprintRefiner:
    """Applies a chat-driven edit to a blueprint while keeping slide ids stable."""

    def __init__(
        self,
        gateway: Optional[ModelGateway] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._gateway = gateway or ModelGateway(self._settings)
        self._log = PipelineLogger("BlueprintRefiner")

    async def run(
        self,
        blueprint: Union[Blueprint, Dict[str, Any]],
        chat_history: Optional[List[Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Blueprint:
        """Return the edited blueprint, or the input unchanged when no usable edit comes back.

        Raises:
            ContractViolation: if ``blueprint`` is missing or invalid, or
                ``context`` is not a dict. Context values that are not JSON
                are sent as their string form.
        """
        blueprint = _require_blueprint(blueprint)
        if context is not None and not isinstance(context, dict):
            raise ContractViolation("context must be an object")
        history = _coerce_history(chat_history)[-self._settings.chat_history_window:]
        ctx = dict(context or {})
        targets = extract_target_slides(history, str(ctx.get("instructions", "")))
        if targets:
            ctx["target_slides"] = targets

        self._log.action("Refine Blueprint", f"slides={len(blueprint.slides)} targets={targets or '-'}")
        out = await self._gateway.call(
            system=REFINE_SYSTEM_PROMPT,
            user=json.dumps({
                "blueprint": blueprint.model_dump(mode="json", exclude_none=True),
                "chatHistory": [m.model_dump() for m in history],
                "context": ctx,
            }, default=str),
            expect_json=True,
        )

        if not isinstance(out, dict) or not isinstance(out.get("slides"), list):
            self._log.decision("Refine is a no-op", "no parseable blueprint in response")
            return blueprint

        clarify = out.get("_clarify")
        if clarify:
            self._log.info(f"Model asked for clarification: {str(clarify)[:200]}")

        raw_slides = [s for s in out["slides"] if isinstance(s, dict)]
        if not SLIDE_COUNT_MIN <= len(raw_slides) <= SLIDE_COUNT_MAX:
            self._log.decision("Refine is a no-op", f"response carried {len(raw_slides)} usable slides")
            return blueprint

        original_ids = [s.slide_id for s in blueprint.slides]
        ids = resolve_slide_ids(original_ids, raw_slides)
        slides = []
        for position, (raw, slide_id) in enumerate(zip(raw_slides, ids), start=1):
            slide = sanitize_slide({**raw, "slide_id": None}, position, set())
            slides.append(slide.model_copy(update={"slide_id": slide_id}))

        theme = sanitize_theme(out["theme"]) if isinstance(out.get("theme"), dict) else blueprint.theme
        refined = Blueprint(
            topic=blueprint.topic,
            chosen_angle=blueprint.chosen_angle,
            slide_count=len(slides),
            theme=theme,
            slides=slides,
        )
        new_ids = [sid for sid in ids if sid not in set(original_ids)]
        self._log.info(
            f"Refined blueprint: {len(original_ids)} -> {len(slides)} slides"
            + (f", new ids {new_ids}" if new_ids else "")
        )
        return refined
