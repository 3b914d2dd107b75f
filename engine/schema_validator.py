"""
engine/schema_validator.py — Structural validation and sanitisation of artifacts.

Two contracts live here:

* ``validate`` / ``validate_partial`` are partial functions. They return a
  ``ValidationResult`` carrying either the artifact or the list of errors and
  never coerce a value they cannot safely interpret (a wrong ``type`` tag on a
  tagged union fails).
* ``sanitize`` is total. Given untrusted model output it clips strings,
  truncates or pads arrays, maps out-of-enum values to safe defaults and drops
  malformed optional sub-objects. It never raises on a bad candidate.

Bounds are read from the field metadata declared in ``models.py`` so that the
validator and the sanitiser can never drift apart.
"""

from __future__ import annotations

import re
import typing
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, create_model
from pydantic.fields import FieldInfo

from engine.errors import ContractViolation
from models import (
    AUDIENCES,
    DIAGRAM_SYNTAXES,
    LAYOUT_TYPES,
    VISUAL_TYPES,
    Angle,
    Block,
    Blueprint,
    BlueprintSlide,
    Recipe,
    RecipeElement,
    RecipeSet,
    SlideContent,
    SlideElement,
    SlideRow,
    Strategy,
    Theme,
    ThemeRuntime,
)
from config import SLIDE_COUNT_MAX, SLIDE_COUNT_MIN


class SchemaId(str, Enum):
    """Closed set of artifact kinds the validator knows about."""

    ANGLE = "angle"
    STRATEGY = "strategy"
    THEME = "theme"
    BLUEPRINT_SLIDE = "blueprint_slide"
    BLUEPRINT = "blueprint"
    RECIPE = "recipe"
    RECIPE_SET = "recipe_set"
    SLIDE_CONTENT = "slide_content"
    SLIDE_ELEMENT = "slide_element"
    SLIDE_ROW = "slide_row"


_TYPES: Dict[SchemaId, Any] = {
    SchemaId.ANGLE: Angle,
    SchemaId.STRATEGY: Strategy,
    SchemaId.THEME: Theme,
    SchemaId.BLUEPRINT_SLIDE: BlueprintSlide,
    SchemaId.BLUEPRINT: Blueprint,
    SchemaId.RECIPE: Recipe,
    SchemaId.RECIPE_SET: RecipeSet,
    SchemaId.SLIDE_CONTENT: SlideContent,
    SchemaId.SLIDE_ELEMENT: SlideElement,
    SchemaId.SLIDE_ROW: SlideRow,
}

_ADAPTERS: Dict[SchemaId, TypeAdapter] = {sid: TypeAdapter(tp) for sid, tp in _TYPES.items()}
_PARTIAL_MODELS: Dict[SchemaId, Type[BaseModel]] = {}

_BLOCK_ADAPTER: TypeAdapter = TypeAdapter(Block)
_ELEMENT_ADAPTER: TypeAdapter = TypeAdapter(RecipeElement)

SLIDE_ID_RE = re.compile(r"^s-\d{2,}$")
_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

_BLOCK_ALIASES = {
    "statistic_highlight": "statistic",
    "pull_quote": "quote",
    "bullets": "bullet_points",
}
_ELEMENT_TYPES = {name.lower(): name for name in (
    "Title", "BulletedList", "Paragraph", "Quote", "Stat", "Image", "Diagram", "Table",
)}
_ELEMENT_ALIASES = {
    "bullets": "BulletedList",
    "bullet_list": "BulletedList",
    "bulleted_list": "BulletedList",
    "statistic": "Stat",
    "text": "Paragraph",
}

_PAD_ANGLES = (
    {"angle_id": "practical", "title": "Practical Application",
     "description": "Focus on actionable insights.", "audience": "General",
     "emphasis_keywords": ["practical", "actionable", "steps"]},
    {"angle_id": "inspirational", "title": "Vision and Impact",
     "description": "Tell a story that inspires action.", "audience": "General",
     "emphasis_keywords": ["story", "impact", "future"]},
)


class ValidationResult(BaseModel):
    """Outcome of ``validate``: the artifact, or the reasons it was rejected."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    schema_id: SchemaId
    artifact: Any = None
    errors: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# ── Validation ──────────────────────────────────────────────

def _error_messages(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
        for err in exc.errors()
    ]


def validate(candidate: Any, schema_id: SchemaId) -> ValidationResult:
    """Validate ``candidate`` against the full schema for ``schema_id``."""
    try:
        artifact = _ADAPTERS[schema_id].validate_python(candidate)
    except ValidationError as e:
        return ValidationResult(schema_id=schema_id, errors=_error_messages(e))
    return ValidationResult(schema_id=schema_id, artifact=artifact)


def _partial_model(schema_id: SchemaId) -> Type[BaseModel]:
    """Same fields as the full model, every one optional; model validators dropped."""
    cached = _PARTIAL_MODELS.get(schema_id)
    if cached is not None:
        return cached

    model = _TYPES[schema_id]
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise ContractViolation(f"Partial validation is only defined for object schemas, not {schema_id.value}")

    fields: Dict[str, Any] = {}
    for name, info in model.model_fields.items():
        annotation = info.annotation
        if info.metadata:
            annotation = typing.Annotated[(annotation, *info.metadata)]
        fields[name] = (Optional[annotation], None)

    partial = create_model(
        f"Partial{model.__name__}",
        __config__=ConfigDict(extra="ignore"),
        **fields,
    )
    _PARTIAL_MODELS[schema_id] = partial
    return partial


def validate_partial(candidate: Any, schema_id: SchemaId) -> ValidationResult:
    """Accept an object missing any subset of fields; present fields must still type-check.

    The artifact is a plain dict holding only the fields that were supplied.
    """
    if not isinstance(candidate, dict):
        return ValidationResult(
            schema_id=schema_id,
            errors=[f"<root>: expected an object, got {type(candidate).__name__}"],
        )
    try:
        partial = _partial_model(schema_id).model_validate(candidate)
    except ValidationError as e:
        return ValidationResult(schema_id=schema_id, errors=_error_messages(e))
    return ValidationResult(
        schema_id=schema_id,
        artifact=partial.model_dump(exclude_unset=True),
    )


# ── Generic clipping driven by field metadata ───────────────

def _max_length(meta: Iterable[Any]) -> Optional[int]:
    for item in meta:
        if isinstance(item, FieldInfo):
            found = _max_length(item.metadata)
            if found is not None:
                return found
            continue
        limit = getattr(item, "max_length", None)
        if isinstance(limit, int):
            return limit
    return None


def _unwrap(annotation: Any) -> Tuple[Any, List[Any]]:
    """Strip Annotated/Optional wrappers, collecting metadata on the way."""
    meta: List[Any] = []
    while True:
        origin = typing.get_origin(annotation)
        if origin is typing.Annotated:
            args = typing.get_args(annotation)
            annotation, meta = args[0], meta + list(args[1:])
            continue
        if origin is typing.Union:
            members = [a for a in typing.get_args(annotation) if a is not type(None)]
            if len(members) == 1:
                annotation = members[0]
                continue
        return annotation, meta


def _union_member_for(annotation: Any, value: Dict[str, Any]) -> Optional[Type[BaseModel]]:
    tag = value.get("type")
    for member in typing.get_args(annotation):
        member, _ = _unwrap(member)
        if isinstance(member, type) and issubclass(member, BaseModel):
            type_field = member.model_fields.get("type")
            if type_field is not None and tag in typing.get_args(type_field.annotation):
                return member
    return None


def _clip_value(value: Any, annotation: Any, meta: Sequence[Any]) -> Any:
    annotation, inner_meta = _unwrap(annotation)
    limit = _max_length(list(meta) + inner_meta)
    origin = typing.get_origin(annotation)

    if isinstance(value, str):
        return value[:limit] if limit is not None else value
    if isinstance(value, list):
        items = value[:limit] if limit is not None else list(value)
        if origin in (list, List):
            item_type = typing.get_args(annotation)[0]
            return [_clip_value(item, item_type, ()) for item in items]
        return items
    if isinstance(value, dict):
        if origin is typing.Union:
            member = _union_member_for(annotation, value)
            return clip_model(value, member) if member else value
        if isinstance(annotation, type) and issubclass(annotation, BaseModel):
            return clip_model(value, annotation)
    return value


def clip_model(data: Dict[str, Any], model: Type[BaseModel]) -> Dict[str, Any]:
    """Shorten every present string/array field of ``data`` to the model's bounds.

    Only lengths change; types are left alone so validation still decides.
    """
    clipped = dict(data)
    for name, info in model.model_fields.items():
        if name in clipped:
            clipped[name] = _clip_value(clipped[name], info.annotation, info.metadata)
    return clipped


def clip_to_bounds(candidate: Any, schema_id: SchemaId) -> Any:
    model = _TYPES[schema_id]
    if isinstance(candidate, dict) and isinstance(model, type) and issubclass(model, BaseModel):
        return clip_model(candidate, model)
    return candidate


# ── Sanitisation primitives ─────────────────────────────────

def _text(value: Any, limit: int, default: str = "") -> str:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return default
    value = value.strip()
    return value[:limit] if value else default


def _optional_text(value: Any, limit: int) -> Optional[str]:
    text = _text(value, limit)
    return text or None


def _str_list(value: Any, max_items: int, item_limit: int) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    out = [_text(v, item_limit) for v in value]
    return [v for v in out if v][:max_items]


def _int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def slide_id_for(position: int) -> str:
    """Positional slide id, ``s-01`` for the first slide."""
    return f"s-{position:02d}"


def next_free_slide_id(used: Set[str]) -> str:
    """Smallest positional id greater than every ``s-NN`` id already in use."""
    highest = 0
    for slide_id in used:
        if SLIDE_ID_RE.match(slide_id):
            highest = max(highest, int(slide_id[2:]))
    return slide_id_for(highest + 1)


def dedupe_angle_ids(angles: List[Angle]) -> List[Angle]:
    """Make ``angle_id`` pairwise distinct by suffixing ``-1``, ``-2`` on collision."""
    seen: Set[str] = set()
    unique: List[Angle] = []
    for angle in angles:
        candidate = angle.angle_id
        n = 1
        while candidate in seen:
            suffix = f"-{n}"
            candidate = angle.angle_id[: 40 - len(suffix)] + suffix
            n += 1
        seen.add(candidate)
        unique.append(angle if candidate == angle.angle_id else angle.model_copy(update={"angle_id": candidate}))
    return unique


# ── Per-artifact sanitisers ─────────────────────────────────

def sanitize_angle(raw: Any, index: int = 0) -> Angle:
    raw = raw if isinstance(raw, dict) else {}
    audience = raw.get("audience")
    return Angle(
        angle_id=_text(raw.get("angle_id"), 40, f"angle-{index}"),
        title=_text(raw.get("title"), 80, f"Angle {index + 1}"),
        description=_text(raw.get("description"), 280),
        audience=audience if audience in AUDIENCES else "General",
        emphasis_keywords=_str_list(raw.get("emphasis_keywords"), 7, 40),
    )


def sanitize_strategy(raw: Any) -> Strategy:
    items = raw.get("angles") if isinstance(raw, dict) else raw
    items = [a for a in items if isinstance(a, dict)] if isinstance(items, list) else []
    angles = [sanitize_angle(a, i) for i, a in enumerate(items[:3])]
    for pad in _PAD_ANGLES:
        if len(angles) >= 2:
            break
        angles.append(Angle(**pad))
    return Strategy(angles=dedupe_angle_ids(angles))


def sanitize_theme(raw: Any) -> Optional[Theme]:
    if not isinstance(raw, dict):
        return None

    def _str_fields(value: Any, limit: int) -> Optional[Dict[str, Any]]:
        if not isinstance(value, dict):
            return None
        return {k: v[:limit] if isinstance(v, str) else v for k, v in value.items()}

    candidate = {
        "name": _text(raw.get("name"), 80),
        "palette": _str_fields(raw.get("palette"), 32),
        "typography": _str_fields(raw.get("typography"), 60),
        "mood_keywords": _str_list(raw.get("mood_keywords"), 8, 40),
        "iconography": _optional_text(raw.get("iconography"), 120),
        "shapes_motif": _optional_text(raw.get("shapes_motif"), 120),
    }
    result = validate(candidate, SchemaId.THEME)
    if result.ok:
        return result.artifact
    # A malformed palette/typography is dropped rather than failing the theme.
    candidate["palette"] = None
    candidate["typography"] = None
    return Theme(**candidate)


def _sanitize_visual(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    kind = raw.get("type")
    visual: Dict[str, Any] = {
        "type": kind if kind in VISUAL_TYPES else "image",
        "description": _text(raw.get("description"), 180),
    }
    hint = _optional_text(raw.get("diagram_hint"), 180)
    if hint:
        visual["diagram_hint"] = hint
    if isinstance(raw.get("image_keywords"), list):
        visual["image_keywords"] = _str_list(raw["image_keywords"], 6, 40)
    return visual


def _sanitize_blocks(raw: Any) -> Optional[List[Any]]:
    if not isinstance(raw, list):
        return None
    blocks: List[Any] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        item = dict(item)
        kind = item.get("type")
        item["type"] = _BLOCK_ALIASES.get(kind, kind)
        member = _union_member_for(_unwrap(Block)[0], item)
        if member is None:
            continue
        try:
            blocks.append(_BLOCK_ADAPTER.validate_python(clip_model(item, member)))
        except ValidationError:
            continue
        if len(blocks) == 3:
            break
    return blocks


def sanitize_slide(raw: Any, position: int = 1, used_ids: Optional[Set[str]] = None) -> BlueprintSlide:
    """Coerce one untrusted slide into a valid ``BlueprintSlide`` at ``position``.

    A supplied ``slide_id`` is kept when it has the ``s-NN`` shape and is not in
    ``used_ids``; otherwise a positional (or next free) id is assigned.
    """
    raw = raw if isinstance(raw, dict) else {}
    used = used_ids if used_ids is not None else set()

    slide_id = _text(raw.get("slide_id"), 16)
    if not SLIDE_ID_RE.match(slide_id) or slide_id in used:
        slide_id = slide_id_for(position)
        if slide_id in used:
            slide_id = next_free_slide_id(used)
    used.add(slide_id)

    points = _str_list(raw.get("content_points"), 5, 180)
    while len(points) < 2:
        points.append(f"Point {len(points) + 1}")

    return BlueprintSlide(
        slide_id=slide_id,
        slide_index=position,
        slide_title=_text(raw.get("slide_title") or raw.get("title"), 90, f"Slide {position}"),
        content_points=points,
        speaker_notes=_optional_text(raw.get("speaker_notes"), 600),
        visual_suggestion=_sanitize_visual(raw.get("visual_suggestion")),
        blocks=_sanitize_blocks(raw.get("blocks")),
    )


def placeholder_slide(position: int, slide_count: int) -> Dict[str, Any]:
    """The deterministic outline slide used whenever model output is unusable."""
    if position == 1:
        title, points = "Introduction", ["Set the stage", "Define the goal"]
    elif position == slide_count:
        title, points = "Conclusion", ["Summarize key takeaways", "Call to action"]
    else:
        title, points = f"Key Idea {position - 1}", ["Main point", "Supporting detail", "Example"]
    return {
        "slide_id": slide_id_for(position),
        "slide_index": position,
        "slide_title": title,
        "content_points": points,
        "visual_suggestion": {
            "type": "image",
            "description": "Subtle background visual related to the topic.",
        },
    }


def sanitize_slides(raw_slides: Any) -> List[BlueprintSlide]:
    items = raw_slides if isinstance(raw_slides, list) else []
    used: Set[str] = set()
    return [sanitize_slide(s, i, used) for i, s in enumerate(items[:SLIDE_COUNT_MAX], start=1)]


def sanitize_blueprint(raw: Any) -> Blueprint:
    raw = raw if isinstance(raw, dict) else {}
    slides = sanitize_slides(raw.get("slides"))
    used = {s.slide_id for s in slides}
    while len(slides) < SLIDE_COUNT_MIN:
        pad = dict(placeholder_slide(len(slides) + 1, SLIDE_COUNT_MIN))
        pad.pop("slide_id")
        slides.append(sanitize_slide(pad, len(slides) + 1, used))

    angle = raw.get("chosen_angle")
    return Blueprint(
        topic=_text(raw.get("topic"), 200, "Untitled presentation"),
        chosen_angle=angle if isinstance(angle, Angle) else sanitize_angle(angle),
        slide_count=len(slides),
        theme=raw["theme"] if isinstance(raw.get("theme"), Theme) else sanitize_theme(raw.get("theme")),
        slides=slides,
    )


def _sanitize_grid(raw: Any) -> Optional[Dict[str, int]]:
    if not isinstance(raw, dict):
        return None
    values = {k: _int(raw.get(k)) for k in ("colStart", "colEnd", "rowStart", "rowEnd")}
    if any(v is None for v in values.values()):
        return None
    col_start = min(max(values["colStart"], 1), 12)
    col_end = min(max(values["colEnd"], col_start + 1), 13)
    row_start = max(values["rowStart"], 1)
    row_end = max(values["rowEnd"], row_start + 1)
    return {"colStart": col_start, "colEnd": col_end, "rowStart": row_start, "rowEnd": row_end}


def _element_type(raw_type: Any) -> Optional[str]:
    if not isinstance(raw_type, str):
        return None
    key = raw_type.strip()
    return _ELEMENT_TYPES.get(key.lower()) or _ELEMENT_ALIASES.get(key.lower())


def _sanitize_element(raw: Any) -> Optional[Any]:
    if not isinstance(raw, dict):
        return None
    kind = _element_type(raw.get("type"))
    if kind is None:
        return None

    element: Dict[str, Any] = {"type": kind}
    content = raw.get("content")
    if kind == "BulletedList":
        element["content"] = _str_list(content, 6, 180)
    elif kind == "Table":
        table = raw.get("table") if isinstance(raw.get("table"), dict) else {}
        rows = table.get("rows") if isinstance(table.get("rows"), list) else []
        element["content"] = _text(content, 180)
        element["table"] = {
            "headers": _str_list(table.get("headers"), 8, 60),
            "rows": [_str_list(r, 8, 120) for r in rows if isinstance(r, list)][:12],
        }
    else:
        element["content"] = _text(content, 2000)
        if kind == "Diagram":
            diagram = raw.get("diagram") if isinstance(raw.get("diagram"), dict) else {}
            syntax = raw.get("syntax") or diagram.get("syntax")
            element["syntax"] = syntax if syntax in DIAGRAM_SYNTAXES else "mermaid"
        for key in ("attribution", "label", "image_url"):
            if key in raw:
                element[key] = _optional_text(raw.get(key), 400)

    grid = _sanitize_grid(raw.get("grid"))
    if grid:
        element["grid"] = grid
    for key in ("style_hints", "position_hints"):
        if isinstance(raw.get(key), dict):
            element[key] = raw[key]

    member = _union_member_for(_unwrap(RecipeElement)[0], element)
    if member is None:
        return None
    try:
        return _ELEMENT_ADAPTER.validate_python(clip_model(element, member))
    except ValidationError:
        return None


def default_recipe_elements(slide: Optional[BlueprintSlide]) -> List[Dict[str, Any]]:
    title = slide.slide_title if slide else "Untitled"
    points = list(slide.content_points) if slide else []
    return [
        {"type": "Title", "content": title, "style_hints": {"size": "xl", "accent": True}},
        {"type": "BulletedList", "content": points, "style_hints": {"size": "md"}},
    ]


def sanitize_recipe(
    raw: Any,
    slide: Optional[BlueprintSlide] = None,
    theme_runtime: Optional[ThemeRuntime] = None,
) -> Recipe:
    """Coerce one untrusted recipe; when ``slide`` is given its id is authoritative."""
    raw = raw if isinstance(raw, dict) else {}
    runtime = theme_runtime or ThemeRuntime()

    layout = raw.get("layout_type")
    background_raw = raw.get("background") if isinstance(raw.get("background"), dict) else {}
    color = background_raw.get("color")
    background: Dict[str, Any] = {
        "color": color if isinstance(color, str) and _HEX_COLOR_RE.match(color) else runtime.background,
        "overlay": bool(background_raw.get("overlay", False)),
    }
    generative = background_raw.get("generative_background")
    if isinstance(generative, dict) and _text(generative.get("library"), 40):
        background["generative_background"] = {
            "library": _text(generative.get("library"), 40),
            "options": generative.get("options") if isinstance(generative.get("options"), dict) else {},
        }

    raw_elements = raw.get("elements") if isinstance(raw.get("elements"), list) else []
    elements = [e for e in (_sanitize_element(r) for r in raw_elements) if e is not None]
    if not elements:
        elements = default_recipe_elements(slide)

    return Recipe(
        slide_id=slide.slide_id if slide else _text(raw.get("slide_id"), 16, "s-01"),
        layout_type=layout if layout in LAYOUT_TYPES else "TitleAndBullets",
        background=background,
        elements=elements,
    )


def sanitize_theme_runtime(raw: Any) -> ThemeRuntime:
    raw = raw if isinstance(raw, dict) else {}
    defaults = ThemeRuntime()
    values = {}
    for key in ("background", "primary", "secondary", "accent"):
        color = raw.get(key)
        values[key] = color if isinstance(color, str) and _HEX_COLOR_RE.match(color) else getattr(defaults, key)
    return ThemeRuntime(**values)


def sanitize_recipe_set(raw: Any, blueprint: Optional[Blueprint] = None) -> RecipeSet:
    """Sanitise every recipe; with a blueprint, recipes are matched to its slides by id, else by position."""
    raw = raw if isinstance(raw, dict) else {}
    runtime = sanitize_theme_runtime(raw.get("theme_runtime"))
    items = raw.get("recipes") if isinstance(raw.get("recipes"), list) else []

    if blueprint is None:
        recipes = [sanitize_recipe(r, None, runtime) for r in items]
        if not recipes:
            recipes = [sanitize_recipe({}, None, runtime)]
    else:
        known = [s.slide_id for s in blueprint.slides]
        returned = [r.get("slide_id") if isinstance(r, dict) else None for r in items]
        if len(returned) == len(known) and sorted(map(str, returned)) == sorted(known):
            by_id = {r["slide_id"]: r for r in items}
            ordered = [by_id[sid] for sid in known]
        else:
            # Ids missing or unknown: recipes are taken in slide order.
            ordered = [items[i] if i < len(items) else {} for i in range(len(known))]
        recipes = [sanitize_recipe(raw, slide, runtime) for raw, slide in zip(ordered, blueprint.slides)]
    return RecipeSet(theme_runtime=runtime, recipes=recipes)


def sanitize_slide_content(raw: Any) -> SlideContent:
    raw = raw if isinstance(raw, dict) else {}
    points = _str_list(raw.get("content_points"), 5, 180) or ["Content pending"]
    return SlideContent(notes=_text(raw.get("notes"), 2000), content_points=points)


_SANITIZERS = {
    SchemaId.ANGLE: sanitize_angle,
    SchemaId.STRATEGY: sanitize_strategy,
    SchemaId.THEME: sanitize_theme,
    SchemaId.BLUEPRINT_SLIDE: sanitize_slide,
    SchemaId.BLUEPRINT: sanitize_blueprint,
    SchemaId.RECIPE: sanitize_recipe,
    SchemaId.RECIPE_SET: sanitize_recipe_set,
    SchemaId.SLIDE_CONTENT: sanitize_slide_content,
}


def sanitize(candidate: Any, schema_id: SchemaId) -> Any:
    """Best-effort valid artifact for ``schema_id``; never raises on a bad candidate."""
    sanitizer = _SANITIZERS.get(schema_id)
    if sanitizer is None:
        raise ContractViolation(f"No sanitiser is defined for schema {schema_id.value!r}")
    return sanitizer(candidate)
