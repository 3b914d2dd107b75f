"""
models.py — Shared Pydantic data models used across the pipeline.
Every artifact a stage produces or consumes is declared here; bounds live on
the fields so the schema validator can enforce and clip against them.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import SLIDE_COUNT_MAX, SLIDE_COUNT_MIN


AUDIENCES = ("Technical", "General", "Executive", "Academic", "Students")
VISUAL_TYPES = ("image", "diagram", "table", "quote", "chart")
DIAGRAM_SYNTAXES = ("mermaid", "plantuml", "d2", "graphviz")
LAYOUT_TYPES = (
    "TitleAndBullets",
    "TitleOnly",
    "TwoColumn",
    "ImageLeft",
    "ImageRight",
    "QuoteFocus",
    "StatHighlight",
    "DiagramFocus",
    "TableFocus",
    "SectionBreak",
)

Audience = Literal["Technical", "General", "Executive", "Academic", "Students"]
VisualType = Literal["image", "diagram", "table", "quote", "chart"]
DiagramSyntax = Literal["mermaid", "plantuml", "d2", "graphviz"]
LayoutType = Literal[
    "TitleAndBullets",
    "TitleOnly",
    "TwoColumn",
    "ImageLeft",
    "ImageRight",
    "QuoteFocus",
    "StatHighlight",
    "DiagramFocus",
    "TableFocus",
    "SectionBreak",
]


class Artifact(BaseModel):
    """Base for pipeline artifacts: unknown keys from model output are ignored."""

    model_config = ConfigDict(extra="ignore")


# ── Strategy ────────────────────────────────────────────────

class Angle(Artifact):
    """A candidate narrative framing for a topic."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    angle_id: str = Field(min_length=1, max_length=40)
    title: str = Field(min_length=1, max_length=80)
    description: str = Field(default="", max_length=280)
    audience: Audience = "General"
    emphasis_keywords: List[str] = Field(default_factory=list, max_length=7)


class Strategy(Artifact):
    """Strategist output: 2–3 angles with pairwise-distinct ids."""

    angles: List[Angle] = Field(min_length=2, max_length=3)

    @model_validator(mode="after")
    def _unique_ids(self) -> "Strategy":
        ids = [a.angle_id for a in self.angles]
        if len(ids) != len(set(ids)):
            raise ValueError(f"angle_id values must be unique, got {ids}")
        return self


# ── Theme (Generative Design System) ────────────────────────

class Palette(Artifact):
    text_primary: Optional[str] = None
    text_secondary: Optional[str] = None
    background_primary: Optional[str] = None
    background_secondary: Optional[str] = None
    accent_primary: Optional[str] = None
    accent_secondary: Optional[str] = None
    data_positive: Optional[str] = None
    data_negative: Optional[str] = None
    neutral: Optional[str] = None


class Typography(Artifact):
    heading_font: Optional[str] = None
    body_font: Optional[str] = None
    heading_scale: Optional[float] = None
    body_scale: Optional[float] = None
    line_height: Optional[float] = None


class Theme(Artifact):
    name: str = Field(default="", max_length=80)
    palette: Optional[Palette] = None
    typography: Optional[Typography] = None
    mood_keywords: List[str] = Field(default_factory=list, max_length=8)
    iconography: Optional[str] = Field(default=None, max_length=120)
    shapes_motif: Optional[str] = Field(default=None, max_length=120)


# ── Blueprint ───────────────────────────────────────────────

class VisualSuggestion(Artifact):
    type: VisualType = "image"
    description: str = Field(default="", max_length=180)
    diagram_hint: Optional[str] = Field(default=None, max_length=180)
    image_keywords: Optional[List[str]] = Field(default=None, max_length=6)


class BulletPointsBlock(Artifact):
    type: Literal["bullet_points"]
    items: List[str] = Field(default_factory=list, max_length=6)


class ParagraphBlock(Artifact):
    type: Literal["paragraph"]
    text: str = Field(max_length=600)


class StatisticBlock(Artifact):
    type: Literal["statistic"]
    value: str = Field(max_length=40)
    label: str = Field(default="", max_length=120)


class QuoteBlock(Artifact):
    type: Literal["quote"]
    text: str = Field(max_length=280)
    attribution: Optional[str] = Field(default=None, max_length=80)


class CalloutBlock(Artifact):
    type: Literal["callout"]
    text: str = Field(max_length=280)


class ImageRequestBlock(Artifact):
    type: Literal["image_request"]
    description: str = Field(max_length=180)


class DiagramRequestBlock(Artifact):
    type: Literal["diagram_request"]
    description: str = Field(max_length=180)
    syntax: Optional[DiagramSyntax] = None


class TableRequestBlock(Artifact):
    type: Literal["table_request"]
    description: str = Field(max_length=180)
    columns: List[str] = Field(default_factory=list, max_length=8)


Block = Annotated[
    Union[
        BulletPointsBlock,
        ParagraphBlock,
        StatisticBlock,
        QuoteBlock,
        CalloutBlock,
        ImageRequestBlock,
        DiagramRequestBlock,
        TableRequestBlock,
    ],
    Field(discriminator="type"),
]


class BlueprintSlide(Artifact):
    """One slide of the outline. ``slide_id`` survives refinement edits."""

    slide_id: str = Field(min_length=1, max_length=16)
    slide_index: int = Field(ge=1)
    slide_title: str = Field(min_length=1, max_length=90)
    content_points: List[Annotated[str, Field(max_length=180)]] = Field(min_length=2, max_length=5)
    speaker_notes: Optional[str] = Field(default=None, max_length=600)
    visual_suggestion: Optional[VisualSuggestion] = None
    blocks: Optional[List[Block]] = Field(default=None, max_length=3)


class Blueprint(Artifact):
    """The presentation outline for one topic + angle."""

    topic: str = Field(min_length=1)
    chosen_angle: Angle
    slide_count: int = Field(ge=SLIDE_COUNT_MIN, le=SLIDE_COUNT_MAX)
    theme: Optional[Theme] = None
    slides: List[BlueprintSlide]

    @model_validator(mode="after")
    def _consistent_slides(self) -> "Blueprint":
        if len(self.slides) != self.slide_count:
            raise ValueError(
                f"slide_count={self.slide_count} but {len(self.slides)} slides present"
            )
        ids = [s.slide_id for s in self.slides]
        if len(ids) != len(set(ids)):
            raise ValueError(f"slide_id values must be unique, got {ids}")
        for position, slide in enumerate(self.slides, start=1):
            if slide.slide_index != position:
                raise ValueError(
                    f"slide {slide.slide_id} has slide_index={slide.slide_index}, expected {position}"
                )
        return self


# ── Recipes ─────────────────────────────────────────────────

class GridPlacement(Artifact):
    """Placement on a 12-column grid, expressed as grid line numbers."""

    colStart: int = Field(ge=1, le=12)
    colEnd: int = Field(ge=2, le=13)
    rowStart: int = Field(ge=1)
    rowEnd: int = Field(ge=2)

    @model_validator(mode="after")
    def _ordered(self) -> "GridPlacement":
        if self.colEnd <= self.colStart or self.rowEnd <= self.rowStart:
            raise ValueError("grid end lines must come after start lines")
        return self


class RecipeElementBase(Artifact):
    grid: Optional[GridPlacement] = None
    style_hints: Dict[str, Any] = Field(default_factory=dict)
    position_hints: Dict[str, Any] = Field(default_factory=dict)


class TitleElement(RecipeElementBase):
    type: Literal["Title"]
    content: str = Field(max_length=120)


class BulletedListElement(RecipeElementBase):
    type: Literal["BulletedList"]
    content: List[Annotated[str, Field(max_length=180)]] = Field(max_length=6)


class ParagraphElement(RecipeElementBase):
    type: Literal["Paragraph"]
    content: str = Field(max_length=600)


class QuoteElement(RecipeElementBase):
    type: Literal["Quote"]
    content: str = Field(max_length=280)
    attribution: Optional[str] = Field(default=None, max_length=80)


class StatElement(RecipeElementBase):
    type: Literal["Stat"]
    content: str = Field(max_length=40)
    label: Optional[str] = Field(default=None, max_length=120)


class ImageElement(RecipeElementBase):
    type: Literal["Image"]
    content: str = Field(max_length=180)
    image_url: Optional[str] = None


class DiagramElement(RecipeElementBase):
    type: Literal["Diagram"]
    content: str = Field(max_length=2000)
    syntax: DiagramSyntax = "mermaid"


class TableSpec(Artifact):
    headers: List[str] = Field(default_factory=list, max_length=8)
    rows: List[List[str]] = Field(default_factory=list, max_length=12)


class TableElement(RecipeElementBase):
    type: Literal["Table"]
    content: str = Field(default="", max_length=180)
    table: TableSpec = Field(default_factory=TableSpec)


RecipeElement = Annotated[
    Union[
        TitleElement,
        BulletedListElement,
        ParagraphElement,
        QuoteElement,
        StatElement,
        ImageElement,
        DiagramElement,
        TableElement,
    ],
    Field(discriminator="type"),
]


class GenerativeBackground(Artifact):
    library: str = Field(max_length=40)
    options: Dict[str, Any] = Field(default_factory=dict)


class Background(Artifact):
    color: str = "#000000"
    overlay: bool = False
    generative_background: Optional[GenerativeBackground] = None


class Recipe(Artifact):
    """Renderable composition for one blueprint slide."""

    slide_id: str = Field(min_length=1)
    layout_type: LayoutType = "TitleAndBullets"
    background: Background = Field(default_factory=Background)
    elements: List[RecipeElement] = Field(min_length=1)


class ThemeRuntime(Artifact):
    background: str = "#000000"
    primary: str = "#ffffff"
    secondary: str = "#cccccc"
    accent: str = "#ffe1c6"


class RecipeSet(Artifact):
    theme_runtime: ThemeRuntime = Field(default_factory=ThemeRuntime)
    recipes: List[Recipe]


# ── Persisted slide rows ────────────────────────────────────

class Position(Artifact):
    x: float
    y: float


class Size(Artifact):
    width: float
    height: float


class TitleSlideElement(Artifact):
    id: str
    type: Literal["title"]
    content: str
    position: Position
    size: Size


class ContentSlideElement(Artifact):
    id: str
    type: Literal["content"]
    content: List[str]
    position: Position
    size: Size


class ImageSuggestionSlideElement(Artifact):
    id: str
    type: Literal["image_suggestion"]
    content: str


class DiagramSlideElement(Artifact):
    id: str
    type: Literal["diagram"]
    content: str
    syntax: DiagramSyntax = "mermaid"
    position: Position
    size: Size


class LayoutSlideElement(Artifact):
    id: str
    type: Literal["layout"]
    layout: str


SlideElement = Annotated[
    Union[
        TitleSlideElement,
        ContentSlideElement,
        ImageSuggestionSlideElement,
        DiagramSlideElement,
        LayoutSlideElement,
    ],
    Field(discriminator="type"),
]


class SlideRow(Artifact):
    """A persisted slide row as handed to the store."""

    presentation_id: str
    order: int = Field(ge=1)
    elements: List[SlideElement] = Field(default_factory=list)
    notes: Optional[str] = None
    image_url: Optional[str] = None


class SlideContent(Artifact):
    """Per-slide content returned by the content fan-out."""

    notes: str = Field(max_length=2000)
    content_points: List[Annotated[str, Field(max_length=180)]] = Field(min_length=1, max_length=5)


# ── Deck review ─────────────────────────────────────────────

class ReviewSuggestion(BaseModel):
    """A follow-up edit the client can offer for a flagged slide."""

    task: Literal["magic_edit"] = "magic_edit"
    intent: Literal["fix_overflow", "summarize"]
    slide_id: Optional[str] = None


class ReviewIssue(BaseModel):
    severity: Literal["low", "medium", "high"]
    message: str
    suggestion: ReviewSuggestion


class SlideReview(BaseModel):
    slide_id: Optional[str] = None
    issues: List[ReviewIssue]


class ReviewReport(BaseModel):
    """Only slides with at least one issue are listed."""

    type: Literal["review_report"] = "review_report"
    issues: List[SlideReview] = Field(default_factory=list)


# ── Chat refinement ─────────────────────────────────────────

class ChatMessage(Artifact):
    role: Literal["user", "assistant", "system"] = "user"
    content: str = ""


# ── Bundle & pipeline state ─────────────────────────────────

class BundleMetadata(Artifact):
    model_config = ConfigDict(frozen=True)

    generated_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    slide_count: int
    theme: str = "Default"


class Bundle(Artifact):
    """Terminal output of a full pipeline run, handed out as a frozen snapshot."""

    model_config = ConfigDict(frozen=True)

    topic: str
    chosen_angle: Angle
    available_angles: List[Angle]
    blueprint: Blueprint
    recipes: RecipeSet
    metadata: BundleMetadata


class PipelineState(BaseModel):
    """Tracks the current state of one pipeline run."""

    run_id: str = Field(
        default_factory=lambda: uuid.uuid4().hex[:8],
        description="Tags every log record written during the run",
    )
    status: str = Field(
        default="idle",
        description="One of: 'idle', 'strategy', 'blueprint', 'recipes', 'done', 'error'",
    )
    topic: str = ""
    current_step: str = ""
    errors: List[str] = Field(default_factory=list)


# ── Streaming events ────────────────────────────────────────

class MetadataEvent(BaseModel):
    type: Literal["metadata"] = "metadata"
    topic: str
    chosen_angle: Angle
    slide_count: int
    theme: Optional[Theme] = None


class SlideEvent(BaseModel):
    type: Literal["slide"] = "slide"
    slide: BlueprintSlide


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    blueprint: Blueprint


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


StreamEvent = Union[MetadataEvent, SlideEvent, CompleteEvent, ErrorEvent]
