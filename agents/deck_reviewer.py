"""
agents/deck_reviewer.py — Rule-based review of persisted slide rows.
Flags overflowing bullets, dense slides and long titles, each with a
suggested follow-up edit. No model call is made.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Union

from engine.errors import ContractViolation
from engine.pipeline_logger import PipelineLogger
from models import ReviewIssue, ReviewReport, ReviewSuggestion, SlideReview, SlideRow

MAX_BULLET_CHARS = 160
MAX_BULLETS = 6
MAX_TITLE_CHARS = 60


def _row_dict(slide: Union[SlideRow, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(slide, SlideRow):
        return slide.model_dump(mode="json")
    return slide if isinstance(slide, dict) else {}


def assess_slide(slide: Union[SlideRow, Dict[str, Any]]) -> List[ReviewIssue]:
    """Issues found on one slide row, in a fixed order: bullets, density, title."""
    row = _row_dict(slide)
    slide_id = row.get("id")
    elements = [e for e in row.get("elements") or [] if isinstance(e, dict)]
    title = next((e.get("content") for e in elements if e.get("type") == "title"), "")
    points = next((e.get("content") for e in elements if e.get("type") == "content"), [])
    title = title if isinstance(title, str) else ""
    bullets = points if isinstance(points, list) else []

    def _issue(severity: str, message: str, intent: str) -> ReviewIssue:
        return ReviewIssue(
            severity=severity,
            message=message,
            suggestion=ReviewSuggestion(intent=intent, slide_id=slide_id),
        )

    issues = []
    if any(len(str(b or "")) > MAX_BULLET_CHARS for b in bullets):
        issues.append(_issue("medium", "Some bullets are too long", "fix_overflow"))
    if len(bullets) > MAX_BULLETS:
        issues.append(_issue("low", "Slide may be too dense", "summarize"))
    if len(title) > MAX_TITLE_CHARS:
        issues.append(_issue("low", "Title is lengthy", "fix_overflow"))
    return issues


def review_slides(slides: Sequence[Union[SlideRow, Dict[str, Any]]]) -> ReviewReport:
    """Review every slide row and report the ones that need attention.

    Raises:
        ContractViolation: if ``slides`` is not a list.
    """
    if not isinstance(slides, (list, tuple)):
        raise ContractViolation("slides required")

    report = ReviewReport()
    for slide in slides:
        issues = assess_slide(slide)
        if issues:
            report.issues.append(SlideReview(slide_id=_row_dict(slide).get("id"), issues=issues))

    flagged = sum(len(entry.issues) for entry in report.issues)
    PipelineLogger("DeckReviewer").info(
        f"Reviewed {len(slides)} slides: {flagged} issues on {len(report.issues)} slides"
    )
    return report
