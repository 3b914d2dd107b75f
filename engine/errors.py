"""
engine/errors.py — Exception hierarchy for the deck pipeline.
"""

from __future__ import annotations

from typing import Optional


class DeckPipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class ContractViolation(DeckPipelineError):
    """Caller passed missing or invalid input. Never retried, never faked."""


class GatewayError(DeckPipelineError):
    """A model call path failed. Handled inside the gateway, never surfaced."""


class RateLimitExceeded(DeckPipelineError):
    """A client exceeded its request budget for the current window."""

    def __init__(self, key: str, retry_after: float) -> None:
        super().__init__(f"Rate limit exceeded for {key!r}; retry in {retry_after:.1f}s")
        self.key = key
        self.retry_after = retry_after


class PipelineError(DeckPipelineError):
    """A stage raised during a full pipeline run."""

    def __init__(self, stage: str, topic: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"Presentation generation failed at stage '{stage}' for topic {topic!r}{detail}")
        self.stage = stage
        self.topic = topic
        self.cause = cause
