"""
engine/pipeline_logger.py — Component-scoped audit logging for the pipeline.
Uses loguru; every record carries the component name and the id of the
pipeline run it belongs to ("-" outside a run).
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from loguru import logger

from config import LOG_DIR, Settings, get_settings

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level:<8}</level> | "
    "<magenta>{extra[run]:<8}</magenta> | "
    "<cyan>{extra[component]:<18}</cyan> | "
    "{message}"
)
_FILE_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSS} | {level} | {extra[run]} | {extra[component]} | {message}"


class PipelineLogger:
    """Structured logger scoped to one pipeline component (stage, gateway, store)."""

    _initialized: bool = False

    def __init__(self, component: str) -> None:
        self.component = component
        if not PipelineLogger._initialized:
            PipelineLogger.configure()

    @classmethod
    def configure(cls, settings: Optional[Settings] = None) -> None:
        """(Re)build the loguru sinks from settings. Runs implicitly on first use."""
        settings = settings or get_settings()
        logger.remove()
        logger.configure(extra={"run": "-", "component": "-"})
        logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=settings.log_level.upper(), colorize=True)
        if settings.log_to_file:
            logger.add(
                str(LOG_DIR / "deck_pipeline_{time:YYYY-MM-DD}.log"),
                format=_FILE_FORMAT,
                level="DEBUG",
                rotation="10 MB",
                retention="7 days",
                encoding="utf-8",
            )
        cls._initialized = True

    @staticmethod
    @contextmanager
    def run_scope(run_id: str) -> Iterator[None]:
        """Tag every record logged inside the block, across awaits, with ``run_id``."""
        with logger.contextualize(run=run_id):
            yield

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        logger.bind(component=self.component).log(level, message, **kwargs)

    # ── Public API ──────────────────────────────────────────

    def info(self, message: str, **kwargs: Any) -> None:
        self._log("INFO", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log("DEBUG", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log("ERROR", message, **kwargs)

    def action(self, action: str, detail: str = "") -> None:
        """Log a component action (e.g. 'Proxy call', 'Stream Blueprint')."""
        self._log("INFO", f"ACTION: {action}" + (f" | {detail}" if detail else ""))

    def decision(self, decision: str, reason: str = "") -> None:
        self._log("INFO", f"DECISION: {decision}" + (f" | Reason: {reason}" if reason else ""))

    def fallback(self, artifact: str, reason: str) -> None:
        """Log that a stage replaced model output with its deterministic fallback."""
        self._log("WARNING", f"FALLBACK: {artifact} | Reason: {reason}")

    @contextmanager
    def step_start(self, step_name: str) -> Iterator[None]:
        """Time a step; a failure is logged with its elapsed time and re-raised."""
        start = time.perf_counter()
        self._log("INFO", f"STEP START: {step_name}")
        try:
            yield
        except BaseException as e:
            self._log("ERROR", f"STEP FAILED: {step_name} ({time.perf_counter() - start:.2f}s) | {e!r}")
            raise
        self._log("INFO", f"STEP DONE: {step_name} ({time.perf_counter() - start:.2f}s)")
