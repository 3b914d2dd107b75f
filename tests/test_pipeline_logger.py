"""Component-scoped logging: step timing, fallbacks, and per-run tagging."""

import pytest
from loguru import logger

from engine.model_gateway import ModelGateway
from engine.pipeline_logger import PipelineLogger
from orchestrator import PipelineOrchestrator


@pytest.fixture
def records():
    log = PipelineLogger("Capture")
    captured = []
    sink_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield log, captured
    logger.remove(sink_id)


def _lines(captured):
    return [(r["level"].name, r["extra"]["component"], r["message"]) for r in captured]


def test_step_timer_logs_start_and_done(records):
    log, captured = records
    with log.step_start("Outline"):
        log.fallback("blueprint", "expected 5 slides, got none")

    lines = _lines(captured)
    assert lines[0] == ("INFO", "Capture", "STEP START: Outline")
    assert lines[1] == ("WARNING", "Capture", "FALLBACK: blueprint | Reason: expected 5 slides, got none")
    assert lines[2][2].startswith("STEP DONE: Outline (")


def test_step_timer_logs_failure_and_reraises(records):
    log, captured = records
    with pytest.raises(ValueError):
        with log.step_start("Recipes"):
            raise ValueError("bad layout")

    level, _, message = _lines(captured)[-1]
    assert level == "ERROR"
    assert message.startswith("STEP FAILED: Recipes (")
    assert "bad layout" in message


def test_run_scope_tags_records(records):
    log, captured = records
    log.info("outside")
    with PipelineLogger.run_scope("run-42"):
        log.action("Inside", "detail")
    assert [r["extra"]["run"] for r in captured] == ["-", "run-42"]
    assert captured[1]["message"] == "ACTION: Inside | detail"


async def test_pipeline_run_is_tagged_with_its_run_id(records, settings):
    _, captured = records
    orchestrator = PipelineOrchestrator(settings, gateway=ModelGateway(settings))
    captured.clear()

    await orchestrator.run_pipeline("History of Rome", 4)

    run_id = orchestrator.state.run_id
    components = {r["extra"]["component"] for r in captured}
    assert {"Orchestrator", "Strategist", "BlueprintBuilder"} <= components
    assert {r["extra"]["run"] for r in captured} == {run_id}

    await orchestrator.run_pipeline("History of Rome", 4)
    assert orchestrator.state.run_id != run_id
