"""End-to-end pipeline runs through the orchestrator."""

import pytest
from pydantic import ValidationError

from engine.errors import ContractViolation, PipelineError
from engine.model_gateway import ModelGateway
from models import Bundle, CompleteEvent, MetadataEvent
from orchestrator import PipelineOrchestrator

from conftest import FakeGateway, slide_dict


async def test_offline_run_produces_complete_bundle(settings):
    statuses = []
    orchestrator = PipelineOrchestrator(
        settings, gateway=ModelGateway(settings),
        on_status_change=lambda status, step: statuses.append(status),
    )
    bundle = await orchestrator.run_pipeline("History of Rome", 5)

    assert isinstance(bundle, Bundle)
    assert bundle.topic == "History of Rome"
    assert bundle.chosen_angle == bundle.available_angles[0]
    assert 2 <= len(bundle.available_angles) <= 3
    assert bundle.blueprint.chosen_angle == bundle.chosen_angle
    assert bundle.metadata.slide_count == 5
    assert bundle.metadata.theme == "Default"
    assert [r.slide_id for r in bundle.recipes.recipes] == [s.slide_id for s in bundle.blueprint.slides]
    assert statuses == ["strategy", "blueprint", "recipes", "done"]
    assert orchestrator.state.status == "done"


async def test_bundle_is_frozen_snapshot(settings):
    orchestrator = PipelineOrchestrator(settings, gateway=ModelGateway(settings))
    bundle = await orchestrator.run_pipeline("Rome", 3)
    with pytest.raises(ValidationError):
        bundle.topic = "Carthage"
    again = await orchestrator.run_pipeline("Rome", 3)
    assert again.blueprint == bundle.blueprint
    assert again.blueprint is not bundle.blueprint


async def test_model_theme_name_reaches_metadata(settings):
    def _reply(**kwargs):
        key = kwargs.get("cache_key") or ""
        if key.startswith("blueprint_"):
            return {
                "theme": {"name": "Imperial", "mood_keywords": ["marble"]},
                "slides": [slide_dict(i) for i in range(1, 4)],
            }
        return None

    gateway = FakeGateway(_reply)
    bundle = await PipelineOrchestrator(settings, gateway=gateway).run_pipeline("Rome", 3)
    assert bundle.metadata.theme == "Imperial"
    assert bundle.blueprint.slides[0].slide_title == "Model slide 1"
    assert [c["cache_key"].split("_")[0] for c in gateway.calls] == ["angles", "blueprint", "recipes"]


async def test_slide_count_is_clamped_end_to_end(settings):
    bundle = await PipelineOrchestrator(settings, gateway=ModelGateway(settings)).run_pipeline("Rome", 37)
    assert bundle.metadata.slide_count == 15
    assert len(bundle.recipes.recipes) == 15


async def test_stage_failure_is_wrapped(settings):
    statuses = []

    def _reply(**kwargs):
        if kwargs.get("cache_key", "").startswith("recipes_"):
            raise RuntimeError("disk on fire")
        return None

    orchestrator = PipelineOrchestrator(
        settings, gateway=FakeGateway(_reply),
        on_status_change=lambda status, step: statuses.append(status),
    )
    with pytest.raises(PipelineError) as excinfo:
        await orchestrator.run_pipeline("Rome", 4)

    assert excinfo.value.stage == "recipes"
    assert excinfo.value.topic == "Rome"
    assert isinstance(excinfo.value.cause, RuntimeError)
    assert statuses[-1] == "error"
    assert orchestrator.state.errors == ["disk on fire"]


async def test_invalid_topic_fails_at_strategy(settings):
    orchestrator = PipelineOrchestrator(settings, gateway=ModelGateway(settings))
    with pytest.raises(PipelineError) as excinfo:
        await orchestrator.run_pipeline("   ")
    assert excinfo.value.stage == "strategy"
    assert isinstance(excinfo.value.cause, ContractViolation)


async def test_stage_entry_points(settings):
    orchestrator = PipelineOrchestrator(settings, gateway=ModelGateway(settings))
    strategy = await orchestrator.generate_angles("Rome")
    angle = strategy.angles[0]

    blueprint = await orchestrator.generate_blueprint("Rome", angle, 4)
    assert blueprint.slide_count == 4

    events = [e async for e in await orchestrator.generate_blueprint("Rome", angle, 4, stream=True)]
    assert isinstance(events[0], MetadataEvent)
    assert isinstance(events[-1], CompleteEvent)
    assert events[-1].blueprint == blueprint

    refined = await orchestrator.refine_blueprint(blueprint, ["@slide1 shorter"])
    assert refined == blueprint

    recipes = await orchestrator.generate_recipes(blueprint)
    assert len(recipes.recipes) == 4
