"""Blueprint builder: slide-count invariant, fallback outline, streaming events."""

import json

import pytest

from agents.blueprint_agent import BlueprintBuilder, fallback_blueprint
from engine.errors import ContractViolation
from engine.model_gateway import ModelGateway
from models import CompleteEvent, ErrorEvent, MetadataEvent, SlideEvent

from conftest import FakeGateway, slide_dict


def offline_builder(settings):
    return BlueprintBuilder(gateway=ModelGateway(settings), settings=settings)


@pytest.mark.parametrize("count", range(3, 16))
async def test_slide_count_invariant_on_fallback(settings, angle, count):
    blueprint = await offline_builder(settings).run("History of Rome", angle, count)
    assert blueprint.slide_count == count
    assert len(blueprint.slides) == count


@pytest.mark.parametrize("count", [3, 7, 15])
async def test_slide_count_invariant_on_model_path(settings, angle, count):
    gateway = FakeGateway([{"slides": [slide_dict(i) for i in range(1, count + 1)]}])
    blueprint = await BlueprintBuilder(gateway=gateway, settings=settings).run("Rome", angle, count)
    assert len(blueprint.slides) == count
    assert blueprint.slides[0].slide_title == "Model slide 1"


async def test_history_of_rome_five_slides(settings, angle):
    blueprint = await offline_builder(settings).run("History of Rome", angle, 5)
    titles = [s.slide_title for s in blueprint.slides]
    assert len(titles) == 5
    assert titles[0] == "Introduction"
    assert titles[-1] == "Conclusion"
    assert titles[1:4] == ["Key Idea 1", "Key Idea 2", "Key Idea 3"]
    assert [s.slide_id for s in blueprint.slides] == ["s-01", "s-02", "s-03", "s-04", "s-05"]


@pytest.mark.parametrize(
    "requested, expected",
    [(37, 15), (1, 3), (-4, 3), ("8", 8), ("lots", 10), (float("inf"), 15), (float("-inf"), 3), (float("nan"), 10)],
)
async def test_slide_count_is_clamped(settings, angle, requested, expected):
    blueprint = await offline_builder(settings).run("Rome", angle, requested)
    assert len(blueprint.slides) == expected


async def test_fallback_is_deterministic(settings, angle):
    first = await offline_builder(settings).run("Rome", angle, 6)
    second = await BlueprintBuilder(gateway=FakeGateway([None]), settings=settings).run("Rome", angle, 6)
    assert first.model_dump() == second.model_dump()


async def test_wrong_slide_count_from_model_falls_back(settings, angle):
    gateway = FakeGateway([{"slides": [slide_dict(i) for i in range(1, 4)]}])
    blueprint = await BlueprintBuilder(gateway=gateway, settings=settings).run("Rome", angle, 5)
    assert blueprint == fallback_blueprint("Rome", angle, 5)


async def test_model_slides_are_sanitised_and_reindexed(settings, angle):
    slides = [
        slide_dict(1, slide_id="s-01", slide_title="T" * 200),
        slide_dict(2, slide_id="s-01", slide_index=9),
        slide_dict(3, slide_id="garbage", content_points=["lonely"]),
    ]
    theme = {"name": "Forum", "palette": {"accent_primary": "#aa0000"}, "mood_keywords": ["stone"]}
    gateway = FakeGateway([{"slides": slides, "theme": theme}])
    blueprint = await BlueprintBuilder(gateway=gateway, settings=settings).run("Rome", angle, 3)

    assert [s.slide_id for s in blueprint.slides] == ["s-01", "s-02", "s-03"]
    assert [s.slide_index for s in blueprint.slides] == [1, 2, 3]
    assert len(blueprint.slides[0].slide_title) == 90
    assert blueprint.slides[2].content_points == ["lonely", "Point 2"]
    assert blueprint.theme.name == "Forum"
    assert gateway.calls[0]["cache_key"] == "blueprint_rome_story_3"
    assert json.loads(gateway.calls[0]["user"])["slide_count"] == 3


async def test_angle_may_be_a_dict(settings, angle):
    blueprint = await offline_builder(settings).run("Rome", angle.model_dump(), 3)
    assert blueprint.chosen_angle == angle


async def test_missing_topic_raises(settings, angle):
    with pytest.raises(ContractViolation):
        await offline_builder(settings).run("  ", angle, 5)


@pytest.mark.parametrize("bad_angle", [None, "story", {"title": "no id"}])
async def test_invalid_angle_raises(settings, bad_angle):
    with pytest.raises(ContractViolation):
        await offline_builder(settings).run("Rome", bad_angle, 5)


# ── Streaming ───────────────────────────────────────────────

async def _collect(events):
    return [e async for e in events]


async def test_stream_without_credential_uses_synthetic_generator(settings, angle):
    events = await _collect(offline_builder(settings).stream("History of Rome", angle, 4))

    assert isinstance(events[0], MetadataEvent)
    assert events[0].slide_count == 4
    assert all(isinstance(e, SlideEvent) for e in events[1:5])
    assert [e.slide.slide_title for e in events[1:5]] == ["Introduction", "Key Idea 1", "Key Idea 2", "Conclusion"]
    assert isinstance(events[-1], CompleteEvent)
    assert len(events) == 6
    assert events[-1].blueprint.slides == [e.slide for e in events[1:5]]


async def test_stream_from_model_chunks(settings, angle):
    text = "".join(json.dumps(slide_dict(i)) for i in range(1, 4))
    chunks = [text[i:i + 7] for i in range(0, len(text), 7)]
    gateway = FakeGateway(chunks=chunks)
    events = await _collect(BlueprintBuilder(gateway=gateway, settings=settings).stream("Rome", angle, 3))

    slides = [e.slide for e in events if isinstance(e, SlideEvent)]
    assert [s.slide_title for s in slides] == ["Model slide 1", "Model slide 2", "Model slide 3"]
    assert events[-1].type == "complete"
    assert [e.model_dump()["type"] for e in events] == ["metadata", "slide", "slide", "slide", "complete"]


async def test_short_stream_is_filled_from_fallback(settings, angle):
    gateway = FakeGateway(chunks=[json.dumps(slide_dict(1, slide_title="Opening"))])
    events = await _collect(BlueprintBuilder(gateway=gateway, settings=settings).stream("Rome", angle, 4))

    slides = [e.slide for e in events if isinstance(e, SlideEvent)]
    assert [s.slide_title for s in slides] == ["Opening", "Key Idea 1", "Key Idea 2", "Conclusion"]
    assert [s.slide_id for s in slides] == ["s-01", "s-02", "s-03", "s-04"]
    assert isinstance(events[-1], CompleteEvent)


async def test_long_stream_stops_at_slide_count(settings, angle):
    text = "".join(json.dumps(slide_dict(i)) for i in range(1, 7))
    gateway = FakeGateway(chunks=[text])
    events = await _collect(BlueprintBuilder(gateway=gateway, settings=settings).stream("Rome", angle, 3))
    assert sum(isinstance(e, SlideEvent) for e in events) == 3
    assert events[-1].blueprint.slide_count == 3


async def test_stream_failure_ends_with_error_event(settings, angle):
    class ExplodingGateway(FakeGateway):
        async def stream(self, **kwargs):
            yield json.dumps(slide_dict(1))
            raise RuntimeError("socket closed")

    events = await _collect(
        BlueprintBuilder(gateway=ExplodingGateway(), settings=settings).stream("Rome", angle, 3)
    )
    assert isinstance(events[0], MetadataEvent)
    assert isinstance(events[-1], ErrorEvent)
    assert "socket closed" in events[-1].message
    assert not any(isinstance(e, CompleteEvent) for e in events)


def test_stream_checks_inputs_eagerly(settings):
    with pytest.raises(ContractViolation):
        offline_builder(settings).stream("Rome", None, 3)


async def test_stopping_at_slide_count_closes_provider_stream(settings, angle):
    class TrackingGateway(FakeGateway):
        closed = False

        async def stream(self, **kwargs):
            try:
                for i in range(1, 10):
                    yield json.dumps(slide_dict(i))
            finally:
                TrackingGateway.closed = True

    events = await _collect(BlueprintBuilder(gateway=TrackingGateway(), settings=settings).stream("Rome", angle, 3))
    assert [e.type for e in events] == ["metadata", "slide", "slide", "slide", "complete"]
    assert TrackingGateway.closed
