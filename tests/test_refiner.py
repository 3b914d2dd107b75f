"""Chat-driven blueprint refinement and slide-id stability."""

import json

import pytest

from agents.blueprint_agent import (
    BlueprintRefiner,
    extract_target_slides,
    fallback_blueprint,
    resolve_slide_ids,
)
from engine.errors import ContractViolation
from models import ChatMessage, Theme

from conftest import FakeGateway, make_settings


@pytest.fixture
def blueprint(angle):
    return fallback_blueprint("Cloud costs", angle, 4).model_copy(
        update={"theme": Theme(name="Slate", mood_keywords=["calm"])}
    )


def echo_slides(blueprint, edit=None, drop_ids=False):
    """Reply builder that returns the request's slides, optionally edited."""

    def _reply(**kwargs):
        request = json.loads(kwargs["user"])
        slides = request["blueprint"]["slides"]
        if drop_ids:
            for s in slides:
                s.pop("slide_id")
        if edit:
            edit(slides)
        return {"slides": slides}

    return _reply


async def test_bullet_added_to_targeted_slide_keeps_ids(settings, blueprint):
    def _add_cost(slides):
        slides[1]["content_points"].append("Cost: reserved capacity halves the bill")

    gateway = FakeGateway(echo_slides(blueprint, _add_cost))
    refined = await BlueprintRefiner(gateway=gateway, settings=settings).run(
        blueprint, [{"role": "user", "content": "@slide2 add a bullet about cost"}]
    )

    assert [s.slide_id for s in refined.slides] == [s.slide_id for s in blueprint.slides]
    assert refined.slides[1].content_points[-1] == "Cost: reserved capacity halves the bill"
    assert refined.slides[0] == blueprint.slides[0]
    request = json.loads(gateway.calls[0]["user"])
    assert request["context"]["target_slides"] == [2]
    assert request["chatHistory"] == [{"role": "user", "content": "@slide2 add a bullet about cost"}]


async def test_missing_ids_with_same_count_are_restored_by_position(settings, blueprint):
    gateway = FakeGateway(echo_slides(blueprint, drop_ids=True))
    refined = await BlueprintRefiner(gateway=gateway, settings=settings).run(blueprint, [])
    assert [s.slide_id for s in refined.slides] == ["s-01", "s-02", "s-03", "s-04"]


async def test_inserted_slide_gets_fresh_id(settings, blueprint):
    def _insert(slides):
        slides.insert(2, {"slide_title": "Pricing models", "content_points": ["On-demand", "Spot"]})

    gateway = FakeGateway(echo_slides(blueprint, _insert))
    refined = await BlueprintRefiner(gateway=gateway, settings=settings).run(
        blueprint, ["Insert a slide on pricing after slide 2"]
    )

    assert refined.slide_count == 5
    assert [s.slide_id for s in refined.slides] == ["s-01", "s-02", "s-05", "s-03", "s-04"]
    assert [s.slide_index for s in refined.slides] == [1, 2, 3, 4, 5]
    assert refined.slides[2].slide_title == "Pricing models"


async def test_removed_slide_does_not_renumber_survivors(settings, angle):
    original = fallback_blueprint("Cloud costs", angle, 5)
    gateway = FakeGateway(echo_slides(original, lambda slides: slides.pop(1)))
    refined = await BlueprintRefiner(gateway=gateway, settings=settings).run(original, [])
    assert [s.slide_id for s in refined.slides] == ["s-01", "s-03", "s-04", "s-05"]
    assert [s.slide_index for s in refined.slides] == [1, 2, 3, 4]


async def test_theme_is_kept_unless_replaced(settings, blueprint):
    refiner = BlueprintRefiner(gateway=FakeGateway(echo_slides(blueprint)), settings=settings)
    assert (await refiner.run(blueprint, [])).theme.name == "Slate"

    def _with_theme(**kwargs):
        reply = echo_slides(blueprint)(**kwargs)
        return {**reply, "theme": {"name": "Sunrise", "mood_keywords": ["warm"]}}

    refiner = BlueprintRefiner(gateway=FakeGateway(_with_theme), settings=settings)
    assert (await refiner.run(blueprint, [])).theme.name == "Sunrise"


@pytest.mark.parametrize(
    "reply",
    [
        None,
        "plain text",
        {"_clarify": "Which slide do you mean?"},
        {"slides": "not a list"},
        {"slides": [{"slide_title": "one"}, {"slide_title": "two"}]},
        {"slides": [{"slide_title": f"s{i}"} for i in range(16)]},
    ],
    ids=["none", "text", "clarify-only", "bad-slides", "too-few", "too-many"],
)
async def test_unusable_reply_is_a_noop(settings, blueprint, reply):
    refined = await BlueprintRefiner(gateway=FakeGateway([reply]), settings=settings).run(
        blueprint, ["make it pop"]
    )
    assert refined == blueprint


async def test_clarification_alongside_slides_still_applies(settings, blueprint):
    def _reply(**kwargs):
        return {**echo_slides(blueprint)(**kwargs), "_clarify": "Assumed you meant slide 2"}

    refined = await BlueprintRefiner(gateway=FakeGateway(_reply), settings=settings).run(blueprint, [])
    assert refined.slide_count == 4


async def test_chat_history_is_windowed(blueprint):
    settings = make_settings(chat_history_window=2)
    gateway = FakeGateway([None])
    history = [{"role": "user", "content": f"message {i}"} for i in range(5)]
    await BlueprintRefiner(gateway=gateway, settings=settings).run(blueprint, history)
    sent = json.loads(gateway.calls[0]["user"])["chatHistory"]
    assert [m["content"] for m in sent] == ["message 3", "message 4"]


async def test_refine_requires_valid_blueprint(settings):
    with pytest.raises(ContractViolation):
        await BlueprintRefiner(gateway=FakeGateway(), settings=settings).run({"topic": "x"}, [])


async def test_context_values_that_are_not_json_are_sent_as_text(settings, blueprint):
    class Deadline:
        def __str__(self):
            return "end of quarter"

    gateway = FakeGateway([None])
    refined = await BlueprintRefiner(gateway=gateway, settings=settings).run(
        blueprint, ["tighten @slide2"], {"when": Deadline()}
    )
    assert refined == blueprint
    sent = json.loads(gateway.calls[0]["user"])["context"]
    assert sent == {"when": "end of quarter", "target_slides": [2]}


@pytest.mark.parametrize("context", ["tone: formal", ["a", "b"], 3])
async def test_context_must_be_a_dict(settings, blueprint, context):
    gateway = FakeGateway()
    with pytest.raises(ContractViolation, match="context"):
        await BlueprintRefiner(gateway=gateway, settings=settings).run(blueprint, [], context)
    assert gateway.calls == []


def test_extract_target_slides_reads_latest_user_message_and_instructions():
    messages = [
        ChatMessage(role="user", content="@slide9 earlier request"),
        ChatMessage(role="assistant", content="done"),
        ChatMessage(role="user", content="tweak @slide2 and @Slide 5"),
    ]
    assert extract_target_slides(messages) == [2, 5]
    assert extract_target_slides(messages, "also @slide1") == [1, 2, 5]
    assert extract_target_slides([], "@slide0") == []


def test_resolve_slide_ids_policy():
    original = ["s-01", "s-02", "s-03"]
    # Positional id already claimed by a reordered slide, so a fresh one is minted.
    assert resolve_slide_ids(original, [{"slide_id": "s-03"}, {"slide_id": "s-01"}, {}]) == [
        "s-03", "s-01", "s-04"
    ]
    assert resolve_slide_ids(original, [{"slide_id": "s-01"}, {"slide_id": "s-01"}, {"slide_id": "zz"}]) == [
        "s-01", "s-02", "s-03"
    ]
    assert resolve_slide_ids(original, [{"slide_id": "s-03"}, {"slide_id": "s-01"}, {}, {}]) == [
        "s-03", "s-01", "s-04", "s-05"
    ]
