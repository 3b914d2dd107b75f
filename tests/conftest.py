"""Shared fixtures: isolated settings and a scriptable gateway."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest

from config import Settings
from models import Angle


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "gemini_api_key": None,
        "portkey_api_key": None,
        "llm_retry_wait_seconds": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeGateway:
    """Stands in for ModelGateway: replies come from a list or a function of the call."""

    def __init__(
        self,
        replies: Union[Sequence[Any], Callable[..., Any], None] = None,
        chunks: Sequence[Union[str, bytes]] = (),
        has_credential: bool = True,
    ) -> None:
        self._replies = replies if callable(replies) else list(replies or [])
        self._chunks = list(chunks)
        self.has_credential = has_credential
        self.calls: List[Dict[str, Any]] = []
        self.stream_calls: List[Dict[str, Any]] = []

    async def call(self, **kwargs: Any) -> Optional[Any]:
        self.calls.append(kwargs)
        if callable(self._replies):
            return self._replies(**kwargs)
        return self._replies.pop(0) if self._replies else None

    async def stream(self, **kwargs: Any):
        self.stream_calls.append(kwargs)
        for chunk in self._chunks:
            yield chunk


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def angle() -> Angle:
    return Angle(
        angle_id="story",
        title="The Story So Far",
        description="A narrative walk through the topic.",
        audience="General",
        emphasis_keywords=["history", "people"],
    )


def slide_dict(position: int, **overrides: Any) -> Dict[str, Any]:
    slide = {
        "slide_id": f"s-{position:02d}",
        "slide_index": position,
        "slide_title": f"Model slide {position}",
        "content_points": [f"Point A{position}", f"Point B{position}"],
    }
    slide.update(overrides)
    return slide
