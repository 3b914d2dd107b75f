"""Model gateway: proxy path, direct fallback, parsing, and streaming."""

import json
from types import SimpleNamespace

import httpx
import pytest

from engine.model_gateway import ModelGateway, is_valid_proxy_key, parse_json_content

from conftest import make_settings

PROXY_KEY = "pk-" + "x" * 60


class FakeModels:
    def __init__(self, text=None, error=None, chunks=()):
        self.text = text
        self.error = error
        self.chunks = list(chunks)
        self.calls = []

    async def generate_content(self, *, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)

    async def generate_content_stream(self, *, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})

        async def _gen():
            for chunk in self.chunks:
                yield SimpleNamespace(text=chunk)

        return _gen()


class FakeProvider:
    def __init__(self, **kwargs):
        self.models = FakeModels(**kwargs)
        self.aio = SimpleNamespace(models=self.models)


def proxy_reply(content, status=200):
    return httpx.Response(status, json={"choices": [{"message": {"content": content}}]})


def gateway_with(handler, provider=None, **settings_overrides):
    requests = []

    def _record(request):
        requests.append(request)
        return handler(request)

    settings = make_settings(gemini_api_key="gem-key", portkey_api_key=PROXY_KEY, **settings_overrides)
    client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    gateway = ModelGateway(settings, http_client=client, provider=provider or FakeProvider(text='{"via": "direct"}'))
    return gateway, requests


def test_proxy_key_format_check():
    assert is_valid_proxy_key(PROXY_KEY)
    assert is_valid_proxy_key("sk-" + "y" * 60)
    assert not is_valid_proxy_key("pk-short")
    assert not is_valid_proxy_key("zz-" + "x" * 60)
    assert not is_valid_proxy_key(None)


def test_parse_json_content_strips_fences():
    assert parse_json_content('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_content("not json") is None
    assert parse_json_content(None) is None


async def test_no_credential_returns_none_without_network():
    provider = FakeProvider(text="{}")
    gateway = ModelGateway(make_settings(portkey_api_key=PROXY_KEY), provider=provider)
    assert await gateway.call(system="s", user="u") is None
    assert provider.models.calls == []


async def test_proxy_path_sends_wire_contract():
    gateway, requests = gateway_with(lambda r: proxy_reply('{"ok": true}'))
    result = await gateway.call(system="sys", user="usr", expect_json=True, cache_key="angles_rome")

    assert result == {"ok": True}
    assert len(requests) == 1
    request = requests[0]
    assert str(request.url).endswith("/chat/completions")
    body = json.loads(request.content)
    assert body["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "usr"},
    ]
    assert body["response_format"] == {"type": "json_object"}
    assert "temperature" in body
    config = json.loads(request.headers["x-portkey-config"])
    assert config["cache"]["mode"] == "semantic"
    assert config["retry"]["attempts"] == 3
    assert request.headers["x-portkey-api-key"] == PROXY_KEY
    assert request.headers["authorization"] == "Bearer gem-key"


async def test_cache_mode_simple_without_cache_key():
    gateway, requests = gateway_with(lambda r: proxy_reply("{}"))
    await gateway.call(user="u")
    config = json.loads(requests[0].headers["x-portkey-config"])
    assert config["cache"]["mode"] == "simple"
    assert [m["role"] for m in json.loads(requests[0].content)["messages"]] == ["user"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, text="<html>"),
        proxy_reply(""),
    ],
)
async def test_proxy_failure_falls_back_to_one_direct_call(response):
    provider = FakeProvider(text='{"via": "direct"}')
    gateway, requests = gateway_with(lambda r: response, provider=provider)
    assert await gateway.call(system="s", user="u") == {"via": "direct"}
    assert len(requests) == 1
    assert len(provider.models.calls) == 1


async def test_transport_errors_are_retried_then_fall_back():
    def _fail(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = FakeProvider(text='{"via": "direct"}')
    gateway, requests = gateway_with(_fail, provider=provider, llm_max_retries=3)
    assert await gateway.call(user="u") == {"via": "direct"}
    assert len(requests) == 3
    assert len(provider.models.calls) == 1


async def test_malformed_proxy_key_skips_proxy():
    provider = FakeProvider(text='{"via": "direct"}')
    requests = []
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: requests.append(r)))
    gateway = ModelGateway(
        make_settings(gemini_api_key="gem-key", portkey_api_key="pk-too-short"),
        http_client=client,
        provider=provider,
    )
    assert await gateway.call(user="u") == {"via": "direct"}
    assert requests == []


async def test_direct_failure_returns_none():
    provider = FakeProvider(error=RuntimeError("quota"))
    gateway = ModelGateway(make_settings(gemini_api_key="gem-key"), provider=provider)
    assert await gateway.call(user="u") is None
    assert len(provider.models.calls) == 1


async def test_unparseable_json_returns_none_and_text_mode_returns_raw():
    provider = FakeProvider(text="Sure! Here you go")
    gateway = ModelGateway(make_settings(gemini_api_key="gem-key"), provider=provider)
    assert await gateway.call(user="u", expect_json=True) is None
    assert await gateway.call(user="u", expect_json=False) == "Sure! Here you go"


async def test_system_only_prompt_becomes_contents():
    provider = FakeProvider(text="{}")
    gateway = ModelGateway(make_settings(gemini_api_key="gem-key"), provider=provider)
    await gateway.call(system="just the system prompt")
    assert provider.models.calls[0]["contents"] == "just the system prompt"


async def test_stream_yields_provider_chunks():
    provider = FakeProvider(chunks=['{"slide_title":', ' "A"}', ""])
    gateway = ModelGateway(make_settings(gemini_api_key="gem-key"), provider=provider)
    chunks = [c async for c in gateway.stream(system="s", user="u")]
    assert chunks == ['{"slide_title":', ' "A"}']


async def test_stream_without_credential_is_empty():
    gateway = ModelGateway(make_settings(), provider=FakeProvider(chunks=["x"]))
    assert [c async for c in gateway.stream(user="u")] == []
