"""
engine/model_gateway.py — Single entry point for every model call.
Primary path is an OpenAI-compatible caching proxy reached over httpx; on any
failure there it falls back to one direct Gemini call through google-genai.
Uses tenacity for transport retries and PipelineLogger for audit.
"""

from __future__ import annotations

import json
import re
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from google import genai
from google.genai import types
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import Settings, get_settings
from engine.errors import GatewayError
from engine.pipeline_logger import PipelineLogger

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
CACHE_NAMESPACE = "deck-pipeline"


def is_valid_proxy_key(key: Optional[str]) -> bool:
    """Proxy keys are long and carry a ``pk-`` or ``sk-`` prefix."""
    return bool(key) and len(key) > 50 and key.startswith(("pk-", "sk-"))


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    return _FENCE_RE.sub("", text).strip()


def parse_json_content(text: Optional[str]) -> Optional[Any]:
    if text is None:
        return None
    try:
        return json.loads(strip_code_fences(text))
    except (json.JSONDecodeError, TypeError):
        return None


class ModelGateway:
    """Stateless model-call gateway with proxy acceleration and direct fallback.

    ``call`` never raises for transport, HTTP or parse failures: it returns
    ``None`` and the calling stage applies its own deterministic fallback.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        provider: Optional[Any] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._log = PipelineLogger("ModelGateway")
        self._http_client = http_client
        self._provider = provider
        self._proxy_enabled = is_valid_proxy_key(self._settings.portkey_api_key)
        if self._settings.portkey_api_key and not self._proxy_enabled:
            self._log.warning("Proxy key present but malformed; using direct provider calls only")
        self._log.info(
            f"ModelGateway initialized (provider={'yes' if self.has_credential else 'no'}, "
            f"proxy={'yes' if self._proxy_enabled else 'no'})"
        )

    @property
    def has_credential(self) -> bool:
        return self._settings.has_provider

    # ── Public API ──────────────────────────────────────────

    async def call(
        self,
        *,
        system: Optional[str] = None,
        user: Optional[str] = None,
        expect_json: bool = True,
        cache_key: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Optional[Any]:
        """Run one model call.

        Args:
            system: System prompt, omitted from the request when empty.
            user: User prompt, omitted from the request when empty.
            expect_json: Parse the reply as JSON (code fences stripped).
            cache_key: Enables semantic caching on the proxy path.
            temperature: Sampling temperature override.

        Returns:
            Parsed JSON, raw text, or ``None`` when no usable reply exists.
        """
        if not self.has_credential:
            self._log.decision("Skip model call", "no provider credential configured")
            return None

        temp = temperature if temperature is not None else self._settings.llm_temperature
        text: Optional[str] = None

        if self._proxy_enabled:
            try:
                text = await self._call_proxy(
                    self._build_messages(system, user), expect_json, cache_key, temp
                )
            except Exception as e:
                self._log.warning(f"Proxy call failed, falling back to direct provider: {e}")

        if text is None:
            try:
                text = await self._call_direct(system, user, expect_json, temp)
            except Exception as e:
                self._log.error(f"Direct provider call failed: {e}")
                return None

        if not expect_json:
            return text

        parsed = parse_json_content(text)
        if parsed is None:
            self._log.warning(f"Model reply was not valid JSON ({len(text)} chars)")
        return parsed

    async def stream(
        self,
        *,
        system: Optional[str] = None,
        user: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Yield raw text chunks from the direct provider.

        Without a credential the stream is empty; a provider failure ends it
        early and is logged.
        """
        if not self.has_credential:
            self._log.decision("Skip model stream", "no provider credential configured")
            return

        if not user:
            system, user = None, system
        temp = temperature if temperature is not None else self._settings.llm_temperature
        config = self._build_config(system, temperature=temp, expect_json=False)
        self._log.action("Stream Call", f"model={self._settings.gemini_model}")

        try:
            chunks = await self._client().aio.models.generate_content_stream(
                model=self._settings.gemini_model,
                contents=user or "",
                config=config,
            )
            async for chunk in chunks:
                text = getattr(chunk, "text", None)
                if text:
                    yield text
        except Exception as e:
            self._log.error(f"Provider stream failed: {e}")

    # ── Internals ───────────────────────────────────────────

    @staticmethod
    def _build_messages(system: Optional[str], user: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        if user:
            messages.append({"role": "user", "content": user})
        return messages

    def _proxy_headers(self, cache_key: Optional[str]) -> Dict[str, str]:
        proxy_config = {
            "cache": {"mode": "semantic" if cache_key else "simple"},
            "retry": {"attempts": self._settings.portkey_retry_attempts},
        }
        return {
            "Content-Type": "application/json",
            "x-portkey-api-key": self._settings.portkey_api_key or "",
            "x-portkey-provider": self._settings.portkey_provider,
            "x-portkey-config": json.dumps(proxy_config),
            "x-portkey-cache-namespace": cache_key or CACHE_NAMESPACE,
            "Authorization": f"Bearer {self._settings.gemini_api_key}",
        }

    async def _call_proxy(
        self,
        messages: List[Dict[str, str]],
        expect_json: bool,
        cache_key: Optional[str],
        temperature: float,
    ) -> str:
        """POST to the proxy's chat-completions endpoint, retrying transport errors."""
        payload: Dict[str, Any] = {
            "model": self._settings.gemini_model,
            "messages": messages,
            "temperature": temperature,
        }
        if expect_json:
            payload["response_format"] = {"type": "json_object"}

        url = self._settings.portkey_base_url.rstrip("/") + "/chat/completions"
        headers = self._proxy_headers(cache_key)
        self._log.action("Proxy Call", f"model={self._settings.gemini_model} cache_key={cache_key}")

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self._settings.llm_max_retries),
            wait=wait_exponential(multiplier=self._settings.llm_retry_wait_seconds, max=30),
            reraise=True,
        ):
            with attempt:
                response = await self._post(url, payload, headers)

        response.raise_for_status()
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GatewayError(f"Malformed proxy response body: {e}") from e
        if not isinstance(content, str) or not content:
            raise GatewayError("Proxy response carried no message content")
        self._log.debug(f"Proxy response length: {len(content)} chars")
        return content

    async def _post(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, json=payload, headers=headers)
        async with httpx.AsyncClient(timeout=self._settings.llm_timeout_seconds) as client:
            return await client.post(url, json=payload, headers=headers)

    def _client(self) -> Any:
        if self._provider is None:
            self._provider = genai.Client(api_key=self._settings.gemini_api_key)
        return self._provider

    def _build_config(
        self,
        system: Optional[str],
        *,
        temperature: float,
        expect_json: bool,
    ) -> types.GenerateContentConfig:
        """Build the Gemini GenerateContentConfig."""
        kwargs: Dict[str, Any] = {"temperature": temperature}
        if system:
            kwargs["system_instruction"] = system
        if expect_json:
            kwargs["response_mime_type"] = "application/json"
        return types.GenerateContentConfig(**kwargs)

    async def _call_direct(
        self,
        system: Optional[str],
        user: Optional[str],
        expect_json: bool,
        temperature: float,
    ) -> str:
        """Exactly one direct provider call, no acceleration and no retry."""
        if not user:
            system, user = None, system
        config = self._build_config(system, temperature=temperature, expect_json=expect_json)
        self._log.action("Direct Call", f"model={self._settings.gemini_model} temp={temperature}")
        response = await self._client().aio.models.generate_content(
            model=self._settings.gemini_model,
            contents=user or "",
            config=config,
        )
        text = response.text
        if not text:
            raise GatewayError("Empty provider response")
        self._log.debug(f"Direct response length: {len(text)} chars")
        return text
