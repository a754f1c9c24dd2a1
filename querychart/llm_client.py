from __future__ import annotations

import abc
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import LLMConfig
from .errors import MalformedModelOutputError, ModelCallError
from .logging_utils import get_logger

logger = get_logger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_URL = "https://api.openai.com"


class LLMClient(abc.ABC):
    """Single-turn text completion: one user prompt in, free text out."""

    @abc.abstractmethod
    async def complete_text(self, prompt: str) -> str:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class _HTTPLLMClient(LLMClient):
    def __init__(
        self,
        cfg: LLMConfig,
        api_key: str,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._cfg = cfg
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=cfg.base_url or base_url,
            timeout=cfg.request_timeout_s,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def complete_text(self, prompt: str) -> str:
        retry_cfg = self._cfg.retry_config
        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(retry_cfg.attempts),
            wait=wait_exponential(multiplier=retry_cfg.backoff_seconds, max=10),
            retry=retry_if_exception_type(ModelCallError),
        ):
            with attempt:
                data = await self._post(prompt)
        return self._extract_text(data)

    async def _post(self, prompt: str) -> Dict[str, Any]:
        path, headers, payload = self._build_request(prompt)
        try:
            resp = await self._client.post(path, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("llm_transport_error", error=str(exc))
            raise ModelCallError(f"LLM request failed: {exc}") from exc
        if resp.status_code >= 400:
            logger.warning("llm_http_error", status=resp.status_code)
            raise ModelCallError(f"LLM HTTP {resp.status_code}: {resp.text}")
        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedModelOutputError("LLM returned a non-JSON body") from exc

    @abc.abstractmethod
    def _build_request(self, prompt: str) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        raise NotImplementedError

    @abc.abstractmethod
    def _extract_text(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def _base_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._cfg.model,
            "max_tokens": self._cfg.max_tokens,
        }
        if self._cfg.temperature is not None:
            payload["temperature"] = self._cfg.temperature
        return payload


class AnthropicClient(_HTTPLLMClient):
    def __init__(self, cfg: LLMConfig, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(cfg, api_key, ANTHROPIC_URL, transport)

    def _build_request(self, prompt: str):
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        payload = {
            **self._base_payload(),
            "messages": [{"role": "user", "content": prompt}],
        }
        return "/v1/messages", headers, payload

    def _extract_text(self, data: Dict[str, Any]) -> str:
        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedModelOutputError("Unexpected LLM response") from exc
        if not isinstance(text, str):
            raise MalformedModelOutputError("LLM response text is not a string")
        return text


class OpenAIClient(_HTTPLLMClient):
    def __init__(self, cfg: LLMConfig, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(cfg, api_key, OPENAI_URL, transport)

    def _build_request(self, prompt: str):
        headers = {
            "Authorization": f"Bearer {self._api_key}",
        }
        payload = {
            **self._base_payload(),
            "messages": [{"role": "user", "content": prompt}],
        }
        return "/v1/chat/completions", headers, payload

    def _extract_text(self, data: Dict[str, Any]) -> str:
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedModelOutputError("Unexpected LLM response") from exc
        if not isinstance(text, str):
            raise MalformedModelOutputError("LLM response text is not a string")
        return text


def build_llm_client(cfg: LLMConfig, api_key: str) -> LLMClient:
    provider = cfg.provider.lower()
    if not api_key:
        raise ValueError(f"Missing API key for LLM provider {cfg.provider} (set {cfg.api_key_env})")
    if provider == "anthropic":
        return AnthropicClient(cfg, api_key)
    if provider == "openai":
        return OpenAIClient(cfg, api_key)
    raise ValueError(f"Unsupported LLM provider: {cfg.provider}")


__all__ = ["LLMClient", "AnthropicClient", "OpenAIClient", "build_llm_client"]
