"""OpenAI-compatible chat backends used by the orchestrator."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import httpx
import openai
from openai import AsyncOpenAI

from .exceptions import BackendError, QuotaExceeded, TransientBackendError
from .models import GenerationResult

if TYPE_CHECKING:
    from .config import Settings

GEMINI = "gemini"
OPENAI = "openai"

_QUOTA_MARKERS = ("quota", "resource_exhausted", "rate limit", "rate_limit")


class ChatBackend:
    """One generative backend reached through an OpenAI-compatible API.

    A call to :meth:`generate` is a single attempt. Retry and fallback live
    in :class:`issuetrends.orchestrator.ProviderOrchestrator`.
    """

    def __init__(
        self,
        name: str,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_sec: int = 120,
        temperature: float = 0.7,
        max_output_tokens: int | None = None,
        trust_env: bool = False,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.name = name
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_sec = timeout_sec
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.trust_env = trust_env
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> AsyncOpenAI:
        # httpx pools are bound to the loop they first ran on, so the client is
        # built lazily inside the running loop and dropped again by aclose()
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout_sec,
                max_retries=0,
                http_client=httpx.AsyncClient(
                    timeout=self.timeout_sec,
                    trust_env=self.trust_env,
                ),
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client this backend created, if any."""
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.close()

    def __repr__(self) -> str:
        return f"ChatBackend(name={self.name!r}, model={self.model!r})"

    async def generate(self, prompt: str) -> GenerationResult:
        response = await self._request_completion(prompt)

        if not response.choices:
            raise TransientBackendError(
                f"{self.name} returned no choices", backend=self.name
            )

        text = self._extract_content(response.choices[0].message.content)
        if not text.strip():
            raise TransientBackendError(
                f"{self.name} returned empty content", backend=self.name
            )

        tokens = self._extract_total_tokens(response)
        if tokens is None:
            tokens = math.ceil((len(prompt) + len(text)) / 4)

        return GenerationResult(
            text=text, tokens=tokens, backend=self.name, model=self.model
        )

    async def _request_completion(self, prompt: str) -> Any:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
        }
        if self.max_output_tokens is not None:
            kwargs["max_tokens"] = self.max_output_tokens
        try:
            return await self.client.chat.completions.create(**kwargs)
        except (openai.APIError, httpx.HTTPError) as exc:
            raise self._classify_error(exc) from exc

    def _classify_error(self, exc: Exception) -> BackendError:
        message = str(exc)
        lowered = message.lower()
        if isinstance(exc, openai.RateLimitError) or any(
            marker in lowered for marker in _QUOTA_MARKERS
        ):
            return QuotaExceeded(
                f"{self.name} quota exceeded: {message}", backend=self.name
            )
        return TransientBackendError(
            f"{self.name} request failed: {message}", backend=self.name
        )

    def _extract_content(self, content: Any) -> str:
        if isinstance(content, str):
            return content

        if isinstance(content, list):
            chunks: list[str] = []
            for item in content:
                if isinstance(item, dict) and "text" in item:
                    chunks.append(str(item["text"]))
            return "\n".join(chunks)

        return ""

    def _extract_total_tokens(self, response: Any) -> int | None:
        usage = getattr(response, "usage", None)
        if usage is None:
            return None

        total_tokens = self._read_usage_value(usage, "total_tokens")
        if total_tokens is not None:
            return total_tokens

        prompt_tokens = self._read_usage_value(usage, "prompt_tokens", "input_tokens")
        completion_tokens = self._read_usage_value(
            usage, "completion_tokens", "output_tokens"
        )
        if prompt_tokens is None and completion_tokens is None:
            return None
        return (prompt_tokens or 0) + (completion_tokens or 0)

    def _read_usage_value(self, usage: Any, *keys: str) -> int | None:
        for key in keys:
            value = None
            if isinstance(usage, dict):
                value = usage.get(key)
            else:
                value = getattr(usage, key, None)

            if value is None:
                continue
            try:
                return int(value)
            except (TypeError, ValueError):
                continue
        return None


def build_backends(
    settings: Settings,
) -> tuple[ChatBackend | None, ChatBackend | None]:
    """Return ``(primary, secondary)`` backends enabled by the settings."""

    primary: ChatBackend | None = None
    secondary: ChatBackend | None = None

    if settings.gemini_api_key and settings.provider_mode in ("auto", GEMINI):
        primary = ChatBackend(
            name=GEMINI,
            model=settings.gemini_model,
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout_sec=settings.llm_timeout_sec,
            trust_env=settings.network_trust_env,
        )
    if settings.openai_api_key and settings.provider_mode in ("auto", OPENAI):
        secondary = ChatBackend(
            name=OPENAI,
            model=settings.openai_model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout_sec=settings.llm_timeout_sec,
            trust_env=settings.network_trust_env,
        )
    return primary, secondary
