"""OpenAI-compatible chat and embedding client."""
from __future__ import annotations

import time
from typing import Any

from loguru import logger

from research_agent.config import settings
from research_agent.services import logger as log_service


def get_client():
    """Get an AsyncOpenAI client for the configured endpoint."""
    from openai import AsyncOpenAI

    base_url = settings.openai_base_url.strip() or "https://api.openai.com/v1"
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=base_url,
        timeout=settings.llm_timeout_seconds,
    )


def get_model() -> str:
    """Get the active chat model id."""
    return settings.chat_model


_client = None


def client():
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


class OpenAIService:
    """Chat completions and embeddings that fail soft.

    Both calls return None instead of raising so callers can fall back.
    """

    def __init__(
        self,
        model: str | None = None,
        embedding_model: str | None = None,
        openai_client: Any | None = None,
    ):
        self.model = model or get_model()
        self.embedding_model = embedding_model or settings.embedding_model
        self.client = openai_client

    def _client(self) -> Any:
        return self.client or client()

    async def complete(self, messages: list[dict[str, Any]]) -> str | None:
        t0 = time.monotonic()
        try:
            response = await self._client().chat.completions.create(
                model=self.model,
                messages=messages,
            )
        except Exception as e:
            logger.error(f"Chat completion call failed: {e}")
            log_service.log_llm_call(
                model=self.model,
                caller="chat_completion",
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            return None

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller="chat_completion",
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )

        choices = getattr(response, "choices", None) or []
        if not choices:
            logger.error("Chat completion returned no choices")
            return None
        return getattr(choices[0].message, "content", None)

    async def embed(self, text: str) -> list[float] | None:
        t0 = time.monotonic()
        try:
            response = await self._client().embeddings.create(
                model=self.embedding_model,
                input=[text],
            )
        except Exception as e:
            logger.error(f"Embeddings call failed: {e}")
            log_service.log_llm_call(
                model=self.embedding_model,
                caller="embeddings",
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            return None

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.embedding_model,
            caller="embeddings",
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )

        data = getattr(response, "data", None) or []
        if not data:
            return None
        vector = getattr(data[0], "embedding", None)
        return [float(v) for v in vector] if vector else None
