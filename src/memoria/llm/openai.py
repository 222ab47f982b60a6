"""OpenAI-compatible chat completion client."""

import logging
import time
from typing import Any

import openai

from memoria.llm.base import ChatCompletionClient
from memoria.llm.types import (
    ChatChoice,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Role,
    Usage,
)
from memoria.memory.errors import UpstreamAIError

logger = logging.getLogger(__name__)


def _to_role(value: str | None) -> Role:
    try:
        return Role(value or Role.ASSISTANT.value)
    except ValueError:
        return Role.ASSISTANT


class OpenAIChatClient(ChatCompletionClient):
    """Chat Completions API client for OpenAI and compatible endpoints."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 0,
        client: openai.AsyncOpenAI | None = None,
    ):
        self._client = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )

    @property
    def name(self) -> str:
        return "openai"

    def _build_request_kwargs(self, request: ChatCompletionRequest) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": [message.to_dict() for message in request.messages],
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            kwargs["max_tokens"] = request.max_tokens
        return kwargs

    async def complete(
        self,
        request: ChatCompletionRequest,
        *,
        model_id: str | None = None,
    ) -> ChatCompletionResponse:
        kwargs = self._build_request_kwargs(request)
        start = time.monotonic()
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            logger.debug(
                "chat_completion_failed",
                extra={
                    "llm.model": request.model,
                    "llm.model_id": model_id,
                    "error.type": type(e).__name__,
                },
            )
            raise UpstreamAIError(f"chat completion failed: {e}") from e

        choices = [
            ChatChoice(
                message=ChatMessage(
                    role=_to_role(choice.message.role),
                    content=choice.message.content or "",
                ),
                index=choice.index,
                finish_reason=choice.finish_reason,
            )
            for choice in response.choices
        ]
        usage = None
        if response.usage is not None:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        logger.debug(
            "chat_completion_complete",
            extra={
                "llm.model": response.model,
                "llm.model_id": model_id,
                "llm.duration_ms": int((time.monotonic() - start) * 1000),
                "llm.total_tokens": usage.total_tokens if usage else None,
            },
        )
        return ChatCompletionResponse(
            choices=choices,
            model=response.model,
            usage=usage,
            raw=response.model_dump(),
        )
