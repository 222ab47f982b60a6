"""Chat completion clients."""

from memoria.llm.base import ChatCompletionClient
from memoria.llm.openai import OpenAIChatClient
from memoria.llm.types import (
    ChatChoice,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Role,
    Usage,
)

__all__ = [
    "ChatChoice",
    "ChatCompletionClient",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "OpenAIChatClient",
    "Role",
    "Usage",
]
