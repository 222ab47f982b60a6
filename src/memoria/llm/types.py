"""Chat completion request/response types (OpenAI wire shape)."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Message role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class ChatMessage:
    """A single chat message."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class ChatCompletionRequest:
    """Chat completion request."""

    model: str
    messages: list[ChatMessage]
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class Usage:
    """Token usage information."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ChatChoice:
    """One completion choice."""

    message: ChatMessage
    index: int = 0
    finish_reason: str | None = None


@dataclass
class ChatCompletionResponse:
    """Full chat completion response."""

    choices: list[ChatChoice]
    model: str | None = None
    usage: Usage | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def first_text(self) -> str | None:
        """Text of the first choice, or None when there are no choices."""
        if not self.choices:
            return None
        return self.choices[0].message.content or ""
