"""Memory extraction from conversations.

Extracts durable facts the user explicitly stated, using a secondary
chat completion call with a fixed, no-inference instruction.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from memoria.llm.types import ChatCompletionRequest, ChatMessage, Role
from memoria.memory.errors import (
    ExtractionConfigError,
    MalformedExtractionError,
    UpstreamAIError,
)
from memoria.memory.types import ExtractedFact

if TYPE_CHECKING:
    from memoria.llm.base import ChatCompletionClient
    from memoria.store.protocols import ConversationMessage, ModelInfo, ModelRegistry

logger = logging.getLogger(__name__)

MAX_FACT_CHARS = 40

SYSTEM_PROMPT = (
    "Only extract information the user explicitly states in the conversation. "
    "Do not infer, do not fill in gaps, do not invent anything. "
    "Respond with a JSON array only."
)

EXTRACTION_PROMPT = """Conversation:
{conversation}

Extract the information the user explicitly stated (each item at most {max_chars} characters) and output a JSON array:
[{{"content": "the fact", "category": "preference|fact|context", "importance": 1-10}}]

- preference: likes, dislikes, habits
- fact: stable facts about the user (job, location, family)
- context: the user's current situation or ongoing plans
- importance: 10 = essential for future conversations, 1 = trivial
- Write each fact in the language the user wrote in.
- Ignore anything only the assistant said.

If there is no such information, return an empty array: []"""

# Either a language-tagged (```json) or a bare fence around the whole reply
_CODE_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)

_TRANSCRIPT_ROLES = frozenset({Role.USER.value, Role.ASSISTANT.value})


@dataclass
class ParsedExtraction:
    """Facts that passed validation, plus counts of dropped items by reason."""

    facts: list[ExtractedFact] = field(default_factory=list)
    dropped: Counter[str] = field(default_factory=Counter)

    @property
    def dropped_count(self) -> int:
        return sum(self.dropped.values())


def strip_code_fence(text: str) -> str:
    """Remove an optional Markdown code fence wrapping the whole text.

    Handles both ```json ... ``` and bare ``` ... ``` wrappers; anything
    else is returned trimmed but otherwise untouched.
    """
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_extraction_response(response_text: str) -> ParsedExtraction:
    """Parse and validate the model's reply.

    Raises:
        MalformedExtractionError: If the reply is not a JSON array.
    """
    text = strip_code_fence(response_text)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedExtractionError(
            f"extraction response is not valid JSON: {e.msg}"
        ) from e

    if not isinstance(data, list):
        raise MalformedExtractionError(
            f"extraction response must be a JSON array, got {type(data).__name__}"
        )

    parsed = ParsedExtraction()
    for item in data:
        fact = _parse_fact_item(item, parsed.dropped)
        if fact is not None:
            parsed.facts.append(fact)
    return parsed


def _parse_fact_item(item: Any, drop_counts: Counter[str]) -> ExtractedFact | None:
    """Validate a single fact; returns None (and counts why) if invalid."""
    if not isinstance(item, dict):
        drop_counts["not_an_object"] += 1
        return None
    try:
        return ExtractedFact.model_validate(item)
    except ValidationError as e:
        reason = _drop_reason(e)
        drop_counts[reason] += 1
        logger.debug(
            "extracted_fact_rejected",
            extra={"fact.drop_reason": reason, "fact.preview": str(item)[:80]},
        )
        return None


def _drop_reason(error: ValidationError) -> str:
    first = error.errors()[0]
    if first["type"] == "extra_forbidden":
        return "unknown_field"
    if first["type"] == "missing":
        return "missing_field"
    location = first["loc"][0] if first["loc"] else "item"
    return f"invalid_{location}"


def format_transcript(messages: Sequence[ConversationMessage]) -> str:
    """Render messages as role-labelled lines, oldest first.

    System and tool messages are left out; nothing is truncated.
    """
    return "\n".join(
        f"{message.role}: {message.content}"
        for message in messages
        if message.role in _TRANSCRIPT_ROLES
    )


class MemoryExtractor:
    """Turns a conversation transcript into validated candidate facts.

    Designed to run off the hot path, after a conversation turn, with a
    cheap model at low temperature and a small output cap.
    """

    def __init__(
        self,
        client: ChatCompletionClient,
        models: ModelRegistry,
        default_model: str,
        strict_model_selection: bool = False,
        temperature: float = 0.3,
        max_tokens: int = 400,
        max_fact_chars: int = MAX_FACT_CHARS,
    ):
        """Initialize memory extractor.

        Args:
            client: Chat completion backend.
            models: Registry used to resolve the extraction model.
            default_model: Model identifier or name to prefer.
            strict_model_selection: Fail instead of falling back to the
                first active model when default_model is not registered.
            temperature: Sampling temperature for the extraction call.
            max_tokens: Output cap for the extraction call.
            max_fact_chars: Per-fact length limit stated in the prompt.
        """
        self._client = client
        self._models = models
        self._default_model = default_model
        self._strict = strict_model_selection
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._max_fact_chars = max_fact_chars

    async def select_model(self) -> ModelInfo:
        """Resolve the model to extract with.

        Raises:
            ExtractionConfigError: If no active model is available (or, in
                strict mode, the configured default is not among them).
        """
        models = await self._models.list_models(active_only=True)
        if not models:
            raise ExtractionConfigError("no active models available")

        for model in models:
            if self._default_model in (model.model_identifier, model.name):
                return model

        if self._strict:
            raise ExtractionConfigError(
                f"configured memory model {self._default_model!r} is not active"
            )

        fallback = models[0]
        logger.warning(
            "memory_model_fallback",
            extra={
                "llm.configured_model": self._default_model,
                "llm.model": fallback.model_identifier,
            },
        )
        return fallback

    def build_request(self, transcript: str, model: ModelInfo) -> ChatCompletionRequest:
        """Build the extraction request for a transcript."""
        prompt = EXTRACTION_PROMPT.format(
            conversation=transcript,
            max_chars=self._max_fact_chars,
        )
        return ChatCompletionRequest(
            model=model.model_identifier,
            messages=[
                ChatMessage(role=Role.SYSTEM, content=SYSTEM_PROMPT),
                ChatMessage(role=Role.USER, content=prompt),
            ],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

    async def extract(self, messages: Sequence[ConversationMessage]) -> ParsedExtraction:
        """Extract candidate facts from conversation messages.

        Raises:
            ExtractionConfigError: No usable model.
            UpstreamAIError: The completion call failed or returned no choices.
            MalformedExtractionError: The reply was not a JSON array.
        """
        transcript = format_transcript(messages)
        model = await self.select_model()
        request = self.build_request(transcript, model)

        try:
            response = await self._client.complete(request, model_id=model.id)
        except UpstreamAIError:
            raise
        except Exception as e:
            raise UpstreamAIError(f"failed to call AI: {e}") from e

        text = response.first_text()
        if text is None:
            raise UpstreamAIError("no response from AI")

        parsed = parse_extraction_response(text)
        logger.debug(
            "memory_extraction_parsed",
            extra={
                "llm.model": model.model_identifier,
                "fact.accepted_count": len(parsed.facts),
                "fact.dropped_count": parsed.dropped_count,
            },
        )
        return parsed
