"""Tests for the OpenAI chat completion client."""

from unittest.mock import AsyncMock, MagicMock

import openai
import pytest
from openai.types.chat import ChatCompletion, ChatCompletionMessage
from openai.types.chat.chat_completion import Choice
from openai.types.completion_usage import CompletionUsage

from memoria.llm.openai import OpenAIChatClient
from memoria.llm.types import ChatCompletionRequest, ChatMessage, Role
from memoria.memory.errors import UpstreamAIError


def _completion(*contents: str) -> ChatCompletion:
    return ChatCompletion(
        id="chatcmpl-1",
        object="chat.completion",
        created=1700000000,
        model="gpt-3.5-turbo-0125",
        choices=[
            Choice(
                index=i,
                finish_reason="stop",
                message=ChatCompletionMessage(role="assistant", content=content),
            )
            for i, content in enumerate(contents)
        ],
        usage=CompletionUsage(prompt_tokens=50, completion_tokens=10, total_tokens=60),
    )


@pytest.fixture
def sdk_client() -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion("[]"))
    return client


@pytest.fixture
def request_() -> ChatCompletionRequest:
    return ChatCompletionRequest(
        model="gpt-3.5-turbo",
        messages=[
            ChatMessage(role=Role.SYSTEM, content="Extract facts."),
            ChatMessage(role=Role.USER, content="user: hi"),
        ],
        temperature=0.3,
        max_tokens=400,
    )


class TestOpenAIChatClient:
    async def test_sends_wire_format(self, sdk_client, request_):
        client = OpenAIChatClient(client=sdk_client)

        await client.complete(request_)

        sdk_client.chat.completions.create.assert_awaited_once_with(
            model="gpt-3.5-turbo",
            messages=[
                {"role": "system", "content": "Extract facts."},
                {"role": "user", "content": "user: hi"},
            ],
            temperature=0.3,
            max_tokens=400,
        )

    async def test_omits_unset_sampling_options(self, sdk_client):
        client = OpenAIChatClient(client=sdk_client)

        await client.complete(
            ChatCompletionRequest(
                model="m", messages=[ChatMessage(role=Role.USER, content="hi")]
            )
        )

        kwargs = sdk_client.chat.completions.create.await_args.kwargs
        assert "temperature" not in kwargs
        assert "max_tokens" not in kwargs

    async def test_converts_response(self, sdk_client, request_):
        sdk_client.chat.completions.create.return_value = _completion("[1]", "[2]")
        client = OpenAIChatClient(client=sdk_client)

        response = await client.complete(request_, model_id="m-1")

        assert response.first_text() == "[1]"
        assert len(response.choices) == 2
        assert response.choices[0].message.role == Role.ASSISTANT
        assert response.model == "gpt-3.5-turbo-0125"
        assert response.usage.total_tokens == 60
        assert response.raw["id"] == "chatcmpl-1"

    async def test_empty_choices(self, sdk_client, request_):
        sdk_client.chat.completions.create.return_value = _completion()
        client = OpenAIChatClient(client=sdk_client)

        response = await client.complete(request_)

        assert response.first_text() is None

    async def test_sdk_errors_become_upstream_errors(self, sdk_client, request_):
        sdk_client.chat.completions.create.side_effect = openai.OpenAIError("boom")
        client = OpenAIChatClient(client=sdk_client)

        with pytest.raises(UpstreamAIError, match="boom"):
            await client.complete(request_)

    def test_name(self, sdk_client):
        assert OpenAIChatClient(client=sdk_client).name == "openai"

    def test_builds_sdk_client_without_retries(self):
        client = OpenAIChatClient(api_key="sk-test", base_url="https://llm.example/v1")

        assert client._client.max_retries == 0
        assert str(client._client.base_url).startswith("https://llm.example/v1")
