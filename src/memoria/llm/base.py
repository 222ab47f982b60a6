"""Abstract chat completion client interface."""

from abc import ABC, abstractmethod

from memoria.llm.types import ChatCompletionRequest, ChatCompletionResponse


class ChatCompletionClient(ABC):
    """Abstract interface for chat completion backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier (e.g., 'openai')."""
        ...

    @abstractmethod
    async def complete(
        self,
        request: ChatCompletionRequest,
        *,
        model_id: str | None = None,
    ) -> ChatCompletionResponse:
        """Generate a (non-streaming) chat completion.

        Args:
            request: Model identifier, messages and sampling parameters.
            model_id: Registry id of the selected model, for backends that
                route or bill per registered model.

        Returns:
            The completion response.

        Raises:
            UpstreamAIError: If the backend call fails.
        """
        ...
