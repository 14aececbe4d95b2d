"""Abstract base classes for chatbot providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Literal, Tuple


@dataclass
class ChatMessage:
    """One turn of a conversation sent to a provider."""

    role: Literal["user", "assistant", "system"]
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


def split_system(messages: List[ChatMessage]) -> Tuple[List[str], List[ChatMessage]]:
    """Separate system instructions from the conversational turns.

    Returns:
        (system texts in order, remaining user/assistant messages in order)
    """
    system = [m.content for m in messages if m.role == "system"]
    conversation = [m for m in messages if m.role != "system"]
    return system, conversation


class ChatProvider(ABC):
    """
    Abstract base class for chat completion providers.

    Each provider wraps one vendor SDK and turns a model name plus the full
    conversation history into a single text reply.
    """

    name: str = "provider"
    key_name: str = "API_KEY"

    @abstractmethod
    async def complete(self, model: str, messages: List[ChatMessage]) -> str:
        """
        Send the conversation to the model and return the reply text.

        Args:
            model: Vendor model identifier
            messages: Full conversation history, oldest first

        Returns:
            Reply text (empty string when the vendor returns no text)

        Raises:
            ProviderError: If the call fails
        """
        pass
