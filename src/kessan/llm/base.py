"""
Base LLM gateway class.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from ..models import ContentBlock


class BaseLLMGateway(ABC):
    """Abstract base class for chat providers."""

    @abstractmethod
    async def complete(self, system_prompt: str, blocks: Sequence[ContentBlock]) -> str:
        """
        Send one system turn and one user turn and return the reply text.

        Args:
            system_prompt: System instructions for this request
            blocks: Ordered user-turn content

        Returns:
            Plain-text reply; never empty once the provider answered

        Raises:
            ProviderError: If the call fails or the body is not JSON
        """
        pass

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Return deployment / model identifier."""
        pass
