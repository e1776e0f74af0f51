"""
LLM gateway for the kessan package.
"""

from typing import Optional

import httpx

from ..config import AzureOpenAIConfig
from .azure import AzureOpenAIGateway
from .base import BaseLLMGateway
from .response import STRATEGIES, extract_reply_text, normalize_reply

__all__ = [
    "AzureOpenAIGateway",
    "BaseLLMGateway",
    "STRATEGIES",
    "create_gateway",
    "extract_reply_text",
    "normalize_reply",
]


def create_gateway(
    config: AzureOpenAIConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseLLMGateway:
    """
    Create a gateway for the configured deployment.

    Args:
        config: Validated Azure OpenAI settings
        transport: Optional httpx transport override

    Returns:
        Gateway instance
    """
    return AzureOpenAIGateway(config, transport=transport)
