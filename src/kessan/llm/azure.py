"""
Azure OpenAI gateway.

Supports the Responses API (multi-part input, nested output) and the
Chat Completions API. Both send the key in the ``api-key`` header. There is
no retry: a failed call is reported to the caller as-is.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import AzureOpenAIConfig
from ..exceptions import ProviderError, ProviderHTTPError, ProviderResponseError
from ..models import ContentBlock, FileReferenceBlock, TextBlock
from .base import BaseLLMGateway
from .response import normalize_reply

logger = logging.getLogger(__name__)


def to_responses_part(block: ContentBlock) -> Dict[str, Any]:
    """Serialize a block as a Responses API input part."""
    if isinstance(block, FileReferenceBlock):
        return {
            "type": "input_file",
            "file_data": block.data_url,
            "filename": block.file_name,
        }
    return {"type": "input_text", "text": block.text}


def to_chat_part(block: ContentBlock) -> Dict[str, Any]:
    """Serialize a block as a Chat Completions content part."""
    if isinstance(block, FileReferenceBlock):
        return {
            "type": "file",
            "file": {"filename": block.file_name, "file_data": block.data_url},
        }
    return {"type": "text", "text": block.text}


class AzureOpenAIGateway(BaseLLMGateway):
    """
    Azure OpenAI chat gateway.

    Args:
        config: Validated connection settings
        transport: Optional httpx transport (used by tests)
    """

    def __init__(self, config: AzureOpenAIConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._config = config
        self._transport = transport
        logger.debug(
            f"AzureOpenAIGateway init: deployment={config.deployment}, style={config.api_style}"
        )

    @property
    def model_id(self) -> str:
        return self._config.deployment

    @property
    def config(self) -> AzureOpenAIConfig:
        return self._config

    def build_request(self, system_prompt: str, blocks: Sequence[ContentBlock]) -> tuple:
        """Return (url, payload) for the configured API style."""
        if self._config.api_style == "chat_completions":
            payload = {
                "model": self._config.deployment,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": [to_chat_part(b) for b in blocks]},
                ],
                "max_completion_tokens": self._config.max_completion_tokens,
            }
            return self._config.chat_completions_url, payload

        payload = {
            "model": self._config.deployment,
            "input": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": [to_responses_part(b) for b in blocks]},
            ],
        }
        return self._config.responses_url, payload

    async def complete(self, system_prompt: str, blocks: Sequence[ContentBlock]) -> str:
        url, payload = self.build_request(system_prompt, blocks)
        logger.info("Calling Azure OpenAI: %s", url)

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.post(
                    url,
                    json=payload,
                    headers={
                        "Content-Type": "application/json",
                        "api-key": self._config.api_key,
                    },
                )
        except httpx.HTTPError as e:
            logger.error("Azure OpenAI request failed: %s", e)
            raise ProviderError(f"Azure OpenAI request failed: {e}") from e

        raw = resp.text
        logger.info("Azure status: %s", resp.status_code)
        logger.debug("Azure raw body (first 500 chars): %s", raw[:500])

        if not resp.is_success:
            raise ProviderHTTPError(
                f"Azure OpenAI returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=raw,
            )

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Azure response JSON parse error: %s", e)
            raise ProviderResponseError(f"Azure response is not JSON: {e}", body=raw) from e

        return normalize_reply(data)
