"""
Configuration for the kessan package.
"""

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .exceptions import ConfigurationError

REQUIRED_AZURE_VARS = (
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_OPENAI_DEPLOYMENT",
)

API_STYLES = ("responses", "chat_completions")

DEFAULT_BUSINESS_TYPE = "未指定"
DEFAULT_MODE = "general"
DEFAULT_SENDER_ADDRESS = "your.name@example.com"


@dataclass(frozen=True)
class AzureOpenAIConfig:
    """Connection settings for the Azure OpenAI deployment."""
    endpoint: str
    api_key: str
    api_version: str
    deployment: str
    api_style: str = "responses"  # "responses" | "chat_completions"
    timeout_seconds: float = 60.0
    max_completion_tokens: int = 4096

    def __post_init__(self):
        if self.api_style not in API_STYLES:
            raise ValueError(f"Unknown api_style: {self.api_style}")
        object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    @property
    def responses_url(self) -> str:
        return f"{self.endpoint}/openai/responses?api-version={self.api_version}"

    @property
    def chat_completions_url(self) -> str:
        return f"{self.endpoint}/chat/completions"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AzureOpenAIConfig":
        """
        Build config from environment variables.

        Raises:
            ConfigurationError: listing every missing required variable
        """
        env = os.environ if environ is None else environ
        present = presence_flags(env)
        missing = [name for name, ok in present.items() if not ok]
        if missing:
            raise ConfigurationError(missing, present)

        timeout = env.get("AZURE_OPENAI_TIMEOUT")
        return cls(
            endpoint=env["AZURE_OPENAI_ENDPOINT"].strip(),
            api_key=env["AZURE_OPENAI_API_KEY"].strip(),
            api_version=env["AZURE_OPENAI_API_VERSION"].strip(),
            deployment=env["AZURE_OPENAI_DEPLOYMENT"].strip(),
            api_style=(env.get("AZURE_OPENAI_API_STYLE") or "responses").strip().lower(),
            timeout_seconds=float(timeout) if timeout else 60.0,
        )


def presence_flags(environ: Mapping[str, str]) -> Dict[str, bool]:
    """Map each required variable to whether it is set and non-blank."""
    return {name: bool((environ.get(name) or "").strip()) for name in REQUIRED_AZURE_VARS}


@dataclass
class AppConfig:
    """Main configuration for the web application."""
    azure: Optional[AzureOpenAIConfig] = None
    config_error: Optional[ConfigurationError] = None

    sender_address: str = DEFAULT_SENDER_ADDRESS
    max_attachment_chars: Optional[int] = None  # None = forward in full

    default_business_type: str = DEFAULT_BUSINESS_TYPE
    default_mode: str = DEFAULT_MODE

    @property
    def is_configured(self) -> bool:
        return self.azure is not None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Build config from environment; a missing provider setting is recorded, not raised."""
        env = os.environ if environ is None else environ
        azure: Optional[AzureOpenAIConfig] = None
        error: Optional[ConfigurationError] = None
        try:
            azure = AzureOpenAIConfig.from_env(env)
        except ConfigurationError as e:
            error = e

        max_chars = env.get("KESSAN_MAX_ATTACHMENT_CHARS")
        return cls(
            azure=azure,
            config_error=error,
            sender_address=env.get("KESSAN_SENDER_ADDRESS") or DEFAULT_SENDER_ADDRESS,
            max_attachment_chars=int(max_chars) if max_chars else None,
        )
