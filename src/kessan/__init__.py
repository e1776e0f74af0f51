"""
Kessan assistant package.

Turns a chat message plus uploaded office documents into a single request
to an Azure OpenAI deployment and normalizes the reply.
"""

from .models import (
    Attachment,
    TextBlock,
    FileReferenceBlock,
    ContentBlock,
    EmailMeta,
    ConversationMessage,
    QAPair,
    ExtractedDocument,
    AssembledTurn,
)

from .config import (
    AppConfig,
    AzureOpenAIConfig,
)

from .exceptions import (
    KessanError,
    ParseError,
    UnsupportedFileTypeError,
    ConfigurationError,
    ProviderError,
    ProviderHTTPError,
    ProviderResponseError,
    NothingToExportError,
)

from .assembler import ContentAssembler
from .prompts import select_system_prompt

__all__ = [
    # Models
    "Attachment",
    "TextBlock",
    "FileReferenceBlock",
    "ContentBlock",
    "EmailMeta",
    "ConversationMessage",
    "QAPair",
    "ExtractedDocument",
    "AssembledTurn",
    # Config
    "AppConfig",
    "AzureOpenAIConfig",
    # Exceptions
    "KessanError",
    "ParseError",
    "UnsupportedFileTypeError",
    "ConfigurationError",
    "ProviderError",
    "ProviderHTTPError",
    "ProviderResponseError",
    "NothingToExportError",
    # Pipeline
    "ContentAssembler",
    "select_system_prompt",
]
