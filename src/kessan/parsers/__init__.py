"""
Attachment parsers for the kessan package.
"""

from .base import BaseParser, ParserRegistry
from .email import (
    EMAIL_EXTENSIONS,
    EmlParser,
    MsgParser,
    is_email_file,
    parse_email_headers,
)
from .excel import ExcelParser
from .pdf import PDFParser
from .powerpoint import PowerPointParser
from .text import TextParser
from .word import WordParser

__all__ = [
    "BaseParser",
    "ParserRegistry",
    "EMAIL_EXTENSIONS",
    "EmlParser",
    "ExcelParser",
    "MsgParser",
    "PDFParser",
    "PowerPointParser",
    "TextParser",
    "WordParser",
    "create_default_registry",
    "is_email_file",
    "parse_email_headers",
]


def create_default_registry() -> ParserRegistry:
    """Create a registry with all default parsers.

    Registration order is the dispatch order: a file matching several
    parsers goes to the first one.
    """
    registry = ParserRegistry()
    registry.register(PDFParser())
    registry.register(WordParser())
    registry.register(ExcelParser())
    registry.register(PowerPointParser())
    registry.register(EmlParser())
    registry.register(MsgParser())
    registry.register(TextParser())
    return registry
