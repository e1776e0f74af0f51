"""
Base parser class and registry.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from ..models import ExtractedDocument
from ..exceptions import UnsupportedFileTypeError

logger = logging.getLogger(__name__)


class BaseParser(ABC):
    """Abstract base class for attachment parsers."""

    # Short label reported as meta.fileType
    file_type: str = "unknown"

    # When True the assembler forwards the raw bytes instead of extracted text
    forward_as_file: bool = False

    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """Return list of supported file extensions (with dot, e.g., '.pdf')."""
        pass

    @abstractmethod
    def supported_mimetypes(self) -> List[str]:
        """Return list of supported MIME types."""
        pass

    @abstractmethod
    def parse(self, data: bytes, file_name: str) -> ExtractedDocument:
        """
        Parse raw file bytes and return the extracted text.

        Args:
            data: File content
            file_name: Original file name, used for metadata only

        Returns:
            Extracted document

        Raises:
            ParseError: If parsing fails
        """
        pass

    def can_parse(self, file_name: str, mime_type: Optional[str] = None) -> bool:
        """
        Check if this parser can handle the file.

        A declared MIME type wins; the extension is checked as well because
        browsers often send an empty or generic type.
        """
        if mime_type and mime_type in self.supported_mimetypes():
            return True
        return Path(file_name).suffix.lower() in self.supported_extensions()


class ParserRegistry:
    """Registry for attachment parsers, consulted in registration order."""

    def __init__(self):
        self._parsers: List[BaseParser] = []
        self._extension_map: Dict[str, BaseParser] = {}

    def register(self, parser: BaseParser) -> None:
        """
        Register a parser.

        Args:
            parser: Parser instance to register
        """
        self._parsers.append(parser)
        for ext in parser.supported_extensions():
            self._extension_map.setdefault(ext.lower(), parser)

    def get_parser(self, file_name: str, mime_type: Optional[str] = None) -> Optional[BaseParser]:
        """
        Get the first registered parser that accepts the file.

        Args:
            file_name: Uploaded file name
            mime_type: Declared MIME type, may be empty

        Returns:
            Parser instance or None if no parser found
        """
        for parser in self._parsers:
            if parser.can_parse(file_name, mime_type):
                return parser
        return None

    def get_parser_for_extension(self, ext: str) -> Optional[BaseParser]:
        """Look up a parser by extension alone."""
        return self._extension_map.get(ext.lower())

    def can_parse(self, file_name: str, mime_type: Optional[str] = None) -> bool:
        return self.get_parser(file_name, mime_type) is not None

    def parse(self, data: bytes, file_name: str, mime_type: Optional[str] = None) -> ExtractedDocument:
        """
        Parse file using appropriate parser.

        Raises:
            UnsupportedFileTypeError: If no parser found for file type
        """
        logger.debug(f"ParserRegistry.parse called for: {file_name}")
        parser = self.get_parser(file_name, mime_type)
        if parser is None:
            logger.warning(f"No parser found for file: {file_name} ({mime_type})")
            raise UnsupportedFileTypeError(
                f"No parser found for file type: {Path(file_name).suffix or mime_type}"
            )
        logger.debug(f"Using parser: {parser.__class__.__name__} for {file_name}")
        return parser.parse(data, file_name)

    def supported_extensions(self) -> List[str]:
        """Get all supported file extensions."""
        return list(self._extension_map.keys())

    def __len__(self) -> int:
        return len(self._parsers)
