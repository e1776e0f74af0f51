"""
Plain text parser.
"""

import logging
from typing import List, Optional

from ..models import ExtractedDocument
from .base import BaseParser

logger = logging.getLogger(__name__)


class TextParser(BaseParser):
    """Parser for .txt files and any upload declared as text/*."""

    file_type = "text"

    # Japanese office files are often Shift_JIS when not UTF-8
    ENCODINGS = ("utf-8", "cp932", "utf-16")

    def supported_extensions(self) -> List[str]:
        return [".txt", ".csv", ".tsv", ".md"]

    def supported_mimetypes(self) -> List[str]:
        return ["text/plain", "text/csv", "text/markdown"]

    def can_parse(self, file_name: str, mime_type: Optional[str] = None) -> bool:
        if mime_type and mime_type.startswith("text/"):
            return True
        return super().can_parse(file_name, mime_type)

    def parse(self, data: bytes, file_name: str) -> ExtractedDocument:
        content = None
        for encoding in self.ENCODINGS:
            try:
                content = data.decode(encoding)
                break
            except UnicodeDecodeError:
                continue

        if content is None:
            logger.debug("No clean decoding for %s, replacing invalid bytes", file_name)
            content = data.decode("utf-8", errors="replace")

        if content.startswith("\ufeff"):
            content = content[1:]

        return ExtractedDocument(
            text=content,
            file_name=file_name,
            file_type=self.file_type,
            metadata={"char_count": len(content)},
        )
