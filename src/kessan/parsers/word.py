"""
Word document parser using python-docx.
"""

import io
import logging
from typing import List

from ..models import ExtractedDocument
from ..exceptions import ParseError
from .base import BaseParser

logger = logging.getLogger(__name__)


class WordParser(BaseParser):
    """Word (.docx) parser producing raw text with no structure kept."""

    file_type = "word"

    def supported_extensions(self) -> List[str]:
        """Return list of supported file extensions."""
        return [".docx"]

    def supported_mimetypes(self) -> List[str]:
        """Return list of supported MIME types."""
        return ["application/vnd.openxmlformats-officedocument.wordprocessingml.document"]

    def parse(self, data: bytes, file_name: str) -> ExtractedDocument:
        """
        Parse Word bytes and return raw text.

        Raises:
            ParseError: If parsing fails
        """
        try:
            from docx import Document as DocxDocument
        except ImportError:
            raise ParseError("python-docx is required for Word document parsing. Install with: pip install python-docx")

        try:
            doc = DocxDocument(io.BytesIO(data))
            content = self._extract_text(doc)
        except Exception as e:
            raise ParseError(f"Failed to parse Word document {file_name}: {e}") from e

        return ExtractedDocument(
            text=content,
            file_name=file_name,
            file_type=self.file_type,
            metadata={"paragraph_count": len(doc.paragraphs)},
        )

    def _extract_text(self, doc) -> str:
        """Paragraph text followed by table cell text, one block per line."""
        text_parts = [para.text for para in doc.paragraphs]

        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    text_parts.append("\t".join(cells))

        return "\n\n".join(part for part in text_parts if part.strip())
