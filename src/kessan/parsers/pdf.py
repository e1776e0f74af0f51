"""
PDF parser using pymupdf4llm.

In a chat request PDFs are not extracted; the assembler forwards the raw
bytes and the provider reads the document itself. Text extraction is used
by the ingest endpoint and the CLI.
"""

import logging
from typing import Any, Dict, List

from ..models import ExtractedDocument
from ..exceptions import ParseError
from .base import BaseParser

logger = logging.getLogger(__name__)


class PDFParser(BaseParser):
    """PDF document parser using pymupdf4llm."""

    file_type = "pdf"
    forward_as_file = True

    def supported_extensions(self) -> List[str]:
        """Return list of supported file extensions."""
        return [".pdf"]

    def supported_mimetypes(self) -> List[str]:
        """Return list of supported MIME types."""
        return ["application/pdf"]

    def parse(self, data: bytes, file_name: str) -> ExtractedDocument:
        """
        Parse PDF bytes and return extracted markdown text.

        Raises:
            ParseError: If parsing fails
        """
        try:
            import fitz  # pymupdf
        except ImportError as e:
            raise ParseError("PyMuPDF is required for PDF parsing. Install with: pip install pymupdf") from e

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise ParseError(f"Failed to open PDF {file_name}: {e}") from e

        try:
            logger.debug(f"Attempting pymupdf4llm.to_markdown for: {file_name}")
            try:
                import pymupdf4llm
                pages_data = pymupdf4llm.to_markdown(doc, page_chunks=True)
                page_texts = [
                    pd["text"] if isinstance(pd, dict) else str(pd)
                    for pd in pages_data
                ]
                content = "\n\n-----\n\n".join(page_texts)
                logger.debug(f"pymupdf4llm extraction successful, content length: {len(content)}")
            except Exception as e:
                logger.warning(f"pymupdf4llm failed for {file_name}: {e}, trying fallback")
                content = self._extract_text_fallback(doc)

            metadata = self._extract_metadata(doc)
        except Exception as e:
            raise ParseError(f"Failed to parse PDF {file_name}: {e}") from e
        finally:
            doc.close()

        return ExtractedDocument(
            text=content,
            file_name=file_name,
            file_type=self.file_type,
            metadata=metadata,
        )

    def _extract_text_fallback(self, doc) -> str:
        """Fallback text extraction using raw PyMuPDF."""
        text_parts = []
        for page_num, page in enumerate(doc):
            text = page.get_text()
            if text.strip():
                text_parts.append(f"## Page {page_num + 1}\n\n{text}")
        return "\n\n".join(text_parts)

    def _extract_metadata(self, doc) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"page_count": len(doc)}
        pdf_metadata = doc.metadata or {}
        for key in ("title", "author", "subject"):
            if pdf_metadata.get(key):
                metadata[key] = pdf_metadata[key]
        return metadata
