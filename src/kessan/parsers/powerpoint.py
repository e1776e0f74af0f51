"""
PowerPoint parser using python-pptx.
"""

import io
import logging
from typing import List

from ..models import ExtractedDocument
from ..exceptions import ParseError
from .base import BaseParser

logger = logging.getLogger(__name__)

SLIDE_MARKER = "【スライド: {name}】"


class PowerPointParser(BaseParser):
    """
    PowerPoint (.pptx) parser.

    Slides are read in presentation order from the deck's slide list, so a
    deck with slide10.xml still yields slide 2 before slide 10. Every text
    run on a slide, including tables and grouped shapes, is kept.
    """

    file_type = "powerpoint"

    def supported_extensions(self) -> List[str]:
        """Return list of supported file extensions."""
        return [".pptx"]

    def supported_mimetypes(self) -> List[str]:
        """Return list of supported MIME types."""
        return ["application/vnd.openxmlformats-officedocument.presentationml.presentation"]

    def parse(self, data: bytes, file_name: str) -> ExtractedDocument:
        """
        Parse deck bytes and return slide text.

        Raises:
            ParseError: If parsing fails
        """
        try:
            from pptx import Presentation
            from pptx.oxml.ns import qn
        except ImportError:
            raise ParseError("python-pptx is required for PowerPoint parsing. Install with: pip install python-pptx")

        try:
            prs = Presentation(io.BytesIO(data))
            parts: List[str] = []
            for slide in prs.slides:
                runs = [node.text for node in slide.element.iter(qn("a:t")) if node.text]
                parts.append(SLIDE_MARKER.format(name=slide.part.partname.lstrip("/")))
                parts.append("\n".join(runs))
        except Exception as e:
            raise ParseError(f"Failed to parse PowerPoint deck {file_name}: {e}") from e

        return ExtractedDocument(
            text="\n".join(parts),
            file_name=file_name,
            file_type=self.file_type,
            metadata={"slide_count": len(prs.slides)},
        )
