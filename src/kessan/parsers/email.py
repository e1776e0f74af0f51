"""
Email parsers (.eml, Outlook .msg) and the header-block parser.
"""

import html
import logging
import re
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.utils import parseaddr
from typing import List, Optional, Tuple

from ..models import EmailMeta, ExtractedDocument
from ..exceptions import ParseError
from .base import BaseParser

logger = logging.getLogger(__name__)

EMAIL_EXTENSIONS = (".eml", ".msg")

_RETAINED_HEADERS = {"from": "sender", "to": "to", "cc": "cc", "subject": "subject"}

_BLANK_LINE_RE = re.compile(r"\r?\n\r?\n")
_LINE_SPLIT_RE = re.compile(r"\r?\n")


# ── Header parsing ───────────────────────────────────────────────


def decode_header_value(value: str) -> str:
    """Decode RFC 2047 encoded words; undecodable values are returned unchanged."""
    if "=?" not in value:
        return value
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, UnicodeDecodeError) as e:
        logger.debug("Could not decode header value %r: %s", value, e)
        return value


def parse_email_headers(header_text: str) -> EmailMeta:
    """Parse an RFC822 header block into EmailMeta.

    Lines starting with whitespace continue the previous header and are
    appended with a single space. Only From/To/Cc/Subject are kept; names
    are matched case-insensitively.
    """
    meta = EmailMeta()
    current_name = ""
    current_value = ""

    def flush() -> None:
        attr = _RETAINED_HEADERS.get(current_name.lower())
        if attr:
            setattr(meta, attr, decode_header_value(current_value.strip()))

    for line in _LINE_SPLIT_RE.split(header_text):
        if line[:1].isspace():
            if current_name:
                current_value += " " + line.strip()
            continue
        if current_name:
            flush()
            current_name = ""
        idx = line.find(":")
        if idx == -1:
            continue
        current_name = line[:idx].strip()
        current_value = line[idx + 1:].strip()
    if current_name:
        flush()

    return meta


def split_eml(text: str) -> Tuple[str, str]:
    """Split raw message text on the first blank line into (headers, body).

    Without a blank line the whole text serves as both.
    """
    parts = _BLANK_LINE_RE.split(text, maxsplit=1)
    if len(parts) == 2:
        return parts[0], parts[1]
    return text, text


def html_to_text(html_body: str) -> str:
    """Strip tags from an HTML body."""
    text = re.sub(r"<br\s*/?>", "\n", html_body, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    return html.unescape(text)


def is_email_file(file_name: str) -> bool:
    return file_name.lower().endswith(EMAIL_EXTENSIONS)


def sender_address(sender: Optional[str]) -> Optional[str]:
    """Address part of a display-form sender, else the sender as given."""
    if not sender:
        return None
    name, address = parseaddr(sender)
    if "@" in address:
        return address
    return name or sender


# ── Parsers ──────────────────────────────────────────────────────


class EmlParser(BaseParser):
    """Plain RFC822 .eml parser: headers summarised, body passed through."""

    file_type = "email"

    def supported_extensions(self) -> List[str]:
        return [".eml"]

    def supported_mimetypes(self) -> List[str]:
        # Matched by extension only; message/rfc822 parts arrive as .eml uploads
        return []

    def parse(self, data: bytes, file_name: str) -> ExtractedDocument:
        text = data.decode("utf-8", errors="replace")
        raw_headers, body = split_eml(text)

        email_meta: Optional[EmailMeta] = None
        if raw_headers:
            email_meta = parse_email_headers(raw_headers)
            logger.info("Parsed .eml meta for %s: %s", file_name, email_meta.to_dict())

        return ExtractedDocument(
            text=body,
            file_name=file_name,
            file_type=self.file_type,
            email_meta=email_meta,
        )


class MsgParser(BaseParser):
    """
    Outlook .msg parser using extract-msg.

    If the binary cannot be parsed the buffer is decoded as UTF-8 as a last
    resort; the result is likely garbled and flagged with
    ``metadata["fallback"] = True``. No email metadata is produced then.
    """

    file_type = "msg"

    def supported_extensions(self) -> List[str]:
        return [".msg"]

    def supported_mimetypes(self) -> List[str]:
        return []

    def parse(self, data: bytes, file_name: str) -> ExtractedDocument:
        try:
            return self._parse_msg(data, file_name)
        except Exception as e:
            logger.error("Failed to parse .msg %s, decoding raw bytes instead: %s", file_name, e)
            return ExtractedDocument(
                text=data.decode("utf-8", errors="replace"),
                file_name=file_name,
                file_type=self.file_type,
                metadata={"fallback": True},
            )

    def _parse_msg(self, data: bytes, file_name: str) -> ExtractedDocument:
        try:
            import extract_msg
        except ImportError:
            raise ParseError("extract-msg is required for .msg parsing. Install with: pip install extract-msg")

        msg = extract_msg.Message(data)
        try:
            body = msg.body or ""
            if not body.strip():
                html_body = msg.htmlBody
                if isinstance(html_body, bytes):
                    html_body = html_body.decode("utf-8", errors="replace")
                body = html_to_text(html_body) if html_body else ""

            email_meta = EmailMeta(
                sender=sender_address(msg.sender),
                to=msg.to or None,
                cc=msg.cc or None,
                subject=msg.subject or None,
            )
        finally:
            msg.close()

        logger.info("Parsed .msg meta for %s: %s", file_name, email_meta.to_dict())
        return ExtractedDocument(
            text=body,
            file_name=file_name,
            file_type=self.file_type,
            email_meta=email_meta,
        )
