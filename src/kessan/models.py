"""
Data models for the kessan package.
"""

import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


@dataclass
class Attachment:
    """An uploaded file, held only for the duration of one request."""
    file_name: str
    content: bytes
    mime_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return Path(self.file_name).suffix.lower()

    @property
    def effective_mime_type(self) -> str:
        return self.mime_type or "application/octet-stream"


@dataclass
class TextBlock:
    """Plain text content block."""
    text: str
    kind: str = field(default="text", init=False)


@dataclass
class FileReferenceBlock:
    """Inline file forwarded to the provider as base64 data."""
    mime_type: str
    base64_payload: str
    file_name: str
    kind: str = field(default="file_reference", init=False)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str, file_name: str) -> "FileReferenceBlock":
        return cls(
            mime_type=mime_type,
            base64_payload=base64.b64encode(data).decode("ascii"),
            file_name=file_name,
        )

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64_payload}"


ContentBlock = Union[TextBlock, FileReferenceBlock]


@dataclass
class EmailMeta:
    """Summary headers of an attached email."""
    sender: Optional[str] = None
    to: Optional[str] = None
    cc: Optional[str] = None
    subject: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        """Serialize to the wire shape, omitting unset headers."""
        data = {
            "from": self.sender,
            "to": self.to,
            "cc": self.cc,
            "subject": self.subject,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["EmailMeta"]:
        """Deserialize from the wire shape; None stays None."""
        if not data:
            return None
        return cls(
            sender=data.get("from"),
            to=data.get("to"),
            cc=data.get("cc"),
            subject=data.get("subject"),
        )


@dataclass
class ConversationMessage:
    """One turn of the browser-held conversation."""
    role: str
    content: str

    ROLES = ("user", "assistant")

    def __post_init__(self):
        if self.role not in self.ROLES:
            raise ValueError(f"role must be one of {self.ROLES}: {self.role!r}")
        if self.content is None:
            self.content = ""

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationMessage":
        return cls(role=data.get("role", ""), content=str(data.get("content") or ""))


@dataclass
class QAPair:
    """A question and the assistant answer that followed it."""
    question: str
    answer: str


@dataclass
class ExtractedDocument:
    """Text extracted from a single attachment."""
    text: str
    file_name: str
    file_type: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    email_meta: Optional[EmailMeta] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the ingest endpoint shape."""
        return {
            "text": self.text,
            "meta": {
                "fileName": self.file_name,
                "fileType": self.file_type,
            },
        }


@dataclass
class AssembledTurn:
    """Ordered user-turn content plus what was learned while building it."""
    blocks: List[ContentBlock] = field(default_factory=list)
    email_meta: Optional[EmailMeta] = None
    has_email_attachment: bool = False
    skipped_files: List[str] = field(default_factory=list)
