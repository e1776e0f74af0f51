"""
Tests for kessan data models.
"""

import base64

import pytest

from src.kessan.models import (
    Attachment,
    ConversationMessage,
    EmailMeta,
    ExtractedDocument,
    FileReferenceBlock,
    TextBlock,
)


class TestAttachment:

    def test_extension_is_lowercased(self):
        attachment = Attachment(file_name="試算表.XLSX", content=b"")
        assert attachment.extension == ".xlsx"

    def test_effective_mime_type_default(self):
        assert Attachment(file_name="a.bin", content=b"").effective_mime_type == "application/octet-stream"
        assert Attachment(file_name="a.pdf", content=b"", mime_type="application/pdf").effective_mime_type == "application/pdf"


class TestContentBlocks:

    def test_text_block_kind(self):
        assert TextBlock("hello").kind == "text"

    def test_file_reference_from_bytes(self):
        block = FileReferenceBlock.from_bytes(b"%PDF-1.7", "application/pdf", "report.pdf")
        assert block.kind == "file_reference"
        assert base64.b64decode(block.base64_payload) == b"%PDF-1.7"
        assert block.data_url == "data:application/pdf;base64," + block.base64_payload


class TestEmailMeta:

    def test_to_dict_omits_unset(self):
        meta = EmailMeta(sender="a@x.com", subject="見積依頼")
        assert meta.to_dict() == {"from": "a@x.com", "subject": "見積依頼"}

    def test_from_dict(self):
        meta = EmailMeta.from_dict({"from": "a@x.com", "cc": "c@x.com"})
        assert meta.sender == "a@x.com"
        assert meta.cc == "c@x.com"
        assert meta.to is None

    def test_from_dict_none(self):
        assert EmailMeta.from_dict(None) is None
        assert EmailMeta.from_dict({}) is None


class TestConversationMessage:

    def test_valid_roles(self):
        assert ConversationMessage("user", "Q").to_dict() == {"role": "user", "content": "Q"}
        assert ConversationMessage.from_dict({"role": "assistant", "content": "A"}).content == "A"

    def test_invalid_role(self):
        with pytest.raises(ValueError):
            ConversationMessage("system", "x")

    def test_missing_content_becomes_empty(self):
        assert ConversationMessage.from_dict({"role": "user"}).content == ""


class TestExtractedDocument:

    def test_to_dict_shape(self):
        doc = ExtractedDocument(text="本文", file_name="memo.txt", file_type="text", metadata={"char_count": 2})
        assert doc.to_dict() == {"text": "本文", "meta": {"fileName": "memo.txt", "fileType": "text"}}
