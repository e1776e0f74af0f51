"""
Builds the ordered user-turn content sent to the provider.

The typed message always comes first, followed by one block per attachment
in upload order. Extracted text is framed with a file-type specific
instruction so the model knows how to use it.
"""

import logging
from typing import Iterable, Optional

from .exceptions import ParseError
from .models import AssembledTurn, Attachment, FileReferenceBlock, TextBlock
from .parsers import ParserRegistry, create_default_registry, is_email_file

logger = logging.getLogger(__name__)

REPLY_INSTRUCTION = "問い合わせ内容として読み取り、適切な返信メール本文を1通作成してください。"

PREAMBLES = {
    "word": (
        "以下はアップロードされた Word ファイル「{name}」の本文です。"
        "決算一次チェック・会計処理の背景として、この内容も踏まえて回答してください。"
    ),
    "excel": (
        "以下はアップロードされた Excel ファイル「{name}」の内容（シート／セル）をテキスト化したものです。"
        "勘定残高・分析用のデータとして、この内容も踏まえて回答してください。"
    ),
    "powerpoint": (
        "以下はアップロードされた PowerPoint ファイル「{name}」のスライド上のテキストです。"
        "経営説明資料・決算説明会資料として、この内容も踏まえて回答してください。"
    ),
    "email": "以下はアップロードされたメールファイル「{name}」の本文です。" + REPLY_INSTRUCTION,
    "msg": "以下はアップロードされた Outlook メールファイル（.msg）「{name}」の本文です。" + REPLY_INSTRUCTION,
    "msg_fallback": (
        "以下はアップロードされたメールファイル「{name}」の内容です（一部文字化けしている可能性があります）。"
        + REPLY_INSTRUCTION
    ),
    "text": (
        "以下はアップロードされたテキストファイル「{name}」の内容です。"
        "問い合わせや補足情報として読み取り、必要に応じて回答に反映してください。"
    ),
}

UNREADABLE_NOTICE = (
    "アップロードされたファイル「{name}」は内容を読み取れませんでした。"
    "ファイル名のみを参考にしてください。"
)


def truncate(text: str, max_chars: Optional[int]) -> str:
    if max_chars is None or len(text) <= max_chars:
        return text
    return text[:max_chars] + f"\n[... truncated at {max_chars} chars ...]"


class ContentAssembler:
    """Turns a message and its attachments into provider content blocks."""

    def __init__(
        self,
        registry: Optional[ParserRegistry] = None,
        max_attachment_chars: Optional[int] = None,
    ):
        self._registry = registry or create_default_registry()
        self._max_attachment_chars = max_attachment_chars

    @property
    def registry(self) -> ParserRegistry:
        return self._registry

    def assemble(
        self,
        message: str,
        attachments: Iterable[Attachment] = (),
        context_text: Optional[str] = None,
    ) -> AssembledTurn:
        """
        Build the user turn.

        Args:
            message: The typed user message
            attachments: Uploaded files, in upload order
            context_text: Optional pre-extracted text to append after the message

        Returns:
            AssembledTurn with ordered blocks and the last email's metadata
        """
        attachments = list(attachments)
        turn = AssembledTurn(
            blocks=[TextBlock(message)],
            has_email_attachment=any(is_email_file(a.file_name) for a in attachments),
        )
        if context_text:
            turn.blocks.append(TextBlock(context_text))

        # Sequential on purpose: the last email processed decides email_meta
        for attachment in attachments:
            self._add_attachment(turn, attachment)

        return turn

    def _add_attachment(self, turn: AssembledTurn, attachment: Attachment) -> None:
        name = attachment.file_name
        mime = attachment.effective_mime_type
        parser = self._registry.get_parser(name, mime)

        if parser is None:
            logger.warning("Unsupported file type ignored: %s (%s)", name, mime)
            turn.skipped_files.append(name)
            return

        if parser.forward_as_file:
            turn.blocks.append(
                FileReferenceBlock.from_bytes(attachment.content, "application/pdf", name)
            )
            logger.info("Attached %s as input file: %s", parser.file_type, name)
            return

        try:
            doc = parser.parse(attachment.content, name)
        except ParseError as e:
            logger.error("Failed to extract %s, forwarding notice only: %s", name, e)
            turn.blocks.append(TextBlock(UNREADABLE_NOTICE.format(name=name)))
            return

        logger.info("Extracted %s text length for %s: %d", doc.file_type, name, len(doc.text))

        if doc.email_meta is not None:
            turn.email_meta = doc.email_meta

        key = doc.file_type
        if doc.metadata.get("fallback"):
            key = f"{key}_fallback"
        preamble = PREAMBLES.get(key, PREAMBLES["text"]).format(name=name)
        turn.blocks.append(
            TextBlock(preamble + "\n\n" + truncate(doc.text, self._max_attachment_chars))
        )
