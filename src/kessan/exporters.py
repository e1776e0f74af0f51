"""
Conversation export to Word, Excel, CSV, PowerPoint and .eml.

The browser posts its conversation; nothing is stored server-side.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import DEFAULT_SENDER_ADDRESS
from .exceptions import NothingToExportError
from .models import ConversationMessage, EmailMeta, QAPair

logger = logging.getLogger(__name__)

EXPORT_BASENAME = "kessan-ai-answer"
DEFAULT_REPLY_SUBJECT = "お問い合わせの件"
DEFAULT_REPLY_TO = "unknown@example.com"
EXPORT_TITLE = "決算サポートAI 出力"
SHEET_TITLE = "AI回答"

TABLE_COLUMNS = [
    ("No", 6),
    ("業務カテゴリ", 20),
    ("質問", 40),
    ("回答", 80),
]

_FORBIDDEN_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')
_LINE_BREAK_RE = re.compile(r"[\r\n]+")

_WORD_CSS = """\
body { font-family: Meiryo, sans-serif; font-size: 10.5pt; line-height: 1.6; }
pre { white-space: pre-wrap; }
table { border-collapse: collapse; }
th, td { border: 1px solid #999; padding: 4px 8px; }
"""


@dataclass
class ExportedFile:
    """A generated file ready to be sent to the browser."""
    file_name: str
    media_type: str
    content: bytes


def assistant_messages(messages: Sequence[ConversationMessage]) -> List[ConversationMessage]:
    return [m for m in messages if m.role == "assistant"]


def build_qa_pairs(messages: Sequence[ConversationMessage]) -> List[QAPair]:
    """Pair each answer with the latest unanswered question."""
    pairs: List[QAPair] = []
    last_question: Optional[str] = None
    for m in messages:
        if m.role == "user":
            last_question = m.content
        elif m.role == "assistant":
            pairs.append(QAPair(question=last_question or "", answer=m.content))
            last_question = None
    return pairs


def _require_answers(messages: Sequence[ConversationMessage]) -> None:
    if not assistant_messages(messages):
        raise NothingToExportError("No assistant answer to export")


# ── Word ────────────────────────────────────────────────────────


def export_word(messages: Sequence[ConversationMessage]) -> ExportedFile:
    """All answers, markdown rendered, in a Word-compatible HTML document."""
    from markdown_it import MarkdownIt

    _require_answers(messages)
    md = MarkdownIt("commonmark", {"html": False}).enable("table")

    sections = []
    for idx, m in enumerate(assistant_messages(messages), start=1):
        sections.append(f"<h3>【回答{idx}】</h3>\n{md.render(m.content)}")
    body_html = "\n<hr />\n".join(sections)

    document = (
        '<html xmlns:o="urn:schemas-microsoft-com:office:office" '
        'xmlns:w="urn:schemas-microsoft-com:office:word">'
        '<head><meta charset="utf-8" />'
        f"<style>{_WORD_CSS}</style></head>"
        f"<body>{body_html}</body></html>"
    )
    return ExportedFile(
        file_name=f"{EXPORT_BASENAME}.doc",
        media_type="application/msword",
        content=document.encode("utf-8"),
    )


# ── Excel / CSV ─────────────────────────────────────────────────


def export_excel(messages: Sequence[ConversationMessage], business_type: str) -> ExportedFile:
    """One row per question/answer pair."""
    import openpyxl
    from openpyxl.styles import Alignment, Font
    from openpyxl.utils import get_column_letter

    _require_answers(messages)
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append([name for name, _ in TABLE_COLUMNS])
    for col, (_, width) in enumerate(TABLE_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width
        ws.cell(row=1, column=col).font = Font(bold=True)

    for idx, qa in enumerate(build_qa_pairs(messages), start=1):
        ws.append([idx, business_type, qa.question, qa.answer])
        for cell in ws[ws.max_row]:
            cell.alignment = Alignment(wrap_text=True, vertical="top")

    buf = io.BytesIO()
    wb.save(buf)
    return ExportedFile(
        file_name=f"{EXPORT_BASENAME}.xlsx",
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        content=buf.getvalue(),
    )


def export_csv(messages: Sequence[ConversationMessage], business_type: str) -> ExportedFile:
    """Same table as the workbook, UTF-8 with BOM so Excel opens it correctly."""
    _require_answers(messages)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\r\n")
    writer.writerow([name for name, _ in TABLE_COLUMNS])
    for idx, qa in enumerate(build_qa_pairs(messages), start=1):
        writer.writerow([idx, business_type, qa.question, qa.answer])
    return ExportedFile(
        file_name=f"{EXPORT_BASENAME}.csv",
        media_type="text/csv; charset=utf-8",
        content=buf.getvalue().encode("utf-8-sig"),
    )


# ── PowerPoint ──────────────────────────────────────────────────


def export_pptx(messages: Sequence[ConversationMessage]) -> ExportedFile:
    """A title slide, then one slide per question/answer pair."""
    from pptx import Presentation
    from pptx.util import Inches, Pt

    _require_answers(messages)
    prs = Presentation()
    blank = prs.slide_layouts[6]

    def add_text(slide, text: str, top: float, height: float, size: int, bold: bool = False) -> None:
        box = slide.shapes.add_textbox(Inches(0.5), Inches(top), Inches(9), Inches(height))
        frame = box.text_frame
        frame.word_wrap = True
        frame.text = text
        for paragraph in frame.paragraphs:
            for run in paragraph.runs:
                run.font.size = Pt(size)
                run.font.bold = bold

    add_text(prs.slides.add_slide(blank), EXPORT_TITLE, top=1.0, height=1.0, size=28, bold=True)

    for idx, qa in enumerate(build_qa_pairs(messages), start=1):
        slide = prs.slides.add_slide(blank)
        add_text(slide, f"Q{idx}: {qa.question}", top=0.5, height=0.8, size=18, bold=True)
        add_text(slide, qa.answer, top=1.4, height=4.5, size=14)

    buf = io.BytesIO()
    prs.save(buf)
    return ExportedFile(
        file_name=f"{EXPORT_BASENAME}.pptx",
        media_type="application/vnd.openxmlformats-officedocument.presentationml.presentation",
        content=buf.getvalue(),
    )


# ── EML ─────────────────────────────────────────────────────────


def single_line(value: str) -> str:
    """Collapse CR/LF runs to one space; header values must not span lines."""
    return _LINE_BREAK_RE.sub(" ", value)


def reply_subject(email_meta: Optional[EmailMeta]) -> str:
    original = (email_meta.subject if email_meta else None) or DEFAULT_REPLY_SUBJECT
    return f"Re: {single_line(original)}"


def safe_file_name(name: str) -> str:
    return _FORBIDDEN_FILENAME_CHARS.sub("_", name)


def build_eml(body: str, email_meta: Optional[EmailMeta], sender: str = DEFAULT_SENDER_ADDRESS) -> str:
    """RFC822 reply text addressed to the sender of the last parsed email."""
    to_address = (email_meta.sender if email_meta else None) or DEFAULT_REPLY_TO
    cc_address = (email_meta.cc if email_meta else None) or ""
    headers = [
        f"From: {single_line(sender)}",
        f"To: {single_line(to_address)}",
        f"Cc: {single_line(cc_address)}",
        f"Subject: {reply_subject(email_meta)}",
        'Content-Type: text/plain; charset="utf-8"',
    ]
    return "\r\n".join(headers) + "\r\n\r\n" + body


def export_eml(
    messages: Sequence[ConversationMessage],
    email_meta: Optional[EmailMeta],
    sender: str = DEFAULT_SENDER_ADDRESS,
) -> ExportedFile:
    """The latest answer as a ready-to-send Outlook reply."""
    answers = assistant_messages(messages)
    if not answers:
        raise NothingToExportError("No assistant answer to export")

    eml = build_eml(answers[-1].content.strip(), email_meta, sender)
    return ExportedFile(
        file_name=safe_file_name(reply_subject(email_meta)) + ".eml",
        media_type="message/rfc822",
        content=eml.encode("utf-8"),
    )


EXPORT_FORMATS = ("word", "excel", "csv", "pptx", "eml")


def export_conversation(
    fmt: str,
    messages: Sequence[ConversationMessage],
    business_type: str = "",
    email_meta: Optional[EmailMeta] = None,
    sender: str = DEFAULT_SENDER_ADDRESS,
) -> ExportedFile:
    """
    Dispatch to the exporter for ``fmt``.

    Raises:
        ValueError: For an unknown format
        NothingToExportError: If there is no assistant answer
    """
    logger.info("Exporting %d message(s) as %s", len(messages), fmt)
    if fmt == "word":
        return export_word(messages)
    if fmt == "excel":
        return export_excel(messages, business_type)
    if fmt == "csv":
        return export_csv(messages, business_type)
    if fmt == "pptx":
        return export_pptx(messages)
    if fmt == "eml":
        return export_eml(messages, email_meta, sender)
    raise ValueError(f"Unknown export format: {fmt}")
