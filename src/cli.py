#!/usr/bin/env python3
"""
CLI for the kessan assistant.

Usage:
    python -m src.cli serve --host 0.0.0.0 --port 8000
    python -m src.cli extract ./試算表.xlsx
    python -m src.cli ask "この問い合わせに返信して" --file ./inquiry.eml
"""

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional

# Load .env from project root
try:
    from dotenv import load_dotenv
    _env_file = Path(__file__).parent.parent / ".env"
    if _env_file.exists():
        load_dotenv(_env_file)
    else:
        load_dotenv()
except ImportError:
    pass

from src.kessan import (
    AppConfig,
    Attachment,
    AzureOpenAIConfig,
    ConfigurationError,
    ContentAssembler,
    KessanError,
    ProviderHTTPError,
    ProviderResponseError,
    select_system_prompt,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("cli")


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure root logging; an optional file handler always logs at DEBUG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        root_logger = logging.getLogger()
        for handler in root_logger.handlers:
            handler.setLevel(root_logger.level)
        root_logger.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _require_azure_config() -> AzureOpenAIConfig:
    try:
        return AzureOpenAIConfig.from_env()
    except ConfigurationError as e:
        print("Error: Azure OpenAI settings are incomplete.", file=sys.stderr)
        for name in e.missing:
            print(f"  missing: {name}", file=sys.stderr)
        sys.exit(1)


def _load_attachment(path_str: str) -> Attachment:
    path = Path(path_str).resolve()
    if not path.is_file():
        logger.error(f"File not found: {path}")
        sys.exit(1)
    mime_type, _ = mimetypes.guess_type(path.name)
    return Attachment(file_name=path.name, content=path.read_bytes(), mime_type=mime_type)


def cmd_serve(args):
    """Start the web server."""
    import uvicorn

    azure = _require_azure_config()
    base = AppConfig.from_env()
    cfg = AppConfig(
        azure=azure,
        sender_address=base.sender_address,
        max_attachment_chars=base.max_attachment_chars,
    )

    from src.kessan.api_server import create_app

    app = create_app(cfg)
    logger.info(f"Serving on http://{args.host}:{args.port} (deployment={azure.deployment}, style={azure.api_style})")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info" if args.verbose else "warning")


def cmd_extract(args):
    """Print the text extracted from a file."""
    assembler = ContentAssembler()
    attachment = _load_attachment(args.file)
    try:
        doc = assembler.registry.parse(attachment.content, attachment.file_name, attachment.mime_type)
    except KessanError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if doc.email_meta is not None:
        for key, value in doc.email_meta.to_dict().items():
            print(f"{key}: {value}")
        print()
    print(doc.text)


def cmd_ask(args):
    """Send one message (with optional files) and print the reply."""
    azure = _require_azure_config()
    cfg = AppConfig.from_env()

    from src.kessan.llm import create_gateway

    attachments: List[Attachment] = [_load_attachment(f) for f in args.file or []]
    system_prompt = select_system_prompt(
        [a.file_name for a in attachments], args.business_type, args.mode,
    )
    turn = ContentAssembler(max_attachment_chars=cfg.max_attachment_chars).assemble(
        args.message, attachments,
    )
    if turn.skipped_files:
        print(f"Skipped unsupported files: {', '.join(turn.skipped_files)}", file=sys.stderr)

    gateway = create_gateway(azure)
    try:
        reply = asyncio.run(gateway.complete(system_prompt, turn.blocks))
    except (ProviderHTTPError, ProviderResponseError) as e:
        print(f"Error: {e}", file=sys.stderr)
        print(e.body, file=sys.stderr)
        sys.exit(1)
    except KessanError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(reply)
    if turn.email_meta is not None:
        print()
        print(f"emailMeta: {turn.email_meta.to_dict()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CLI for the kessan accounting assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the web UI and API
  python -m src.cli serve --port 8000

  # Show what would be sent to the model for a file
  python -m src.cli extract ./決算資料.pptx

  # One-shot question with attachments
  python -m src.cli ask "勘定残高の異常値を確認して" --file ./tb.xlsx --mode review
        """,
    )
    parser.add_argument("-v", "--verbose", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", default=None, help="Also write DEBUG logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the web server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Server host (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Server port (default: 8000)")
    serve_parser.set_defaults(func=cmd_serve)

    extract_parser = subparsers.add_parser("extract", help="Print extracted text of a file")
    extract_parser.add_argument("file", help="File to extract")
    extract_parser.set_defaults(func=cmd_extract)

    ask_parser = subparsers.add_parser("ask", help="Ask a single question")
    ask_parser.add_argument("message", help="Question text")
    ask_parser.add_argument("--file", action="append", help="Attach a file (repeatable)")
    ask_parser.add_argument("--business-type", default="未指定", help="Business category (free text)")
    ask_parser.add_argument("--mode", default="general", help="Answer mode (free text)")
    ask_parser.set_defaults(func=cmd_ask)

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.log_file)
    args.func(args)


if __name__ == "__main__":
    main()
