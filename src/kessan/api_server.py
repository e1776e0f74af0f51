"""Assistant REST API server (FastAPI)."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from .assembler import ContentAssembler
from .config import REQUIRED_AZURE_VARS, AppConfig
from .exceptions import (
    ConfigurationError,
    NothingToExportError,
    ParseError,
    ProviderHTTPError,
    ProviderResponseError,
)
from .exporters import EXPORT_FORMATS, export_conversation
from .llm import BaseLLMGateway, create_gateway
from .models import Attachment, ConversationMessage, EmailMeta
from .prompts import select_system_prompt
from .web import render_index_html

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _content_disposition(file_name: str) -> str:
    return f"attachment; filename*=UTF-8''{quote(file_name)}"


def _config_error_response(cfg: AppConfig) -> JSONResponse:
    err = cfg.config_error or ConfigurationError(list(REQUIRED_AZURE_VARS))
    logger.error("Azure OpenAI config missing: %s", err.missing)
    return JSONResponse(
        {
            "error": "Azure OpenAI の環境変数が不足しています",
            "detail": err.present or {name: False for name in err.missing},
            "missing": err.missing,
        },
        status_code=500,
    )


async def _read_chat_request(request: Request, cfg: AppConfig) -> Tuple[Any, str, str, Optional[str], List[Attachment]]:
    """Read (message, business_type, mode, context_text, attachments) from JSON or multipart."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            logger.warning("[chat] request body is not valid JSON")
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        return (
            payload.get("message"),
            payload.get("businessType") if payload.get("businessType") is not None else cfg.default_business_type,
            payload.get("mode") if payload.get("mode") is not None else cfg.default_mode,
            payload.get("contextText") or None,
            [],
        )

    form = await request.form()
    business_type = form.get("businessType")
    mode = form.get("mode")
    attachments: List[Attachment] = []
    for item in form.getlist("file"):
        if not hasattr(item, "filename") or not item.filename:
            continue
        attachments.append(
            Attachment(
                file_name=Path(item.filename).name,
                content=await item.read(),
                mime_type=item.content_type or None,
            )
        )
    return (
        form.get("message"),
        business_type if isinstance(business_type, str) else cfg.default_business_type,
        mode if isinstance(mode, str) else cfg.default_mode,
        None,
        attachments,
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    cfg: Optional[AppConfig] = None,
    gateway: Optional[BaseLLMGateway] = None,
    assembler: Optional[ContentAssembler] = None,
) -> FastAPI:
    cfg = cfg or AppConfig.from_env()
    if gateway is None and cfg.azure is not None:
        gateway = create_gateway(cfg.azure)
    assembler = assembler or ContentAssembler(max_attachment_chars=cfg.max_attachment_chars)

    app = FastAPI(title="Kessan Assistant API", docs_url=None, redoc_url=None)

    # Store references on app state
    app.state.cfg = cfg
    app.state.gateway = gateway
    app.state.assembler = assembler

    # ------------------------------------------------------------------
    # Page / health
    # ------------------------------------------------------------------

    @app.get("/")
    def index():
        return HTMLResponse(render_index_html())

    @app.get("/api/health")
    def health():
        return {"status": "ok", "configured": gateway is not None}

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    @app.post("/api/chat")
    async def chat(request: Request):
        try:
            message, business_type, mode, context_text, attachments = await _read_chat_request(request, cfg)

            logger.info(
                "[chat] request: hasMessage=%s businessType=%s mode=%s fileCount=%d fileNames=%s fileTypes=%s",
                bool(message), business_type, mode, len(attachments),
                [a.file_name for a in attachments], [a.mime_type for a in attachments],
            )

            if not message or not isinstance(message, str):
                return JSONResponse({"error": "message が必要です"}, status_code=400)

            if gateway is None:
                return _config_error_response(cfg)

            system_prompt = select_system_prompt(
                [a.file_name for a in attachments], business_type, mode,
            )
            turn = assembler.assemble(message, attachments, context_text=context_text)
            if turn.skipped_files:
                logger.warning("[chat] files dropped from request: %s", turn.skipped_files)

            try:
                reply = await gateway.complete(system_prompt, turn.blocks)
            except ProviderHTTPError as e:
                logger.error("[chat] provider error %s", e.status_code)
                return JSONResponse(
                    {"error": "Azure OpenAI 呼び出しでエラーが発生しました", "detail": e.body},
                    status_code=500,
                )
            except ProviderResponseError as e:
                return JSONResponse(
                    {"error": "Azure 応答の JSON パースに失敗しました", "detail": e.body},
                    status_code=500,
                )

            email_meta = turn.email_meta.to_dict() if turn.email_meta is not None else None
            return {"reply": reply, "emailMeta": email_meta}

        except Exception as e:
            logger.exception("Chat route error")
            return JSONResponse(
                {"error": "内部エラーが発生しました", "detail": str(e)},
                status_code=500,
            )

    # ------------------------------------------------------------------
    # File ingest
    # ------------------------------------------------------------------

    @app.post("/api/files/ingest")
    async def files_ingest(request: Request):
        try:
            form = await request.form()
            item = form.get("file")
            if item is None or not hasattr(item, "filename") or not item.filename:
                return JSONResponse({"error": "file が必要です"}, status_code=400)

            file_name = Path(item.filename).name
            parser = assembler.registry.get_parser_for_extension(Path(file_name).suffix)
            if parser is None:
                return JSONResponse({"error": "対応していないファイル形式です"}, status_code=400)

            doc = parser.parse(await item.read(), file_name)
            logger.info("Ingested %s as %s (%d chars)", file_name, doc.file_type, len(doc.text))
            return doc.to_dict()
        except ParseError as e:
            logger.error("Ingest failed: %s", e)
            return JSONResponse({"error": "ファイル解析中にエラーが発生しました"}, status_code=500)
        except Exception:
            logger.exception("Ingest route error")
            return JSONResponse({"error": "ファイル解析中にエラーが発生しました"}, status_code=500)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    @app.post("/api/export/{fmt}")
    async def export(fmt: str, request: Request):
        if fmt not in EXPORT_FORMATS:
            return JSONResponse({"error": f"Unknown export format: {fmt}"}, status_code=404)

        try:
            payload: Dict[str, Any] = await request.json()
        except ValueError:
            return JSONResponse({"error": "JSON ボディが必要です"}, status_code=400)
        if not isinstance(payload, dict):
            payload = {}

        try:
            messages = [ConversationMessage.from_dict(m) for m in payload.get("messages") or []]
        except (ValueError, AttributeError) as e:
            return JSONResponse({"error": str(e)}, status_code=400)

        try:
            exported = export_conversation(
                fmt,
                messages,
                business_type=payload.get("businessType") or "",
                email_meta=EmailMeta.from_dict(payload.get("emailMeta")),
                sender=cfg.sender_address,
            )
        except NothingToExportError:
            return JSONResponse({"error": "出力できる回答がありません"}, status_code=400)

        return Response(
            content=exported.content,
            media_type=exported.media_type,
            headers={"Content-Disposition": _content_disposition(exported.file_name)},
        )

    return app
