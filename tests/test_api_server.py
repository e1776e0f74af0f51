"""Tests for the assistant API server."""

from __future__ import annotations

from typing import Sequence
from urllib.parse import quote

import httpx
import pytest
from fastapi.testclient import TestClient

from src.kessan.api_server import create_app
from src.kessan.config import REQUIRED_AZURE_VARS, AppConfig, AzureOpenAIConfig
from src.kessan.exceptions import ProviderHTTPError
from src.kessan.llm import BaseLLMGateway, create_gateway
from src.kessan.models import ContentBlock, TextBlock
from src.kessan.prompts import REPLY_DRAFTING_PROMPT, build_accounting_prompt


class _FakeGateway(BaseLLMGateway):
    def __init__(self, reply: str = "回答です", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, list]] = []

    @property
    def model_id(self) -> str:
        return "fake"

    async def complete(self, system_prompt: str, blocks: Sequence[ContentBlock]) -> str:
        self.calls.append((system_prompt, list(blocks)))
        if self.error is not None:
            raise self.error
        return self.reply


def _azure() -> AzureOpenAIConfig:
    return AzureOpenAIConfig(
        endpoint="https://example.openai.azure.com",
        api_key="secret",
        api_version="2025-04-01-preview",
        deployment="kessan-gpt",
    )


@pytest.fixture
def gateway():
    return _FakeGateway()


@pytest.fixture
def client(gateway):
    app = create_app(AppConfig(azure=_azure()), gateway=gateway)
    return TestClient(app)


class TestChat:

    def test_message_without_attachments(self, client, gateway):
        resp = client.post("/api/chat", json={"message": "テスト"})

        assert resp.status_code == 200
        assert resp.json() == {"reply": "回答です", "emailMeta": None}
        system_prompt, blocks = gateway.calls[0]
        assert system_prompt == build_accounting_prompt("未指定", "general")
        assert blocks == [TextBlock("テスト")]

    def test_business_type_and_mode_forwarded(self, client, gateway):
        resp = client.post(
            "/api/chat",
            data={"message": "論点は？", "businessType": "税効果会計", "mode": "summary"},
        )
        assert resp.status_code == 200
        assert gateway.calls[0][0] == build_accounting_prompt("税効果会計", "summary")

    def test_context_text(self, client, gateway):
        client.post("/api/chat", json={"message": "要約して", "contextText": "抽出済み本文"})
        assert gateway.calls[0][1] == [TextBlock("要約して"), TextBlock("抽出済み本文")]

    def test_email_attachment_drafts_reply(self, client, gateway):
        eml = "From: a@x.com\r\nSubject: 見積依頼\r\n\r\n見積をお願いします。".encode("utf-8")
        resp = client.post(
            "/api/chat",
            data={"message": "返信して"},
            files=[("file", ("inquiry.eml", eml, "message/rfc822"))],
        )

        assert resp.status_code == 200
        assert resp.json()["emailMeta"] == {"from": "a@x.com", "subject": "見積依頼"}
        system_prompt, blocks = gateway.calls[0]
        assert system_prompt == REPLY_DRAFTING_PROMPT
        assert len(blocks) == 2
        assert blocks[1].text.endswith("見積をお願いします。")

    def test_unsupported_attachment_dropped(self, client, gateway):
        resp = client.post(
            "/api/chat",
            data={"message": "確認"},
            files=[("file", ("archive.zip", b"PK\x03\x04", "application/zip"))],
        )
        assert resp.status_code == 200
        assert gateway.calls[0][1] == [TextBlock("確認")]

    @pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": 42}])
    def test_missing_message(self, client, gateway, body):
        resp = client.post("/api/chat", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"error": "message が必要です"}
        assert gateway.calls == []

    def test_malformed_json_body(self, client, gateway):
        resp = client.post(
            "/api/chat",
            content=b"{\"message\": ",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json() == {"error": "message が必要です"}
        assert gateway.calls == []

    def test_missing_message_multipart(self, client, gateway):
        resp = client.post(
            "/api/chat",
            data={"businessType": "x"},
            files=[("file", ("memo.txt", b"hello", "text/plain"))],
        )
        assert resp.status_code == 400
        assert gateway.calls == []

    def test_provider_http_error_passes_raw_body(self):
        raw = '{"error": {"code": "429", "message": "Rate limit is exceeded."}}'
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(429, text=raw)

        gateway = create_gateway(_azure(), transport=httpx.MockTransport(handler))
        client = TestClient(create_app(AppConfig(azure=_azure()), gateway=gateway))

        resp = client.post("/api/chat", json={"message": "テスト"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Azure OpenAI 呼び出しでエラーが発生しました", "detail": raw}
        assert len(requests) == 1

    def test_provider_http_error_from_gateway(self):
        gateway = _FakeGateway(error=ProviderHTTPError("boom", status_code=503, body="unavailable"))
        client = TestClient(create_app(AppConfig(azure=_azure()), gateway=gateway))

        resp = client.post("/api/chat", json={"message": "テスト"})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "unavailable"

    def test_unexpected_error(self):
        gateway = _FakeGateway(error=RuntimeError("kaboom"))
        client = TestClient(create_app(AppConfig(azure=_azure()), gateway=gateway))

        resp = client.post("/api/chat", json={"message": "テスト"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "内部エラーが発生しました", "detail": "kaboom"}

    def test_configuration_missing(self):
        client = TestClient(create_app(AppConfig.from_env({})))

        resp = client.post("/api/chat", json={"message": "テスト"})

        assert resp.status_code == 500
        data = resp.json()
        assert data["error"] == "Azure OpenAI の環境変数が不足しています"
        assert data["detail"] == {name: False for name in REQUIRED_AZURE_VARS}
        assert data["missing"] == list(REQUIRED_AZURE_VARS)


class TestIngest:

    def test_text_file(self, client):
        resp = client.post("/api/files/ingest", files={"file": ("memo.txt", "メモ".encode("utf-8"), "text/plain")})

        assert resp.status_code == 200
        assert resp.json() == {"text": "メモ", "meta": {"fileName": "memo.txt", "fileType": "text"}}

    def test_unsupported_extension(self, client):
        resp = client.post("/api/files/ingest", files={"file": ("legacy.doc", b"\xd0\xcf", "application/msword")})
        assert resp.status_code == 400
        assert resp.json() == {"error": "対応していないファイル形式です"}

    def test_missing_file(self, client):
        resp = client.post("/api/files/ingest", data={"other": "x"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "file が必要です"}

    def test_unreadable_file(self, client):
        resp = client.post("/api/files/ingest", files={"file": ("broken.xlsx", b"not a workbook", "application/octet-stream")})
        assert resp.status_code == 500
        assert resp.json() == {"error": "ファイル解析中にエラーが発生しました"}


class TestExport:

    MESSAGES = [
        {"role": "user", "content": "質問"},
        {"role": "assistant", "content": "回答"},
    ]

    def test_csv(self, client):
        resp = client.post("/api/export/csv", json={"messages": self.MESSAGES, "businessType": "決算締め処理"})

        assert resp.status_code == 200
        assert resp.headers["content-disposition"] == "attachment; filename*=UTF-8''kessan-ai-answer.csv"
        assert "決算締め処理" in resp.content.decode("utf-8-sig")

    def test_eml_uses_email_meta(self, client):
        resp = client.post(
            "/api/export/eml",
            json={"messages": self.MESSAGES, "emailMeta": {"from": "a@x.com", "subject": "見積依頼"}},
        )

        assert resp.status_code == 200
        assert resp.headers["content-disposition"].endswith(quote("Re_ 見積依頼.eml"))
        assert "To: a@x.com\r\n" in resp.content.decode("utf-8")

    def test_nothing_to_export(self, client):
        resp = client.post("/api/export/word", json={"messages": self.MESSAGES[:1]})
        assert resp.status_code == 400
        assert resp.json() == {"error": "出力できる回答がありません"}

    def test_invalid_role(self, client):
        resp = client.post("/api/export/csv", json={"messages": [{"role": "system", "content": "x"}]})
        assert resp.status_code == 400

    def test_unknown_format(self, client):
        resp = client.post("/api/export/pdf", json={"messages": self.MESSAGES})
        assert resp.status_code == 404


class TestPage:

    def test_index(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "決算サポートAI" in resp.text
        assert "__BUSINESS_BUTTONS__" not in resp.text
        assert "__DEFAULT_BUSINESS__" not in resp.text

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok", "configured": True}
