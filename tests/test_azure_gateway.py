"""
Tests for the Azure OpenAI gateway.
"""

import asyncio
import json

import httpx
import pytest

from src.kessan.config import AzureOpenAIConfig
from src.kessan.exceptions import ProviderError, ProviderHTTPError, ProviderResponseError
from src.kessan.llm import AzureOpenAIGateway, create_gateway
from src.kessan.models import FileReferenceBlock, TextBlock


def _config(api_style: str = "responses") -> AzureOpenAIConfig:
    return AzureOpenAIConfig(
        endpoint="https://example.openai.azure.com/",
        api_key="secret",
        api_version="2025-04-01-preview",
        deployment="kessan-gpt",
        api_style=api_style,
    )


class RecordingHandler:
    """MockTransport handler that records requests and replays a fixed response."""

    def __init__(self, status_code: int = 200, body=None, text=None):
        self.status_code = status_code
        self.body = body
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)


def _complete(gateway, blocks, system_prompt="system"):
    return asyncio.run(gateway.complete(system_prompt, blocks))


class TestResponsesStyle:

    def test_request_shape(self):
        handler = RecordingHandler(body={"output_text": "回答です"})
        gateway = create_gateway(_config(), transport=httpx.MockTransport(handler))
        pdf = FileReferenceBlock.from_bytes(b"%PDF", "application/pdf", "report.pdf")

        reply = _complete(gateway, [TextBlock("質問"), pdf], system_prompt="あなたは会計士です")

        assert reply == "回答です"
        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/openai/responses"
        assert request.url.params["api-version"] == "2025-04-01-preview"
        assert request.headers["api-key"] == "secret"

        payload = json.loads(request.content)
        assert payload["model"] == "kessan-gpt"
        assert payload["input"][0] == {"role": "system", "content": "あなたは会計士です"}
        assert payload["input"][1]["role"] == "user"
        assert payload["input"][1]["content"] == [
            {"type": "input_text", "text": "質問"},
            {"type": "input_file", "file_data": pdf.data_url, "filename": "report.pdf"},
        ]

    def test_model_id(self):
        assert AzureOpenAIGateway(_config()).model_id == "kessan-gpt"


class TestChatCompletionsStyle:

    def test_request_shape(self):
        handler = RecordingHandler(body={"choices": [{"message": {"content": "chat reply"}}]})
        gateway = create_gateway(_config("chat_completions"), transport=httpx.MockTransport(handler))
        pdf = FileReferenceBlock.from_bytes(b"%PDF", "application/pdf", "report.pdf")

        reply = _complete(gateway, [TextBlock("質問"), pdf])

        assert reply == "chat reply"
        request = handler.requests[0]
        assert request.url.path == "/chat/completions"
        payload = json.loads(request.content)
        assert payload["max_completion_tokens"] == 4096
        assert payload["messages"][0] == {"role": "system", "content": "system"}
        assert payload["messages"][1]["content"] == [
            {"type": "text", "text": "質問"},
            {"type": "file", "file": {"filename": "report.pdf", "file_data": pdf.data_url}},
        ]


class TestErrors:

    def test_http_error_carries_raw_body_without_retry(self):
        raw = '{"error": {"code": "429", "message": "Rate limit"}}'
        handler = RecordingHandler(status_code=429, text=raw)
        gateway = create_gateway(_config(), transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderHTTPError) as exc_info:
            _complete(gateway, [TextBlock("質問")])

        assert exc_info.value.status_code == 429
        assert exc_info.value.body == raw
        assert len(handler.requests) == 1

    def test_invalid_json(self):
        handler = RecordingHandler(text="<html>gateway timeout</html>")
        gateway = create_gateway(_config(), transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderResponseError) as exc_info:
            _complete(gateway, [TextBlock("質問")])
        assert exc_info.value.body == "<html>gateway timeout</html>"

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = create_gateway(_config(), transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderError):
            _complete(gateway, [TextBlock("質問")])

    def test_unrecognised_body_is_not_an_error(self):
        handler = RecordingHandler(body={"id": "resp_1", "status": "incomplete"})
        gateway = create_gateway(_config(), transport=httpx.MockTransport(handler))

        reply = _complete(gateway, [TextBlock("質問")])
        assert reply.startswith("【応答テキストを取得できませんでした")
