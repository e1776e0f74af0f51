"""
Tests for provider response normalization.
"""

import json

from src.kessan.llm.response import (
    EMPTY_RESPONSE_MESSAGE,
    FALLBACK_DUMP_CHARS,
    FALLBACK_HEADER,
    STRATEGIES,
    extract_reply_text,
    normalize_reply,
)


class TestStrategies:

    def test_strategy_order(self):
        assert [name for name, _ in STRATEGIES] == [
            "output_message",
            "output_text",
            "output_message_content",
            "first_output_content",
            "chat_choices",
        ]

    def test_output_message_parts(self):
        data = {
            "output": [
                {"type": "reasoning", "content": []},
                {
                    "type": "message",
                    "content": [
                        {"type": "output_text", "text": "一行目"},
                        {"type": "refusal", "refusal": "no"},
                        {"type": "output_text", "text": "二行目"},
                    ],
                },
            ],
        }
        assert normalize_reply(data) == "一行目\n二行目"

    def test_output_message_wins_over_output_text(self):
        data = {
            "output_text": "convenience",
            "output": [{"type": "message", "content": [{"type": "output_text", "text": "structured"}]}],
        }
        assert normalize_reply(data) == "structured"

    def test_top_level_output_text(self):
        assert normalize_reply({"output_text": "回答です"}) == "回答です"

    def test_blank_output_text_is_skipped(self):
        data = {"output_text": "   ", "choices": [{"message": {"content": "chat reply"}}]}
        assert normalize_reply(data) == "chat reply"

    def test_output_object_message_content(self):
        data = {"output": {"message": {"content": [{"text": "a"}, {"text": {"value": "b"}}]}}}
        assert normalize_reply(data) == "a\nb"

    def test_first_output_content_any_type(self):
        data = {"output": [{"type": "custom", "content": [{"text": {"value": "nested"}}]}]}
        assert normalize_reply(data) == "nested"

    def test_chat_choices(self):
        data = {"choices": [{"index": 0, "message": {"role": "assistant", "content": "chat"}}]}
        assert normalize_reply(data) == "chat"

    def test_extract_returns_none_when_nothing_matches(self):
        assert extract_reply_text({"id": "resp_1"}) is None


class TestFallback:

    def test_empty_data(self):
        assert normalize_reply(None) == EMPTY_RESPONSE_MESSAGE
        assert normalize_reply("") == EMPTY_RESPONSE_MESSAGE
        assert normalize_reply(False) == EMPTY_RESPONSE_MESSAGE
        assert normalize_reply(0) == EMPTY_RESPONSE_MESSAGE

    def test_empty_object_and_array_return_raw_dump(self):
        assert normalize_reply({}) == FALLBACK_HEADER + "\n{}\n"
        assert normalize_reply([]) == FALLBACK_HEADER + "\n[]\n"

    def test_unrecognised_shape_returns_raw_dump(self):
        data = {"id": "resp_1", "status": "incomplete"}
        reply = normalize_reply(data)

        assert reply.startswith(FALLBACK_HEADER + "\n")
        assert json.dumps(data, indent=2, ensure_ascii=False) in reply
        assert reply.endswith("\n")

    def test_dump_is_capped(self):
        reply = normalize_reply({"status": "x" * 5000})
        dump = reply[len(FALLBACK_HEADER) + 1:-1]
        assert len(dump) == FALLBACK_DUMP_CHARS

    def test_non_dict_body(self):
        reply = normalize_reply(["unexpected"])
        assert reply.startswith(FALLBACK_HEADER)
