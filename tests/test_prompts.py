"""Tests for system prompt selection."""

from src.kessan.prompts import (
    REPLY_DRAFTING_PROMPT,
    build_accounting_prompt,
    select_system_prompt,
)


def test_no_files_uses_accounting_prompt():
    prompt = select_system_prompt([], "税効果会計", "review")
    assert prompt == build_accounting_prompt("税効果会計", "review")
    assert "業務タイプ: 税効果会計" in prompt
    assert "モード: review" in prompt


def test_email_attachment_switches_to_reply_drafting():
    assert select_system_prompt(["tb.xlsx", "inquiry.eml"], "x", "y") == REPLY_DRAFTING_PROMPT


def test_msg_extension_is_case_insensitive():
    assert select_system_prompt(["INQUIRY.MSG"], "x", "y") == REPLY_DRAFTING_PROMPT


def test_free_text_fields_are_not_validated():
    prompt = select_system_prompt(["memo.docx"], "", "何でも")
    assert "業務タイプ: \n" in prompt
    assert "モード: 何でも" in prompt
