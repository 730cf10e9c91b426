"""Tests for outline synthesis and response parsing."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from bookcraft.common import ChatResult, CredentialError, ErrorKind, OutlineError
from bookcraft.outline import (
    BookOutlineGenerator,
    DocumentFormat,
    GenerationConfig,
    build_outline_prompt,
)
from bookcraft.outline.outline_service import parse_outline_response, resolve_text_api_key

_KEY_VARS = ("BOOKCRAFT_API_KEY", "GEMINI_API_KEY", "OPENAI_API_KEY", "LITELLM_API_KEY")


@pytest.fixture
def no_text_keys(monkeypatch):
    for name in _KEY_VARS:
        monkeypatch.delenv(name, raising=False)


class TestParseOutlineResponse:
    def test_plain_json(self):
        draft = parse_outline_response(
            '{"title": "Rivers", "sections": [{"title": "Source", "description": "Springs"}]}'
        )
        assert draft.title == "Rivers"
        assert draft.sections[0].title == "Source"
        assert draft.sections[0].description == "Springs"

    def test_code_fenced_json(self):
        raw = '```json\n{"title": "Rivers", "sections": [{"title": "Delta"}]}\n```'
        draft = parse_outline_response(raw)
        assert [entry.title for entry in draft.sections] == ["Delta"]
        assert draft.sections[0].description == ""

    def test_missing_title_is_empty(self):
        draft = parse_outline_response('{"sections": [{"title": "Delta"}]}')
        assert draft.title == ""

    def test_chapters_key_accepted(self):
        draft = parse_outline_response('{"title": "T", "chapters": [{"title": "One"}]}')
        assert len(draft.sections) == 1

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "not json",
            "[1, 2]",
            '{"title": "T"}',
            '{"title": "T", "sections": []}',
            '{"title": "T", "sections": [{"description": "no title"}]}',
            '{"title": "T", "sections": ["plain string"]}',
        ],
    )
    def test_unusable_payloads(self, raw):
        with pytest.raises(OutlineError) as excinfo:
            parse_outline_response(raw)
        assert excinfo.value.kind is ErrorKind.PARSE_ERROR


class TestBookOutlineGenerator:
    def test_missing_key_raises_before_request(self, no_text_keys):
        completion_fn = MagicMock()
        generator = BookOutlineGenerator(completion_fn=completion_fn)

        with pytest.raises(CredentialError):
            generator.generate_outline(GenerationConfig(topic="Rivers"))
        completion_fn.assert_not_called()

    def test_key_resolved_from_environment(self, no_text_keys, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "gem")
        assert resolve_text_api_key() == "gem"
        monkeypatch.setenv("BOOKCRAFT_API_KEY", "own")
        assert resolve_text_api_key() == "own"
        assert resolve_text_api_key("explicit") == "explicit"

    def test_requests_json_and_parses_result(self):
        completion_fn = MagicMock(
            return_value=ChatResult(
                text='{"title": "Rivers", "sections": [{"title": "Source", "description": "d"}]}',
                raw=None,
            )
        )
        generator = BookOutlineGenerator(api_key="key", model="test/model", completion_fn=completion_fn)

        draft = generator.generate_outline(GenerationConfig(topic="Rivers"))

        assert draft.title == "Rivers"
        kwargs = completion_fn.call_args.kwargs
        assert kwargs["model"] == "test/model"
        assert kwargs["api_key"] == "key"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["role"] == "system"

    def test_request_failure_is_outline_error(self):
        completion_fn = MagicMock(side_effect=RuntimeError("timeout"))
        generator = BookOutlineGenerator(api_key="key", completion_fn=completion_fn)

        with pytest.raises(OutlineError) as excinfo:
            generator.generate_outline(GenerationConfig(topic="Rivers"))
        assert excinfo.value.kind is ErrorKind.PROVIDER_ERROR


class TestOutlinePrompt:
    def test_mentions_inputs(self):
        config = GenerationConfig(topic="Rivers", audience="Students", section_count=4)
        prompt = build_outline_prompt(config)

        assert "Rivers" in prompt.user
        assert "Students" in prompt.user
        assert "4" in prompt.user
        assert "JSON" in prompt.system or "JSON" in prompt.user

    def test_slide_deck_variant_differs(self):
        document = build_outline_prompt(GenerationConfig(topic="Rivers"))
        slides = build_outline_prompt(GenerationConfig(topic="Rivers", format=DocumentFormat.SLIDE_DECK))
        assert document.as_messages() != slides.as_messages()
