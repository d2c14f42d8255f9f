"""Tests for grc.tiers: complexity classification and model selection."""

import pytest

from grc.tiers import (
    MODELS,
    Classification,
    classify,
    model_info,
    select_model_id,
)

COMPLEX = Classification.COMPLEX
SIMPLE = Classification.SIMPLE


class TestClassify:
    def test_read_request_is_simple(self):
        assert classify("read package.json", []) is SIMPLE

    def test_mutating_prior_tool_wins_over_simple_keyword(self):
        assert classify("show me the file", ["Read", "Edit"]) is COMPLEX

    def test_write_prior_tool(self):
        assert classify("ok", ["Write"]) is COMPLEX

    def test_complex_keyword_wins_over_simple_keyword(self):
        assert classify("read the parser and refactor it", []) is COMPLEX

    @pytest.mark.parametrize(
        "message",
        ["Implement caching", "please DEBUG this", "fix bug in login", "Explain why it fails"],
    )
    def test_complex_keywords(self, message):
        assert classify(message, []) is COMPLEX

    @pytest.mark.parametrize(
        "message", ["list the tests", "Where is main defined", "fetch the config", "grep it: search"]
    )
    def test_simple_keywords(self, message):
        assert classify(message, []) is SIMPLE

    def test_keywords_match_at_word_start_only(self):
        # "ecosystem" contains "system" but not at a word start
        assert classify("tell me about the ecosystem", []) is SIMPLE

    def test_keyword_prefix_of_longer_word_matches(self):
        assert classify("the systems here", []) is COMPLEX

    def test_read_only_history_makes_long_message_simple(self):
        message = "x" * 300
        assert classify(message, ["Read", "Glob", "Grep"]) is SIMPLE

    def test_long_message_is_complex(self):
        assert classify("x" * 201, []) is COMPLEX

    def test_boundary_length_is_simple(self):
        assert classify("x" * 200, []) is SIMPLE

    def test_many_lines_is_complex(self):
        assert classify("a\nb\nc\nd\ne\nf", []) is COMPLEX

    def test_five_lines_is_simple(self):
        assert classify("a\nb\nc\nd\ne", []) is SIMPLE

    def test_non_read_only_history_falls_through_to_length(self):
        assert classify("x" * 300, ["Read", "Bash"]) is COMPLEX

    def test_default_simple(self):
        assert classify("hello", []) is SIMPLE
        assert classify("hello") is SIMPLE


class TestSelectModel:
    def test_override_wins(self):
        assert select_model_id(COMPLEX, "my/model", True) == "my/model"

    @pytest.mark.parametrize(
        "classification,experimental,expected",
        [
            (COMPLEX, False, "llama-3.3-70b-versatile"),
            (SIMPLE, False, "llama-3.1-8b-instant"),
            (COMPLEX, True, "meta-llama/llama-4-maverick-17b-128e-instruct"),
            (SIMPLE, True, "meta-llama/llama-4-scout-17b-16e-instruct"),
        ],
    )
    def test_table(self, classification, experimental, expected):
        assert select_model_id(classification, None, experimental) == expected

    def test_accepts_string_classification(self):
        assert select_model_id("simple") == MODELS[(SIMPLE, False)]


class TestModelInfo:
    def test_known(self):
        info = model_info("llama-3.1-8b-instant")
        assert info.name == "Llama 3.1 8B"
        assert info.tier == "Light"

    def test_unknown(self):
        info = model_info("mystery")
        assert info.name == "mystery"
        assert info.tier == "Unknown"
