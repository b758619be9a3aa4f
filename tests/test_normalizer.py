"""Tests for the text normalizer.

Pure Python tests. No OS calls required.
Tests verify that:
- Politeness phrases are stripped as whole phrases, even around punctuation
- Substitutions apply once, on whole words only
- Unsafe substitution entries are rejected when the normalizer is built
- normalize(normalize(s)) == normalize(s)

Run with: python -m pytest tests/test_normalizer.py -v
"""

import pytest

from natcmd.core.normalizer import (
    NormalizedText,
    TextNormalizer,
    normalize,
    sanitize_substitutions,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def normalizer():
    return TextNormalizer({"closed": "close", "propertys": "properties", "shut": "close tab"})


IDEMPOTENCE_CORPUS = [
    "",
    "   ",
    "Maximize Window",
    "please close tab",
    "Could you, please, maximize the window!",
    "could. you please close, tab",
    "can please you open downloads",
    "would you kindly would you open my documents?",
    "closed the tab",
    "shut",
    "show propertys window",
    "enclosed   spaces\tand\nnewlines",
    "kindly kindly please",
    '"quoted" text; with: punctuation?',
    "emoji set happy 😀",
]


# ============================================================================
# POLITENESS
# ============================================================================

class TestPoliteness:

    def test_scenario_please_close_tab(self, normalizer):
        assert normalizer.normalize("please close tab") == "close tab"

    def test_punctuation_between_phrase_words(self, normalizer):
        assert normalizer.normalize("Could you, please, maximize the window!") == "maximize the window"

    def test_phrase_joined_by_removal_is_also_removed(self, normalizer):
        # removing "please" leaves "can you", which is itself a phrase
        assert normalizer.normalize("can please you open downloads") == "open downloads"

    def test_longest_phrase_wins(self, normalizer):
        assert normalizer.normalize("would you kindly open downloads") == "open downloads"

    def test_only_whole_words(self, normalizer):
        assert normalizer.normalize("pleased to meet") == "pleased to meet"

    def test_politeness_only_input_becomes_empty(self, normalizer):
        assert normalizer.normalize("please") == ""


# ============================================================================
# SUBSTITUTIONS
# ============================================================================

class TestSubstitutions:

    def test_whole_word_replacement(self, normalizer):
        assert normalizer.normalize("closed tab") == "close tab"
        assert normalizer.normalize("show propertys") == "show properties"

    def test_substring_is_not_replaced(self, normalizer):
        assert normalizer.normalize("enclosed area") == "enclosed area"

    def test_applied_exactly_once(self, normalizer):
        # "shut" -> "close tab" must not be processed again
        assert normalizer.normalize("shut") == "close tab"

    def test_sanitizer_rejects_unsafe_entries(self):
        table = {
            "Closed": "close",
            "x": "please go",     # reuses a politeness word
            "a": "b",             # reuses another key
            "b": "c",
            "empty": "",
            "": "nothing",
        }
        safe = sanitize_substitutions(table)
        assert safe == {"closed": "close", "b": "c"}

    def test_non_string_values_are_ignored(self):
        assert sanitize_substitutions({"one": 1, "two": "2"}) == {"two": "2"}


# ============================================================================
# SHAPE AND IDEMPOTENCE
# ============================================================================

class TestShape:

    def test_returns_normalized_text(self):
        result = normalize("Open Downloads")
        assert isinstance(result, NormalizedText)
        assert isinstance(result, str)
        assert result == "open downloads"

    def test_none_and_empty_are_total(self):
        assert normalize(None) == ""
        assert normalize("") == ""

    def test_whitespace_collapsed_and_trimmed(self, normalizer):
        assert normalizer.normalize("  open \t  my\n downloads  ") == "open my downloads"

    def test_punctuation_never_merges_words(self, normalizer):
        assert normalizer.normalize("left,half") == "left half"

    @pytest.mark.parametrize("raw", IDEMPOTENCE_CORPUS)
    def test_idempotent(self, normalizer, raw):
        once = normalizer.normalize(raw)
        assert normalizer.normalize(once) == once

    @pytest.mark.parametrize("raw", IDEMPOTENCE_CORPUS)
    def test_default_normalizer_idempotent(self, raw):
        once = normalize(raw)
        assert normalize(once) == once
