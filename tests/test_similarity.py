"""Tests for the LCS similarity score used by the fuzzy catalog.

Run with: python -m pytest tests/test_similarity.py -v
"""

import pytest

from natcmd.core.similarity import lcs_length, score


class TestLcsLength:

    @pytest.mark.parametrize("a,b,expected", [
        ("", "", 0),
        ("abc", "", 0),
        ("abc", "abc", 3),
        ("abcdef", "acf", 3),
        ("buld the solution", "build the solution", 17),
        ("xyz", "abc", 0),
    ])
    def test_known_values(self, a, b, expected):
        assert lcs_length(a, b) == expected


class TestScore:

    def test_identical_is_one(self):
        assert score("maximize window", "maximize window") == 1.0

    def test_case_insensitive(self):
        assert score("Build The Solution", "build the solution") == 1.0

    def test_both_empty_is_zero(self):
        assert score("", "") == 0.0

    def test_symmetric(self):
        assert score("close tab", "close the tab") == score("close the tab", "close tab")

    def test_exact_boundary_value(self):
        assert score("abcdef", "abcdefghij") == 0.6

    def test_range(self):
        for a, b in [("a", "b"), ("open downloads", "open documents"), ("x", "xxxx")]:
            assert 0.0 <= score(a, b) <= 1.0

    def test_closer_spelling_never_scores_lower(self):
        target = "build the solution"
        steps = ["bld th slutn", "buld the slution", "buld the solution", "build the solution"]
        scores = [score(s, target) for s in steps]
        assert scores == sorted(scores)
