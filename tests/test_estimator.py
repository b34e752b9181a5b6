"""Tests for token estimation."""

import math

import pytest

from ctxbudget.estimator import TokenEstimator, estimate_tokens, format_tokens


class TestEstimateTokens:
    """Test cases for the character heuristic."""

    def test_empty_string_is_zero(self):
        assert estimate_tokens("") == 0

    @pytest.mark.parametrize("text", ["a", "abcd", "abcde", "x" * 99, "héllo wörld", "line\n" * 7])
    def test_ceil_of_quarter_length(self, text):
        assert estimate_tokens(text) == math.ceil(len(text) / 4)

    def test_monotonic_in_length(self):
        counts = [estimate_tokens("y" * n) for n in range(50)]
        assert counts == sorted(counts)

    def test_estimator_class_uses_same_rule(self):
        assert TokenEstimator().count("12345") == 2


class TestFormatting:
    """Test cases for token display strings."""

    def test_small_counts_are_plain(self):
        assert format_tokens(999) == "999"

    def test_thousands_use_k_suffix(self):
        assert format_tokens(1943) == "1.9k"
        assert format_tokens(200000) == "200.0k"
