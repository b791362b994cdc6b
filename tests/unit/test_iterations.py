"""
Unit tests for the iteration generator (apidrift/generation/iterations.py)

Tests covering:
- ALL_COMBINATIONS product order and truncation
- ONE_BY_ONE defaults and single-token deviations
- Strategy name resolution
- Original-payload iteration
"""

import pytest

from apidrift.generation.iterations import (
    IterationStrategy,
    generate,
    with_original_payload,
)


def as_dicts(iterations):
    return [dict(item) for item in iterations]


class TestAllCombinations:
    """Tests for the truncated Cartesian product."""

    def test_product_in_insertion_order(self):
        """Test last token varies fastest."""
        tokens = {"a": [1, 2], "b": ["x", "y"]}

        result = as_dicts(generate(tokens, 10))

        assert result == [
            {"a": 1, "b": "x"},
            {"a": 1, "b": "y"},
            {"a": 2, "b": "x"},
            {"a": 2, "b": "y"},
        ]

    def test_product_count(self):
        """Test count equals the product of value counts when under the cap."""
        tokens = {"a": [1, 2, 3], "b": ["x", "y"], "c": [True, False]}

        assert len(generate(tokens, 100)) == 12

    def test_truncates_at_max_iterations(self):
        """Test generation stops once the cap is reached."""
        tokens = {"a": [1, 2], "b": ["x", "y"]}

        result = as_dicts(generate(tokens, 3))

        assert result == [
            {"a": 1, "b": "x"},
            {"a": 1, "b": "y"},
            {"a": 2, "b": "x"},
        ]

    def test_truncation_returns_partial_assignments(self):
        """Test a cap hit while expanding an earlier token returns partial assignments."""
        tokens = {"a": [1, 2, 3], "b": ["x", "y"]}

        result = as_dicts(generate(tokens, 2))

        assert result == [{"a": 1}, {"a": 2}]

    def test_single_token(self):
        """Test single token yields one assignment per value."""
        result = as_dicts(generate({"id": ["1", "2", "3"]}, 10))

        assert result == [{"id": "1"}, {"id": "2"}, {"id": "3"}]

    def test_deterministic(self):
        """Test repeated calls produce identical sequences."""
        tokens = {"a": [1, 2], "b": ["x", "y"], "c": [0.5]}

        assert as_dicts(generate(tokens, 50)) == as_dicts(generate(tokens, 50))


class TestOneByOne:
    """Tests for the ONE_BY_ONE strategy."""

    def test_defaults_then_deviations(self):
        """Test first assignment holds defaults, then one token varies at a time."""
        tokens = {"a": [1, 2, 3], "b": ["x", "y"]}

        result = as_dicts(generate(tokens, 10, IterationStrategy.ONE_BY_ONE))

        assert result == [
            {"a": 1, "b": "x"},
            {"a": 2, "b": "x"},
            {"a": 3, "b": "x"},
            {"a": 1, "b": "y"},
        ]

    def test_count_is_one_plus_non_default_values(self):
        """Test count equals 1 + sum(len(values) - 1)."""
        tokens = {"a": [1, 2, 3], "b": ["x", "y"], "c": [True]}

        result = generate(tokens, 100, "ONE_BY_ONE")

        assert len(result) == 1 + 2 + 1 + 0

    def test_duplicate_of_default_skipped(self):
        """Test values equal to the default do not produce extra iterations."""
        tokens = {"a": ["x", "y", "x"]}

        result = as_dicts(generate(tokens, 10, "ONE_BY_ONE"))

        assert result == [{"a": "x"}, {"a": "y"}]

    def test_bool_and_number_are_distinct(self):
        """Test True is not treated as a duplicate of 1."""
        tokens = {"flag": [1, True]}

        result = as_dicts(generate(tokens, 10, "ONE_BY_ONE"))

        assert len(result) == 2
        assert result[1]["flag"] is True

    def test_truncates_at_max_iterations(self):
        """Test ONE_BY_ONE honours the cap."""
        tokens = {"a": [1, 2, 3], "b": ["x", "y"]}

        result = as_dicts(generate(tokens, 2, "one_by_one"))

        assert result == [{"a": 1, "b": "x"}, {"a": 2, "b": "x"}]


class TestGenerateInputs:
    """Tests for input validation and edge cases."""

    def test_empty_tokens_yield_single_empty_assignment(self):
        """Test empty token spec produces one empty assignment."""
        assert as_dicts(generate({}, 5)) == [{}]
        assert as_dicts(generate(None, 5)) == [{}]

    @pytest.mark.parametrize("max_iterations", [0, -1])
    def test_rejects_non_positive_max(self, max_iterations):
        """Test max_iterations below 1 raises ValueError."""
        with pytest.raises(ValueError):
            generate({"a": [1]}, max_iterations)

    def test_assignments_are_read_only(self):
        """Test returned assignments cannot be mutated."""
        result = generate({"a": [1]}, 5)

        with pytest.raises(TypeError):
            result[0]["a"] = 2

    def test_unknown_strategy_falls_back(self):
        """Test unknown strategy name uses ALL_COMBINATIONS."""
        assert IterationStrategy.parse("RANDOM") is IterationStrategy.ALL_COMBINATIONS
        assert IterationStrategy.parse(None) is IterationStrategy.ALL_COMBINATIONS
        assert IterationStrategy.parse(" one_by_one ") is IterationStrategy.ONE_BY_ONE


class TestOriginalPayload:
    """Tests for the prepended original-payload iteration."""

    def test_prepends_empty_assignment_when_tokens_exist(self):
        """Test an empty assignment runs first when tokens are configured."""
        tokens = {"a": [1, 2]}

        result = as_dicts(with_original_payload(tokens, generate(tokens, 10)))

        assert result == [{}, {"a": 1}, {"a": 2}]

    def test_no_prepend_without_tokens(self):
        """Test nothing is prepended when no tokens are configured."""
        result = with_original_payload({}, generate({}, 10))

        assert as_dicts(result) == [{}]
