"""Tests for the closed expression language used by formula and conditional rules."""

from __future__ import annotations

from typing import Any

import pytest

from normacheck.errors import ExpressionSyntaxError, ExpressionTypeError, UndefinedFieldError
from normacheck.rules.expressions import (
    Compare,
    evaluate,
    evaluate_condition,
    field_paths,
    parse_expression,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fields() -> dict[str, Any]:
    return {
        "gross_floor_area": 150,
        "building_type": "residential",
        "is_rehabilitation": False,
        "fire_safety.number_of_exits": 2,
        "fire_safety.has_sprinklers": True,
        "computed.required_resistance": 30,
        "computed.risk_category": 2,
    }


@pytest.fixture
def resolve(fields: dict[str, Any]):
    def _resolve(path: str) -> Any:
        if path not in fields:
            raise UndefinedFieldError(path)
        return fields[path]

    return _resolve


def run(text: str, resolve) -> Any:
    return evaluate(parse_expression(text), resolve)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParsing:
    def test_dotted_path_is_one_field(self) -> None:
        node = parse_expression("fire_safety.number_of_exits >= 2")
        assert isinstance(node, Compare)
        assert field_paths(node) == {"fire_safety.number_of_exits"}

    def test_field_paths_inside_calls_and_lists(self) -> None:
        node = parse_expression("default(a.b, 0) + max(c, d) in [e, 1]")
        assert field_paths(node) == {"a.b", "c", "d", "e"}

    def test_parse_is_cached(self) -> None:
        assert parse_expression("1 + 2") is parse_expression("1 + 2")

    @pytest.mark.parametrize(
        "text",
        ["", "1 +", "(1 + 2", "a >= >= 2", "1 2", "[1, 2", "'open", "a $ b", "in"],
    )
    def test_syntax_errors(self, text: str) -> None:
        with pytest.raises(ExpressionSyntaxError):
            parse_expression(text)

    def test_unknown_function_is_rejected_at_parse_time(self) -> None:
        with pytest.raises(ExpressionSyntaxError, match="unknown function"):
            parse_expression("__import__('os')")

    @pytest.mark.parametrize(
        "text",
        [
            "gross_floor_area > 1" + "0" * 5000,
            "(" * 2000 + "1" + ")" * 2000 + " > 0",
        ],
        ids=["oversized-literal", "deep-nesting"],
    )
    def test_pathological_input_is_a_syntax_error(self, text: str) -> None:
        with pytest.raises(ExpressionSyntaxError):
            parse_expression(text)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class TestArithmetic:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1 + 2 * 3", 7),
            ("(1 + 2) * 3", 9),
            ("10 / 4", 2.5),
            ("-3 + 5", 2),
            ("2 - -2", 4),
            ("gross_floor_area * 0.04", 6.0),
        ],
    )
    def test_precedence_and_fields(self, text: str, expected: float, resolve) -> None:
        assert run(text, resolve) == pytest.approx(expected)

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("min(3, 1, 2)", 1),
            ("max(3, 1, 2)", 3),
            ("abs(-4)", 4),
            ("ceil(2.1)", 3),
            ("floor(2.9)", 2),
            ("round(2.456, 2)", 2.46),
            ("sqrt(16)", 4),
            ("num('2.5')", 2.5),
        ],
    )
    def test_functions(self, text: str, expected: float, resolve) -> None:
        assert run(text, resolve) == pytest.approx(expected)

    def test_division_by_zero(self, resolve) -> None:
        with pytest.raises(ExpressionTypeError, match="division by zero"):
            run("1 / 0", resolve)

    def test_booleans_are_not_numbers(self, resolve) -> None:
        with pytest.raises(ExpressionTypeError):
            run("is_rehabilitation + 1", resolve)

    def test_strings_are_not_numbers(self, resolve) -> None:
        with pytest.raises(ExpressionTypeError):
            run("building_type * 2", resolve)


class TestComparisons:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("fire_safety.number_of_exits >= 2", True),
            ("fire_safety.number_of_exits > 2", False),
            ("computed.required_resistance == 30.0", True),
            ("building_type == 'residential'", True),
            ("building_type != 'commercial'", True),
            ("building_type in ['residential', 'mixed']", True),
            ("building_type not in ['residential', 'mixed']", False),
            ("computed.risk_category in [1, 2]", True),
            ("fire_safety.has_sprinklers == true", True),
            ("is_rehabilitation == false", True),
            ("'a' < 'b'", True),
        ],
    )
    def test_comparison(self, text: str, expected: bool, resolve) -> None:
        assert run(text, resolve) is expected

    def test_ordering_mixed_types_fails(self, resolve) -> None:
        with pytest.raises(ExpressionTypeError, match="cannot order"):
            run("building_type > 3", resolve)

    def test_bool_does_not_equal_number(self, resolve) -> None:
        assert run("fire_safety.has_sprinklers == 1", resolve) is False

    def test_in_requires_list(self, resolve) -> None:
        with pytest.raises(ExpressionTypeError):
            run("1 in 2", resolve)


class TestLogic:
    def test_and_or_not(self, resolve) -> None:
        assert run("gross_floor_area > 100 and not is_rehabilitation", resolve) is True
        assert run("gross_floor_area > 500 or building_type == 'residential'", resolve) is True
        assert run("not (gross_floor_area > 100)", resolve) is False

    def test_and_short_circuits_undefined_fields(self, resolve) -> None:
        assert run("gross_floor_area > 500 and missing.field > 1", resolve) is False

    def test_or_short_circuits_undefined_fields(self, resolve) -> None:
        assert run("gross_floor_area > 100 or missing.field > 1", resolve) is True


class TestUndefinedFields:
    def test_undefined_field_raises(self, resolve) -> None:
        with pytest.raises(UndefinedFieldError) as excinfo:
            run("fire_safety.fire_resistance >= 30", resolve)
        assert excinfo.value.path == "fire_safety.fire_resistance"

    def test_default_replaces_undefined(self, resolve) -> None:
        assert run("default(fire_safety.fire_resistance, 0)", resolve) == 0

    def test_default_keeps_defined_value(self, resolve) -> None:
        assert run("default(fire_safety.number_of_exits, 0)", resolve) == 2

    def test_default_fallback_only_evaluated_when_needed(self, resolve) -> None:
        assert run("default(gross_floor_area, missing.field)", resolve) == 150

    def test_default_with_null(self, resolve) -> None:
        assert run("default(missing.field, null) != null", resolve) is False


class TestEvaluateCondition:
    def test_comparison_reports_operands(self, resolve) -> None:
        outcome = evaluate_condition("fire_safety.number_of_exits >= computed.risk_category + 1", resolve)
        assert outcome.passed is True
        assert outcome.left == 2
        assert outcome.right == 3

    def test_logical_expression_has_no_operands(self, resolve) -> None:
        outcome = evaluate_condition("gross_floor_area > 100 and building_type == 'residential'", resolve)
        assert outcome.passed is True
        assert outcome.left is None and outcome.right is None

    def test_non_boolean_result_is_a_type_error(self, resolve) -> None:
        with pytest.raises(ExpressionTypeError, match="true/false"):
            evaluate_condition("gross_floor_area + 1", resolve)
