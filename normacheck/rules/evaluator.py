"""Rule evaluation: one Finding per applicable rule, in rule order."""

from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import BaseModel

from normacheck.errors import ExpressionTypeError, RuleEvaluationError, UndefinedFieldError
from normacheck.models.findings import Finding, Severity
from normacheck.models.project import BuildingProject, as_number, resolve_path
from normacheck.rules.expressions import compare, evaluate_condition
from normacheck.rules.models import Rule, ValidationKind

logger = logging.getLogger(__name__)

_MISSING = object()


def build_context(project: BuildingProject, computed: BaseModel | dict[str, Any] | None) -> dict[str, Any]:
    """Return the mapping rule paths resolve against.

    Project fields are addressed directly (``gross_floor_area``,
    ``fire_safety.number_of_exits``); derived values live under
    ``computed.``.
    """
    context = project.to_context()
    if isinstance(computed, BaseModel):
        context["computed"] = computed.model_dump()
    else:
        context["computed"] = dict(computed or {})
    return context


def make_resolver(context: dict[str, Any]) -> Callable[[str], Any]:
    """Return a strict resolver: absent or null paths raise UndefinedFieldError."""

    def resolve(path: str) -> Any:
        value = resolve_path(context, path, _MISSING)
        if value is _MISSING:
            raise UndefinedFieldError(path)
        return value

    return resolve


def in_scope(rule: Rule, context: dict[str, Any]) -> bool:
    """True when the rule applies to the project's building and usage type."""
    scope = rule.scope
    if scope.building_types and context.get("building_type") not in scope.building_types:
        return False
    if scope.usage_types:
        usage = resolve_path(context, "computed.usage_type") or resolve_path(context, "fire_safety.usage_type")
        if usage not in scope.usage_types:
            return False
    return True


def evaluate_rule(rule: Rule, context: dict[str, Any]) -> Finding | None:
    """Evaluate a single rule against a resolved context.

    Returns *None* when a conditional rule's guard is false.  Raises a
    :class:`RuleEvaluationError` subclass when the rule cannot be evaluated.

    Parameters
    ----------
    rule:
        The rule to evaluate.
    context:
        Mapping built by :func:`build_context`.
    """
    resolve = make_resolver(context)
    spec = rule.value_spec
    kind = rule.kind

    # Any rule may carry a guard; only conditional rules require one
    if spec.condition and kind is not ValidationKind.CONDITIONAL:
        if not evaluate_condition(spec.condition, resolve).passed:
            return None

    if kind is ValidationKind.RANGE:
        actual = _numeric(resolve(spec.field), spec.field)
        ok = (spec.min is None or actual >= spec.min) and (spec.max is None or actual <= spec.max)
        required = _range_text(spec.min, spec.max, spec.unit)
        if ok:
            text = f"{spec.field} = {_fmt(actual, spec.unit)} is within {required}."
        else:
            text = f"{spec.field} = {_fmt(actual, spec.unit)} is outside the allowed range {required}."
        return _finding(rule, ok, text, actual, required)

    if kind is ValidationKind.THRESHOLD:
        raw = resolve(spec.field)
        required = resolve(spec.reference) if spec.reference else spec.value
        if required is None:
            raise RuleEvaluationError(f"rule {rule.id} has no threshold value")
        ok, actual, required = _threshold(spec.operator, raw, required, spec.field)
        text = _threshold_text(spec.field, spec.operator, actual, required, spec.unit, ok)
        return _finding(rule, ok, text, actual, required)

    if kind is ValidationKind.FORMULA:
        if not spec.formula:
            raise RuleEvaluationError(f"rule {rule.id} has no formula")
        outcome = evaluate_condition(spec.formula, resolve)
        text = _formula_text(spec.formula, outcome.passed, outcome.left, outcome.right)
        return _finding(rule, outcome.passed, text, outcome.left, outcome.right)

    if kind is ValidationKind.LOOKUP:
        if not spec.table or not spec.key_field:
            raise RuleEvaluationError(f"rule {rule.id} has no lookup table")
        key = _table_key(resolve(spec.key_field))
        allowed = spec.table.get(key, spec.table.get("*"))
        if allowed is None:
            raise RuleEvaluationError(f"no lookup row for {spec.key_field} = {key!r}")
        actual = resolve(spec.field)
        ok = compare("in", actual, list(allowed))
        if ok:
            text = f"{spec.field} = {actual!r} is allowed for {spec.key_field} = {key}."
        else:
            text = f"{spec.field} = {actual!r} is not allowed for {spec.key_field} = {key}; expected one of {list(allowed)}."
        return _finding(rule, ok, text, actual, list(allowed))

    if kind is ValidationKind.CONDITIONAL:
        if not spec.condition or not spec.formula:
            raise RuleEvaluationError(f"rule {rule.id} needs both a condition and a check")
        if not evaluate_condition(spec.condition, resolve).passed:
            return None
        outcome = evaluate_condition(spec.formula, resolve)
        text = _formula_text(spec.formula, outcome.passed, outcome.left, outcome.right)
        return _finding(rule, outcome.passed, text, outcome.left, outcome.right)

    raise RuleEvaluationError(f"unknown validation kind: {kind!r}")


def evaluate_rules(
    project: BuildingProject,
    computed: BaseModel | dict[str, Any] | None,
    rules: list[Rule],
    specialty: str | None = None,
) -> list[Finding]:
    """Evaluate every applicable rule and collect findings in rule order.

    Disabled rules, out-of-scope rules and conditional rules whose guard is
    false emit nothing.  A rule that cannot be evaluated emits exactly one
    informative diagnostic finding and the batch continues.
    """
    context = build_context(project, computed)
    findings: list[Finding] = []

    for rule in rules:
        if not rule.enabled:
            continue
        if specialty is not None and rule.specialty != specialty:
            continue
        if not in_scope(rule, context):
            continue
        try:
            finding = evaluate_rule(rule, context)
        except RuleEvaluationError as exc:
            logger.debug("Rule %s not evaluable: %s", rule.id, exc)
            findings.append(diagnostic_finding(rule, str(exc)))
            continue
        except (ArithmeticError, ValueError, TypeError, RecursionError) as exc:
            logger.warning("Rule %s failed: %s: %s", rule.id, type(exc).__name__, exc)
            findings.append(diagnostic_finding(rule, f"{type(exc).__name__}: {exc}"))
            continue
        if finding is not None:
            findings.append(finding)

    return findings


def diagnostic_finding(rule: Rule, reason: str) -> Finding:
    """Informative finding recorded when a rule cannot be evaluated."""
    return Finding(
        id=f"{rule.specialty}:{rule.id}",
        rule_id=rule.id,
        specialty=rule.specialty,
        regulation=rule.regulation,
        article=rule.article,
        severity=Severity.INFORMATIVE,
        description=f"{rule.description} (not evaluated: {reason})",
        remediation=f"Provide the missing data or review {rule.regulation} {rule.article}.",
    )


def suggest_fix(rule: Rule) -> str:
    """Generate an actionable suggestion for a failed rule."""
    if rule.remediation:
        return rule.remediation
    spec = rule.value_spec
    cite = f"per {rule.regulation} {rule.article}"
    if rule.kind is ValidationKind.RANGE:
        return f"Bring {spec.field} within {_range_text(spec.min, spec.max, spec.unit)} {cite}."
    if rule.kind is ValidationKind.THRESHOLD:
        target = spec.reference or spec.value
        if spec.operator in (">=", ">"):
            return f"Increase {spec.field} to at least {target} {cite}."
        if spec.operator in ("<=", "<"):
            return f"Reduce {spec.field} to at most {target} {cite}."
        return f"Set {spec.field} {spec.operator} {target} {cite}."
    if rule.kind is ValidationKind.LOOKUP:
        return f"Set {spec.field} to a value allowed for the current {spec.key_field} {cite}."
    return f"Review {rule.regulation} {rule.article}: {rule.description}."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _finding(rule: Rule, ok: bool, text: str, actual: Any, required: Any) -> Finding:
    severity = Severity.PASS if ok else rule.failure_severity()
    return Finding(
        id=f"{rule.specialty}:{rule.id}",
        rule_id=rule.id,
        specialty=rule.specialty,
        regulation=rule.regulation,
        article=rule.article,
        severity=severity,
        description=f"{rule.description}: {text}",
        actual_value=actual,
        required_value=required,
        remediation="" if ok else suggest_fix(rule),
    )


def _numeric(value: Any, path: str) -> float:
    number = as_number(value)
    if number is None:
        raise ExpressionTypeError(f"field '{path}' is not numeric: {value!r}")
    return number


def _threshold(op: str, raw: Any, required: Any, path: str) -> tuple[bool, Any, Any]:
    actual_num = as_number(raw)
    required_num = as_number(required)
    if actual_num is not None and required_num is not None:
        return compare(op, actual_num, required_num), actual_num, required_num
    if op in ("==", "!="):
        return compare(op, raw, required), raw, required
    raise ExpressionTypeError(f"field '{path}' cannot be compared: {raw!r} {op} {required!r}")


def _threshold_text(path: str, op: str, actual: Any, required: Any, unit: str, ok: bool) -> str:
    shown, needed = _fmt(actual, unit), _fmt(required, unit)
    if ok:
        return f"{path} = {shown} satisfies {op} {needed}."
    if op in (">=", ">") and isinstance(actual, float) and isinstance(required, float):
        return f"{path} = {shown} is below the required {needed} (shortfall of {_fmt(required - actual, unit)})."
    if op in ("<=", "<") and isinstance(actual, float) and isinstance(required, float):
        return f"{path} = {shown} exceeds the maximum {needed} (excess of {_fmt(actual - required, unit)})."
    return f"{path} = {shown}, expected {op} {needed}."


def _formula_text(formula: str, ok: bool, left: Any, right: Any) -> str:
    values = f" ({_fmt(left)} vs {_fmt(right)})" if left is not None or right is not None else ""
    return f"{'holds' if ok else 'fails'}: {formula}{values}."


def _range_text(low: float | None, high: float | None, unit: str) -> str:
    if low is None and high is None:
        return "any value"
    if low is None:
        return f"<= {_fmt(high, unit)}"
    if high is None:
        return f">= {_fmt(low, unit)}"
    return f"[{_fmt(low)}, {_fmt(high, unit)}]"


def _table_key(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _fmt(value: Any, unit: str = "") -> str:
    if isinstance(value, bool) or value is None:
        text = str(value).lower() if isinstance(value, bool) else "null"
    elif isinstance(value, float):
        text = str(int(value)) if value.is_integer() else f"{value:.2f}".rstrip("0").rstrip(".")
    else:
        text = str(value)
    return f"{text} {unit}" if unit else text
