"""
Query compiler: RuleGroup -> Predicate.

The Predicate is a small immutable tree. It renders itself as a
PostgREST logic-tree filter for the Supabase adapter and can also be
evaluated against a customer row, so any store adapter can execute it.

    and(total_spends.gt.1000,or(name.ilike."*ann*",visit_count.lt.3))
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional, Tuple, Union

from crm.core.config import settings
from crm.core.exceptions import InvalidRuleValue, RuleDepthExceeded, UnsupportedOperator
from crm.core.timezone import parse_datetime, utc_now
from crm.services.audience.rules import (
    FIELD_COLUMNS,
    DataType,
    LogicalOperator,
    RuleCondition,
    RuleGroup,
    RuleOperator,
)

ComparableValue = Union[str, int, float, bool, datetime]


class CompareOp(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


_STRING_MATCH_OPS = (CompareOp.CONTAINS, CompareOp.STARTS_WITH, CompareOp.ENDS_WITH)


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _like_literal(text: str) -> str:
    """Escapes LIKE metacharacters so the value matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _render_value(value: ComparableValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _format_number(value)
    if isinstance(value, datetime):
        return _quote(value.isoformat())
    return _quote(str(value))


@dataclass(frozen=True)
class Comparison:
    """Atomic predicate: `<column> <op> <value>`."""

    column: str
    op: CompareOp
    value: ComparableValue

    def to_postgrest(self) -> str:
        if self.op in _STRING_MATCH_OPS:
            literal = _like_literal(str(self.value))
            if self.op == CompareOp.CONTAINS:
                pattern = f"*{literal}*"
            elif self.op == CompareOp.STARTS_WITH:
                pattern = f"{literal}*"
            else:
                pattern = f"*{literal}"
            return f"{self.column}.ilike.{_quote(pattern)}"
        return f"{self.column}.{self.op.value}.{_render_value(self.value)}"

    def matches(self, record: dict) -> bool:
        """Evaluates against a store row; NULL never matches (SQL semantics)."""
        actual = record.get(self.column)
        if actual is None:
            return False

        expected = self.value
        try:
            if isinstance(expected, datetime):
                actual = parse_datetime(actual)
            elif isinstance(expected, bool):
                actual = bool(actual)
            elif isinstance(expected, (int, float)):
                actual = float(actual)
            else:
                actual = str(actual)
        except (TypeError, ValueError):
            return False
        if actual is None:
            return False

        if self.op in _STRING_MATCH_OPS:
            haystack = actual.lower()
            needle = str(expected).lower()
            if self.op == CompareOp.CONTAINS:
                return needle in haystack
            if self.op == CompareOp.STARTS_WITH:
                return haystack.startswith(needle)
            return haystack.endswith(needle)

        if self.op == CompareOp.EQ:
            return actual == expected
        if self.op == CompareOp.NEQ:
            return actual != expected
        if self.op == CompareOp.GT:
            return actual > expected
        if self.op == CompareOp.GTE:
            return actual >= expected
        return actual < expected


@dataclass(frozen=True)
class Combination:
    """Conjunction (AND) or disjunction (OR) of two or more predicates."""

    operator: LogicalOperator
    operands: Tuple["Predicate", ...]

    def to_postgrest(self) -> str:
        inner = ",".join(operand.to_postgrest() for operand in self.operands)
        return f"{self.operator.value.lower()}({inner})"

    def matches(self, record: dict) -> bool:
        results = (operand.matches(record) for operand in self.operands)
        if self.operator == LogicalOperator.AND:
            return all(results)
        return any(results)


@dataclass(frozen=True)
class MatchAll:
    """The canonical empty filter."""

    def to_postgrest(self) -> str:
        return ""

    def matches(self, record: dict) -> bool:
        return True


Predicate = Union[Comparison, Combination, MatchAll]

MATCH_ALL = MatchAll()


def is_match_all(predicate: Predicate) -> bool:
    return isinstance(predicate, MatchAll)


# Operators allowed per natural field type (day-window operators handled apart)
_ALLOWED_OPERATORS = {
    DataType.NUMBER: {
        RuleOperator.EQUALS, RuleOperator.NOT_EQUALS,
        RuleOperator.GREATER_THAN, RuleOperator.LESS_THAN,
    },
    DataType.DATE: {
        RuleOperator.EQUALS, RuleOperator.NOT_EQUALS,
        RuleOperator.GREATER_THAN, RuleOperator.LESS_THAN,
    },
    DataType.STRING: {
        RuleOperator.EQUALS, RuleOperator.NOT_EQUALS,
        RuleOperator.CONTAINS, RuleOperator.STARTS_WITH, RuleOperator.ENDS_WITH,
    },
}

_OPERATOR_MAP = {
    RuleOperator.EQUALS: CompareOp.EQ,
    RuleOperator.NOT_EQUALS: CompareOp.NEQ,
    RuleOperator.GREATER_THAN: CompareOp.GT,
    RuleOperator.LESS_THAN: CompareOp.LT,
    RuleOperator.CONTAINS: CompareOp.CONTAINS,
    RuleOperator.STARTS_WITH: CompareOp.STARTS_WITH,
    RuleOperator.ENDS_WITH: CompareOp.ENDS_WITH,
}

_DAY_WINDOW_OPERATORS = (RuleOperator.OLDER_THAN_DAYS, RuleOperator.IN_LAST_DAYS)


class QueryCompiler:
    """
    Recursive-descent compiler from rule trees to predicates.

    Raises (synchronously, to the caller):
        InvalidRuleValue: value cannot be parsed for the operator/type
        UnsupportedOperator: operator not valid for the field
        RuleDepthExceeded: nesting deeper than max_depth
    """

    def __init__(
        self,
        max_depth: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.max_depth = max_depth or settings.MAX_RULE_DEPTH
        self._clock = clock

    def compile(self, group: RuleGroup) -> Predicate:
        return self._compile_group(group, level=1, now=self._clock())

    def _compile_group(self, group: RuleGroup, level: int, now: datetime) -> Predicate:
        if level > self.max_depth:
            raise RuleDepthExceeded(self.max_depth)

        parts = [self._compile_condition(c, now) for c in group.conditions]
        parts.extend(self._compile_group(g, level + 1, now) for g in group.groups)

        # An empty sub-group matches everyone: it absorbs an OR and is neutral in an AND
        if any(is_match_all(p) for p in parts):
            if group.logical_operator == LogicalOperator.OR:
                return MATCH_ALL
            parts = [p for p in parts if not is_match_all(p)]

        if not parts:
            return MATCH_ALL
        if len(parts) == 1:
            return parts[0]
        return Combination(group.logical_operator, tuple(parts))

    def _compile_condition(self, condition: RuleCondition, now: datetime) -> Predicate:
        column = FIELD_COLUMNS[condition.field]
        natural = condition.natural_type

        if condition.operator in _DAY_WINDOW_OPERATORS:
            if natural != DataType.DATE:
                raise UnsupportedOperator(condition.field.value, condition.operator.value)
            days = self._parse_days(condition)
            threshold = now - timedelta(days=days)
            if condition.operator == RuleOperator.OLDER_THAN_DAYS:
                return Comparison(column, CompareOp.LT, threshold)
            return Comparison(column, CompareOp.GTE, threshold)

        if condition.operator not in _ALLOWED_OPERATORS[natural]:
            raise UnsupportedOperator(condition.field.value, condition.operator.value)

        value = self._coerce_value(condition)
        return Comparison(column, _OPERATOR_MAP[condition.operator], value)

    @staticmethod
    def _parse_days(condition: RuleCondition) -> float:
        raw = condition.value
        if isinstance(raw, bool):
            raise InvalidRuleValue(
                condition.field.value, condition.operator.value, raw, "expected a day count"
            )
        try:
            days = float(raw)
        except (TypeError, ValueError):
            raise InvalidRuleValue(
                condition.field.value, condition.operator.value, raw, "expected a day count"
            )
        if math.isnan(days) or math.isinf(days) or days < 0:
            raise InvalidRuleValue(
                condition.field.value, condition.operator.value, raw,
                "day count must be a non-negative number",
            )
        return days

    @staticmethod
    def _coerce_value(condition: RuleCondition) -> ComparableValue:
        raw = condition.value
        field_name = condition.field.value
        operator = condition.operator.value

        if condition.data_type == DataType.DATE or condition.natural_type == DataType.DATE:
            try:
                parsed = parse_datetime(raw)
            except (TypeError, ValueError):
                parsed = None
            if parsed is None:
                raise InvalidRuleValue(field_name, operator, raw, "expected a date")
            return parsed

        if condition.natural_type == DataType.NUMBER:
            if isinstance(raw, bool):
                raise InvalidRuleValue(field_name, operator, raw, "expected a number")
            try:
                number = float(raw)
            except (TypeError, ValueError):
                raise InvalidRuleValue(field_name, operator, raw, "expected a number")
            if math.isnan(number) or math.isinf(number):
                raise InvalidRuleValue(field_name, operator, raw, "expected a finite number")
            return number

        if raw is None:
            raise InvalidRuleValue(field_name, operator, raw, "expected a value")
        return str(raw)


def compile_rules(group: RuleGroup, now: Optional[datetime] = None) -> Predicate:
    """Compiles a rule tree with the configured depth limit."""
    if now is None:
        return QueryCompiler().compile(group)
    return QueryCompiler(clock=lambda: now).compile(group)
