"""
Audience rule model.

A rule set is a RuleGroup: conditions over customer attributes combined
with AND/OR, plus optional nested groups (any depth).
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from crm.core.exceptions import RuleDepthExceeded, RuleError

RuleValue = Union[str, int, float, datetime]


class RuleField(str, Enum):
    """Customer attributes a condition can test."""

    TOTAL_SPENDS = "totalSpends"
    VISIT_COUNT = "visitCount"
    LAST_ACTIVE_DATE = "lastActiveDate"
    NAME = "name"
    EMAIL = "email"


class RuleOperator(str, Enum):
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    CONTAINS = "CONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    OLDER_THAN_DAYS = "OLDER_THAN_DAYS"
    IN_LAST_DAYS = "IN_LAST_DAYS"


class DataType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


# Natural type of each field and the store column backing it
FIELD_TYPES = {
    RuleField.TOTAL_SPENDS: DataType.NUMBER,
    RuleField.VISIT_COUNT: DataType.NUMBER,
    RuleField.LAST_ACTIVE_DATE: DataType.DATE,
    RuleField.NAME: DataType.STRING,
    RuleField.EMAIL: DataType.STRING,
}

FIELD_COLUMNS = {
    RuleField.TOTAL_SPENDS: "total_spends",
    RuleField.VISIT_COUNT: "visit_count",
    RuleField.LAST_ACTIVE_DATE: "last_active_date",
    RuleField.NAME: "name",
    RuleField.EMAIL: "email",
}


def _parse_enum(enum_cls, raw, label: str):
    try:
        return enum_cls(raw)
    except ValueError:
        raise RuleError(
            f"Unknown {label}: {raw!r}",
            details={label: str(raw), "accepted": [e.value for e in enum_cls]},
        )


@dataclass
class RuleCondition:
    """A single comparison against one customer attribute."""

    field: RuleField
    operator: RuleOperator
    value: RuleValue
    data_type: Optional[DataType] = None

    @property
    def natural_type(self) -> DataType:
        return FIELD_TYPES[self.field]

    @classmethod
    def from_dict(cls, data: dict) -> "RuleCondition":
        """Builds a condition from its API/store representation (camelCase)."""
        raw_type = data.get("dataType")
        return cls(
            field=_parse_enum(RuleField, data.get("field"), "field"),
            operator=_parse_enum(RuleOperator, data.get("operator"), "operator"),
            value=data.get("value"),
            data_type=_parse_enum(DataType, raw_type, "dataType") if raw_type else None,
        )

    def to_dict(self) -> dict:
        value = self.value.isoformat() if isinstance(self.value, datetime) else self.value
        data = {
            "field": self.field.value,
            "operator": self.operator.value,
            "value": value,
        }
        if self.data_type:
            data["dataType"] = self.data_type.value
        return data


@dataclass
class RuleGroup:
    """
    Conditions and nested groups joined by one logical operator.

    An empty group (no conditions, no groups) matches every customer.
    """

    logical_operator: LogicalOperator = LogicalOperator.AND
    conditions: List[RuleCondition] = field(default_factory=list)
    groups: List["RuleGroup"] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when the group has neither conditions nor sub-groups."""
        return not self.conditions and not self.groups

    @classmethod
    def from_dict(cls, data: Optional[dict], max_depth: int = 32, _level: int = 1) -> "RuleGroup":
        """
        Builds a rule tree from its API/store representation.

        Raises:
            RuleError: unknown field/operator or malformed structure
            RuleDepthExceeded: nesting deeper than max_depth
        """
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise RuleError("Rule group must be an object")
        if _level > max_depth:
            raise RuleDepthExceeded(max_depth)

        return cls(
            logical_operator=_parse_enum(
                LogicalOperator, data.get("logicalOperator", "AND"), "logicalOperator"
            ),
            conditions=[RuleCondition.from_dict(c) for c in data.get("conditions") or []],
            groups=[
                cls.from_dict(g, max_depth=max_depth, _level=_level + 1)
                for g in data.get("groups") or []
            ],
        )

    def to_dict(self) -> dict:
        return {
            "logicalOperator": self.logical_operator.value,
            "conditions": [c.to_dict() for c in self.conditions],
            "groups": [g.to_dict() for g in self.groups],
        }
