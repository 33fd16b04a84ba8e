"""
Schemas for audience rule payloads.

Field names follow the API's camelCase.
"""

from typing import List, Optional, Union

from pydantic import BaseModel

from crm.core.config import settings
from crm.services.audience.rules import (
    DataType,
    LogicalOperator,
    RuleField,
    RuleGroup,
    RuleOperator,
)


class RuleConditionSchema(BaseModel):
    """A single condition."""

    field: RuleField
    operator: RuleOperator
    value: Union[int, float, str]
    dataType: Optional[DataType] = None


class RuleGroupSchema(BaseModel):
    """Conditions and nested groups joined by one logical operator."""

    logicalOperator: LogicalOperator = LogicalOperator.AND
    conditions: List[RuleConditionSchema] = []
    groups: List["RuleGroupSchema"] = []

    def to_rule_group(self) -> RuleGroup:
        """
        Raises:
            RuleDepthExceeded: nested deeper than MAX_RULE_DEPTH
        """
        return RuleGroup.from_dict(
            self.model_dump(mode="json", exclude_none=True),
            max_depth=settings.MAX_RULE_DEPTH,
        )


RuleGroupSchema.model_rebuild()
