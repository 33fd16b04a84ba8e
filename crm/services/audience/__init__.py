"""
Audience rules module.

Structure:
- rules: rule tree model (RuleCondition, RuleGroup)
- compiler: RuleGroup -> Predicate (PostgREST filter / row evaluator)
- resolver: executes predicates against the customer store

The resolver depends on the repositories, which depend on the
compiler; import it from crm.services.audience.resolver directly.
"""
from crm.services.audience.compiler import (
    MATCH_ALL,
    Combination,
    CompareOp,
    Comparison,
    Predicate,
    QueryCompiler,
    compile_rules,
    is_match_all,
)
from crm.services.audience.rules import (
    DataType,
    LogicalOperator,
    RuleCondition,
    RuleField,
    RuleGroup,
    RuleOperator,
)

__all__ = [
    "RuleField",
    "RuleOperator",
    "DataType",
    "LogicalOperator",
    "RuleCondition",
    "RuleGroup",
    "CompareOp",
    "Comparison",
    "Combination",
    "Predicate",
    "MATCH_ALL",
    "is_match_all",
    "QueryCompiler",
    "compile_rules",
]
