"""
Message personalization.

Replaces {{name}}, {{email}}, {{totalSpends}} and {{visitCount}}
(case-insensitive) with the customer's values. Anything else between
braces is left as written.
"""
import re
from typing import Any, Optional

PLACEHOLDER_PATTERN = re.compile(r"\{\{(name|email|totalSpends|visitCount)\}\}", re.IGNORECASE)

_NUMERIC_TOKENS = {"totalspends": "total_spends", "visitcount": "visit_count"}
_TEXT_TOKENS = {"name": "name", "email": "email"}


def _read(customer: Any, attribute: str) -> Optional[Any]:
    if isinstance(customer, dict):
        return customer.get(attribute)
    return getattr(customer, attribute, None)


def _format_number(value: Any) -> str:
    if value is None:
        return "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def personalize(template: str, customer: Any) -> str:
    """
    Renders a message template for one customer.

    Args:
        template: message with {{placeholders}}
        customer: Customer entity or a store row (snake_case keys)

    Returns:
        Personalized message. Missing numbers render as "0", missing
        text as "".
    """
    def _replace(match: re.Match) -> str:
        token = match.group(1).lower()
        if token in _NUMERIC_TOKENS:
            return _format_number(_read(customer, _NUMERIC_TOKENS[token]))
        value = _read(customer, _TEXT_TOKENS[token])
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)
