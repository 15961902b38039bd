"""
Field validation rules for the product and stock movement forms.

A rule takes the raw field value and returns an error message, or None when
the value passes. Only the first failing rule of a field is reported.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

Rule = Callable[[Any], Optional[str]]

MSG_REQUIRED = "This field is required"
MSG_NOT_A_NUMBER = "Must be a number"
MSG_NOT_AN_INTEGER = "Must be a whole number"


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def to_int(value: Any) -> Optional[int]:
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def required() -> Rule:
    def rule(value):
        return MSG_REQUIRED if is_blank(value) else None
    return rule


def min_length(n: int) -> Rule:
    def rule(value):
        if is_blank(value):
            return None
        return f"Minimum {n} characters" if len(str(value).strip()) < n else None
    return rule


def max_length(n: int) -> Rule:
    def rule(value):
        if is_blank(value):
            return None
        return f"Maximum {n} characters" if len(str(value).strip()) > n else None
    return rule


def number() -> Rule:
    def rule(value):
        if is_blank(value):
            return None
        return MSG_NOT_A_NUMBER if to_decimal(value) is None else None
    return rule


def integer() -> Rule:
    def rule(value):
        if is_blank(value):
            return None
        return MSG_NOT_AN_INTEGER if to_int(value) is None else None
    return rule


def min_value(minimum) -> Rule:
    def rule(value):
        number_value = to_decimal(value)
        if number_value is None:
            return None
        return f"Minimum value is {minimum}" if number_value < Decimal(str(minimum)) else None
    return rule


def max_value(maximum) -> Rule:
    def rule(value):
        number_value = to_decimal(value)
        if number_value is None:
            return None
        return f"Maximum value is {maximum}" if number_value > Decimal(str(maximum)) else None
    return rule


def validate_fields(values: Dict[str, Any], rules: Dict[str, List[Rule]]) -> Dict[str, str]:
    """
    Run every field's rules.

    Returns:
        Mapping of field name to its first error; empty when all pass
    """
    errors = {}
    for field_name, field_rules in rules.items():
        value = values.get(field_name)
        for rule in field_rules:
            message = rule(value)
            if message:
                errors[field_name] = message
                break
    return errors
