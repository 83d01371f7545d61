"""
Condition matching for workflow automation.

Conditions compare one field of a ticket (a dotted path such as
``status`` or ``assignee.name``) against a literal stored with the
workflow. Matching is case-insensitive for strings and fails closed:
anything that cannot be evaluated counts as "no match".
"""
import enum
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable

from app.utils.logger import automation_logger

CHANGED_FIELDS_KEYS = ("_changed_fields", "_changedFields")

# Numeric text accepted by JavaScript Number()
DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
RADIX_RE = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")
INFINITY_RE = re.compile(r"[+-]?Infinity")


class ConditionOperator(str, enum.Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    CHANGED = "changed"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


OPERATOR_ALIASES: Dict[str, ConditionOperator] = {
    ">": ConditionOperator.GREATER_THAN,
    "<": ConditionOperator.LESS_THAN,
    ">=": ConditionOperator.GREATER_THAN_OR_EQUAL,
    "<=": ConditionOperator.LESS_THAN_OR_EQUAL,
    "is_null": ConditionOperator.IS_EMPTY,
    "is_not_null": ConditionOperator.IS_NOT_EMPTY,
}


def resolve_operator(name: Any) -> Optional[ConditionOperator]:
    """Map a stored operator name (or alias) to its operator, None if unrecognized."""
    if not isinstance(name, str):
        return None
    key = name.strip().lower()
    if key in OPERATOR_ALIASES:
        return OPERATOR_ALIASES[key]
    try:
        return ConditionOperator(key)
    except ValueError:
        return None


def get_field_value(obj: Any, field: Optional[str]) -> Any:
    """Walk a dotted path over dicts or attributes. Any missing link yields None."""
    if obj is None or not field:
        return None

    value = obj
    for part in field.split('.'):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(part)
        else:
            value = getattr(value, part, None)

    return value


def get_changed_fields(ticket: Any) -> Optional[List[str]]:
    for key in CHANGED_FIELDS_KEYS:
        if isinstance(ticket, dict):
            changed = ticket.get(key)
        else:
            changed = getattr(ticket, key, None)
        if changed is not None:
            return list(changed)
    return None


def ticket_snapshot(obj: Any, depth: int = 2) -> Any:
    """
    Copy the loaded state of an ORM instance into plain dicts.

    Only attributes that are already loaded are copied, so no lazy load is
    triggered on an async session. Loaded relationships are followed up to
    ``depth`` levels. Anything that is not a mapped instance is returned as is.
    """
    if obj is None or isinstance(obj, dict):
        return obj
    try:
        state = inspect(obj)
    except NoInspectionAvailable:
        return obj

    loaded = state.dict
    data: Dict[str, Any] = {}
    for key in state.mapper.column_attrs.keys():
        if key in loaded:
            data[key] = loaded[key]

    if depth > 0:
        for rel in state.mapper.relationships:
            if rel.key not in loaded:
                continue
            value = loaded[rel.key]
            if isinstance(value, (list, tuple, set)):
                data[rel.key] = [ticket_snapshot(item, depth - 1) for item in value]
            else:
                data[rel.key] = ticket_snapshot(value, depth - 1)

    for key in CHANGED_FIELDS_KEYS:
        if key in loaded:
            data["_changed_fields"] = list(loaded[key])

    return data


def _normalize(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _as_text(value: Any) -> str:
    """String form of a value, with the conventions used for stored condition literals."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_search_text(value: Any) -> str:
    # Falsy scalars search as the empty string
    if value is None or value is False or value == "":
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0:
        return ""
    return _as_text(value)


def _to_number(value: Any) -> float:
    """Numeric coercion. Anything that is not a number becomes NaN."""
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, datetime):
        # Naive datetimes are stored as UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp() * 1000
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        if DECIMAL_RE.fullmatch(text):
            return float(text)
        if RADIX_RE.fullmatch(text):
            return float(int(text, 0))
        if INFINITY_RE.fullmatch(text):
            return -math.inf if text.startswith("-") else math.inf
        return math.nan
    return math.nan


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _values_equal(ticket_value: Any, condition_value: Any) -> bool:
    if ticket_value == condition_value:
        return True
    # Condition literals are stored as text, so numbers compare by their text form
    if (
        isinstance(condition_value, str)
        and isinstance(ticket_value, (int, float))
        and not isinstance(ticket_value, bool)
    ):
        return _as_text(ticket_value).lower() == condition_value
    return False


def match_condition(condition: Any, ticket: Any, logger: Optional[logging.Logger] = None) -> bool:
    """
    Evaluate one condition against one ticket.

    ``condition`` may be an ORM row, a schema object or a dict with
    ``field``, ``operator`` and ``value``. Never raises; an unknown operator
    or an evaluation error is logged and treated as no match.
    """
    log = logger or automation_logger
    field = get_field_value(condition, "field")
    raw_operator = get_field_value(condition, "operator")
    condition_value = get_field_value(condition, "value")

    operator = resolve_operator(raw_operator)
    if operator is None:
        log.warning(f"[Automation] Unknown operator: {raw_operator}")
        return False

    try:
        ticket_value = get_field_value(ticket, field)
        normalized_ticket_value = _normalize(ticket_value)
        normalized_condition_value = _normalize(condition_value)

        if operator == ConditionOperator.EQUALS:
            return _values_equal(normalized_ticket_value, normalized_condition_value)
        elif operator == ConditionOperator.NOT_EQUALS:
            return not _values_equal(normalized_ticket_value, normalized_condition_value)
        elif operator == ConditionOperator.IN:
            value_list = [v.strip() for v in _as_search_text(condition_value).lower().split(",")]
            return _as_text(normalized_ticket_value) in value_list
        elif operator == ConditionOperator.CHANGED:
            changed_fields = get_changed_fields(ticket)
            return bool(changed_fields) and field in changed_fields
        elif operator == ConditionOperator.CONTAINS:
            return _as_search_text(normalized_condition_value) in _as_search_text(normalized_ticket_value)
        elif operator == ConditionOperator.NOT_CONTAINS:
            return _as_search_text(normalized_condition_value) not in _as_search_text(normalized_ticket_value)
        elif operator == ConditionOperator.GREATER_THAN:
            return _to_number(ticket_value) > _to_number(condition_value)
        elif operator == ConditionOperator.LESS_THAN:
            return _to_number(ticket_value) < _to_number(condition_value)
        elif operator == ConditionOperator.GREATER_THAN_OR_EQUAL:
            return _to_number(ticket_value) >= _to_number(condition_value)
        elif operator == ConditionOperator.LESS_THAN_OR_EQUAL:
            return _to_number(ticket_value) <= _to_number(condition_value)
        elif operator == ConditionOperator.IS_EMPTY:
            return _is_empty(ticket_value)
        elif operator == ConditionOperator.IS_NOT_EMPTY:
            return not _is_empty(ticket_value)
    except Exception as e:
        log.error(
            f"[Automation] Error evaluating condition on field '{field}': {e}",
            extra={"field": field, "operator": raw_operator},
            exc_info=True,
        )
        return False

    return False


def all_conditions_match(
    ticket: Any,
    conditions: Optional[Iterable[Any]],
    logger: Optional[logging.Logger] = None,
) -> bool:
    """AND across every condition. No conditions means the workflow always matches."""
    if not conditions:
        return True

    return all(match_condition(condition, ticket, logger) for condition in conditions)
