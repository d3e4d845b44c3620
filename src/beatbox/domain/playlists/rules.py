"""Smart playlist rule evaluation.

This module handles the rule language for smart playlists, including:
- Validating rule fields and operators against the field's type
- Evaluating a single rule against a track
- Combining rules with match-all (AND) or match-any (OR) semantics

Evaluation is fail-closed: type mismatches, missing fields and unknown
operators all evaluate to False instead of raising.
"""

from typing import Any

from beatbox.domain.library.models import (
    RULE_FIELD_TYPES,
    Rule,
    RuleSet,
    RuleValue,
    Track,
)

# Valid rule fields (must match Track attributes)
VALID_FIELDS = set(RULE_FIELD_TYPES)

TEXT_FIELDS = {f for f, t in RULE_FIELD_TYPES.items() if t == "text"}
NUMERIC_FIELDS = {f for f, t in RULE_FIELD_TYPES.items() if t == "number"}
BOOLEAN_FIELDS = {f for f, t in RULE_FIELD_TYPES.items() if t == "boolean"}

# Operators offered per field type
TEXT_OPERATORS = {
    "is", "is_not", "contains", "does_not_contain", "starts_with", "ends_with"
}
NUMERIC_OPERATORS = {"is", "is_not", "is_greater_than", "is_less_than"}
BOOLEAN_OPERATORS = {"is_true", "is_false"}

OPERATORS_BY_TYPE = {
    "text": TEXT_OPERATORS,
    "number": NUMERIC_OPERATORS,
    "boolean": BOOLEAN_OPERATORS,
}

ALL_OPERATORS = TEXT_OPERATORS | NUMERIC_OPERATORS | BOOLEAN_OPERATORS


def validate_rule(rule: Rule) -> None:
    """Validate rule field, operator, and value compatibility.

    Used when authoring smart playlists. Evaluation never calls this; it
    tolerates invalid rules by returning False.

    Raises:
        ValueError: If field is invalid, operator incompatible with field type,
                   or value is invalid for numeric fields
    """
    if rule.field not in VALID_FIELDS:
        raise ValueError(
            f"Invalid field: {rule.field}. Must be one of {sorted(VALID_FIELDS)}"
        )

    field_type = RULE_FIELD_TYPES[rule.field]
    allowed = OPERATORS_BY_TYPE[field_type]
    if rule.operator not in allowed:
        raise ValueError(
            f"Operator '{rule.operator}' not valid for {field_type} field '{rule.field}'. "
            f"Use one of: {sorted(allowed)}"
        )

    if field_type == "number" and not _is_number(rule.value):
        raise ValueError(
            f"Value {rule.value!r} is not a valid number for numeric field '{rule.field}'"
        )
    if field_type == "text" and not isinstance(rule.value, str):
        raise ValueError(
            f"Value {rule.value!r} is not valid text for field '{rule.field}'"
        )


def validate_rule_set(rule_set: RuleSet) -> None:
    """Validate every rule in a rule set.

    Raises:
        ValueError: If the rule set is empty or any rule is invalid
    """
    if not rule_set.rules:
        raise ValueError("A smart playlist needs at least one rule")
    for rule in rule_set.rules:
        validate_rule(rule)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (True != 1, "1" != 1)."""
    if _is_number(left) and _is_number(right):
        return left == right
    return type(left) is type(right) and left == right


def _compare(left: Any, right: Any, greater: bool) -> bool:
    """Ordered comparison for numbers or strings; any other pairing is False."""
    both_numbers = _is_number(left) and _is_number(right)
    both_strings = isinstance(left, str) and isinstance(right, str)
    if not (both_numbers or both_strings):
        return False
    return left > right if greater else left < right


def check_condition(track_value: Any, operator: str, rule_value: RuleValue) -> bool:
    """Apply one operator to a raw track value and a rule value."""
    # Case-insensitive comparison when both sides are text
    if isinstance(track_value, str) and isinstance(rule_value, str):
        tv: Any = track_value.lower()
        rv: Any = rule_value.lower()
    else:
        tv, rv = track_value, rule_value

    text_pair = isinstance(tv, str) and isinstance(rv, str)

    if operator == "is":
        return _strict_equals(tv, rv)
    if operator == "is_not":
        return not _strict_equals(tv, rv)
    if operator == "contains":
        return text_pair and rv in tv
    if operator == "does_not_contain":
        return text_pair and rv not in tv
    if operator == "starts_with":
        return text_pair and tv.startswith(rv)
    if operator == "ends_with":
        return text_pair and tv.endswith(rv)
    if operator == "is_greater_than":
        return _compare(tv, rv, greater=True)
    if operator == "is_less_than":
        return _compare(tv, rv, greater=False)
    if operator == "is_true":
        return bool(track_value)
    if operator == "is_false":
        return not track_value
    return False


def evaluate_rule(track: Track, rule: Rule) -> bool:
    """Does `track` satisfy `rule`?

    Missing or unknown fields read as None and fail every comparison
    except `is_not`/`is_false`.
    """
    return check_condition(getattr(track, rule.field, None), rule.operator, rule.value)


def evaluate_playlist(rule_set: RuleSet, track: Track) -> bool:
    """Does `track` match a smart playlist's criteria?

    An empty rule set matches nothing.
    """
    if not rule_set.rules:
        return False

    if rule_set.match_all:
        return all(evaluate_rule(track, rule) for rule in rule_set.rules)
    return any(evaluate_rule(track, rule) for rule in rule_set.rules)
