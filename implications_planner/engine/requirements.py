"""Field requirement evaluation against a data snapshot.

A requirement value is either a literal (exact match) or a single-key
operator mapping:

  {contains: x}      field is a list containing x
  {notContains: x}   field is a list not containing x (block lists)
  {exists: bool}     field is (not) present and non-null
  {oneOf: [..]}      field equals one of the values
  {greaterThan: n} / {lessThan: n}
  {matches: regex}

A key prefixed with ``!`` negates the requirement, literal or operator. Operand strings starting
with ``ctx.data.`` or ``$`` are resolved against the snapshot.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from implications_planner.types import FieldGap

if TYPE_CHECKING:
    from implications_planner.store.registry import StateRegistry
    from implications_planner.types import Implication

_OPERATORS = frozenset({"contains", "notContains", "exists", "oneOf", "greaterThan", "lessThan", "matches"})
_SKIP_KEYS = frozenset({"previousStatus"})


def resolve_path(path: str, data: Any) -> Any:
    current: Any = data
    for part in path.split("."):
        if current is None:
            return None
        bracket = re.match(r"^(\w+)\[(\d+)\]$", part)
        if bracket:
            current = current.get(bracket.group(1)) if isinstance(current, dict) else None
            idx = int(bracket.group(2))
            if isinstance(current, list) and idx < len(current):
                current = current[idx]
            else:
                return None
        elif isinstance(current, dict):
            current = current.get(part)
        else:
            return None
    return current


def resolve_operand(value: Any, data: dict[str, Any]) -> Any:
    if isinstance(value, str):
        if value.startswith("ctx.data."):
            return resolve_path(value.removeprefix("ctx.data."), data)
        if value.startswith("$") and len(value) > 1:
            return resolve_path(value[1:], data)
    return value


def is_operator(value: Any) -> bool:
    return isinstance(value, dict) and len(value) == 1 and next(iter(value)) in _OPERATORS


def evaluate_operator(op: str, operand: Any, actual: Any, data: dict[str, Any]) -> bool:
    operand = resolve_operand(operand, data)
    match op:
        case "contains":
            return isinstance(actual, list) and operand in actual
        case "notContains":
            return not isinstance(actual, list) or operand not in actual
        case "exists":
            return (actual is not None) == bool(operand)
        case "oneOf":
            return isinstance(operand, list) and actual in operand
        case "greaterThan":
            return _is_number(actual) and _is_number(operand) and actual > operand
        case "lessThan":
            return _is_number(actual) and _is_number(operand) and actual < operand
        case "matches":
            return isinstance(actual, str) and re.search(str(operand), actual) is not None
    raise ValueError(f"Unknown requirement operator: {op}")


def check_requirement(required: Any, actual: Any, data: dict[str, Any]) -> bool:
    if is_operator(required):
        op, operand = next(iter(required.items()))
        return evaluate_operator(op, operand, actual, data)
    return actual == resolve_operand(required, data)


def requirements_match(requires: dict[str, Any], data: dict[str, Any]) -> bool:
    """True when every requirement (except previousStatus) holds for data."""
    for key, required in requires.items():
        if key in _SKIP_KEYS:
            continue
        if key.startswith("!"):
            if check_requirement(required, resolve_path(key[1:], data), data):
                return False
        elif not check_requirement(required, resolve_path(key, data), data):
            return False
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _describe(op: str, operand: Any) -> str:
    match op:
        case "contains":
            return f'contain "{operand}"'
        case "notContains":
            return f'NOT contain "{operand}"'
        case "exists":
            return "defined" if operand else "undefined"
        case "oneOf":
            return f"one of {operand}"
        case "greaterThan":
            return f"> {operand}"
        case "lessThan":
            return f"< {operand}"
    return f"match /{operand}/"


def find_missing_fields(
    implication: Implication,
    data: dict[str, Any],
    registry: StateRegistry | None = None,
) -> list[FieldGap]:
    gaps: list[FieldGap] = []

    for key, required in implication.requires.items():
        if key in _SKIP_KEYS:
            continue
        # A registered global status is reached through the chain, not supplied as data
        if key == "status" and registry is not None and isinstance(required, str) and required in registry:
            continue

        if key.startswith("!"):
            field_name = key[1:]
            actual = resolve_path(field_name, data)
            if not check_requirement(required, actual, data):
                continue
            if is_operator(required):
                op, operand = next(iter(required.items()))
                label = f"NOT {_describe(op, resolve_operand(operand, data))}"
            else:
                label = f'NOT "{resolve_operand(required, data)}"'
            gaps.append(FieldGap(field_name, label, actual))
            continue

        actual = resolve_path(key, data)
        if is_operator(required):
            op, operand = next(iter(required.items()))
            if not evaluate_operator(op, operand, actual, data):
                gaps.append(FieldGap(key, _describe(op, resolve_operand(operand, data)), actual))
        elif not check_requirement(required, actual, data):
            gaps.append(FieldGap(key, resolve_operand(required, data), actual))

    for field_name in implication.required_fields:
        if resolve_path(field_name, data) is None:
            gaps.append(FieldGap(field_name, "defined", None))

    return gaps
