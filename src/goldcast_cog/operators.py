# operators.py
# Operand comparator for field-check steps.
#
# Pure functions only: no I/O, no state. Given an operator, the value found on
# the remote entity and the value the scenario author expects, produce a
# verdict plus a sentence suitable for direct display.
#
# Coercion rules:
#   numeric-looking strings compare as numbers (Decimal, so large ids survive)
#   everything else compares as case-sensitive text, or structurally when
#   both sides are lists / dicts

import json
import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict


OPERATORS: tuple[str, ...] = (
    "be",
    "not be",
    "contain",
    "not contain",
    "be greater than",
    "be less than",
    "be set",
    "not be set",
    "be one of",
    "not be one of",
    "match",
    "not match",
)

PRESENCE_OPERATORS: frozenset[str] = frozenset({"be set", "not be set"})

_NUMERIC = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?\s*$")
_LIST_DELIMITER = re.compile(r"[,\n]")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class UnknownOperatorError(Exception):
    """Raised when the operator is not one of OPERATORS."""


class InvalidOperandError(Exception):
    """Raised when the operands do not fit the shape the operator requires."""


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class ComparisonResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    message: str


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _as_number(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Decimal(repr(value))
    if isinstance(value, str) and _NUMERIC.match(value):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            return None
    return None


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    # Naive values are read as UTC so aware and naive operands stay comparable.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def _display(value: Any) -> str:
    if value is None:
        return "null"
    return _stringify(value)


def _is_set(value: Any) -> bool:
    return not (value is None or value == "")


def _equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (dict, list)) and isinstance(expected, (dict, list)):
        return actual == expected
    actual_num, expected_num = _as_number(actual), _as_number(expected)
    if actual_num is not None and expected_num is not None:
        return actual_num == expected_num
    return _stringify(actual) == _stringify(expected)


def _contains(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if isinstance(actual, (list, tuple)):
        return any(_equals(item, expected) for item in actual)
    return _stringify(expected) in _stringify(actual)


def _split_list(expected: Any, operator: str) -> list[Any]:
    if isinstance(expected, (list, tuple)):
        return list(expected)
    if isinstance(expected, str):
        return [token.strip() for token in _LIST_DELIMITER.split(expected) if token.strip()]
    raise InvalidOperandError(
        f"The operator '{operator}' requires a comma or newline separated list "
        f"of values, but received {_display(expected)}."
    )


def _order(actual: Any, expected: Any, operator: str, field: str) -> int:
    """Three-way compare for the ordering operators: -1, 0 or 1."""
    actual_num, expected_num = _as_number(actual), _as_number(expected)
    if actual_num is not None and expected_num is not None:
        return (actual_num > expected_num) - (actual_num < expected_num)

    actual_dt, expected_dt = _as_datetime(actual), _as_datetime(expected)
    if actual_dt is not None and expected_dt is not None:
        return (actual_dt > expected_dt) - (actual_dt < expected_dt)

    raise InvalidOperandError(
        f"Cannot check whether the {field} field should {operator} {_display(expected)}: "
        f"both {_display(actual)} and {_display(expected)} must be numbers or dates."
    )


def _compile(expected: Any, operator: str) -> re.Pattern:
    try:
        return re.compile(_stringify(expected))
    except re.error as exc:
        raise InvalidOperandError(
            f"The operator '{operator}' requires a valid regular expression, "
            f"but {_display(expected)} could not be compiled: {exc}."
        ) from exc


# ---------------------------------------------------------------------------
# Comparator
# ---------------------------------------------------------------------------


def compare(operator: str, actual: Any, expected: Any, field: str) -> ComparisonResult:
    """
    Apply `operator` to `actual` (found) and `expected` (authored).

    Raises UnknownOperatorError for an operator outside OPERATORS and
    InvalidOperandError when the operands don't fit the operator.
    """
    if operator not in OPERATORS:
        raise UnknownOperatorError(f"Unknown operator '{operator}'.")

    found, wanted = _display(actual), _display(expected)

    if operator in PRESENCE_OPERATORS:
        if expected is not None:
            raise InvalidOperandError(
                f"The operator '{operator}' does not take an expected value, "
                f"but received {wanted}."
            )
        present = _is_set(actual)
        if operator == "be set":
            if present:
                return ComparisonResult(valid=True, message=f"The {field} field was set to {found}, as expected.")
            return ComparisonResult(valid=False, message=f"Expected the {field} field to be set, but it was not.")
        if not present:
            return ComparisonResult(valid=True, message=f"The {field} field was not set, as expected.")
        return ComparisonResult(
            valid=False, message=f"Expected the {field} field not to be set, but it was set to {found}."
        )

    if operator in ("be", "not be"):
        verdict = _equals(actual, expected)
        if operator == "be":
            return _result(
                verdict,
                f"The {field} field was {wanted}, as expected.",
                f"Expected the {field} field to be {wanted}, but it was actually {found}.",
            )
        return _result(
            not verdict,
            f"The {field} field was {found}, which is not {wanted}, as expected.",
            f"Expected the {field} field not to be {wanted}, but it was.",
        )

    if operator in ("contain", "not contain"):
        verdict = _contains(actual, expected)
        if operator == "contain":
            return _result(
                verdict,
                f"The {field} field contained {wanted}, as expected.",
                f"Expected the {field} field to contain {wanted}, but it was actually {found}.",
            )
        return _result(
            not verdict,
            f"The {field} field did not contain {wanted}, as expected.",
            f"Expected the {field} field not to contain {wanted}, but it was actually {found}.",
        )

    if operator == "be greater than":
        return _result(
            _order(actual, expected, operator, field) > 0,
            f"The {field} field was {found}, which is greater than {wanted}, as expected.",
            f"Expected the {field} field to be greater than {wanted}, but it was actually {found}.",
        )

    if operator == "be less than":
        return _result(
            _order(actual, expected, operator, field) < 0,
            f"The {field} field was {found}, which is less than {wanted}, as expected.",
            f"Expected the {field} field to be less than {wanted}, but it was actually {found}.",
        )

    if operator in ("be one of", "not be one of"):
        options = _split_list(expected, operator)
        listed = ", ".join(_display(option) for option in options)
        verdict = any(_equals(actual, option) for option in options)
        if operator == "be one of":
            return _result(
                verdict,
                f"The {field} field was {found}, which is one of {listed}, as expected.",
                f"Expected the {field} field to be one of {listed}, but it was actually {found}.",
            )
        return _result(
            not verdict,
            f"The {field} field was {found}, which is not one of {listed}, as expected.",
            f"Expected the {field} field not to be one of {listed}, but it was actually {found}.",
        )

    # match / not match
    pattern = _compile(expected, operator)
    verdict = pattern.search(_stringify(actual)) is not None
    if operator == "match":
        return _result(
            verdict,
            f"The {field} field was {found}, which matches {wanted}, as expected.",
            f"Expected the {field} field to match {wanted}, but it was actually {found}.",
        )
    return _result(
        not verdict,
        f"The {field} field was {found}, which does not match {wanted}, as expected.",
        f"Expected the {field} field not to match {wanted}, but it was actually {found}.",
    )


def _result(valid: bool, passed: str, failed: str) -> ComparisonResult:
    return ComparisonResult(valid=valid, message=passed if valid else failed)
