"""Operator metadata and value-shape helpers shared by all evaluators.

Value shapes are named so the authoring surface can validate rules with the same
vocabulary the evaluators use at runtime:

- ``number`` / ``string``: a scalar
- ``number[]`` / ``string[]`` / ``scalar[]``: a list of scalars
- ``range``: ``{"min": x, "max": y}`` with at least one bound present
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger()

MAX_REGEX_LENGTH = 512


@dataclass(frozen=True)
class OperatorInfo:
    """An operator supported by a field, with the value shapes it accepts."""

    name: str
    description: str
    value_types: tuple[str, ...]
    value_format: str | None = None


@dataclass(frozen=True)
class FieldInfo:
    """A routable attribute owned by an evaluator."""

    name: str
    description: str
    value_types: tuple[str, ...]


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_number_list(value: Any) -> bool:
    return isinstance(value, list) and all(is_number(v) for v in value)


def is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(is_string(v) for v in value)


def is_scalar_list(value: Any) -> bool:
    return isinstance(value, list) and all(is_number(v) or is_string(v) for v in value)


def parse_range(value: Any) -> tuple[float, float] | None:
    """Return inclusive ``(low, high)`` bounds, or None if ``value`` is not a range.

    An absent (or null) bound is unbounded on that side; at least one bound must
    be present.
    """

    if not isinstance(value, dict) or not value:
        return None
    if set(value) - {"min", "max"}:
        return None

    low = value.get("min")
    high = value.get("max")
    if low is None and high is None:
        return None
    if low is not None and not is_number(low):
        return None
    if high is not None and not is_number(high):
        return None

    return (
        -math.inf if low is None else float(low),
        math.inf if high is None else float(high),
    )


_SHAPE_CHECKS = {
    "number": is_number,
    "string": is_string,
    "number[]": is_number_list,
    "string[]": is_string_list,
    "scalar[]": is_scalar_list,
    "range": lambda v: parse_range(v) is not None,
}


def value_has_shape(value: Any, value_types: tuple[str, ...]) -> bool:
    """True if ``value`` matches at least one of the named shapes."""

    for name in value_types:
        check = _SHAPE_CHECKS.get(name)
        if check is not None and check(value):
            return True
    return False


def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile a user supplied regular expression, or None if it is unusable."""

    if len(pattern) > MAX_REGEX_LENGTH:
        logger.warning("regex_rejected_too_long", length=len(pattern))
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        logger.warning("regex_rejected_invalid", pattern=pattern, error=str(exc))
        return None


def regex_matches_any(pattern: str, candidates: list[str]) -> bool:
    compiled = compile_pattern(pattern)
    if compiled is None:
        return False
    return any(compiled.search(c) for c in candidates)
