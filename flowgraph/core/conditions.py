"""Condition evaluation for ``condition`` nodes.

A condition is a single comparison between two operands. Each operand may be
a node reference, a ``$var.`` string, or a literal. Operators follow the
editor's JavaScript semantics: ``eq``/``neq`` are strict, the ordering
operators coerce to numbers, and the string operators coerce to strings.
"""

from __future__ import annotations

import json
import logging
import math
import operator
import re
from collections.abc import Callable, Mapping
from typing import Any

from flowgraph.core.references import resolve_value
from flowgraph.core.types import ConditionConfig, NodeExecutionResult
from flowgraph.errors.exceptions import ExpressionError

logger = logging.getLogger(__name__)


def to_number(value: Any) -> float:
    """Coerce a value to a number the way JavaScript's ``Number()`` does.

    Missing values (None) and non-numeric values become NaN.
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def to_string(value: Any) -> str:
    """Coerce a value to a string.

    Booleans and None use their JSON spelling, integral floats drop the
    fractional part, containers are rendered as compact JSON.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without type coercion. ``True`` never equals ``1``."""
    numeric = (int, float)
    if (
        isinstance(left, numeric)
        and isinstance(right, numeric)
        and not isinstance(left, bool)
        and not isinstance(right, bool)
    ):
        return left == right
    return type(left) is type(right) and left == right


def _numeric(op: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    return lambda left, right: op(to_number(left), to_number(right))


def _regex(left: Any, right: Any) -> bool:
    pattern = to_string(right)
    try:
        return re.search(pattern, to_string(left)) is not None
    except re.error as e:
        raise ExpressionError(pattern, f"invalid regular expression: {e}")


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": strict_equals,
    "neq": lambda left, right: not strict_equals(left, right),
    "gt": _numeric(operator.gt),
    "gte": _numeric(operator.ge),
    "lt": _numeric(operator.lt),
    "lte": _numeric(operator.le),
    "contains": lambda left, right: to_string(right) in to_string(left),
    "startsWith": lambda left, right: to_string(left).startswith(to_string(right)),
    "endsWith": lambda left, right: to_string(left).endswith(to_string(right)),
    "regex": _regex,
}


def compare(op: str, left: Any, right: Any) -> bool:
    """Apply ``op`` to already-resolved operands.

    Unknown operators evaluate to False.
    """
    func = OPERATORS.get(op)
    if func is None:
        logger.debug("Unknown condition operator %r evaluates to False", op)
        return False
    return func(left, right)


def evaluate_condition(
    condition: ConditionConfig,
    node_results: Mapping[str, NodeExecutionResult],
    variables: Mapping[str, Any],
) -> bool:
    """Resolve both operands and compare them.

    Raises:
        NodeReferenceError: If an operand references a node that did not complete.
        ExpressionError: If a ``regex`` pattern does not compile.
    """
    left = resolve_value(condition.left_operand, node_results, variables)
    right = resolve_value(condition.right_operand, node_results, variables)
    return compare(condition.operator, left, right)
