"""Restricted expression evaluation for ``transform`` nodes.

Expressions are evaluated with simpleeval over the resolved input mapping.
There is no access to builtins beyond the whitelist below, no imports and no
dunder attribute access.

Example:
    >>> evaluate_expression("price * qty", {"price": 2.5, "qty": 4})
    10.0
    >>> evaluate_expression("[u.name for u in users if u.active]", {
    ...     "users": [{"name": "ann", "active": True}, {"name": "bo", "active": False}]
    ... })
    ['ann']
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from simpleeval import EvalWithCompoundTypes

from flowgraph.errors.exceptions import ExpressionError

SAFE_FUNCTIONS: dict[str, Any] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "sum": sum,
    "round": round,
    "sorted": sorted,
    "any": any,
    "all": all,
    "list": list,
    "dict": dict,
}

# JSON spellings, for expressions written by editor users
CONSTANTS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "True": True,
    "False": False,
    "None": None,
}


def evaluate_expression(
    expression: str,
    variables: Mapping[str, Any],
    *,
    node_id: str | None = None,
) -> Any:
    """Evaluate ``expression`` with ``variables`` bound as names.

    Raises:
        ExpressionError: On syntax errors, disallowed constructs, unknown
            names, or errors raised while evaluating.
    """
    if not expression or not expression.strip():
        raise ExpressionError(expression, "expression is empty", node_id=node_id)

    evaluator = EvalWithCompoundTypes(
        names={**CONSTANTS, **variables},
        functions=SAFE_FUNCTIONS,
    )
    try:
        return evaluator.eval(expression.strip())
    except Exception as e:
        raise ExpressionError(expression, f"{type(e).__name__}: {e}", node_id=node_id) from e
