"""Reference resolution against a run's node results and variable bag.

Two indirections are supported:

- ``{"$ref": "nodeId.path.to.field"}`` reads the output of a completed node.
- ``"$var.name"`` reads a run variable.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flowgraph.core.types import NodeReference, NodeStatus, NodeExecutionResult, is_node_reference
from flowgraph.errors.exceptions import NodeReferenceError

VAR_PREFIX = "$var."

# ``nodeId.output.field`` addresses the node's output itself, so a leading
# "output" segment is dropped unless the output really has such a key.
OUTPUT_SEGMENT = "output"


def _ref_string(ref: NodeReference | Mapping[str, Any]) -> str:
    if isinstance(ref, NodeReference):
        return ref.ref
    return str(ref["$ref"])


def get_value_at_path(obj: Any, path: list[str]) -> Any:
    """Walk ``path`` through nested dicts (and lists, by index).

    Returns None as soon as a segment is missing or the current value
    cannot be walked into. Never raises.
    """
    current = obj
    for part in path:
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
    return current


def resolve_reference(
    ref: NodeReference | Mapping[str, Any],
    node_results: Mapping[str, NodeExecutionResult],
) -> Any:
    """Resolve a node reference.

    Raises:
        NodeReferenceError: If the node has no result yet or did not complete.
    """
    node_id, *path = _ref_string(ref).split(".")
    result = node_results.get(node_id)
    if result is None or result.status != NodeStatus.COMPLETED:
        raise NodeReferenceError(node_id)

    output = result.output
    if not path:
        return output
    if path[0] == OUTPUT_SEGMENT and not (isinstance(output, Mapping) and OUTPUT_SEGMENT in output):
        path = path[1:]
    return get_value_at_path(output, path)


def is_variable_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(VAR_PREFIX)


def resolve_value(
    value: Any,
    node_results: Mapping[str, NodeExecutionResult],
    variables: Mapping[str, Any],
) -> Any:
    """Resolve a single value that may be a reference or ``$var.`` string.

    Anything else is returned as-is.
    """
    if is_node_reference(value):
        return resolve_reference(value, node_results)
    if is_variable_reference(value):
        return variables.get(value[len(VAR_PREFIX):])
    return value


def resolve_params(
    params: Mapping[str, Any],
    node_results: Mapping[str, NodeExecutionResult],
    variables: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively resolve references inside a params mapping.

    Nested mappings are walked; lists and primitives pass through unchanged.
    """
    resolved: dict[str, Any] = {}
    for key, value in params.items():
        if is_node_reference(value) or is_variable_reference(value):
            resolved[key] = resolve_value(value, node_results, variables)
        elif isinstance(value, Mapping):
            resolved[key] = resolve_params(value, node_results, variables)
        else:
            resolved[key] = value
    return resolved
