"""Graph scheduling: validation, execution order and skip propagation."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from flowgraph.core.types import (
    ConditionNodeData,
    Edge,
    LoopNodeData,
    Node,
    ParallelNodeData,
    WorkflowDefinition,
)
from flowgraph.errors.exceptions import CycleDetectedError, WorkflowValidationError


def validate_definition(definition: WorkflowDefinition) -> None:
    """Validate workflow structure before any run.

    Cycles are not checked here; they are reported by ``topological_sort``
    when a run starts.

    Raises:
        WorkflowValidationError: If the definition is invalid.
    """
    node_ids = [node.id for node in definition.nodes]
    if len(node_ids) != len(set(node_ids)):
        duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
        raise WorkflowValidationError(
            f"Duplicate node IDs found: {', '.join(duplicates)}",
            field="nodes",
        )

    known = set(node_ids)
    nodes = definition.node_map()
    for edge in definition.edges:
        for endpoint in (edge.source, edge.target):
            if endpoint not in known:
                raise WorkflowValidationError(
                    f"Edge {edge.id or f'{edge.source}->{edge.target}'} "
                    f"references non-existent node: {endpoint}",
                    field="edges",
                )

    for node in definition.nodes:
        data = node.data
        if isinstance(data, ParallelNodeData):
            missing = [b for b in data.branches if b not in known]
            if missing:
                raise WorkflowValidationError(
                    f"Parallel node {node.id} references non-existent branches: "
                    f"{', '.join(missing)}",
                    field=f"nodes[{node.id}].data.branches",
                )
        elif isinstance(data, LoopNodeData) and data.body_node_id is not None:
            body = nodes.get(data.body_node_id)
            if body is None:
                raise WorkflowValidationError(
                    f"Loop node {node.id} references non-existent body node: "
                    f"{data.body_node_id}",
                    field=f"nodes[{node.id}].data.bodyNodeId",
                )
            if isinstance(body.data, (ConditionNodeData, ParallelNodeData)) or body.disabled:
                kind = "disabled" if body.disabled else body.type
                raise WorkflowValidationError(
                    f"Loop node {node.id} cannot use {kind} node {body.id} as its body",
                    field=f"nodes[{node.id}].data.bodyNodeId",
                )

    limit = definition.settings.max_node_executions
    if limit is not None and len(node_ids) > limit:
        raise WorkflowValidationError(
            f"Workflow has {len(node_ids)} nodes, maximum is {limit}",
            field="settings.maxNodeExecutions",
        )


def topological_sort(nodes: list[Node], edges: list[Edge]) -> list[str]:
    """Order node ids with Kahn's algorithm.

    Ties between ready nodes are broken FIFO in discovery order. Edges
    whose endpoints are not both known nodes are ignored.

    Raises:
        CycleDetectedError: If not every node can be ordered.
    """
    node_ids = [node.id for node in nodes]
    in_degree: dict[str, int] = {nid: 0 for nid in node_ids}
    adjacency: dict[str, list[str]] = {nid: [] for nid in node_ids}

    for edge in edges:
        if edge.source in adjacency and edge.target in in_degree:
            adjacency[edge.source].append(edge.target)
            in_degree[edge.target] += 1

    queue = deque(nid for nid in node_ids if in_degree[nid] == 0)
    order: list[str] = []

    while queue:
        current = queue.popleft()
        order.append(current)
        for neighbor in adjacency[current]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(order) != len(node_ids):
        ordered = set(order)
        raise CycleDetectedError([nid for nid in node_ids if nid not in ordered])

    return order


def mark_downstream_for_skip(node_id: str, edges: Iterable[Edge], skip: set[str]) -> None:
    """Add ``node_id`` and everything reachable from it to ``skip``."""
    edge_list = list(edges)
    stack = [node_id]
    while stack:
        current = stack.pop()
        if current in skip:
            continue
        skip.add(current)
        stack.extend(e.target for e in edge_list if e.source == current and e.target not in skip)


def plan_branches(
    branch_starts: list[str],
    order: list[str],
    edges: list[Edge],
    exclude: set[str] | None = None,
) -> dict[str, list[str]]:
    """Split the subgraphs below a parallel node into independent branches.

    A branch holds its start node plus every later node (in ``order``) whose
    predecessors all lie inside that branch. Merge points, nodes fed from
    outside, and nodes already claimed by an earlier branch are left out.

    Returns:
        Mapping of branch start id to its node ids in execution order.
    """
    claimed: set[str] = set(exclude or ())
    predecessors: dict[str, set[str]] = {nid: set() for nid in order}
    for edge in edges:
        if edge.target in predecessors:
            predecessors[edge.target].add(edge.source)

    plans: dict[str, list[str]] = {}
    for start in branch_starts:
        if start in claimed or start in plans:
            continue
        members = [start]
        member_set = {start}
        start_index = order.index(start)
        for nid in order[start_index + 1:]:
            if nid in claimed:
                continue
            preds = predecessors[nid]
            if preds and preds <= member_set:
                members.append(nid)
                member_set.add(nid)
        claimed |= member_set
        plans[start] = members
    return plans
