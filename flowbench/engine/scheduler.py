"""Graph Validation and Scheduling

Checks a workflow definition for structural problems and produces the order
in which its nodes run.

Key Components:
- ValidationIssue: a single structural problem, serialisable for callers
- check_workflow: collect every structural problem without raising
- validate_workflow: raise ShapeError / CycleError for an unusable definition
- topological_sort: Kahn's algorithm, ties broken by declaration order
- find_cycle: DFS that reports one offending cycle path
- execution_levels: dependency-depth groups for bounded parallel execution
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Any, Dict, List, Optional, Sequence, Set

from ..errors import CycleError, ShapeError
from .models import Edge, Node, NodeKind, Workflow

logger = logging.getLogger(__name__)

_KNOWN_KINDS = {kind.value for kind in NodeKind}


class ValidationIssue:
    """Structural problem found in a workflow definition.

    Attributes:
        code: Stable identifier (EMPTY_WORKFLOW, DUPLICATE_NODE_ID, ...)
        message: Human-readable description
        node_ids: Nodes the problem refers to
    """

    def __init__(self, code: str, message: str, node_ids: Optional[List[str]] = None):
        self.code = code
        self.message = message
        self.node_ids = node_ids or []

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "node_ids": self.node_ids}

    def __repr__(self) -> str:
        return f"ValidationIssue({self.code!r}, {self.message!r})"


def check_workflow(workflow: Workflow) -> List[ValidationIssue]:
    """Collect shape problems in a workflow definition.

    Cycles are not reported here; they surface from topological_sort.
    """
    issues: List[ValidationIssue] = []

    if not workflow.nodes:
        issues.append(ValidationIssue(
            "EMPTY_WORKFLOW", "Workflow must contain at least one node",
        ))
        return issues

    seen: Set[str] = set()
    for node in workflow.nodes:
        if not node.id:
            issues.append(ValidationIssue("EMPTY_NODE_ID", "Node id cannot be empty"))
            continue
        if node.id in seen:
            issues.append(ValidationIssue(
                "DUPLICATE_NODE_ID", f"Duplicate node id: {node.id}", [node.id],
            ))
        seen.add(node.id)

        kind = node.kind.value if isinstance(node.kind, NodeKind) else node.kind
        if kind not in _KNOWN_KINDS:
            issues.append(ValidationIssue(
                "UNSUPPORTED_NODE_TYPE", f"Unsupported node type: {kind}", [node.id],
            ))

    for edge in workflow.edges:
        for endpoint in (edge.source, edge.target):
            if endpoint not in seen:
                issues.append(ValidationIssue(
                    "UNKNOWN_EDGE_ENDPOINT",
                    f"Edge {edge.source} -> {edge.target} references unknown node '{endpoint}'",
                    [endpoint],
                ))

    return issues


def validate_workflow(workflow: Workflow) -> List[Node]:
    """Validate a workflow and return its execution order.

    Raises:
        ShapeError: Empty node set, bad or duplicate ids, unknown kinds, dangling edges
        CycleError: The edges contain a cycle
    """
    issues = check_workflow(workflow)
    if issues:
        raise ShapeError("; ".join(issue.message for issue in issues))
    return topological_sort(workflow.nodes, workflow.edges)


def topological_sort(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Node]:
    """Order nodes so every edge's source precedes its target.

    Kahn's algorithm. The ready queue is seeded in node declaration order and
    successors are released in edge declaration order, so the result is
    stable for a given definition.

    Raises:
        ShapeError: An edge references a node that is not in ``nodes``
        CycleError: Some nodes could not be ordered
    """
    by_id = {node.id: node for node in nodes}
    graph: Dict[str, List[str]] = defaultdict(list)
    in_degree = {node.id: 0 for node in nodes}

    for edge in edges:
        if edge.source not in by_id or edge.target not in by_id:
            raise ShapeError(f"Edge {edge.source} -> {edge.target} references an unknown node")
        graph[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    queue = deque([node.id for node in nodes if in_degree[node.id] == 0])
    ordered: List[str] = []

    while queue:
        node_id = queue.popleft()
        ordered.append(node_id)

        for neighbor in graph[node_id]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(ordered) != len(by_id):
        sorted_set = set(ordered)
        unsorted = [node.id for node in nodes if node.id not in sorted_set]
        cycle = find_cycle(nodes, edges)
        logger.warning(f"Cycle detected among {unsorted}: {cycle}")
        raise CycleError(unsorted, cycle)

    return [by_id[node_id] for node_id in ordered]


def find_cycle(nodes: Sequence[Node], edges: Sequence[Edge]) -> Optional[List[str]]:
    """Return one cycle as a path whose last element repeats the first, or None."""
    graph: Dict[str, List[str]] = defaultdict(list)
    for edge in edges:
        graph[edge.source].append(edge.target)

    visited: Set[str] = set()
    path: List[str] = []
    path_set: Set[str] = set()

    def dfs(node_id: str) -> Optional[List[str]]:
        if node_id in path_set:
            return path[path.index(node_id):] + [node_id]
        if node_id in visited:
            return None

        visited.add(node_id)
        path.append(node_id)
        path_set.add(node_id)

        for neighbor in graph[node_id]:
            found = dfs(neighbor)
            if found:
                return found

        path.pop()
        path_set.remove(node_id)
        return None

    for node in nodes:
        if node.id not in visited:
            cycle = dfs(node.id)
            if cycle:
                return cycle
    return None


def incoming_sources(node_id: str, edges: Sequence[Edge]) -> List[str]:
    """Sources of the edges that target ``node_id``, in edge declaration order."""
    return [edge.source for edge in edges if edge.target == node_id]


def execution_levels(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[List[Node]]:
    """Group nodes by dependency depth.

    A node's level is the length of the longest path reaching it from a root,
    so every node in level N depends only on nodes in levels < N. Within a
    level, nodes keep topological order.
    """
    ordered = topological_sort(nodes, edges)
    depth: Dict[str, int] = {}
    parents: Dict[str, List[str]] = defaultdict(list)
    for edge in edges:
        parents[edge.target].append(edge.source)

    for node in ordered:
        depth[node.id] = max((depth[p] + 1 for p in parents[node.id]), default=0)

    levels: List[List[Node]] = []
    for node in ordered:
        level = depth[node.id]
        while len(levels) <= level:
            levels.append([])
        levels[level].append(node)
    return levels
