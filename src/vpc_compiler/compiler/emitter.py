"""Topological emitter."""

import heapq

from ..core.logging import get_logger
from ..errors import CycleError, ValidationError, ValidationKind
from ..models.graph import ResourceGraph, ResourceNode

logger = get_logger("emitter")


def _find_cycle(graph: ResourceGraph, remaining: set[str]) -> list[str]:
    """Return one cycle among the unresolved nodes, in dependency order.

    Every unresolved node still waits on another unresolved node, so walking
    those dependencies from any start must revisit a node.
    """
    path: list[str] = []
    position: dict[str, int] = {}
    node_id = min(remaining)
    while node_id not in position:
        position[node_id] = len(path)
        path.append(node_id)
        node_id = min(d for d in graph.get(node_id).depends_on if d in remaining)
    return path[position[node_id]:]


def emit(graph: ResourceGraph) -> tuple[ResourceNode, ...]:
    """Order nodes so every node follows its dependencies.

    Ties are broken by the lexicographically smallest identifier, making the
    output stable across builds of the same intent.

    Raises:
        CycleError: The graph contains a dependency cycle
        ValidationError: A dependency names a node outside the graph
    """
    missing = sorted(
        node.id for node in graph if any(dep not in graph for dep in node.depends_on)
    )
    if missing:
        raise ValidationError(
            ValidationKind.DANGLING_REFERENCE,
            missing,
            "Dependency on a resource that does not exist",
        )

    pending = {node.id: len(node.depends_on) for node in graph}
    dependents: dict[str, list[str]] = {node_id: [] for node_id in pending}
    for node in graph:
        for dep in node.depends_on:
            dependents[dep].append(node.id)

    ready = [node_id for node_id, count in pending.items() if count == 0]
    heapq.heapify(ready)
    ordered: list[ResourceNode] = []
    while ready:
        node_id = heapq.heappop(ready)
        ordered.append(graph.get(node_id))
        for dependent in dependents[node_id]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(ordered) != len(graph):
        remaining = {node_id for node_id, count in pending.items() if count > 0}
        cycle = _find_cycle(graph, remaining)
        logger.debug("Cycle detected among %d unresolved node(s)", len(remaining))
        raise CycleError(cycle)

    logger.debug("Emitted %d nodes", len(ordered))
    return tuple(ordered)
