import logging
from collections.abc import Sequence

from mindnode.canvas.models import ContextEntry, MindNode, NodeCollection, as_node_map

logger = logging.getLogger(__name__)

MAX_TRAVERSAL_DEPTH = 1000


def assemble_context(
    node_id: str,
    nodes: NodeCollection,
    max_depth: int = MAX_TRAVERSAL_DEPTH,
) -> list[ContextEntry]:
    """Assemble the context path from the root down to ``node_id``.

    Walks parent links upward from the node and returns the entries ordered
    root first, the requested node last. Corrupt data never raises: a cycle
    or a parent id missing from ``nodes`` ends the walk and the path gathered
    so far is returned, with the topmost reached node acting as the root.

    Args:
        node_id: Node to start the walk from
        nodes: Mapping keyed by id or a flat list of nodes
        max_depth: Iteration ceiling guarding against pathological inputs

    Returns:
        Ordered context entries, empty when ``node_id`` is unknown
    """
    node_map = as_node_map(nodes)
    path: list[ContextEntry] = []
    visited: set[str] = set()
    current_id: str | None = node_id
    iterations = 0

    while current_id is not None and iterations < max_depth:
        iterations += 1

        if current_id in visited:
            logger.warning(f"Circular reference detected at node: {current_id}")
            break

        node = node_map.get(current_id)
        if node is None:
            if current_id != node_id:
                logger.warning(f"Orphaned node reference: {current_id}")
            break

        visited.add(current_id)
        path.append(ContextEntry.from_node(node))
        current_id = node.parent_id
    else:
        if current_id is not None:
            logger.warning(
                f"Max traversal depth reached ({max_depth}). "
                "Possible circular reference."
            )

    path.reverse()
    return path


def assemble_context_from_list(
    node_id: str, nodes: Sequence[MindNode]
) -> list[ContextEntry]:
    """List flavoured wrapper around ``assemble_context``."""
    return assemble_context(node_id, as_node_map(nodes))


def validate_context_path(
    path: Sequence[ContextEntry], nodes: NodeCollection
) -> bool:
    """Check that ``path`` is a well formed root-to-leaf chain in ``nodes``.

    The first entry must be a node without a parent and every following
    entry must be a child of the entry before it. An empty path is valid.
    """
    if not path:
        return True

    node_map = as_node_map(nodes)

    first = node_map.get(path[0].id)
    if first is None or first.parent_id is not None:
        return False

    for previous, entry in zip(path, path[1:]):
        node = node_map.get(entry.id)
        if node is None or node.parent_id != previous.id:
            return False

    return True
