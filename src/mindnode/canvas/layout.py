"""Rank based tree layout for mind maps.

Nodes are placed on discrete ranks along the primary axis (depth from the
root) and spread along the secondary axis. Leaves take consecutive slots
and every parent is centred over its children, so each subtree owns a
contiguous band of the secondary axis and same-rank nodes never overlap.
"""

import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from mindnode.canvas.config.models import LayoutDirection
from mindnode.canvas.models import (
    Edge,
    MindNode,
    NodeCollection,
    Position,
    as_node_list,
)

logger = logging.getLogger(__name__)

NODE_WIDTH = 300
NODE_HEIGHT = 150
NODE_SEP = 80
RANK_SEP = 150
MARGIN = 50


class LayoutOptions(BaseModel):
    """Layout configuration.

    Attributes:
        direction: TB, BT, LR or RL; depth grows down, up, right or left
        node_width: Node width used for spacing and overlap checks
        node_height: Node height used for spacing and overlap checks
        node_sep: Gap between neighbouring nodes on the same rank
        rank_sep: Gap between consecutive ranks
        margin: Offset of the layout from the origin
        manually_positioned: Ids of nodes whose position must be preserved
    """

    direction: LayoutDirection = "LR"
    node_width: float = NODE_WIDTH
    node_height: float = NODE_HEIGHT
    node_sep: float = NODE_SEP
    rank_sep: float = RANK_SEP
    margin: float = MARGIN
    manually_positioned: set[str] = Field(default_factory=set)


class LayoutResult(BaseModel):
    nodes: list[MindNode]
    edges: list[Edge]

    def positions(self) -> dict[str, Position]:
        """Position of every node keyed by id, ready to merge into a store."""
        return {node.id: node.position for node in self.nodes}


class BoundingBox(BaseModel):
    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0
    width: float = 0.0
    height: float = 0.0


def _build_forest(
    nodes: Sequence[MindNode], edges: Sequence[Edge]
) -> tuple[list[str], dict[str, list[str]]]:
    """Return layout roots and children lists for ``nodes``.

    Edges to unknown nodes are ignored and a node keeps only its first
    incoming edge. Nodes left unreached because of cycles are promoted to
    roots in input order.
    """
    ids = [node.id for node in nodes]
    known = set(ids)
    children: dict[str, list[str]] = {node_id: [] for node_id in ids}
    has_parent: set[str] = set()

    for edge in edges:
        if edge.source not in known or edge.target not in known:
            continue
        if edge.target in has_parent or edge.source == edge.target:
            continue
        children[edge.source].append(edge.target)
        has_parent.add(edge.target)

    roots = [node_id for node_id in ids if node_id not in has_parent]

    reached: set[str] = set()
    stack = list(roots)
    while stack:
        node_id = stack.pop()
        if node_id in reached:
            continue
        reached.add(node_id)
        stack.extend(children[node_id])

    for node_id in ids:
        if node_id in reached:
            continue
        logger.warning(f"Node {node_id} is part of a cycle, laying it out as a root")
        roots.append(node_id)
        stack = [node_id]
        while stack:
            current = stack.pop()
            if current in reached:
                continue
            reached.add(current)
            stack.extend(children[current])

    return roots, children


def _place(
    roots: list[str],
    children: dict[str, list[str]],
    slot: float,
) -> tuple[dict[str, int], dict[str, float]]:
    """Assign a rank and a secondary axis centre to every reachable node."""
    ranks: dict[str, int] = {}
    centres: dict[str, float] = {}
    tree_children: dict[str, list[str]] = {}
    cursor = 0.0

    for root in roots:
        if root in ranks:
            continue
        ranks[root] = 0
        # Iterative post-order walk; each frame is (node id, children expanded)
        stack: list[tuple[str, bool]] = [(root, False)]
        while stack:
            node_id, expanded = stack.pop()
            if not expanded:
                stack.append((node_id, True))
                fresh = [c for c in children[node_id] if c not in ranks]
                tree_children[node_id] = fresh
                for child in fresh:
                    ranks[child] = ranks[node_id] + 1
                for child in reversed(fresh):
                    stack.append((child, False))
                continue

            kids = tree_children[node_id]
            if kids:
                centres[node_id] = (centres[kids[0]] + centres[kids[-1]]) / 2
            else:
                centres[node_id] = cursor
                cursor += slot

    return ranks, centres


def layout(
    nodes: NodeCollection,
    edges: Sequence[Edge],
    options: LayoutOptions | None = None,
) -> LayoutResult:
    """Compute fresh positions for ``nodes``.

    Nodes listed in ``options.manually_positioned`` keep their coordinates.
    The input nodes are never mutated; repositioned copies are returned in
    the input order.

    Args:
        nodes: Nodes to lay out
        edges: Parent to child edges
        options: Layout configuration

    Returns:
        LayoutResult with repositioned nodes and the unchanged edges
    """
    options = options or LayoutOptions()
    nodes = as_node_list(nodes)
    if not nodes:
        return LayoutResult(nodes=[], edges=list(edges))

    horizontal = options.direction in ("LR", "RL")
    primary_extent = options.node_width if horizontal else options.node_height
    secondary_extent = options.node_height if horizontal else options.node_width

    roots, children = _build_forest(nodes, edges)
    ranks, centres = _place(roots, children, secondary_extent + options.node_sep)

    max_rank = max(ranks.values(), default=0)
    rank_step = primary_extent + options.rank_sep

    result: list[MindNode] = []
    for node in nodes:
        if node.id in options.manually_positioned:
            result.append(node)
            continue

        rank = ranks[node.id]
        if options.direction in ("BT", "RL"):
            rank = max_rank - rank
        primary = options.margin + rank * rank_step
        secondary = options.margin + centres[node.id]

        if horizontal:
            position = Position(x=primary, y=secondary)
        else:
            position = Position(x=secondary, y=primary)
        result.append(node.model_copy(update={"position": position}))

    return LayoutResult(nodes=result, edges=list(edges))


def layout_with_manual_preservation(
    nodes: Sequence[MindNode],
    edges: Sequence[Edge],
    manually_positioned: set[str],
    options: LayoutOptions | None = None,
) -> LayoutResult:
    options = options or LayoutOptions()
    return layout(
        nodes,
        edges,
        options.model_copy(update={"manually_positioned": set(manually_positioned)}),
    )


def get_descendant_ids(node_id: str, nodes: Sequence[MindNode]) -> set[str]:
    """Return the ids of all transitive children of ``node_id``."""
    children: dict[str, list[str]] = {}
    for node in nodes:
        if node.parent_id is not None:
            children.setdefault(node.parent_id, []).append(node.id)

    descendants: set[str] = set()
    stack = list(children.get(node_id, []))
    while stack:
        current = stack.pop()
        if current in descendants or current == node_id:
            continue
        descendants.add(current)
        stack.extend(children.get(current, []))
    return descendants


def layout_descendants(
    root_id: str,
    nodes: NodeCollection,
    edges: Sequence[Edge],
    options: LayoutOptions | None = None,
) -> LayoutResult:
    """Re-layout the subtree below ``root_id`` around its current position.

    The subtree is laid out on its own and translated so that ``root_id``
    stays where it is. Nodes outside the subtree are returned untouched.
    """
    options = options or LayoutOptions()
    nodes = as_node_list(nodes)

    anchor = next((node for node in nodes if node.id == root_id), None)
    if anchor is None:
        return LayoutResult(nodes=list(nodes), edges=list(edges))

    subtree_ids = get_descendant_ids(root_id, nodes)
    subtree_ids.add(root_id)

    subtree_nodes = [node for node in nodes if node.id in subtree_ids]
    subtree_edges = [
        edge
        for edge in edges
        if edge.source in subtree_ids and edge.target in subtree_ids
    ]
    # The anchor is always laid out fresh so the offset reflects where the
    # subtree was placed, even when the anchor itself is pinned.
    subtree_options = options.model_copy(
        update={"manually_positioned": options.manually_positioned - {root_id}}
    )
    laid_out = layout(subtree_nodes, subtree_edges, subtree_options).nodes

    laid_out_anchor = next(node for node in laid_out if node.id == root_id)
    dx = anchor.position.x - laid_out_anchor.position.x
    dy = anchor.position.y - laid_out_anchor.position.y

    moved: dict[str, MindNode] = {}
    for node in laid_out:
        if node.id in subtree_options.manually_positioned:
            moved[node.id] = node
            continue
        position = Position(x=node.position.x + dx, y=node.position.y + dy)
        moved[node.id] = node.model_copy(update={"position": position})

    return LayoutResult(
        nodes=[moved.get(node.id, node) for node in nodes],
        edges=list(edges),
    )


def nodes_overlap(
    first: MindNode,
    second: MindNode,
    node_width: float = NODE_WIDTH,
    node_height: float = NODE_HEIGHT,
) -> bool:
    """Whether the bounding boxes of two nodes overlap.

    Boxes that only touch along an edge do not overlap.
    """
    a, b = first.position, second.position
    return not (
        a.x + node_width <= b.x
        or a.x >= b.x + node_width
        or a.y + node_height <= b.y
        or a.y >= b.y + node_height
    )


def has_overlapping_nodes(
    nodes: Sequence[MindNode],
    node_width: float = NODE_WIDTH,
    node_height: float = NODE_HEIGHT,
) -> bool:
    for i, first in enumerate(nodes):
        for second in nodes[i + 1 :]:
            if nodes_overlap(first, second, node_width, node_height):
                return True
    return False


def get_nodes_bounding_box(
    nodes: Sequence[MindNode],
    node_width: float = NODE_WIDTH,
    node_height: float = NODE_HEIGHT,
) -> BoundingBox:
    """Axis aligned box enclosing every node; zero sized at the origin if empty."""
    if not nodes:
        return BoundingBox()

    min_x = min(node.position.x for node in nodes)
    min_y = min(node.position.y for node in nodes)
    max_x = max(node.position.x + node_width for node in nodes)
    max_y = max(node.position.y + node_height for node in nodes)

    return BoundingBox(
        min_x=min_x,
        min_y=min_y,
        max_x=max_x,
        max_y=max_y,
        width=max_x - min_x,
        height=max_y - min_y,
    )
