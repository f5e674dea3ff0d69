"""Markdown export of mind map trees.

Tree depth maps onto heading levels. Once a node would need a heading
deeper than h6 it is written as an indented bullet instead, two spaces of
indentation per level of overflow, so arbitrarily deep trees stay valid
Markdown.
"""

import logging
import re
from collections.abc import Sequence
from datetime import date
from pathlib import Path

from pydantic import BaseModel, Field

from mindnode.canvas.models import MindNode, NodeCollection, as_node_list

logger = logging.getLogger(__name__)

MAX_HEADING_LEVEL = 6
OVERFLOW_INDENT = "  "
DEFAULT_EXPORT_NAME = "mindmap-export"

TYPE_INDICATORS = {
    "ai": "🤖 ",
    "user": "👤 ",
}


class ExportOptions(BaseModel):
    """Markdown export options.

    Attributes:
        include_node_types: Prefix user and AI nodes with a type glyph
        include_selection_source: Quote the selection a branch came from
        title: Document title, written as an h1 above the tree
        starting_heading_level: Heading level used for the export root
    """

    include_node_types: bool = False
    include_selection_source: bool = False
    title: str | None = None
    starting_heading_level: int = Field(default=1, ge=1)


class ExportResult(BaseModel):
    markdown: str
    node_count: int
    max_depth: int


class TreeNode(BaseModel):
    node: MindNode
    children: list["TreeNode"] = Field(default_factory=list)
    depth: int = 0


def _position_key(node: MindNode) -> tuple[float, float]:
    return (node.position.y, node.position.x)


def build_tree(nodes: Sequence[MindNode], root_id: str | None = None) -> TreeNode | None:
    """Build a depth tagged tree from a flat node list.

    Children are ordered top to bottom, then left to right, by position.

    Args:
        nodes: Flat list of nodes
        root_id: Export root; defaults to the node without a parent

    Returns:
        The root TreeNode, or None when no root can be found
    """
    if not nodes:
        return None

    node_map = {node.id: node for node in nodes}
    children: dict[str, list[MindNode]] = {}
    for node in nodes:
        if node.parent_id is not None:
            children.setdefault(node.parent_id, []).append(node)

    if root_id is not None:
        root = node_map.get(root_id)
    else:
        root = next((node for node in nodes if node.parent_id is None), None)

    if root is None:
        return None

    tree = TreeNode(node=root, depth=0)
    visited = {root.id}
    stack = [tree]
    while stack:
        current = stack.pop()
        for child in sorted(children.get(current.node.id, []), key=_position_key):
            if child.id in visited:
                logger.warning(f"Skipping node {child.id} already present in export")
                continue
            visited.add(child.id)
            child_tree = TreeNode(node=child, depth=current.depth + 1)
            current.children.append(child_tree)
            stack.append(child_tree)

    return tree


def _heading_prefix(depth: int, starting_level: int) -> str:
    level = depth + starting_level
    if level <= MAX_HEADING_LEVEL:
        return "#" * level + " "
    return OVERFLOW_INDENT * (level - MAX_HEADING_LEVEL) + "- "


def _format_content(node: MindNode, options: ExportOptions) -> str:
    content = node.content or node.label or ""
    if options.include_node_types and node.type != "root":
        content = TYPE_INDICATORS.get(node.type, "") + content
    return content


def _format_selection(node: MindNode, options: ExportOptions) -> str:
    if not options.include_selection_source or not node.selection_source:
        return ""
    return f'\n\n> *Selected from: "{node.selection_source}"*'


def _walk(tree: TreeNode):
    stack = [tree]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _render(tree: TreeNode, options: ExportOptions) -> ExportResult:
    lines: list[str] = []
    starting_level = options.starting_heading_level

    if options.title:
        lines.append(f"# {options.title}")
        lines.append("")
        starting_level += 1

    node_count = 0
    max_depth = 0
    for current in _walk(tree):
        node_count += 1
        max_depth = max(max_depth, current.depth)

        content = _format_content(current.node, options)
        if not content.strip():
            continue
        lines.append(
            _heading_prefix(current.depth, starting_level)
            + content
            + _format_selection(current.node, options)
        )
        lines.append("")

    while lines and lines[-1] == "":
        lines.pop()

    return ExportResult(
        markdown="\n".join(lines), node_count=node_count, max_depth=max_depth
    )


def export_to_markdown(
    nodes: NodeCollection, options: ExportOptions | None = None
) -> ExportResult:
    """Export a whole mind map to hierarchical Markdown."""
    options = options or ExportOptions()
    tree = build_tree(as_node_list(nodes))
    if tree is None:
        return ExportResult(markdown="", node_count=0, max_depth=0)
    return _render(tree, options)


def filter_branch_nodes(
    nodes: Sequence[MindNode], branch_root_id: str
) -> list[MindNode]:
    """Return the branch root and all of its descendants.

    Descendants are collected by repeated passes over the parent links until
    no new node is added. The branch root is returned with its parent
    cleared so it can act as a tree root.
    """
    if not any(node.id == branch_root_id for node in nodes):
        return []

    branch_ids = {branch_root_id}
    changed = True
    while changed:
        changed = False
        for node in nodes:
            if (
                node.parent_id is not None
                and node.parent_id in branch_ids
                and node.id not in branch_ids
            ):
                branch_ids.add(node.id)
                changed = True

    return [
        node.model_copy(update={"parent_id": None}) if node.id == branch_root_id else node
        for node in nodes
        if node.id in branch_ids
    ]


def export_branch_to_markdown(
    nodes: NodeCollection,
    branch_root_id: str,
    options: ExportOptions | None = None,
) -> ExportResult:
    """Export ``branch_root_id`` and its descendants to Markdown."""
    options = options or ExportOptions()
    branch_nodes = filter_branch_nodes(as_node_list(nodes), branch_root_id)
    tree = build_tree(branch_nodes, branch_root_id)
    if tree is None:
        return ExportResult(markdown="", node_count=0, max_depth=0)
    return _render(tree, options)


def generate_export_filename(title: str | None = None, today: date | None = None) -> str:
    """Build a download filename such as ``my-map-2024-01-31.md``."""
    base_name = DEFAULT_EXPORT_NAME
    if title:
        base_name = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    today = today or date.today()
    return f"{base_name}-{today.isoformat()}.md"


def write_markdown(markdown: str, directory: Path, filename: str) -> Path:
    """Write ``markdown`` to ``directory/filename`` and return the path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(markdown, encoding="utf-8")
    logger.info(f"Exported mind map to {path}")
    return path
