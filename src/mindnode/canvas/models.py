import json
from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from mindnode.canvas.exceptions import CanvasLoadError

NodeType = Literal["root", "user", "ai"]
EdgeType = Literal["default", "smoothstep"]


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class MindNode(BaseModel):
    """A single node of a mind map.

    Nodes form a tree through ``parent_id``. The node whose ``parent_id`` is
    None is the root. Collaborators send camelCase JSON, optionally with the
    text fields nested under ``data``; both shapes validate into this model.

    Attributes:
        id: Opaque unique identifier
        parent_id: Id of the parent node, None for the root
        type: Who authored the node (root is structural)
        content: Text used for display and context assembly
        label: Optional short display label
        selection_source: Text excerpted from an ancestor that spawned this branch
        position: Top-left canvas coordinate
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    parent_id: str | None = Field(default=None, alias="parentId")
    type: NodeType = "user"
    content: str = Field(default="", alias="contextContent")
    label: str = ""
    selection_source: str | None = Field(default=None, alias="selectionSource")
    position: Position = Field(default_factory=Position)
    workspace_id: str | None = Field(default=None, alias="workspaceId")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @model_validator(mode="before")
    @classmethod
    def _flatten_data(cls, value: Any) -> Any:
        if isinstance(value, dict) and isinstance(value.get("data"), dict):
            flattened = {k: v for k, v in value.items() if k != "data"}
            for key, item in value["data"].items():
                flattened.setdefault(key, item)
            return flattened
        return value


class Edge(BaseModel):
    id: str
    source: str
    target: str
    type: EdgeType | None = None


class ContextEntry(BaseModel):
    """Projection of a node used when assembling AI context."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    content: str
    type: NodeType
    selection_source: str | None = Field(default=None, alias="selectionSource")

    @classmethod
    def from_node(cls, node: MindNode) -> "ContextEntry":
        return cls(
            id=node.id,
            content=node.content,
            type=node.type,
            selection_source=node.selection_source,
        )


NodeCollection = Mapping[str, MindNode] | Sequence[MindNode]


def as_node_map(nodes: NodeCollection) -> dict[str, MindNode]:
    """Normalise a node mapping or list into a dict keyed by node id.

    For a list with duplicate ids the last occurrence wins.
    """
    if isinstance(nodes, Mapping):
        return dict(nodes)
    return {node.id: node for node in nodes}


def as_node_list(nodes: NodeCollection) -> list[MindNode]:
    """Normalise a node mapping or list into a list of nodes."""
    if isinstance(nodes, Mapping):
        return list(nodes.values())
    return list(nodes)


def edges_from_nodes(nodes: Sequence[MindNode]) -> list[Edge]:
    """Derive parent-to-child edges from the parent links of ``nodes``."""
    known = {node.id for node in nodes}
    return [
        Edge(id=f"e-{node.parent_id}-{node.id}", source=node.parent_id, target=node.id)
        for node in nodes
        if node.parent_id is not None and node.parent_id in known
    ]


def load_canvas(path: Path) -> tuple[list[MindNode], list[Edge]]:
    """Load nodes and edges from a JSON file.

    The file may hold a list of nodes, an object keyed by node id, or an
    object with ``nodes`` and optional ``edges`` keys. When no edges are
    stored they are derived from the parent links.
    """
    try:
        return _parse_canvas(json.loads(Path(path).read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise CanvasLoadError(f"Could not load nodes from {path}: {e}") from e


def _parse_canvas(data: Any) -> tuple[list[MindNode], list[Edge]]:
    raw_edges: list[Any] | None = None
    if isinstance(data, dict) and "nodes" in data:
        raw_nodes = data["nodes"]
        raw_edges = data.get("edges")
    else:
        raw_nodes = data

    if isinstance(raw_nodes, dict):
        raw_nodes = [{"id": key, **value} for key, value in raw_nodes.items()]

    nodes = [MindNode.model_validate(item) for item in raw_nodes]
    if raw_edges is None:
        edges = edges_from_nodes(nodes)
    else:
        edges = [Edge.model_validate(item) for item in raw_edges]
    return nodes, edges


def dump_nodes(nodes: Sequence[MindNode]) -> str:
    """Serialise nodes to camelCase JSON for collaborators."""
    return json.dumps(
        [node.model_dump(mode="json", by_alias=True, exclude_none=True) for node in nodes],
        indent=2,
        ensure_ascii=False,
    )
