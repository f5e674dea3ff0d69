from mindnode.canvas.context import (
    assemble_context,
    assemble_context_from_list,
    validate_context_path,
)
from mindnode.canvas.export import (
    ExportOptions,
    ExportResult,
    export_branch_to_markdown,
    export_to_markdown,
    generate_export_filename,
)
from mindnode.canvas.layout import (
    LayoutOptions,
    LayoutResult,
    get_nodes_bounding_box,
    has_overlapping_nodes,
    layout,
    layout_descendants,
    nodes_overlap,
)
from mindnode.canvas.models import ContextEntry, Edge, MindNode, Position
from mindnode.canvas.prompt import (
    PromptOptions,
    PromptResult,
    build_prompt,
    build_selection_branch_prompt,
    estimate_tokens,
)

__all__ = [
    "ContextEntry",
    "Edge",
    "ExportOptions",
    "ExportResult",
    "LayoutOptions",
    "LayoutResult",
    "MindNode",
    "Position",
    "PromptOptions",
    "PromptResult",
    "assemble_context",
    "assemble_context_from_list",
    "build_prompt",
    "build_selection_branch_prompt",
    "estimate_tokens",
    "export_branch_to_markdown",
    "export_to_markdown",
    "generate_export_filename",
    "get_nodes_bounding_box",
    "has_overlapping_nodes",
    "layout",
    "layout_descendants",
    "nodes_overlap",
    "validate_context_path",
]
