from datetime import date

from mindnode.canvas.export import (
    ExportOptions,
    build_tree,
    export_branch_to_markdown,
    export_to_markdown,
    filter_branch_nodes,
    generate_export_filename,
    write_markdown,
)
from mindnode.canvas.models import MindNode

from .conftest import make_node


def _chain(depth: int) -> list[MindNode]:
    nodes = [make_node("n0", None, "root", "Level 0")]
    for i in range(1, depth + 1):
        nodes.append(make_node(f"n{i}", f"n{i - 1}", "user", f"Level {i}"))
    return nodes


def test_three_level_tree_headings():
    result = export_to_markdown(_chain(2))
    assert result.markdown == "# Level 0\n\n## Level 1\n\n### Level 2"
    assert result.node_count == 3
    assert result.max_depth == 2


def test_title_shifts_headings():
    result = export_to_markdown(_chain(2), ExportOptions(title="My Map"))
    assert result.markdown.splitlines() == [
        "# My Map",
        "",
        "## Level 0",
        "",
        "### Level 1",
        "",
        "#### Level 2",
    ]


def test_starting_heading_level():
    result = export_to_markdown(_chain(1), ExportOptions(starting_heading_level=3))
    assert result.markdown == "### Level 0\n\n#### Level 1"


def test_deep_levels_become_indented_bullets():
    result = export_to_markdown(_chain(8))
    lines = [line for line in result.markdown.splitlines() if line]
    assert lines[5] == "###### Level 5"
    assert lines[6] == "  - Level 6"
    assert lines[7] == "    - Level 7"
    assert lines[8] == "      - Level 8"
    assert result.max_depth == 8


def test_children_sorted_by_position():
    nodes = [
        make_node("root", None, "root", "Root"),
        make_node("low", "root", content="Low", x=0, y=300),
        make_node("right", "root", content="Right", x=400, y=100),
        make_node("left", "root", content="Left", x=0, y=100),
    ]
    result = export_to_markdown(nodes)
    headings = [line for line in result.markdown.splitlines() if line]
    assert headings == ["# Root", "## Left", "## Right", "## Low"]


def test_subtrees_stay_together(tree_nodes):
    result = export_to_markdown(tree_nodes)
    assert result.markdown.splitlines()[::2] == [
        "# Why is the sky blue?",
        "## Explain scattering",
        "### Rayleigh scattering favours short wavelengths",
        "#### What about sunsets?",
        "## Is it blue on Mars?",
    ]
    assert result.node_count == 5
    assert result.max_depth == 3


def test_node_type_indicators(tree_nodes):
    result = export_to_markdown(tree_nodes, ExportOptions(include_node_types=True))
    assert "# Why is the sky blue?" in result.markdown
    assert "## 👤 Explain scattering" in result.markdown
    assert "### 🤖 Rayleigh scattering" in result.markdown


def test_selection_source_annotation(tree_nodes):
    result = export_to_markdown(
        tree_nodes, ExportOptions(include_selection_source=True)
    )
    assert (
        '#### What about sunsets?\n\n> *Selected from: "short wavelengths"*'
        in result.markdown
    )

    plain = export_to_markdown(tree_nodes)
    assert "Selected from" not in plain.markdown


def test_empty_content_is_skipped_but_counted():
    nodes = [
        make_node("root", None, "root", "Root"),
        make_node("blank", "root", content="   "),
        make_node("child", "blank", content="Child"),
    ]
    result = export_to_markdown(nodes)
    assert result.markdown == "# Root\n\n### Child"
    assert result.node_count == 3


def test_label_used_when_content_missing():
    nodes = [MindNode(id="root", type="root", label="Label only")]
    assert export_to_markdown(nodes).markdown == "# Label only"


def test_empty_input():
    result = export_to_markdown([])
    assert result.markdown == ""
    assert result.node_count == 0
    assert result.max_depth == 0


def test_no_root_found():
    nodes = [make_node("a", "b"), make_node("b", "a")]
    assert export_to_markdown(nodes).markdown == ""


def test_build_tree_depths(tree_nodes):
    tree = build_tree(tree_nodes)
    assert tree is not None
    assert tree.node.id == "root"
    assert [child.node.id for child in tree.children] == ["q1", "q3"]
    assert tree.children[0].children[0].children[0].depth == 3


class TestBranchExport:
    def test_includes_branch_and_descendants_only(self, tree_nodes):
        result = export_branch_to_markdown(tree_nodes, "q1")
        assert result.markdown == (
            "# Explain scattering\n\n"
            "## Rayleigh scattering favours short wavelengths\n\n"
            "### What about sunsets?"
        )
        assert "sky" not in result.markdown
        assert "Mars" not in result.markdown
        assert result.node_count == 3
        assert result.max_depth == 2

    def test_branch_with_title(self, tree_nodes):
        result = export_branch_to_markdown(
            tree_nodes, "a1", ExportOptions(title="Branch")
        )
        assert result.markdown.startswith("# Branch\n\n## Rayleigh")

    def test_unknown_branch(self, tree_nodes):
        result = export_branch_to_markdown(tree_nodes, "missing")
        assert result.markdown == ""
        assert result.node_count == 0

    def test_filter_branch_nodes_reroots(self, tree_nodes):
        branch = filter_branch_nodes(tree_nodes, "q1")
        assert {node.id for node in branch} == {"q1", "a1", "q2"}
        root = next(node for node in branch if node.id == "q1")
        assert root.parent_id is None
        original = next(node for node in tree_nodes if node.id == "q1")
        assert original.parent_id == "root"

    def test_filter_branch_nodes_transitive_regardless_of_order(self):
        nodes = [
            make_node("d", "c"),
            make_node("c", "b"),
            make_node("b", "a"),
            make_node("a", None, "root"),
        ]
        branch = filter_branch_nodes(nodes, "b")
        assert {node.id for node in branch} == {"b", "c", "d"}


class TestFilename:
    def test_sanitised_title(self):
        filename = generate_export_filename("  My Mind Map: Ideas! ", date(2024, 1, 31))
        assert filename == "my-mind-map-ideas-2024-01-31.md"

    def test_default_name(self):
        assert generate_export_filename(None, date(2024, 1, 31)) == (
            "mindmap-export-2024-01-31.md"
        )

    def test_uses_today(self):
        filename = generate_export_filename("Plan")
        assert filename == f"plan-{date.today().isoformat()}.md"


def test_write_markdown(tmp_path):
    path = write_markdown("# Hello", tmp_path / "out", "hello.md")
    assert path == tmp_path / "out" / "hello.md"
    assert path.read_text(encoding="utf-8") == "# Hello"


def test_export_accepts_node_mapping(tree_nodes):
    mapping = {node.id: node for node in tree_nodes}
    assert export_to_markdown(mapping) == export_to_markdown(tree_nodes)
    assert export_branch_to_markdown(mapping, "q1") == export_branch_to_markdown(
        tree_nodes, "q1"
    )
