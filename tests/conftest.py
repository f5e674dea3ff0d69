import logging
import os
import tempfile
from pathlib import Path

# Point the config loader at an empty file so a developer's local
# mindnode.yaml never leaks into test runs.
_test_config_dir = tempfile.mkdtemp()
_test_config_path = Path(_test_config_dir) / "test-defaults.yaml"
_test_config_path.write_text("{}")
os.environ["MINDNODE_CANVAS_CONFIG_PATH"] = str(_test_config_path)

import pytest  # noqa: E402

from mindnode.canvas.models import MindNode, Position  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo CLI logging setup so log capture works in every test."""
    root_level = logging.getLogger().level
    yield
    logger = logging.getLogger("mindnode.canvas")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    logging.getLogger().setLevel(root_level)


def make_node(
    id: str,
    parent_id: str | None = None,
    type: str = "user",
    content: str | None = None,
    selection_source: str | None = None,
    x: float = 0,
    y: float = 0,
) -> MindNode:
    return MindNode(
        id=id,
        parent_id=parent_id,
        type=type,
        content=f"Content of {id}" if content is None else content,
        selection_source=selection_source,
        position=Position(x=x, y=y),
    )


@pytest.fixture
def tree_nodes() -> list[MindNode]:
    """A small conversation tree.

    root
    ├── q1 (user)
    │   └── a1 (ai)
    │       └── q2 (user, branched from a selection)
    └── q3 (user)
    """
    return [
        make_node("root", None, "root", "Why is the sky blue?"),
        make_node("q1", "root", "user", "Explain scattering", y=0),
        make_node("a1", "q1", "ai", "Rayleigh scattering favours short wavelengths"),
        make_node(
            "q2",
            "a1",
            "user",
            "What about sunsets?",
            selection_source="short wavelengths",
        ),
        make_node("q3", "root", "user", "Is it blue on Mars?", y=200),
    ]
