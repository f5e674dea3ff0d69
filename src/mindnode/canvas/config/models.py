from typing import Literal

from pydantic import BaseModel, Field

from mindnode.canvas.prompts import SYSTEM_PROMPT

LayoutDirection = Literal["TB", "BT", "LR", "RL"]


class ContextConfig(BaseModel):
    """Context assembly settings.

    Attributes:
        max_traversal_depth: Iteration ceiling when walking parent links
    """

    max_traversal_depth: int = Field(default=1000, ge=1)


class PromptConfig(BaseModel):
    """Prompt construction settings.

    Attributes:
        token_limit: Estimated token budget for the whole prompt
        system_prompt: Instructional text placed at the top of every prompt
    """

    token_limit: int = Field(default=8000, ge=0)
    system_prompt: str = SYSTEM_PROMPT

    def to_options(self):
        from mindnode.canvas.prompt import PromptOptions

        return PromptOptions(
            token_limit=self.token_limit, system_prompt=self.system_prompt
        )


class LayoutConfig(BaseModel):
    """Tree layout settings.

    Node size and spacing are presentation choices, kept here so they can be
    tuned per deployment.
    """

    direction: LayoutDirection = "LR"
    node_width: float = Field(default=300, gt=0)
    node_height: float = Field(default=150, gt=0)
    node_sep: float = Field(default=80, ge=0)
    rank_sep: float = Field(default=150, ge=0)
    margin: float = Field(default=50, ge=0)

    def to_options(self, manually_positioned: set[str] | None = None):
        from mindnode.canvas.layout import LayoutOptions

        return LayoutOptions(
            **self.model_dump(),
            manually_positioned=manually_positioned or set(),
        )


class ExportConfig(BaseModel):
    include_node_types: bool = False
    include_selection_source: bool = False
    title: str | None = None
    starting_heading_level: int = Field(default=1, ge=1, le=6)

    def to_options(self):
        from mindnode.canvas.export import ExportOptions

        return ExportOptions(**self.model_dump())


class SyncConfig(BaseModel):
    """Offline queue retry settings.

    Attributes:
        max_retries: Attempts after which an operation is left as failed
        base_backoff_ms: Delay before the first retry, doubled on each retry
    """

    max_retries: int = Field(default=5, ge=0)
    base_backoff_ms: int = Field(default=1000, ge=0)


class AppConfig(BaseModel):
    context: ContextConfig = Field(default_factory=ContextConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
