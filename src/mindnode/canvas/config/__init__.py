from mindnode.canvas.config.loader import (
    find_config_file,
    generate_default_config,
    load_config,
    load_yaml_config,
)
from mindnode.canvas.config.models import (
    AppConfig,
    ContextConfig,
    ExportConfig,
    LayoutConfig,
    PromptConfig,
    SyncConfig,
)

__all__ = [
    "AppConfig",
    "ContextConfig",
    "PromptConfig",
    "LayoutConfig",
    "ExportConfig",
    "SyncConfig",
    "find_config_file",
    "load_yaml_config",
    "load_config",
    "generate_default_config",
]
