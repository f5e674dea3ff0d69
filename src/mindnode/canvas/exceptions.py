class MindNodeError(Exception):
    """Base class for errors raised by mindnode.canvas."""


class InvalidArgumentError(MindNodeError, ValueError):
    """Raised when a caller violates a function's argument contract."""


class ConfigError(MindNodeError):
    """Raised when a configuration file cannot be loaded or validated."""


class CanvasLoadError(MindNodeError):
    """Raised when a node file cannot be parsed into nodes and edges."""
