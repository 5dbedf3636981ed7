from .core import (
    CONTINUE,
    Context,
    Continue,
    Done,
    ExtensionTable,
    PluggableError,
    Runtime,
    RuntimeConfig,
    Unit,
    UsageError,
    ValidationError,
    deferred,
    stream,
    sync,
)

__all__ = [
    "CONTINUE",
    "Context",
    "Continue",
    "Done",
    "ExtensionTable",
    "PluggableError",
    "Runtime",
    "RuntimeConfig",
    "Unit",
    "UsageError",
    "ValidationError",
    "deferred",
    "stream",
    "sync",
]

__version__ = "0.1.0"
