from .errors import PluggableError, UsageError, ValidationError
from .sentinel import CONTINUE, Continue, Done, Step, classify
from .context import Context, ExtensionTable, derive, extensions_of
from .fork import fork
from .resolver import resolve
from .strategies import DeferredStrategy, StreamStrategy, Strategy, SyncStrategy
from .unit import Unit, deferred, stream, sync
from .runtime import Runtime, RuntimeConfig

__all__ = [
  "PluggableError",
  "UsageError",
  "ValidationError",
  "CONTINUE",
  "Continue",
  "Done",
  "Step",
  "classify",
  "Context",
  "ExtensionTable",
  "derive",
  "extensions_of",
  "fork",
  "resolve",
  "Strategy",
  "SyncStrategy",
  "DeferredStrategy",
  "StreamStrategy",
  "Unit",
  "deferred",
  "sync",
  "stream",
  "Runtime",
  "RuntimeConfig",
]
