"""relive - live code reloading and crash recovery for frame-driven apps."""

from relive.config import SupervisorConfig, load_config
from relive.dispatch import ProtectedDispatcher
from relive.errors import (
    DispatchError,
    HookError,
    InvalidTransitionError,
    LoadError,
    ReliveError,
)
from relive.host import CallbackTable, Host
from relive.overlay import ErrorReport
from relive.reload import ChangeScanner, HotSwapper, StateMerger, SwapResult, SwapStatus
from relive.supervisor import Supervisor, SupervisorState

__version__ = "0.1.0"

__all__ = [
    "CallbackTable",
    "ChangeScanner",
    "DispatchError",
    "ErrorReport",
    "HookError",
    "Host",
    "HotSwapper",
    "InvalidTransitionError",
    "LoadError",
    "ProtectedDispatcher",
    "ReliveError",
    "StateMerger",
    "Supervisor",
    "SupervisorConfig",
    "SupervisorState",
    "SwapResult",
    "SwapStatus",
    "load_config",
]
