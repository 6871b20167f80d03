"""Change detection, state merging and module hot-swap.

- Modification-time scanning of a source tree
- Recursive merge of new definitions into live module state
- Per-file swap with rollback on load failure
"""

from relive.reload.merger import StateMerger, merge
from relive.reload.reloader import HotSwapper, SwapResult, SwapStatus, path_to_module
from relive.reload.watcher import ChangeScanner, FileRegistry, ModuleRecord

__all__ = [
    "ChangeScanner",
    "FileRegistry",
    "HotSwapper",
    "ModuleRecord",
    "StateMerger",
    "SwapResult",
    "SwapStatus",
    "merge",
    "path_to_module",
]
