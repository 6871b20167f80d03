"""Modification-time based change detection for module files."""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ModuleRecord:
    """Last known state of a tracked module file."""

    path: Path
    last_known_mtime: int  # st_mtime_ns


def _mtime(path: Path) -> int:
    return path.stat().st_mtime_ns


class FileRegistry:
    """Records the last known modification time of every tracked file."""

    def __init__(self) -> None:
        self._records: dict[Path, ModuleRecord] = {}

    def get(self, path: Path) -> ModuleRecord | None:
        return self._records.get(path)

    def reset(self, path: Path) -> ModuleRecord | None:
        """Record the file's current modification time.

        Returns:
            The updated record, or None if the file no longer exists.
        """
        try:
            mtime = _mtime(path)
        except OSError:
            self._records.pop(path, None)
            logger.debug(f"Dropped record for missing file {path}")
            return None

        record = self._records.get(path)
        if record is None:
            record = ModuleRecord(path=path, last_known_mtime=mtime)
            self._records[path] = record
        else:
            record.last_known_mtime = mtime
        return record

    def reset_all(self, paths: Iterable[Path]) -> None:
        for path in paths:
            self.reset(path)

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __iter__(self) -> Iterator[ModuleRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)


class ChangeScanner:
    """Finds module files whose modification time differs from their record.

    Hidden entries (names starting with ``.``) and ignore patterns are
    skipped. Directory entries are visited in name order so the scan order
    is stable between runs.
    """

    def __init__(
        self,
        root: str | Path,
        registry: FileRegistry,
        extension: str = ".py",
        ignore_patterns: list[str] | None = None,
    ):
        self.root = Path(root)
        self.registry = registry
        self.extension = extension
        self.ignore_patterns = ignore_patterns if ignore_patterns is not None else [
            "__pycache__",
            ".venv",
            "*.egg-info",
        ]

    def _should_ignore(self, path: Path) -> bool:
        """Check if path should be ignored."""
        if path.name.startswith("."):
            return True
        return any(path.match(pattern) for pattern in self.ignore_patterns)

    def _walk(self, directory: Path) -> Iterator[Path]:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            logger.debug(f"Error listing {directory}: {e}")
            return

        for path in entries:
            if self._should_ignore(path):
                continue
            if path.is_dir():
                yield from self._walk(path)
            elif path.suffix == self.extension:
                yield path

    def files(self) -> list[Path]:
        """List every tracked module file under the root."""
        if not self.root.is_dir():
            logger.debug(f"Watch path {self.root} is not a directory")
            return []
        return list(self._walk(self.root))

    def scan(self) -> list[Path]:
        """Return the files that changed since their last recorded mtime.

        Files without a record count as changed. Records are not updated;
        that is up to the caller once it has acted on a file.
        """
        changed: list[Path] = []

        for path in self.files():
            try:
                mtime = _mtime(path)
            except OSError as e:
                # Deleted between listing and stat
                logger.debug(f"Error scanning {path}: {e}")
                continue

            record = self.registry.get(path)
            if record is None or record.last_known_mtime != mtime:
                changed.append(path)

        return changed
