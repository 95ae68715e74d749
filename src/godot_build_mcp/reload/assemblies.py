"""Host assembly tracking.

AssemblyWatcher answers "is a reload needed" by comparing the assemblies in
the build output directory with the snapshot taken when the host last
reloaded them, and performs the host-side reload by refreshing that snapshot
and notifying reload listeners.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class AssemblyWatcher:
    """Tracks loaded assemblies in a build output directory."""

    def __init__(self, output_dir: str | Path, pattern: str = "*.dll"):
        self.output_dir = Path(output_dir)
        self.pattern = pattern
        self._loaded: dict[str, tuple[int, int]] = self.scan()
        self._listeners: list[Callable[[bool], None]] = []
        self.reload_count = 0
        self.last_reload_at: float | None = None
        self.last_reload_hard: bool | None = None

    def scan(self) -> dict[str, tuple[int, int]]:
        """Map assembly file name to its (mtime in ns, size) stamp."""
        if not self.output_dir.is_dir():
            return {}
        assemblies: dict[str, tuple[int, int]] = {}
        for path in self.output_dir.glob(self.pattern):
            try:
                st = path.stat()
                assemblies[path.name] = (st.st_mtime_ns, st.st_size)
            except OSError:
                continue  # removed while scanning
        return assemblies

    def changed_assemblies(self) -> list[str]:
        """Names of assemblies that are new or differ from the loaded ones."""
        current = self.scan()
        return sorted(
            name
            for name, stamp in current.items()
            if name not in self._loaded or stamp != self._loaded[name]
        )

    def is_reload_needed(self) -> bool:
        return bool(self.changed_assemblies())

    def on_reload(self, listener: Callable[[bool], None]) -> None:
        """Register a listener called with `hard` on every host reload."""
        self._listeners.append(listener)

    def reload(self, hard: bool) -> None:
        """Reload host assemblies from the output directory."""
        changed = self.changed_assemblies()
        self._loaded = self.scan()
        self.reload_count += 1
        self.last_reload_at = time.time()
        self.last_reload_hard = hard
        logger.info(
            f"{'Hard' if hard else 'Soft'} reload of {len(self._loaded)} assemblies "
            f"({len(changed)} changed: {', '.join(changed) or 'none'})"
        )
        for listener in self._listeners:
            try:
                listener(hard)
            except Exception:
                logger.exception("Reload listener error")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "outputDir": os.fspath(self.output_dir),
            "loadedAssemblies": sorted(self._loaded),
            "reloadNeeded": self.is_reload_needed(),
            "reloadCount": self.reload_count,
            "lastReloadAt": self.last_reload_at,
            "lastReloadHard": self.last_reload_hard,
        }
