"""Godot C# project layout.

Locates the project root and derives the paths the build panel needs:
- Solution descriptor (<AssemblyName>.sln)
- Build output directory per configuration (.godot/mono/temp/bin/<config>)
- Build log directory per configuration (.godot/mono/build_logs/<hash>_<config>)
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

PROJECT_FILE = "project.godot"

ASSEMBLY_NAME_PATTERN = re.compile(r'^\s*project/assembly_name\s*=\s*"(?P<name>[^"]+)"', re.MULTILINE)
CONFIG_NAME_PATTERN = re.compile(r'^\s*config/name\s*=\s*"(?P<name>[^"]+)"', re.MULTILINE)


def find_project_root(start: str | Path | None = None, boundary: str | Path | None = None) -> Path:
    """Find the Godot project root by walking up from a directory.

    Searches for project markers in this order:
    1. project.godot
    2. .sln (solution file)
    3. .git (git root as fallback)

    Falls back to the start directory if no marker is found.

    Args:
        start: Directory to start from. Defaults to CWD.
        boundary: If provided, the search does not go above this directory.

    Returns:
        Path to project root
    """
    current = Path(start or Path.cwd()).resolve()
    limit = Path(boundary).resolve() if boundary is not None else None

    def ancestors() -> Iterator[Path]:
        """Yield current directory and ancestors up to boundary."""
        yield current
        if limit is not None and current == limit:
            return
        for parent in current.parents:
            yield parent
            if limit is not None and parent == limit:
                return

    for directory in ancestors():
        if (directory / PROJECT_FILE).is_file():
            return directory

    for directory in ancestors():
        if any(directory.glob("*.sln")):
            return directory

    for directory in ancestors():
        if (directory / ".git").exists():  # .git can be file (worktree) or dir
            return directory

    return current


def read_assembly_name(project_root: Path) -> str | None:
    """Read the C# assembly name from project.godot, if set."""
    project_file = project_root / PROJECT_FILE
    try:
        text = project_file.read_text(encoding="utf-8")
    except OSError:
        return None

    for pattern in (ASSEMBLY_NAME_PATTERN, CONFIG_NAME_PATTERN):
        match = pattern.search(text)
        if match:
            return match.group("name")
    return None


class GodotProjectPaths:
    """Paths derived from a Godot project root."""

    def __init__(self, project_root: str | Path, assembly_name: str | None = None):
        self.project_root = Path(project_root).resolve()
        self.assembly_name = assembly_name or self._detect_assembly_name()

    def _detect_assembly_name(self) -> str:
        name = read_assembly_name(self.project_root)
        if name:
            return name
        solutions = sorted(self.project_root.glob("*.sln"))
        if len(solutions) == 1:
            return solutions[0].stem
        return self.project_root.name

    @property
    def solution_path(self) -> Path:
        return self.project_root / f"{self.assembly_name}.sln"

    @property
    def mono_dir(self) -> Path:
        return self.project_root / ".godot" / "mono"

    def assemblies_dir(self, configuration: str) -> Path:
        """Build output directory for a configuration."""
        return self.mono_dir / "temp" / "bin" / configuration

    def logs_dir_for(self, configuration: str) -> Path:
        """Build log directory for a configuration."""
        digest = hashlib.md5(str(self.solution_path).encode("utf-8")).hexdigest()
        return self.mono_dir / "build_logs" / f"{digest}_{configuration}"
