"""Build actions, outcomes and result types.

Panel state machine:
IDLE → BUILDING → READY | FAILED | SKIPPED
     ↑_____________________________|
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class InvalidBuildActionError(ValueError):
    """Raised when an action identifier is not one of build, rebuild or clean."""

    def __init__(self, value: object):
        super().__init__(f"Invalid build action: {value!r}")
        self.value = value


class BuildAction(str, Enum):
    """Actions a user may request from the build panel."""

    BUILD = "build"
    REBUILD = "rebuild"
    CLEAN = "clean"

    @property
    def force_rebuild(self) -> bool:
        """Whether the build system should ignore incremental state."""
        return self is BuildAction.REBUILD

    @property
    def triggers_reload(self) -> bool:
        """Whether a successful run of this action hot-reloads assemblies."""
        return self is not BuildAction.CLEAN

    @classmethod
    def parse(cls, value: object) -> BuildAction:
        """Convert an external action identifier into a BuildAction.

        Accepts a BuildAction, a menu id (0 build, 1 rebuild, 2 clean) or a
        case-insensitive name such as "rebuild" or "rebuild_solution".

        Raises:
            InvalidBuildActionError: For any other value
        """
        if isinstance(value, cls):
            return value
        # bool is an int subclass; True must not alias the rebuild menu id
        if isinstance(value, int) and not isinstance(value, bool):
            if 0 <= value < len(_MENU_ORDER):
                return _MENU_ORDER[value]
            raise InvalidBuildActionError(value)
        if isinstance(value, str):
            name = value.strip().lower().replace("-", "_")
            if name.endswith("_solution"):
                name = name[: -len("_solution")]
            try:
                return cls(name)
            except ValueError:
                raise InvalidBuildActionError(value) from None
        raise InvalidBuildActionError(value)


# Menu ids as laid out in the build menu
_MENU_ORDER: tuple[BuildAction, ...] = (
    BuildAction.BUILD,
    BuildAction.REBUILD,
    BuildAction.CLEAN,
)


class BuildOutcome(str, Enum):
    """Outcome of a single orchestrated action."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # no solution descriptor, nothing to do

    @classmethod
    def from_bool(cls, ok: bool) -> BuildOutcome:
        return cls.SUCCEEDED if ok else cls.FAILED

    @property
    def succeeded(self) -> bool:
        return self is BuildOutcome.SUCCEEDED


class BuildState(str, Enum):
    """Build panel state machine states."""

    IDLE = "idle"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"
    SKIPPED = "skipped"

    @classmethod
    def for_outcome(cls, outcome: BuildOutcome) -> BuildState:
        return {
            BuildOutcome.SUCCEEDED: cls.READY,
            BuildOutcome.FAILED: cls.FAILED,
            BuildOutcome.SKIPPED: cls.SKIPPED,
        }[outcome]


class BuildErrorSeverity(str, Enum):
    """MSBuild error severity levels."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class BuildDiagnostic:
    """Parsed MSBuild diagnostic (error/warning)."""

    severity: BuildErrorSeverity
    code: str
    message: str
    file: str | None = None
    line: int | None = None
    column: int | None = None
    project: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
        }
        if self.file:
            result["file"] = self.file
        if self.line is not None:
            result["line"] = self.line
        if self.column is not None:
            result["column"] = self.column
        if self.project:
            result["project"] = self.project
        return result


# Format: path(line,col): severity code: message [project]
MSBUILD_DIAGNOSTIC_PATTERN = re.compile(
    r"^(?P<file>[^(]+)\((?P<line>\d+),(?P<col>\d+)\):\s*"
    r"(?P<severity>error|warning|info)\s+(?P<code>\w+):\s*"
    r"(?P<message>.+?)(?:\s+\[(?P<project>[^\]]+)\])?$",
    re.IGNORECASE,
)

# Format without location: severity code: message
MSBUILD_SIMPLE_PATTERN = re.compile(
    r"^(?P<severity>error|warning|info)\s+(?P<code>\w+):\s*(?P<message>.+)$",
    re.IGNORECASE,
)


def parse_msbuild_output(output: str) -> list[BuildDiagnostic]:
    """Parse MSBuild console output into structured diagnostics.

    MSBuild repeats every diagnostic in its closing summary, so duplicates
    are dropped while keeping the first occurrence.
    """
    diagnostics: list[BuildDiagnostic] = []
    seen: set[tuple[Any, ...]] = set()

    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue

        match = MSBUILD_DIAGNOSTIC_PATTERN.match(line)
        if match:
            diagnostic = BuildDiagnostic(
                severity=BuildErrorSeverity(match.group("severity").lower()),
                code=match.group("code"),
                message=match.group("message"),
                file=match.group("file").strip(),
                line=int(match.group("line")),
                column=int(match.group("col")),
                project=match.group("project"),
            )
        else:
            match = MSBUILD_SIMPLE_PATTERN.match(line)
            if not match:
                continue
            diagnostic = BuildDiagnostic(
                severity=BuildErrorSeverity(match.group("severity").lower()),
                code=match.group("code"),
                message=match.group("message"),
            )

        key = (
            diagnostic.severity,
            diagnostic.code,
            diagnostic.message,
            diagnostic.file,
            diagnostic.line,
            diagnostic.column,
        )
        if key in seen:
            continue
        seen.add(key)
        diagnostics.append(diagnostic)

    return diagnostics


class BuildError(Exception):
    """The build system could not be run (not an ordinary failed build)."""

    def __init__(
        self,
        message: str,
        diagnostics: list[BuildDiagnostic] | None = None,
        exit_code: int | None = None,
    ):
        super().__init__(message)
        self.diagnostics = diagnostics or []
        self.exit_code = exit_code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
        if self.exit_code is not None:
            result["exitCode"] = self.exit_code
        return result


@dataclass
class BuildResult:
    """Details of one external build system invocation."""

    success: bool
    action: BuildAction
    solution_path: str
    configuration: str
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    diagnostics: list[BuildDiagnostic] = field(default_factory=list)
    duration_ms: float = 0.0
    log_path: str | None = None

    def __post_init__(self) -> None:
        if not self.diagnostics and (self.stdout or self.stderr):
            self.diagnostics = parse_msbuild_output(self.stdout + "\n" + self.stderr)

    @property
    def errors(self) -> list[BuildDiagnostic]:
        return [d for d in self.diagnostics if d.severity == BuildErrorSeverity.ERROR]

    @property
    def warnings(self) -> list[BuildDiagnostic]:
        return [d for d in self.diagnostics if d.severity == BuildErrorSeverity.WARNING]

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "success": self.success,
            "action": self.action.value,
            "solutionPath": self.solution_path,
            "configuration": self.configuration,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "durationMs": round(self.duration_ms, 2),
        }
        if self.exit_code is not None:
            result["exitCode"] = self.exit_code
        if self.diagnostics:
            result["diagnostics"] = [d.to_dict() for d in self.diagnostics]
        if self.log_path:
            result["logPath"] = self.log_path
        return result

    def to_summary(self) -> str:
        """Generate human-readable summary."""
        verb = "Clean" if self.action is BuildAction.CLEAN else "Build"
        status = f"[OK] {verb} succeeded" if self.success else f"[FAILED] {verb} failed"

        parts = [
            status,
            f"  Solution: {self.solution_path}",
            f"  Configuration: {self.configuration}",
            f"  Duration: {self.duration_ms:.0f}ms",
        ]
        if self.error_count > 0:
            parts.append(f"  Errors: {self.error_count}")
        if self.warning_count > 0:
            parts.append(f"  Warnings: {self.warning_count}")

        for err in self.errors[:5]:
            location = ""
            if err.file:
                location = err.file
                if err.line:
                    location += f"({err.line},{err.column or 0})"
                location += ": "
            parts.append(f"    {location}{err.code}: {err.message}")

        if self.error_count > 5:
            parts.append(f"    ... and {self.error_count - 5} more errors")

        return "\n".join(parts)
