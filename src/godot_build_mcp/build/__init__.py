"""Build orchestration for Godot C# projects.

Provides:
- Build, rebuild and clean of the project solution via the dotnet CLI
- Skip (not fail) when the project has no solution
- MSBuild diagnostics parsing and build logs
"""

from .invoker import BuildInvoker, DotnetBuildInvoker, find_dotnet
from .orchestrator import BuildOrchestrator, Project
from .state import (
    BuildAction,
    BuildError,
    BuildOutcome,
    BuildResult,
    BuildState,
    InvalidBuildActionError,
)

__all__ = [
    "BuildAction",
    "BuildError",
    "BuildInvoker",
    "BuildOrchestrator",
    "BuildOutcome",
    "BuildResult",
    "BuildState",
    "DotnetBuildInvoker",
    "InvalidBuildActionError",
    "Project",
    "find_dotnet",
]
