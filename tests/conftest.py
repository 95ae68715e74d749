"""Pytest fixtures for godot-build-mcp tests."""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from godot_build_mcp.build.orchestrator import BuildOrchestrator, Project  # noqa: E402
from godot_build_mcp.panel import BuildPanel  # noqa: E402
from godot_build_mcp.reload.coordinator import HotReloadCoordinator  # noqa: E402


class FakeInvoker:
    """Build invoker recording calls into a shared log."""

    def __init__(self, calls, build_result=True, clean_result=True):
        self.calls = calls
        self.build_result = build_result
        self.clean_result = clean_result

    async def build(self, configuration, force_rebuild):
        self.calls.append(("build", configuration, force_rebuild))
        return self.build_result

    async def clean(self, configuration):
        self.calls.append(("clean", configuration))
        return self.clean_result


class FakeNotifier:
    def __init__(self, calls):
        self.calls = calls

    def notify_scripts_changed(self):
        self.calls.append(("notify_scripts_changed",))


class FakeTimer:
    def __init__(self, calls):
        self.calls = calls

    def restart(self):
        self.calls.append(("restart",))


class FakeAssemblies:
    """Reload predicate and host reloader in one."""

    def __init__(self, calls, reload_needed=True):
        self.calls = calls
        self.reload_needed = reload_needed

    def is_reload_needed(self):
        self.calls.append(("is_reload_needed",))
        return self.reload_needed

    def reload(self, hard):
        self.calls.append(("reload", hard))


class Harness:
    """Panel wired to recording fakes."""

    def __init__(self, descriptor_path, calls):
        self.calls = calls
        self.invoker = FakeInvoker(calls)
        self.notifier = FakeNotifier(calls)
        self.timer = FakeTimer(calls)
        self.assemblies = FakeAssemblies(calls)
        self.orchestrator = BuildOrchestrator(self.invoker)
        self.coordinator = HotReloadCoordinator(
            self.notifier, self.timer, self.assemblies, self.assemblies
        )
        self.project = Project(str(descriptor_path))
        self.panel = BuildPanel(self.project, self.orchestrator, self.coordinator)


@pytest.fixture
def calls():
    """Shared, ordered log of collaborator calls."""
    return []


@pytest.fixture
def solution(tmp_path):
    """An existing solution descriptor."""
    path = tmp_path / "Game.sln"
    path.write_text("Microsoft Visual Studio Solution File\n")
    return path


@pytest.fixture
def harness(solution, calls):
    """Panel for a project whose solution exists."""
    return Harness(solution, calls)


@pytest.fixture
def missing_harness(tmp_path, calls):
    """Panel for a project without a solution."""
    return Harness(tmp_path / "Missing.sln", calls)


@pytest.fixture
def sample_msbuild_output():
    """MSBuild output with an error, a warning and the closing summary."""
    return (
        "  Determining projects to restore...\n"
        "C:/game/Player.cs(12,5): error CS1002: ; expected [C:/game/Game.csproj]\n"
        "C:/game/Enemy.cs(3,1): warning CS0168: The variable 'e' is declared but never used [C:/game/Game.csproj]\n"
        "\n"
        "Build FAILED.\n"
        "\n"
        "C:/game/Enemy.cs(3,1): warning CS0168: The variable 'e' is declared but never used [C:/game/Game.csproj]\n"
        "C:/game/Player.cs(12,5): error CS1002: ; expected [C:/game/Game.csproj]\n"
        "    1 Warning(s)\n"
        "    1 Error(s)\n"
    )
