"""MCP Server for the Godot C# build panel."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from mcp.server.fastmcp import Context, FastMCP
from pydantic import AnyUrl

from .build import (
    BuildAction,
    BuildError,
    BuildOrchestrator,
    BuildOutcome,
    DotnetBuildInvoker,
    InvalidBuildActionError,
    Project,
)
from .config import BuildPanelConfig
from .panel import BuildPanel
from .reload import AssemblyWatcher, DebounceTimer, HotReloadCoordinator, RunningGameNotifier
from .utils.project import GodotProjectPaths, find_project_root

logger = logging.getLogger(__name__)


@dataclass
class BuildContext:
    """Wired build panel and the collaborators the tools report on."""

    panel: BuildPanel
    invoker: DotnetBuildInvoker
    notifier: RunningGameNotifier
    watcher: AssemblyWatcher
    timer: DebounceTimer
    paths: GodotProjectPaths


def create_build_context(config: BuildPanelConfig) -> BuildContext:
    """Wire the orchestrator, coordinator and panel for a project.

    Every collaborator is created once here and passed in explicitly.
    """
    root = Path(config.project_root) if config.project_root else find_project_root()
    paths = GodotProjectPaths(root)
    solution = str(paths.solution_path)
    logger.info(f"Project root: {paths.project_root} (solution: {solution})")

    invoker = DotnetBuildInvoker(
        solution,
        dotnet_path=config.dotnet_path,
        timeout=config.build_timeout,
        logs_dir_for=lambda configuration: str(paths.logs_dir_for(configuration)),
    )
    notifier = RunningGameNotifier()
    watcher = AssemblyWatcher(paths.assemblies_dir(config.configuration))

    coordinator: HotReloadCoordinator | None = None

    def on_timer_fired() -> None:
        if coordinator is not None:
            coordinator.reload_if_needed()

    timer = DebounceTimer(config.debounce_seconds, on_timer_fired)
    coordinator = HotReloadCoordinator(notifier, timer, watcher, watcher)

    panel = BuildPanel(
        Project(solution),
        BuildOrchestrator(invoker),
        coordinator,
        configuration=config.configuration,
        logs_dir=paths.logs_dir_for(config.configuration),
    )
    return BuildContext(
        panel=panel,
        invoker=invoker,
        notifier=notifier,
        watcher=watcher,
        timer=timer,
        paths=paths,
    )


def describe_outcome(build: BuildContext, action: BuildAction, outcome: BuildOutcome) -> dict:
    """Tool response payload for a finished action."""
    data: dict = {
        "action": action.value,
        "outcome": outcome.value,
        "state": build.panel.state.value,
    }
    if outcome is BuildOutcome.SKIPPED:
        data["message"] = f"No solution at {build.panel.project.descriptor_path}, nothing to build"
        return data

    result = build.invoker.last_result
    if result is not None:
        data["result"] = result.to_dict()
        data["summary"] = result.to_summary()
    if action.triggers_reload and outcome.succeeded:
        data["hotReload"] = {
            "gameNotified": build.notifier.is_attached,
            "debouncePending": build.timer.is_pending,
            "assemblies": build.watcher.to_dict(),
        }
    return data


async def notify_state_changed(ctx: Context) -> None:
    """Notify client that build://state resource has changed."""
    try:
        if ctx.session:
            await ctx.session.send_resource_updated(AnyUrl("build://state"))
    except Exception:
        logger.debug("Resource update notification failed", exc_info=True)


async def run_tool_action(
    build: BuildContext, ctx: Context, action: BuildAction | int | str
) -> dict:
    """Run one panel action and shape the tool response.

    The state resource notification is sent whenever the panel ran, including
    when the action raised.
    """
    try:
        build_action = BuildAction.parse(action)
    except InvalidBuildActionError as e:
        return {"success": False, "error": str(e)}

    try:
        outcome = await build.panel.run(build_action)
    except BuildError as e:
        return {"success": False, **e.to_dict()}
    except Exception as e:
        return {"success": False, "error": str(e)}
    finally:
        await notify_state_changed(ctx)

    return {
        "success": outcome is not BuildOutcome.FAILED,
        "data": describe_outcome(build, build_action, outcome),
    }


def create_server(config: BuildPanelConfig, build: BuildContext | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        config: Server configuration
        build: Pre-wired build context (created from config if omitted)
    """
    build = build or create_build_context(config)
    panel = build.panel
    mcp = FastMCP("godot-build-mcp")

    # ============== Build Tools ==============

    @mcp.tool()
    async def build_solution(ctx: Context) -> dict:
        """
        Build the project's C# solution and hot-reload on success.

        On success the running game (if attached) is told to reload its scripts
        and the editor's assemblies are hard-reloaded if they changed.
        If the project has no solution the outcome is "skipped", not a failure.
        """
        return await run_tool_action(build, ctx, BuildAction.BUILD)

    @mcp.tool()
    async def rebuild_solution(ctx: Context) -> dict:
        """Rebuild the solution from scratch (non-incremental), then hot-reload on success."""
        return await run_tool_action(build, ctx, BuildAction.REBUILD)

    @mcp.tool()
    async def clean_solution(ctx: Context) -> dict:
        """Clean the solution's build outputs. Never triggers a hot-reload."""
        return await run_tool_action(build, ctx, BuildAction.CLEAN)

    @mcp.tool()
    async def run_build_action(ctx: Context, action: str) -> dict:
        """
        Run a build menu action by name: "build", "rebuild" or "clean".

        Any other value is rejected with an error.
        """
        return await run_tool_action(build, ctx, action)

    @mcp.tool()
    async def get_build_state() -> dict:
        """Get the build panel state, last result and hot-reload status."""
        try:
            last = build.invoker.last_result
            return {
                "success": True,
                "data": {
                    **panel.to_dict(),
                    "lastResult": last.to_dict() if last else None,
                    "gameAttached": build.notifier.is_attached,
                    "assemblies": build.watcher.to_dict(),
                },
            }
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def get_build_log(lines: int = 200) -> dict:
        """Get the tail of the last build log."""
        try:
            log_lines = panel.read_log().splitlines()
            return {
                "success": True,
                "data": {
                    "path": panel.log_path,
                    "totalLines": len(log_lines),
                    "lines": log_lines[-lines:] if lines > 0 else [],
                },
            }
        except Exception as e:
            return {"success": False, "error": str(e)}

    # ============== Running Game Tools ==============

    @mcp.tool()
    async def attach_running_game(host: str = "127.0.0.1", port: int = 6007) -> dict:
        """Connect to a running game's debug channel so builds can ask it to reload scripts."""
        try:
            await build.notifier.connect(host, port)
            return {"success": True, "data": {"attached": True, "host": host, "port": port}}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def detach_running_game() -> dict:
        """Disconnect from the running game."""
        try:
            await build.notifier.close()
            return {"success": True, "data": {"attached": False}}
        except Exception as e:
            return {"success": False, "error": str(e)}

    # ============== Resources ==============

    @mcp.resource("build://state", mime_type="application/json")
    async def build_state_resource() -> str:
        """Current build panel state (JSON).

        Updates when: a build, rebuild or clean finishes.
        """
        return json.dumps(panel.to_dict(), indent=2)

    @mcp.resource("build://log", mime_type="text/plain")
    async def build_log_resource() -> str:
        """Last build log (plain text)."""
        return panel.read_log()

    logger.info("Godot build MCP server initialized")
    return mcp
