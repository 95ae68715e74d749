"""Build panel - dispatches build menu actions.

State machine:
IDLE → BUILDING → READY | FAILED | SKIPPED
     ↑_____________________________|

Only one action runs at a time; concurrent requests wait on the lock.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .build.invoker import BUILD_LOG_FILENAME
from .build.orchestrator import BuildOrchestrator, Project
from .build.state import BuildAction, BuildOutcome, BuildState
from .reload.coordinator import HotReloadCoordinator

logger = logging.getLogger(__name__)


class BuildPanel:
    """Maps build menu actions onto the orchestrator and coordinator."""

    def __init__(
        self,
        project: Project,
        orchestrator: BuildOrchestrator,
        coordinator: HotReloadCoordinator,
        configuration: str = "Debug",
        logs_dir: str | Path | None = None,
    ):
        """Initialize panel.

        Args:
            project: Project whose solution is built
            orchestrator: Runs actions against the build system
            coordinator: Runs the hot-reload sequence after a successful build
            configuration: Build configuration key
            logs_dir: Directory holding the build log for this configuration
        """
        self.project = project
        self.configuration = configuration
        self.logs_dir = os.fspath(logs_dir) if logs_dir is not None else None
        self._orchestrator = orchestrator
        self._coordinator = coordinator
        self._lock = asyncio.Lock()
        self._state = BuildState.IDLE
        self._last_action: BuildAction | None = None
        self._last_outcome: BuildOutcome | None = None
        self._state_listeners: list[Callable[[BuildState], None]] = []

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def is_building(self) -> bool:
        return self._state == BuildState.BUILDING

    @property
    def last_action(self) -> BuildAction | None:
        return self._last_action

    @property
    def last_outcome(self) -> BuildOutcome | None:
        return self._last_outcome

    def on_state_change(self, listener: Callable[[BuildState], None]) -> None:
        """Register state change listener."""
        self._state_listeners.append(listener)

    def _set_state(self, new_state: BuildState) -> None:
        """Update state and notify listeners."""
        old_state = self._state
        self._state = new_state
        if old_state != new_state:
            logger.info(f"Build state: {old_state.value} -> {new_state.value}")
            for listener in self._state_listeners:
                try:
                    listener(new_state)
                except Exception:
                    logger.exception("State listener error")

    async def run(self, action: BuildAction | int | str) -> BuildOutcome:
        """Run a build menu action.

        Build and rebuild chain into the hot-reload sequence on success.
        Clean's outcome is reported but never triggers a reload.

        Args:
            action: BuildAction, menu id or action name

        Returns:
            Outcome of the action

        Raises:
            InvalidBuildActionError: If the action is not build, rebuild or clean
            BuildError: If the build system could not be run
        """
        build_action = BuildAction.parse(action)

        async with self._lock:
            self._last_action = build_action
            self._set_state(BuildState.BUILDING)
            try:
                outcome = await self._orchestrator.execute(
                    self.project, self.configuration, build_action
                )
            except BaseException:
                self._last_outcome = BuildOutcome.FAILED
                self._set_state(BuildState.FAILED)
                raise

            self._last_outcome = outcome
            self._set_state(BuildState.for_outcome(outcome))

            if build_action.triggers_reload and outcome.succeeded:
                self._coordinator.on_build_succeeded()

            return outcome

    async def build_solution(self) -> BuildOutcome:
        return await self.run(BuildAction.BUILD)

    async def rebuild_solution(self) -> BuildOutcome:
        return await self.run(BuildAction.REBUILD)

    async def clean_solution(self) -> BuildOutcome:
        return await self.run(BuildAction.CLEAN)

    @property
    def log_path(self) -> str | None:
        if self.logs_dir is None:
            return None
        return os.path.join(self.logs_dir, BUILD_LOG_FILENAME)

    def read_log(self) -> str:
        """Return the last build log, or an empty string if there is none."""
        path = self.log_path
        if path is None or not os.path.isfile(path):
            return ""
        with open(path, encoding="utf-8", errors="replace") as f:
            return f.read()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "state": self._state.value,
            "solutionPath": self.project.descriptor_path,
            "configuration": self.configuration,
            "lastAction": self._last_action.value if self._last_action else None,
            "lastOutcome": self._last_outcome.value if self._last_outcome else None,
            "logsDir": self.logs_dir,
        }
