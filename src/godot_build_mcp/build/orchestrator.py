"""Build orchestrator - runs one build action against a project's solution."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass

from .invoker import BuildInvoker
from .state import BuildAction, BuildOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Project:
    """A buildable project, identified by its solution descriptor."""

    descriptor_path: str


class BuildOrchestrator:
    """Dispatches build actions to the build system.

    Usage:
        orchestrator = BuildOrchestrator(DotnetBuildInvoker(sln_path))
        outcome = await orchestrator.execute(Project(sln_path), "Debug", BuildAction.BUILD)
    """

    def __init__(
        self,
        invoker: BuildInvoker,
        descriptor_exists: Callable[[str], bool] = os.path.isfile,
    ):
        self._invoker = invoker
        self._descriptor_exists = descriptor_exists

    async def execute(
        self,
        project: Project,
        configuration: str,
        action: BuildAction,
    ) -> BuildOutcome:
        """Run an action and report its outcome.

        A missing solution descriptor is not an error: nothing is invoked and
        SKIPPED is returned. A failed build is FAILED, never an exception.

        Args:
            project: Project whose solution is built
            configuration: Build configuration key, passed through verbatim
            action: Action to run

        Returns:
            Outcome of the action

        Raises:
            BuildError: If the build system itself could not be run
        """
        if not self._descriptor_exists(project.descriptor_path):
            logger.info(f"No solution at {project.descriptor_path}, skipping {action.value}")
            return BuildOutcome.SKIPPED

        if action is BuildAction.CLEAN:
            ok = await self._invoker.clean(configuration)
        else:
            ok = await self._invoker.build(configuration, action.force_rebuild)

        return BuildOutcome.from_bool(ok)
