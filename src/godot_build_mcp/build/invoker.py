"""External build system invocation through the dotnet CLI.

The orchestrator only needs the BuildInvoker protocol; DotnetBuildInvoker is
the implementation used by the server.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
from collections.abc import Callable
from typing import Protocol

from .state import BuildAction, BuildError, BuildResult, parse_msbuild_output

logger = logging.getLogger(__name__)

# Output buffer limits
MAX_OUTPUT_BYTES: int = 5_000_000  # 5MB total
MAX_OUTPUT_LINE: int = 10_000  # 10KB per line

BUILD_LOG_FILENAME = "msbuild_log.txt"


class BuildInvoker(Protocol):
    """Blocking build system entry points (awaiting occupies the caller)."""

    async def build(self, configuration: str, force_rebuild: bool) -> bool: ...

    async def clean(self, configuration: str) -> bool: ...


def find_dotnet(explicit: str | None = None) -> str:
    """Find the dotnet executable.

    Checks the explicit path, then GODOT_BUILD_DOTNET_PATH, then PATH.

    Raises:
        FileNotFoundError: If dotnet cannot be located
    """
    if explicit:
        if os.path.exists(explicit):
            return explicit
        raise FileNotFoundError(f"dotnet not found at {explicit}")

    env_path = os.environ.get("GODOT_BUILD_DOTNET_PATH")
    if env_path and os.path.exists(env_path):
        return env_path

    system_path = shutil.which("dotnet")
    if system_path:
        return system_path

    raise FileNotFoundError(
        "dotnet not found. Set GODOT_BUILD_DOTNET_PATH environment variable."
    )


class DotnetBuildInvoker:
    """Runs `dotnet build` / `dotnet clean` against a solution file."""

    def __init__(
        self,
        solution_path: str,
        dotnet_path: str | None = None,
        timeout: float = 300.0,
        logs_dir_for: Callable[[str], str] | None = None,
    ):
        """Initialize invoker.

        Args:
            solution_path: Solution (.sln) the commands operate on
            dotnet_path: dotnet executable (resolved lazily if omitted)
            timeout: Timeout in seconds for a single command
            logs_dir_for: Maps a configuration to its build log directory
        """
        self.solution_path = solution_path
        self.timeout = timeout
        self._dotnet_path = dotnet_path
        self._logs_dir_for = logs_dir_for
        self._last_result: BuildResult | None = None

    @property
    def last_result(self) -> BuildResult | None:
        """Result of the most recent invocation."""
        return self._last_result

    def get_command(self, action: BuildAction, configuration: str) -> list[str]:
        """Build the dotnet command line for an action.

        The configuration is passed through verbatim.
        """
        dotnet = self._dotnet_path = find_dotnet(self._dotnet_path)
        verb = "clean" if action is BuildAction.CLEAN else "build"
        cmd = [dotnet, verb, self.solution_path, "-c", configuration, "-nologo"]
        if action.force_rebuild:
            cmd.append("--no-incremental")
        return cmd

    async def build(self, configuration: str, force_rebuild: bool) -> bool:
        action = BuildAction.REBUILD if force_rebuild else BuildAction.BUILD
        return (await self.run(action, configuration)).success

    async def clean(self, configuration: str) -> bool:
        return (await self.run(BuildAction.CLEAN, configuration)).success

    async def run(self, action: BuildAction, configuration: str) -> BuildResult:
        """Run one action to completion.

        Returns:
            Build result (success is False for a non-zero exit code)

        Raises:
            BuildError: If dotnet is missing, cannot be started or times out
        """
        try:
            cmd = self.get_command(action, configuration)
        except FileNotFoundError as e:
            raise BuildError(str(e)) from e

        cwd = os.path.dirname(os.path.abspath(self.solution_path))
        logger.info(f"Running: {' '.join(cmd)}")
        start_time = time.perf_counter()

        try:
            exit_code, stdout, stderr = await self._run_command(cmd, cwd)
        except OSError as e:
            raise BuildError(f"Failed to start dotnet: {e}") from e

        result = BuildResult(
            success=exit_code == 0,
            action=action,
            solution_path=self.solution_path,
            configuration=configuration,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        result.log_path = self._write_log(configuration, stdout, stderr)
        self._last_result = result

        if result.success:
            logger.info(f"{action.value} finished in {result.duration_ms:.0f}ms")
        else:
            logger.warning(
                f"{action.value} failed with exit code {exit_code} "
                f"({result.error_count} errors)"
            )
        return result

    def _write_log(self, configuration: str, stdout: str, stderr: str) -> str | None:
        """Write the command output to the configuration's log directory."""
        if self._logs_dir_for is None:
            return None
        logs_dir = self._logs_dir_for(configuration)
        log_path = os.path.join(logs_dir, BUILD_LOG_FILENAME)
        try:
            os.makedirs(logs_dir, exist_ok=True)
            with open(log_path, "w", encoding="utf-8") as f:
                f.write(stdout)
                if stderr:
                    f.write("\n")
                    f.write(stderr)
        except OSError as e:
            logger.warning(f"Failed to write build log {log_path}: {e}")
            return None
        return log_path

    async def _run_command(self, command: list[str], cwd: str) -> tuple[int, str, str]:
        """Run command with output capture and timeout.

        Returns:
            Tuple of (exit_code, stdout, stderr)

        Raises:
            BuildError: If timeout exceeded (the process is killed first)
        """
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []

        async def read_stream(
            stream: asyncio.StreamReader | None,
            lines: list[str],
        ) -> None:
            if stream is None:
                return
            total = 0
            while True:
                line = await stream.readline()
                if not line:
                    break
                decoded = line.decode("utf-8", errors="replace")
                if len(decoded) > MAX_OUTPUT_LINE:
                    decoded = decoded[:MAX_OUTPUT_LINE] + "...[truncated]\n"
                lines.append(decoded)
                total += len(decoded)
                # Drop old lines if buffer too large
                while total > MAX_OUTPUT_BYTES and lines:
                    total -= len(lines.pop(0))

        try:
            await asyncio.wait_for(
                asyncio.gather(
                    read_stream(process.stdout, stdout_lines),
                    read_stream(process.stderr, stderr_lines),
                ),
                timeout=self.timeout,
            )
            await process.wait()
        except asyncio.TimeoutError as e:
            logger.warning(f"Build timeout after {self.timeout}s")
            exit_code = await self._kill(process)
            output = "".join(stdout_lines) + "\n" + "".join(stderr_lines)
            raise BuildError(
                f"{command[1]} timed out after {self.timeout}s",
                diagnostics=parse_msbuild_output(output),
                exit_code=exit_code,
            ) from e
        except BaseException:
            # Cancelled or failed while dotnet is still running
            await self._kill(process)
            raise

        exit_code = process.returncode or 0
        return exit_code, "".join(stdout_lines), "".join(stderr_lines)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> int | None:
        """Kill the process if it is still running and reap it."""
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        return await process.wait()
