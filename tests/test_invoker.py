"""Tests for dotnet build invoker."""

import asyncio
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from godot_build_mcp.build.invoker import DotnetBuildInvoker, find_dotnet
from godot_build_mcp.build.state import BuildAction, BuildError


def make_process(returncode=0, stdout=b"", stderr=b""):
    """Mock process whose streams yield the given output line by line."""
    process = AsyncMock()
    process.returncode = returncode
    process.stdout = AsyncMock()
    process.stdout.readline = AsyncMock(
        side_effect=[line + b"\n" for line in stdout.splitlines()] + [b""]
    )
    process.stderr = AsyncMock()
    process.stderr.readline = AsyncMock(
        side_effect=[line + b"\n" for line in stderr.splitlines()] + [b""]
    )
    process.wait = AsyncMock(return_value=returncode)
    process.kill = MagicMock()
    return process


@pytest.fixture
def dotnet(tmp_path):
    path = tmp_path / "dotnet"
    path.touch()
    return str(path)


class TestFindDotnet:
    """Tests for dotnet executable lookup."""

    def test_explicit_path(self, dotnet):
        assert find_dotnet(dotnet) == dotnet

    def test_explicit_missing_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            find_dotnet(str(tmp_path / "nope"))

    def test_env_var(self, dotnet, monkeypatch):
        monkeypatch.setenv("GODOT_BUILD_DOTNET_PATH", dotnet)
        assert find_dotnet() == dotnet

    def test_path_lookup(self, monkeypatch):
        monkeypatch.delenv("GODOT_BUILD_DOTNET_PATH", raising=False)
        with patch("shutil.which", return_value="/usr/bin/dotnet"):
            assert find_dotnet() == "/usr/bin/dotnet"

    def test_not_found(self, monkeypatch):
        monkeypatch.delenv("GODOT_BUILD_DOTNET_PATH", raising=False)
        with patch("shutil.which", return_value=None):
            with pytest.raises(FileNotFoundError):
                find_dotnet()


class TestGetCommand:
    """Tests for command line construction."""

    def test_build(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        cmd = invoker.get_command(BuildAction.BUILD, "Debug")

        assert cmd == [dotnet, "build", str(solution), "-c", "Debug", "-nologo"]

    def test_rebuild_is_non_incremental(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        cmd = invoker.get_command(BuildAction.REBUILD, "Debug")

        assert cmd[1] == "build"
        assert cmd[-1] == "--no-incremental"

    def test_clean(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        cmd = invoker.get_command(BuildAction.CLEAN, "ExportRelease")

        assert cmd == [dotnet, "clean", str(solution), "-c", "ExportRelease", "-nologo"]


class TestInvokerRun:
    """Tests for running the build system."""

    @pytest.mark.asyncio
    async def test_build_success(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.return_value = make_process(0, stdout=b"Build succeeded.")
            ok = await invoker.build("Debug", False)

        assert ok is True
        assert invoker.last_result.success
        assert invoker.last_result.action is BuildAction.BUILD
        assert "Build succeeded." in invoker.last_result.stdout

    @pytest.mark.asyncio
    async def test_rebuild_passes_flag(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.return_value = make_process(0)
            await invoker.build("Debug", True)

        args = mock_exec.call_args[0]
        assert "--no-incremental" in args
        assert invoker.last_result.action is BuildAction.REBUILD

    @pytest.mark.asyncio
    async def test_build_failure_returns_false(self, solution, dotnet, sample_msbuild_output):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.return_value = make_process(1, stdout=sample_msbuild_output.encode())
            ok = await invoker.build("Debug", False)

        assert ok is False
        assert invoker.last_result.exit_code == 1
        assert invoker.last_result.error_count == 1

    @pytest.mark.asyncio
    async def test_clean(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.return_value = make_process(0)
            ok = await invoker.clean("Debug")

        assert ok is True
        assert mock_exec.call_args[0][1] == "clean"

    @pytest.mark.asyncio
    async def test_runs_in_solution_directory(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.return_value = make_process(0)
            await invoker.build("Debug", False)

        assert mock_exec.call_args[1]["cwd"] == str(solution.parent)

    @pytest.mark.asyncio
    async def test_writes_log(self, solution, dotnet, tmp_path):
        logs_root = tmp_path / "logs"
        invoker = DotnetBuildInvoker(
            str(solution),
            dotnet_path=dotnet,
            logs_dir_for=lambda configuration: str(logs_root / configuration),
        )

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.return_value = make_process(0, stdout=b"line one\nline two")
            await invoker.build("Debug", False)

        log_file = logs_root / "Debug" / "msbuild_log.txt"
        assert log_file.read_text(encoding="utf-8") == "line one\nline two\n"
        assert invoker.last_result.log_path == str(log_file)

    @pytest.mark.asyncio
    async def test_missing_dotnet_raises_build_error(self, solution, monkeypatch):
        monkeypatch.delenv("GODOT_BUILD_DOTNET_PATH", raising=False)
        invoker = DotnetBuildInvoker(str(solution))

        with patch("shutil.which", return_value=None):
            with pytest.raises(BuildError, match="dotnet not found"):
                await invoker.build("Debug", False)

    @pytest.mark.asyncio
    async def test_start_failure_raises_build_error(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        with patch("asyncio.create_subprocess_exec", side_effect=PermissionError("denied")):
            with pytest.raises(BuildError, match="Failed to start dotnet"):
                await invoker.build("Debug", False)

    @pytest.mark.asyncio
    async def test_timeout_kills_and_raises(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet, timeout=0.05)

        async def hang():
            await asyncio.sleep(10)

        process = make_process(stderr=b"error MSB1009: Project file does not exist.")
        process.returncode = None
        process.stdout.readline = AsyncMock(side_effect=hang)
        process.wait = AsyncMock(return_value=-9)

        with patch("asyncio.create_subprocess_exec", return_value=process):
            with pytest.raises(BuildError, match="timed out") as exc_info:
                await invoker.build("Debug", False)

        process.kill.assert_called_once()
        process.wait.assert_awaited()
        assert exc_info.value.exit_code == -9
        assert [d.code for d in exc_info.value.diagnostics] == ["MSB1009"]
        assert invoker.last_result is None

    @pytest.mark.asyncio
    async def test_cancel_kills_and_waits(self, solution, dotnet):
        """Test that cancelling an in-flight build reaps the dotnet process."""
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        async def hang():
            await asyncio.sleep(10)

        process = make_process()
        process.returncode = None
        process.stdout.readline = AsyncMock(side_effect=hang)

        with patch("asyncio.create_subprocess_exec", return_value=process):
            task = asyncio.create_task(invoker.build("Debug", False))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        process.kill.assert_called_once()
        process.wait.assert_awaited()

    @pytest.mark.asyncio
    async def test_cancel_after_exit_does_not_kill(self, solution, dotnet):
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=dotnet)

        async def hang():
            await asyncio.sleep(10)

        process = make_process(0)
        process.stdout.readline = AsyncMock(side_effect=hang)

        with patch("asyncio.create_subprocess_exec", return_value=process):
            task = asyncio.create_task(invoker.build("Debug", False))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        process.kill.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as dotnet")
    async def test_cancel_terminates_real_process(self, solution, tmp_path):
        script = tmp_path / "slow-dotnet"
        script.write_text("#!/bin/sh\nexec sleep 30\n")
        script.chmod(0o755)
        invoker = DotnetBuildInvoker(str(solution), dotnet_path=str(script))

        started = []
        real_exec = asyncio.create_subprocess_exec

        async def capture(*args, **kwargs):
            process = await real_exec(*args, **kwargs)
            started.append(process)
            return process

        with patch("asyncio.create_subprocess_exec", capture):
            task = asyncio.create_task(invoker.build("Debug", False))
            await asyncio.sleep(0.5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert len(started) == 1
        assert started[0].returncode is not None
