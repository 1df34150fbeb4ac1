"""Process capability -- shell execution in the current directory."""

from __future__ import annotations

import asyncio
import os
import signal

from codeagent.log import logger
from codeagent.types import CommandExecution, Result
from codeagent.workspace import Workspace

TIMEOUT_ERROR = "Command timed out"


class CommandTools:
    def __init__(self, workspace: Workspace, max_output_bytes: int = 10 * 1024 * 1024) -> None:
        self._workspace = workspace
        self._max_output = max_output_bytes

    @property
    def current_directory(self) -> str:
        return str(self._workspace.cwd)

    def _decode(self, raw: bytes) -> str:
        if len(raw) > self._max_output:
            return raw[: self._max_output].decode("utf-8", errors="replace") + "\n... (truncated)"
        return raw.decode("utf-8", errors="replace")

    async def execute_command(self, command: str, timeout: float | None = None) -> Result:
        """Run ``command`` through the shell. ``timeout`` in seconds kills its process group."""
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self._workspace.cwd),
                start_new_session=True,
            )
        except OSError as e:
            return Result.fail(str(e), f"Failed to execute command: {command}")

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout or None)
        except asyncio.TimeoutError:
            _kill_group(proc)
            await proc.wait()
            logger.warning(f"Command timed out after {timeout}s: {command}")
            return Result.fail(TIMEOUT_ERROR, f"Command timed out after {timeout}s: {command}")

        err = self._decode(stderr)
        execution = CommandExecution(
            command=command,
            output=self._decode(stdout),
            exit_code=proc.returncode if proc.returncode is not None else 0,
            error=err or None,
        )
        if execution.exit_code == 0:
            return Result.ok(f"Command executed successfully: {command}", execution)
        return Result.fail(
            err or "Command failed",
            f"Command failed with exit code {execution.exit_code}: {command}",
            execution,
        )


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    # The shell's children hold the output pipes; kill the whole session.
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
