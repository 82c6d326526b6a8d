"""Async subprocess execution shared by all command-line drivers.

Commands are always executed from an argument vector, never through a shell,
so caller-supplied values cannot be interpreted as shell syntax.
"""

import asyncio
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ikoma_mcp.core.logging_config import get_logger

from ..errors import CommandFailedError

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one external command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    duration_seconds: float

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, as appended to action logs."""
        return self.stdout + self.stderr


class CommandRunner:
    """
    Runs external commands with ``asyncio.create_subprocess_exec``.

    The coroutine suspends until the process exits. No timeout is applied
    unless the caller passes one.
    """

    async def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        check: bool = True,
    ) -> CommandResult:
        """
        Execute ``argv`` and capture its output.

        Args:
            argv: Program and arguments.
            cwd: Working directory.
            env: Extra environment variables layered over the current environment.
            timeout: Optional timeout in seconds.
            check: Raise ``CommandFailedError`` on a non-zero exit status.

        Raises:
            CommandFailedError: When ``check`` is set and the command fails, times
                out, or cannot be started.
        """
        argv = [str(a) for a in argv]
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update({str(k): str(v) for k, v in env.items()})

        logger.debug(f"Executing command: {argv[0]} (cwd={cwd})")
        start_time = time.time()
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd is not None else None,
                env=full_env,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise CommandFailedError(argv, None, str(exc)) from exc

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise CommandFailedError(argv, None, f"timed out after {timeout} seconds") from exc

        stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""
        duration = time.time() - start_time
        result = CommandResult(
            argv=tuple(argv),
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout,
            stderr=stderr,
            duration_seconds=duration,
        )
        logger.debug(f"Command {argv[0]} completed with exit code {result.returncode} (duration: {duration:.2f}s)")
        if check and not result.ok:
            raise CommandFailedError(argv, result.returncode, stderr or stdout)
        return result
