"""Container-orchestration driver (docker compose)."""

from pathlib import Path
from typing import Mapping, Optional, Sequence

from ikoma_mcp.core.logging_config import get_logger

from ..errors import CommandFailedError
from .process import CommandRunner

logger = get_logger(__name__)


class ComposeDriver:
    """
    Start, stop and inspect a compose stack rooted at a project directory.

    Every method takes the directory holding ``docker-compose.yml``; the
    caller is responsible for having validated it.
    """

    def __init__(self, runner: Optional[CommandRunner] = None, binary: str = "docker") -> None:
        self._runner = runner or CommandRunner()
        self._binary = binary

    async def up(
        self,
        project_dir: Path,
        *,
        env: Optional[Mapping[str, str]] = None,
        services: Sequence[str] = (),
    ) -> str:
        result = await self._runner.run(
            [self._binary, "compose", "up", "-d", *services],
            cwd=project_dir,
            env=env,
        )
        return result.output

    async def down(self, project_dir: Path) -> str:
        result = await self._runner.run([self._binary, "compose", "down"], cwd=project_dir)
        return result.output

    async def restart(self, project_dir: Path, *, services: Sequence[str] = ()) -> str:
        result = await self._runner.run([self._binary, "compose", "restart", *services], cwd=project_dir)
        return result.output

    async def is_running(self, project_dir: Path) -> bool:
        """True when at least one service of the stack is in the running state."""
        if not (project_dir / "docker-compose.yml").exists():
            return False
        try:
            result = await self._runner.run(
                [self._binary, "compose", "ps", "--status", "running", "-q"],
                cwd=project_dir,
            )
        except CommandFailedError as exc:
            logger.debug(f"compose ps failed in {project_dir}: {exc}")
            return False
        return bool(result.stdout.strip())

    async def ping(self) -> bool:
        """True when the container engine answers ``docker info``."""
        try:
            await self._runner.run([self._binary, "info"])
        except CommandFailedError:
            return False
        return True
