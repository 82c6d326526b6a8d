"""Version-control driver used by the source acquisition stage."""

from pathlib import Path
from typing import Optional

from .process import CommandResult, CommandRunner


class GitDriver:
    """
    Thin wrapper over the ``git`` command line.

    Refs and URLs are validated by the caller; every invocation still places
    them after ``--`` or in positions where git cannot read them as options.
    """

    def __init__(self, runner: Optional[CommandRunner] = None, binary: str = "git") -> None:
        self._runner = runner or CommandRunner()
        self._binary = binary

    def is_working_copy(self, path: Path) -> bool:
        return (path / ".git").exists()

    async def clone(self, url: str, ref: str, dest: Path) -> str:
        """Fresh checkout of ``url`` at ``ref`` into the (empty) directory ``dest``."""
        out = await self._git(dest.parent, "clone", "--", url, str(dest))
        checkout = await self._git(dest, "checkout", ref, "--")
        return out.output + checkout.output

    async def update(self, path: Path, ref: str) -> str:
        """Fetch ``ref`` from origin and fast-forward the working copy to it."""
        fetch = await self._git(path, "fetch", "origin", "--", ref)
        checkout = await self._git(path, "checkout", ref, "--")
        merge = await self._git(path, "merge", "--ff-only", "FETCH_HEAD")
        return fetch.output + checkout.output + merge.output

    async def head_revision(self, path: Path) -> str:
        result = await self._git(path, "rev-parse", "HEAD")
        return result.stdout.strip()

    async def _git(self, cwd: Path, *args: str) -> CommandResult:
        return await self._runner.run(
            [self._binary, *args],
            cwd=cwd,
            env={"GIT_TERMINAL_PROMPT": "0"},
        )
