"""Stage 1: source acquisition (``repo.clone``)."""

from __future__ import annotations

from typing import Any, Dict

from ..schemas.domain import ErrorCode, ReleaseStage
from ..security.origin import is_allowed_source
from ..security.redaction import scrub_text
from .action_log import ActionLog
from .base import PipelineStage, StageFailure
from .envelope import EnvelopeBuilder
from .layout import AppLayout
from .requests import CloneRequest


class SourceStage(PipelineStage[CloneRequest]):
    """
    Clone or update the application's working checkout.

    The stage inspects ``src/`` on every call: an existing working copy is
    fetched and fast-forwarded to ``ref``; an absent or empty directory gets a
    fresh clone. A non-empty directory that is not a working copy is refused.
    """

    action = "repo.clone"
    failure_code = ErrorCode.repo_clone_failed
    failure_summary = "Failed to clone repository"
    completes = ReleaseStage.source_ready

    async def execute(
        self,
        request: CloneRequest,
        layout: AppLayout,
        envelope: EnvelopeBuilder,
        log: ActionLog,
    ) -> tuple[str, Dict[str, Any]]:
        guard = self._deps.guard
        git = self._deps.git
        src = layout.src_dir
        guard.ensure(src, layout.token)

        if not is_allowed_source(request.git_url):
            raise StageFailure(
                "Only GitHub URLs are allowed",
                hint="Use an https://github.com/<owner>/<repo> URL",
            )

        working_copy = git.is_working_copy(src)
        if not working_copy and src.exists() and any(src.iterdir()):
            raise StageFailure(
                f"{src} exists and is not a git working copy",
                hint="Remove the directory contents or re-initialize the application",
            )

        src.mkdir(parents=True, exist_ok=True)
        url = scrub_text(request.git_url)
        if working_copy:
            log.write(f"Updating {src} from {url} (ref: {request.ref})")
            output = await git.update(src, request.ref)
            mode = "update"
        else:
            log.write(f"Cloning {url} (ref: {request.ref}) into {src}")
            output = await git.clone(request.git_url, request.ref, src)
            mode = "clone"
        log.write(output)

        commit_hash = await git.head_revision(src)
        log.write(f"HEAD is now {commit_hash}")

        artifacts = {
            "commit_hash": commit_hash,
            "ref": request.ref,
            "mode": mode,
            "src_path": str(src),
        }
        verb = "cloned" if mode == "clone" else "updated"
        return f"Successfully {verb} {url}", artifacts
