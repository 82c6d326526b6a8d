"""Stage 4: atomic release cutover (``release.deploy``).

Order of operations:

1. ``project_path`` equality check.
2. ``.env`` completeness check. Nothing on disk changes before this passes.
3. Materialize ``releases/<release_id>`` through a staging directory and a
   rename, so a release directory is either complete or absent.
4. Swap ``current`` by renaming a temporary symlink over it.
5. Start the service and record the stage marker. If either fails the
   previous ``current`` is restored, so ``current`` only ever points at a
   release whose deploy succeeded.
6. Probe the healthcheck (a failing probe is a warning, not a failure).
   Absolute healthcheck URLs must address the deployed service itself.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit
from uuid import uuid4

from ikoma_mcp.core.logging_config import get_logger

from ..schemas.domain import ErrorCode, ReleaseStage
from .action_log import ActionLog
from .base import PipelineStage, StageFailure
from .envelope import EnvelopeBuilder
from .layout import AppLayout
from .migrations import check_project_path
from .requests import DeployRequest

logger = get_logger(__name__)

MANAGED_TYPES = frozenset({"docker", "compose", "docker-compose"})
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1"})


def missing_env_keys(env_content: str, required: List[str]) -> List[str]:
    """Keys from ``required`` with no ``KEY=`` occurrence in ``env_content``."""
    return [key for key in required if f"{key}=" not in env_content]


def healthcheck_target_allowed(url: str, request: DeployRequest) -> bool:
    """Absolute healthchecks may only address the deployed service: localhost on its port, or its domain."""
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return False
    if parts.username or parts.password or not parts.hostname:
        return False
    host = parts.hostname.lower()
    if host in LOCAL_HOSTS:
        return parts.scheme == "http" and port == request.port
    if request.domain and host == request.domain.lower():
        return port is None
    return False


class DeployStage(PipelineStage[DeployRequest]):
    action = "release.deploy"
    failure_code = ErrorCode.app_deploy_failed
    failure_summary = "Failed to deploy application"
    completes = ReleaseStage.deployed

    async def execute(
        self,
        request: DeployRequest,
        layout: AppLayout,
        envelope: EnvelopeBuilder,
        log: ActionLog,
    ) -> tuple[str, Dict[str, Any]]:
        guard = self._deps.guard
        source = check_project_path(layout, request.project_path)

        env_file = layout.env_file
        guard.ensure(env_file, layout.token)
        missing = missing_env_keys(self._read_env(env_file), request.env_required)
        if missing:
            raise StageFailure(
                f"Missing keys: {', '.join(missing)}",
                code=ErrorCode.env_missing_keys,
                summary="Missing required environment variables",
                hint="Ensure .env file contains all required keys",
            )

        guard.ensure(source, layout.token)
        if not source.is_dir():
            raise StageFailure(f"{source} does not exist", hint="Run repo.clone first")

        release_dir = layout.release_dir(request.release_id)
        guard.ensure(release_dir, layout.token)
        if release_dir.is_dir():
            log.write(f"Release {request.release_id} already materialized at {release_dir}")
            envelope.warn(f"Release {request.release_id} already exists; reusing it")
        else:
            log.write(f"Deploying to {release_dir}")
            await asyncio.to_thread(self._materialize, source, release_dir)

        previous = self._swap_current(layout, release_dir)
        log.write(f"current -> {release_dir}")
        started = False
        try:
            started = await self._start_service(request, layout, envelope, log)
            # The marker is part of the cutover: if it cannot be written, the swap is undone.
            stage = self.mark_completed(layout, request.release_id)
        except Exception:
            self._restore_current(layout, previous)
            log.write("Deploy failed after the swap; restored previous current pointer")
            if started:
                await self._revert_service(request, layout, previous, log)
            raise

        app_url = f"https://{request.domain}" if request.domain else f"http://localhost:{request.port}"
        healthcheck = await self._probe(request, envelope)
        if healthcheck.get("status") not in (None, "skipped"):
            log.write(f"Healthcheck: {healthcheck['status']}")

        artifacts: Dict[str, Any] = {
            "app_url": app_url,
            "healthcheck": healthcheck,
            "release_path": str(release_dir),
            "current_path": str(layout.current_link),
            "pipeline_stage": stage,
        }
        if previous is not None:
            artifacts["previous_release"] = previous.name
        return "Application deployed successfully", artifacts

    @staticmethod
    def _read_env(env_file: Path) -> str:
        try:
            return env_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    @staticmethod
    def _materialize(source: Path, release_dir: Path) -> None:
        release_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = release_dir.parent / f".staging-{release_dir.name}-{uuid4().hex[:8]}"
        try:
            shutil.copytree(source, staging, symlinks=True, ignore=shutil.ignore_patterns(".git"))
            os.rename(staging, release_dir)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

    def _swap_current(self, layout: AppLayout, target: Path) -> Optional[Path]:
        """Point ``current`` at ``target`` atomically; return the previous target, if any."""
        current = layout.current_link
        previous: Optional[Path] = None
        if current.is_symlink():
            previous = Path(os.readlink(current))
        elif current.exists():
            raise StageFailure(f"{current} exists and is not a symlink")
        self._point(layout, target)
        return previous

    def _restore_current(self, layout: AppLayout, previous: Optional[Path]) -> None:
        try:
            if previous is None:
                layout.current_link.unlink(missing_ok=True)
            else:
                self._point(layout, previous)
        except OSError as exc:
            logger.error(f"Failed to restore {layout.current_link}: {exc}")

    @staticmethod
    def _point(layout: AppLayout, target: Path) -> None:
        tmp = layout.app_dir / f".current-{uuid4().hex[:8]}"
        os.symlink(target, tmp)
        try:
            os.replace(tmp, layout.current_link)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    async def _start_service(
        self,
        request: DeployRequest,
        layout: AppLayout,
        envelope: EnvelopeBuilder,
        log: ActionLog,
    ) -> bool:
        """Start the service; return whether anything was started."""
        if request.type.lower() not in MANAGED_TYPES:
            log.write(f"Deployment type {request.type} is not started by the gateway")
            envelope.warn(f"Deployment type '{request.type}' is not managed; service start skipped")
            return False
        if not layout.compose_file.exists():
            log.write(f"No {layout.compose_file.name} in {layout.app_dir}; service not started")
            envelope.warn("No docker-compose.yml for the application; service not started")
            return False
        log.write(f"Starting service {request.service} via {request.type}")
        output = await self._deps.compose.up(layout.app_dir, services=[request.service])
        log.write(output)
        return True

    async def _revert_service(
        self,
        request: DeployRequest,
        layout: AppLayout,
        previous: Optional[Path],
        log: ActionLog,
    ) -> None:
        """Bring the service back in line with the restored pointer (best effort)."""
        try:
            if previous is None:
                log.write(await self._deps.compose.down(layout.app_dir))
            else:
                log.write(await self._deps.compose.restart(layout.app_dir, services=[request.service]))
        except Exception as exc:
            logger.error(f"Failed to revert service {request.service} for {layout.token}: {exc}")

    async def _probe(self, request: DeployRequest, envelope: EnvelopeBuilder) -> Dict[str, Any]:
        if not request.healthcheck:
            return {"status": "skipped"}
        target = request.healthcheck
        if not target.startswith(("http://", "https://")):
            target = f"http://localhost:{request.port}/{target.lstrip('/')}"
        elif not healthcheck_target_allowed(target, request):
            envelope.warn(f"Healthcheck {target} is not the deployed service; probe skipped")
            return {"status": "rejected", "url": target}
        result = await self._deps.health.check(target)
        if result.get("status") != "healthy":
            envelope.warn(f"Healthcheck {target} reported {result.get('status')}")
        return result
