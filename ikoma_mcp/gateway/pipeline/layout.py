"""Per-application directory layout under the managed root.

::

    <root>/<slug>/
        src/                          working checkout
        supabase/docker-compose.yml   backing-service stack
        releases/<release_id>/        immutable release snapshots
        current -> releases/<id>      live release pointer
        logs/<release_id>/<action>.log
        backups/<name>.sql
        .state/<release_id>.json      stage marker
        .env
        docker-compose.yml
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..security.path_guard import PathGuard


@dataclass(frozen=True)
class AppLayout:
    """Pure path arithmetic for one application; performs no I/O."""

    root: Path
    token: str

    @classmethod
    def for_app(cls, guard: PathGuard, name: str) -> "AppLayout":
        """Sanitize ``name`` and return its layout. Raises ``PathViolationError``."""
        token = guard.sanitize(name)
        return cls(root=guard.root, token=token)

    @property
    def app_dir(self) -> Path:
        return self.root / self.token

    @property
    def src_dir(self) -> Path:
        return self.app_dir / "src"

    @property
    def supabase_dir(self) -> Path:
        return self.app_dir / "supabase"

    @property
    def releases_dir(self) -> Path:
        return self.app_dir / "releases"

    def release_dir(self, release_id: str) -> Path:
        return self.releases_dir / release_id

    @property
    def current_link(self) -> Path:
        return self.app_dir / "current"

    def logs_dir(self, release_id: str) -> Path:
        return self.app_dir / "logs" / release_id

    def action_log(self, release_id: str, action: str) -> Path:
        return self.logs_dir(release_id) / f"{action}.log"

    @property
    def backups_dir(self) -> Path:
        return self.app_dir / "backups"

    @property
    def state_dir(self) -> Path:
        return self.app_dir / ".state"

    def state_file(self, release_id: str) -> Path:
        return self.state_dir / f"{release_id}.json"

    @property
    def env_file(self) -> Path:
        return self.app_dir / ".env"

    @property
    def compose_file(self) -> Path:
        return self.app_dir / "docker-compose.yml"
