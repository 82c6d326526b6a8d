"""The fixed capability table."""

from __future__ import annotations

from typing import List

from .apps import (
    AppsEnvExampleCapability,
    AppsHealthCapability,
    AppsInitCapability,
    AppsListCapability,
    AppsRemoveCapability,
    AppsStatusCapability,
    AppsValidateCapability,
)
from .artifacts import GenerateRunbookCapability, VerifyReleaseCapability
from .base import Capability
from .database import DbBackupCapability, DbCreateCapability, DbMigrateCapability, DbSeedCapability, DbStatusCapability
from .deploy import DeployDownCapability, DeployRestartCapability, DeployUpCapability
from .platform import PlatformCheckCapability, PlatformInfoCapability
from .registry import CapabilityRegistry
from .release import (
    ReleaseDeployCapability,
    RepoCloneCapability,
    SupabaseApplyCapability,
    SupabaseEnsureCapability,
)


def default_capabilities() -> List[Capability]:
    return [
        PlatformInfoCapability(),
        PlatformCheckCapability(),
        AppsListCapability(),
        AppsStatusCapability(),
        AppsHealthCapability(),
        AppsInitCapability(),
        AppsRemoveCapability(),
        AppsEnvExampleCapability(),
        AppsValidateCapability(),
        DeployUpCapability(),
        DeployDownCapability(),
        DeployRestartCapability(),
        DbCreateCapability(),
        DbMigrateCapability(),
        DbSeedCapability(),
        DbBackupCapability(),
        DbStatusCapability(),
        GenerateRunbookCapability(),
        VerifyReleaseCapability(),
        RepoCloneCapability(),
        SupabaseEnsureCapability(),
        SupabaseApplyCapability(),
        ReleaseDeployCapability(),
    ]


def build_default_registry() -> CapabilityRegistry:
    """Registry holding every ``CapabilityName`` member exactly once."""
    return CapabilityRegistry(default_capabilities())
