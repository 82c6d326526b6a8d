"""Release pipeline: source, stack, migrations, deploy.

Every stage returns a ``ReleaseEnvelope`` and never raises. Stages for the
same application are serialized through ``AppLockRegistry``.
"""

from .base import PipelineDeps, PipelineStage, StageFailure
from .envelope import EnvelopeBuilder
from .health import HealthProbe
from .layout import AppLayout
from .locks import AppLockRegistry
from .pipeline import ReleasePipeline
from .requests import ApplyMigrationsRequest, CloneRequest, DeployRequest, EnsureStackRequest
from .state import ReleaseState, StageMarkerStore

__all__ = [
    "AppLayout",
    "AppLockRegistry",
    "ApplyMigrationsRequest",
    "CloneRequest",
    "DeployRequest",
    "EnsureStackRequest",
    "EnvelopeBuilder",
    "HealthProbe",
    "PipelineDeps",
    "PipelineStage",
    "ReleasePipeline",
    "ReleaseState",
    "StageFailure",
    "StageMarkerStore",
]
