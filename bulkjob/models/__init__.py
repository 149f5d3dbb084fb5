"""Data models for the bulk job client."""

from .config import JobConfig
from .object_types import (
    ObjectCategory,
    ObjectType,
    ObjectTypeDefinition,
    ObjectTypeRegistry,
    registry,
)
from .job import (
    JobKind,
    JobStatus,
    JobObjectResult,
    Job,
    ObjectOutcome,
    ClassifiedObject,
    JobOutcome,
    RunPhase,
    JobRun,
)
from .staging import (
    SourceFormat,
    StagedFile,
    BatchRequest,
)

__all__ = [
    "JobConfig",
    "ObjectCategory",
    "ObjectType",
    "ObjectTypeDefinition",
    "ObjectTypeRegistry",
    "registry",
    "JobKind",
    "JobStatus",
    "JobObjectResult",
    "Job",
    "ObjectOutcome",
    "ClassifiedObject",
    "JobOutcome",
    "RunPhase",
    "JobRun",
    "SourceFormat",
    "StagedFile",
    "BatchRequest",
]
