"""Job models: the local view of a remote bulk job and its outcome."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class JobKind(str, Enum):
    """Kind of bulk job; decides which endpoints create and report on it."""
    EXPORT = "export"
    IMPORT = "import"
    TRANSACTION_HUB = "transaction_hub"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class JobStatus(str, Enum):
    """Normalized job or object status."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    PARTIAL_COMPLETED = "partial_completed"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.PARTIAL_COMPLETED, JobStatus.FAILED)

    @classmethod
    def normalize(cls, raw: Optional[str]) -> "JobStatus":
        """
        Map a status string from the API onto a JobStatus.

        Comparison ignores case and separators, so "PartialCompleted",
        "partial_completed" and "PARTIAL-COMPLETED" are the same status.
        Anything unrecognized maps to UNKNOWN.
        """
        if not raw:
            return cls.UNKNOWN
        key = _SEPARATORS.sub("", str(raw).lower())
        return _STATUS_SYNONYMS.get(key, cls.UNKNOWN)


_SEPARATORS = re.compile(r"[\s_\-]+")

_STATUS_SYNONYMS: Dict[str, JobStatus] = {
    "completed": JobStatus.COMPLETED,
    "complete": JobStatus.COMPLETED,
    "succeeded": JobStatus.COMPLETED,
    "success": JobStatus.COMPLETED,
    "partialcompleted": JobStatus.PARTIAL_COMPLETED,
    "partiallycompleted": JobStatus.PARTIAL_COMPLETED,
    "failed": JobStatus.FAILED,
    "failure": JobStatus.FAILED,
    "error": JobStatus.FAILED,
    "processing": JobStatus.PROCESSING,
    "pending": JobStatus.PROCESSING,
    "queued": JobStatus.PROCESSING,
    "running": JobStatus.PROCESSING,
    "inprogress": JobStatus.PROCESSING,
    "submitted": JobStatus.PROCESSING,
    "created": JobStatus.PROCESSING,
    "notstarted": JobStatus.PROCESSING,
}


@dataclass
class JobObjectResult:
    """Result for one object type inside a job status response."""
    name: str
    status_text: str = ""
    total_size: int = 0
    file_urls: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def status(self) -> JobStatus:
        return JobStatus.normalize(self.status_text)

    @property
    def has_files(self) -> bool:
        return len(self.file_urls) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "status": self.status_text,
            "total_size": self.total_size,
            "file_urls": self.file_urls,
            "errors": self.errors,
        }


@dataclass
class Job:
    """Transient local view of a remote job, refreshed by polling."""
    id: str
    kind: JobKind
    status_text: str = ""
    objects: List[JobObjectResult] = field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> JobStatus:
        return JobStatus.normalize(self.status_text)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "status": self.status_text,
            "objects": [o.to_dict() for o in self.objects],
            "error": self.error,
            "error_code": self.error_code,
        }


class ObjectOutcome(str, Enum):
    """Classification of a single object in a terminal job."""
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"
    NO_RECORDS_AVAILABLE = "no_records_available"
    REAL_FAILURE = "real_failure"

    @property
    def counts_as_success(self) -> bool:
        return self != ObjectOutcome.REAL_FAILURE


@dataclass
class ClassifiedObject:
    """An object result together with its classification."""
    result: JobObjectResult
    outcome: ObjectOutcome
    note: Optional[str] = None

    @property
    def name(self) -> str:
        return self.result.name

    @property
    def errors(self) -> List[str]:
        return self.result.errors

    def describe(self) -> str:
        """One-line human description."""
        if self.outcome == ObjectOutcome.NO_RECORDS_AVAILABLE:
            return f"{self.name}: No records available"
        if self.outcome == ObjectOutcome.REAL_FAILURE:
            return f"{self.name}: {', '.join(self.errors) or self.note or 'Unknown error'}"
        if self.outcome == ObjectOutcome.PARTIALLY_COMPLETED:
            detail = f" ({', '.join(self.errors)})" if self.errors else ""
            return f"{self.name}: partially completed{detail}"
        return f"{self.name}: {self.result.total_size} records"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "total_size": self.result.total_size,
            "errors": self.errors,
            "note": self.note,
        }


@dataclass
class JobOutcome:
    """Overall result of a terminal job that did not fail outright."""
    job_id: str
    status: JobStatus
    objects: List[ClassifiedObject] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def with_outcome(self, outcome: ObjectOutcome) -> List[ClassifiedObject]:
        return [o for o in self.objects if o.outcome == outcome]

    @property
    def completed(self) -> List[ClassifiedObject]:
        return self.with_outcome(ObjectOutcome.COMPLETED)

    @property
    def is_partial(self) -> bool:
        """True when at least one object did not complete cleanly."""
        return any(o.outcome != ObjectOutcome.COMPLETED for o in self.objects)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "partial": self.is_partial,
            "objects": [o.to_dict() for o in self.objects],
            "warnings": self.warnings,
        }


class RunPhase(str, Enum):
    """Phase of an orchestrated run."""
    PENDING = "pending"
    STAGING = "staging"
    SUBMITTING = "submitting"
    POLLING = "polling"
    DOWNLOADING = "downloading"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class JobRun:
    """A single orchestrated export or import run."""
    kind: JobKind
    job_id: Optional[str] = None
    phase: RunPhase = RunPhase.PENDING
    object_types: List[str] = field(default_factory=list)

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Files
    staged_files: List[str] = field(default_factory=list)
    downloaded_files: List[str] = field(default_factory=list)

    # Results
    outcome: Optional[JobOutcome] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def warnings(self) -> List[str]:
        return self.outcome.warnings if self.outcome else []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "kind": self.kind.value,
            "job_id": self.job_id,
            "phase": self.phase.value,
            "object_types": self.object_types,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "staged_files": self.staged_files,
            "downloaded_files": self.downloaded_files,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "errors": self.errors,
        }
