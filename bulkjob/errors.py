"""Exception types raised by the bulk job client."""

from typing import Any, List, Optional


class BulkJobError(Exception):
    """Base class for all client errors."""


class RegistryError(BulkJobError):
    """The object type registry is inconsistent."""


class ValidationError(BulkJobError):
    """Caller input or file content is malformed. Never retried."""


class FileError(ValidationError):
    """A file could not be read or parsed."""

    def __init__(self, path: Any, message: str):
        self.path = str(path)
        self.message = message
        super().__init__(f"{message} (file: {self.path})")


class APIError(BulkJobError):
    """The platform answered with an HTTP error."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.url = url
        prefix = f"HTTP {status_code}: " if status_code else ""
        super().__init__(f"{prefix}{message}")


class TransientNetworkError(APIError):
    """A condition that may clear on its own, such as a reset connection."""


class JobNotFoundError(TransientNetworkError):
    """The job is not queryable yet. Common right after creation."""

    def __init__(self, job_id: str, url: Optional[str] = None):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found yet", status_code=404, url=url)


class JobFailedError(BulkJobError):
    """Every object in a terminal job failed."""

    def __init__(
        self,
        job_id: str,
        objects: Optional[List[Any]] = None,
        error: Optional[str] = None
    ):
        self.job_id = job_id
        self.objects = list(objects or [])
        self.error = error

        details = []
        for obj in self.objects:
            details.append(f"{obj.name}: {', '.join(obj.errors) or 'Unknown error'}")

        message = f"Job {job_id} failed"
        if error:
            message += f": {error}"
        if details:
            message += " [" + "; ".join(details) + "]"
        super().__init__(message)


class JobTimeoutError(BulkJobError):
    """Polling ran past the configured ceiling."""

    def __init__(self, job_id: str, elapsed: float):
        self.job_id = job_id
        self.elapsed = elapsed
        super().__init__(f"Job {job_id} timed out after {int(elapsed)} seconds")
