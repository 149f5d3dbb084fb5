"""Platform API boundary."""

from .client import PlatformClient
from .models import CreateJobResponse, JobStatusPayload, ObjectStatusPayload

__all__ = [
    "PlatformClient",
    "CreateJobResponse",
    "JobStatusPayload",
    "ObjectStatusPayload",
]
