"""Pydantic models for platform API responses."""

import json
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.job import Job, JobKind, JobObjectResult


def _error_text(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("message") or value.get("error") or json.dumps(value))
    return str(value)


class ObjectStatusPayload(BaseModel):
    """One entry of a job status 'objects' list."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field("", validation_alias=AliasChoices("name", "objectName", "objectname"))
    status: str = ""
    total_size: int = Field(0, validation_alias=AliasChoices("totalSize", "total_size", "recordCount"))
    file_urls: List[str] = Field(default_factory=list, validation_alias=AliasChoices("fileUrls", "file_urls"))
    errors: List[str] = Field(default_factory=list)

    @field_validator("name", "status", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("total_size", mode="before")
    @classmethod
    def _size(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("file_urls", mode="before")
    @classmethod
    def _urls(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("errors", mode="before")
    @classmethod
    def _errors(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            value = [value]
        return [_error_text(v) for v in value]

    def to_result(self) -> JobObjectResult:
        return JobObjectResult(
            name=self.name,
            status_text=self.status,
            total_size=self.total_size,
            file_urls=list(self.file_urls),
            errors=list(self.errors),
        )


class JobStatusPayload(BaseModel):
    """Body of a get-job-status response."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: str = ""
    objects: List[ObjectStatusPayload] = Field(default_factory=list)
    error: Optional[str] = None
    error_message: Optional[str] = Field(None, validation_alias=AliasChoices("errorMessage", "error_message"))
    error_code: Optional[str] = Field(None, validation_alias=AliasChoices("errorCode", "error_code"))

    @model_validator(mode="before")
    @classmethod
    def _import_jobs(cls, data: Any) -> Any:
        # Import status responses list their objects under 'importJobs'
        if isinstance(data, dict) and not data.get("objects") and data.get("importJobs"):
            data = dict(data)
            data["objects"] = data["importJobs"]
        return data

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("objects", mode="before")
    @classmethod
    def _objects(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("error", "error_message", "error_code", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return _error_text(value)

    def to_job(self, job_id: str, kind: JobKind) -> Job:
        """Convert to the local Job view."""
        error = self.error
        if self.error_message and self.error_message != error:
            error = f"{error}: {self.error_message}" if error else self.error_message

        return Job(
            id=job_id,
            kind=kind,
            status_text=self.status,
            objects=[o.to_result() for o in self.objects],
            error=error,
            error_code=self.error_code,
            raw=self.model_dump(by_alias=False),
        )


class CreateJobResponse(BaseModel):
    """Body of a create-job response."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    job_id: Optional[str] = Field(None, validation_alias=AliasChoices("jobid", "jobId", "id"))

    @field_validator("job_id", mode="before")
    @classmethod
    def _job_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)
