"""Shared fixtures: a fake clock and an in-memory platform client."""

from typing import Any, Dict, List

import pytest

from bulkjob.api.models import JobStatusPayload
from bulkjob.jobs.scheduler import Scheduler
from bulkjob.models.config import JobConfig


class FakeScheduler(Scheduler):
    """Clock that only moves when slept on, or when a call is charged to it."""

    def __init__(self, call_cost: float = 0.0):
        self.now = 0.0
        self.call_cost = call_cost
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def charge(self) -> None:
        self.now += self.call_cost


class FakeClient:
    """
    Stand-in for PlatformClient.

    Status responses are queued per job as dicts (validated like real
    responses) or exceptions (raised); the last one repeats once the queue
    runs dry.
    """

    def __init__(self, config: JobConfig, scheduler: FakeScheduler = None):
        self.config = config
        self.scheduler = scheduler
        self.statuses: Dict[str, List[Any]] = {}
        self.downloads: Dict[str, Any] = {}
        self.calls: List[tuple] = []
        self.uploads: Dict[str, bytes] = {}
        self.next_job_id = "job-1"

    def queue(self, job_id: str, *responses: Any) -> None:
        self.statuses.setdefault(job_id, []).extend(responses)

    def _next_status(self, job_id: str) -> JobStatusPayload:
        if self.scheduler is not None:
            self.scheduler.charge()
        queued = self.statuses[job_id]
        response = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(response, Exception):
            raise response
        return JobStatusPayload.model_validate(response)

    def create_export_job(self, query, variables):
        self.calls.append(("create_export_job", query, variables))
        return self.next_job_id

    def create_catalog_import_job(self, parts, import_operation=None):
        fields = []
        for field_name, (file_name, handle, _content_type) in parts:
            self.uploads[field_name] = handle.read()
            fields.append((field_name, file_name))
        self.calls.append(("create_catalog_import_job", fields, import_operation))
        return self.next_job_id

    def create_import_job(self, object_name, file_format="jsonl"):
        self.calls.append(("create_import_job", object_name, file_format))
        return self.next_job_id

    def upload_import_content(self, job_id, parts):
        for field_name, (_file_name, handle, _content_type) in parts:
            self.uploads[field_name] = handle.read()
        self.calls.append(("upload_import_content", job_id, [p[0] for p in parts]))

    def create_transaction_hub_import_job(self, records):
        self.calls.append(("create_transaction_hub_import_job", records))
        return self.next_job_id

    def get_export_status(self, job_id):
        self.calls.append(("get_export_status", job_id))
        return self._next_status(job_id)

    def get_import_status(self, job_id):
        self.calls.append(("get_import_status", job_id))
        return self._next_status(job_id)

    def get_transaction_hub_import_status(self, job_id):
        self.calls.append(("get_transaction_hub_import_status", job_id))
        return self._next_status(job_id)

    def download_file(self, url):
        self.calls.append(("download_file", url))
        content = self.downloads[url]
        if isinstance(content, Exception):
            raise content
        return content

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def config(tmp_path):
    return JobConfig(api_key="test-key", output_dir=str(tmp_path))


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def client(config, scheduler):
    return FakeClient(config, scheduler)
