"""Job lifecycle: submission, polling, classification and download."""

from .scheduler import Scheduler, SystemScheduler
from .submitter import ExportPayload, JobSubmitter
from .poller import JobPoller, PollPhase, PollState, Transient, advance
from .classifier import ResultClassifier, classify_object, is_no_records_error
from .downloader import Downloader, DownloadReport

__all__ = [
    "Scheduler",
    "SystemScheduler",
    "ExportPayload",
    "JobSubmitter",
    "JobPoller",
    "PollPhase",
    "PollState",
    "Transient",
    "advance",
    "ResultClassifier",
    "classify_object",
    "is_no_records_error",
    "Downloader",
    "DownloadReport",
]
