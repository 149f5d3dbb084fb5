"""Download of export result files."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from ..api.client import PlatformClient
from ..errors import BulkJobError
from ..models.config import JobConfig
from ..models.job import ClassifiedObject, Job, JobOutcome, ObjectOutcome
from .classifier import classify_object

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jsonl"

# Usage exports are not in a re-importable layout
SKIPPED_OBJECTS = {"usage"}


@dataclass
class DownloadReport:
    """Files written for one job, plus what was not written and why."""
    job_id: str
    written: Dict[str, Path] = field(default_factory=dict)
    not_written: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def files(self) -> List[Path]:
        return list(self.written.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "job_id": self.job_id,
            "written": {k: str(v) for k, v in self.written.items()},
            "not_written": self.not_written,
            "errors": self.errors,
        }


class Downloader:
    """
    Writes the result files of completed export objects to disk.

    When more than one object has a file, each goes to its own
    '<type>-<jobid><ext>' so no object overwrites another.
    """

    def __init__(self, client: PlatformClient, config: Optional[JobConfig] = None):
        self.client = client
        self.config = config or client.config

    def download(
        self,
        job: Job,
        outcome: Optional[JobOutcome] = None,
        object_type: Optional[str] = None,
        output: Optional[Union[str, Path]] = None
    ) -> DownloadReport:
        """
        Download result files for a terminal job.

        Args:
            job: Terminal job
            outcome: Classification of the job (computed if omitted)
            object_type: Only download this object type
            output: Requested output path for a single object

        Returns:
            DownloadReport of written, skipped and failed objects
        """
        report = DownloadReport(job_id=job.id)
        classified = outcome.objects if outcome else [classify_object(r) for r in job.objects]

        if not classified:
            logger.warning("No export results available")
            return report

        candidates = [c for c in classified if c.name.lower() not in SKIPPED_OBJECTS]
        for c in classified:
            if c.name.lower() in SKIPPED_OBJECTS:
                logger.warning(f"  • {c.name}: skipped, format not supported for download")
                report.not_written[c.name] = "download not supported"

        individual_files = sum(1 for c in candidates if self._has_download(c)) > 1
        requested = object_type.lower() if object_type else None
        used: Set[Path] = set()

        for obj in candidates:
            if requested and obj.name.lower() != requested:
                continue

            if not self._has_download(obj):
                self._report_not_written(obj, report)
                continue

            target = self._target_path(obj, job.id, output, individual_files, used)
            used.add(target)
            logger.info(f"Downloading {obj.name} data...")

            try:
                data = self.client.download_file(obj.result.file_urls[0])
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
            except (BulkJobError, OSError) as e:
                logger.error(f"Error downloading {obj.name} data: {e}")
                report.errors[obj.name] = str(e)
                continue

            report.written[obj.name] = target
            logger.info(f"Downloaded {obj.name} data ({obj.result.total_size} records) to {target}")

        return report

    @staticmethod
    def _has_download(obj: ClassifiedObject) -> bool:
        return obj.outcome == ObjectOutcome.COMPLETED and obj.result.has_files

    def _report_not_written(self, obj: ClassifiedObject, report: DownloadReport) -> None:
        if obj.outcome == ObjectOutcome.NO_RECORDS_AVAILABLE:
            logger.warning(f"  • {obj.name}: No records available")
        elif obj.outcome == ObjectOutcome.REAL_FAILURE:
            logger.error(f"  • {obj.describe()}")
        elif obj.outcome == ObjectOutcome.COMPLETED:
            logger.info(f"  • {obj.name}: {obj.result.total_size} records (no file to download)")
        else:
            logger.warning(f"  • {obj.name}: {obj.result.status_text}")
        report.not_written[obj.name] = obj.outcome.value

    def _target_path(
        self,
        obj: ClassifiedObject,
        job_id: str,
        output: Optional[Union[str, Path]],
        individual_files: bool,
        used: Set[Path]
    ) -> Path:
        """Output path for one object, never one already used in this download."""
        if output and not individual_files:
            target = Path(output)
        else:
            if output:
                directory = Path(output).parent
                extension = Path(output).suffix or DEFAULT_EXTENSION
            else:
                directory = Path(self.config.output_dir)
                extension = DEFAULT_EXTENSION
            target = directory / f"{obj.name.lower()}-{job_id}{extension}"

        candidate = target
        counter = 2
        while candidate in used:
            candidate = target.with_name(f"{target.stem}-{counter}{target.suffix}")
            counter += 1
        return candidate
