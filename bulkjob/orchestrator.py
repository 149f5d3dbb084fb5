"""Bulk job orchestrator - runs export and import jobs end to end."""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from .api.client import PlatformClient
from .errors import BulkJobError, ValidationError
from .jobs.classifier import ResultClassifier
from .jobs.downloader import Downloader, DownloadReport
from .jobs.poller import JobPoller
from .jobs.scheduler import Scheduler
from .jobs.submitter import ExportPayload, JobSubmitter
from .models.config import JobConfig
from .models.job import JobKind, JobRun, RunPhase
from .models.object_types import ObjectType
from .models.staging import SourceFormat, StagedFile
from .staging.batcher import MultiObjectBatcher, find_export_files
from .staging.stager import FileStager

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class BulkJobOrchestrator:
    """
    Orchestrates complete export and import runs.

    Handles:
    - Staging caller files in the wire format
    - Combining several object files into one import
    - Posting transaction hub records as a JSON body
    - Submitting, polling and classifying jobs
    - Downloading export results
    - Cleaning up staged files
    """

    def __init__(
        self,
        config: JobConfig,
        client: Optional[PlatformClient] = None,
        scheduler: Optional[Scheduler] = None,
        staging_dir: Optional[PathLike] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Client configuration
            client: Platform client (created from config if omitted)
            scheduler: Scheduler for poll delays
            staging_dir: Where staged files are written
        """
        self.config = config
        self.client = client or PlatformClient(config)
        self.stager = FileStager(staging_dir=staging_dir)
        self.batcher = MultiObjectBatcher()
        self.submitter = JobSubmitter(self.client, config)
        self.poller = JobPoller(self.client, config, scheduler)
        self.classifier = ResultClassifier()
        self.downloader = Downloader(self.client, config)

    @contextmanager
    def _tracked(self, run: JobRun) -> Iterator[JobRun]:
        """Record timing and failure of a run; errors propagate."""
        run.started_at = datetime.utcnow()
        try:
            yield run
        except BulkJobError as e:
            logger.error(f"{run.kind.label.capitalize()} failed: {e}")
            run.errors.append({
                "phase": run.phase.value,
                "error": str(e),
                "timestamp": datetime.utcnow().isoformat(),
            })
            run.phase = RunPhase.FAILED
            raise
        finally:
            run.completed_at = datetime.utcnow()

    # Imports

    def run_import(
        self,
        sources: Sequence[Tuple[PathLike, str]],
        source_format: Optional[Union[str, SourceFormat]] = None,
        wait: bool = True,
        timeout: Optional[float] = None
    ) -> JobRun:
        """
        Stage caller files and import them as one job.

        Args:
            sources: (file path, object type) pairs
            source_format: Format of every file; guessed per file if omitted
            wait: Poll the job to completion
            timeout: Polling timeout in seconds

        Returns:
            JobRun describing the import
        """
        if not sources:
            raise ValidationError("No files to import")

        definitions = [self.stager.registry.require(object_type) for _, object_type in sources]
        if any(d.is_transaction_hub for d in definitions):
            if len(sources) > 1:
                raise ValidationError("Transaction hub records must be imported on their own")
            return self.run_transaction_hub_import(sources[0][0], source_format, wait, timeout)

        run = JobRun(kind=JobKind.IMPORT)
        with self._tracked(run):
            logger.info("=== STAGING ===")
            run.phase = RunPhase.STAGING
            staged = []
            for file_path, object_type in sources:
                staged_file = self.stager.stage(file_path, object_type, source_format)
                staged.append(staged_file)
                run.staged_files.append(str(staged_file.path))
                run.object_types.append(staged_file.object_type.value)

            self._execute_import(run, staged, wait, timeout)

        return run

    def run_transaction_hub_import(
        self,
        file_path: PathLike,
        source_format: Optional[Union[str, SourceFormat]] = None,
        wait: bool = True,
        timeout: Optional[float] = None
    ) -> JobRun:
        """
        Import transaction hub records from a JSON, CSV or JSON Lines file.

        The records are sent in the request body rather than as a staged
        upload, and the job is polled on its own status endpoint.
        """
        run = JobRun(kind=JobKind.IMPORT)
        run.object_types.append(ObjectType.TRANSACTION_HUB.value)

        with self._tracked(run):
            run.phase = RunPhase.STAGING
            records = self.stager.read_records(file_path, source_format)

            logger.info("=== SUBMITTING ===")
            run.phase = RunPhase.SUBMITTING
            run.job_id = self.submitter.submit(JobKind.TRANSACTION_HUB, records)

            if not wait:
                run.phase = RunPhase.SUBMITTED
                logger.warning("Import job is running asynchronously. Use --wait to wait for completion.")
                return run

            logger.info("=== POLLING ===")
            run.phase = RunPhase.POLLING
            state = self.poller.poll(run.job_id, JobKind.TRANSACTION_HUB, timeout)
            run.outcome = self.classifier.classify(state.job)
            run.phase = RunPhase.COMPLETED

        return run

    def import_from_export_job(
        self,
        export_job_id: str,
        object_type: Optional[str] = None,
        all_objects: bool = False,
        directory: PathLike = ".",
        wait: bool = True,
        timeout: Optional[float] = None
    ) -> JobRun:
        """
        Re-import files downloaded from an earlier export job.

        Args:
            export_job_id: Export job whose '<type>-<jobid>.jsonl' files to use
            object_type: Import only this type
            all_objects: Import every downloaded type
            directory: Where the downloaded files are

        Returns:
            JobRun describing the import
        """
        if not object_type and not all_objects:
            raise ValidationError("Specify an object type or all objects")

        run = JobRun(kind=JobKind.IMPORT)
        with self._tracked(run):
            logger.info(f"Importing from export job ID: {export_job_id}")
            run.phase = RunPhase.STAGING

            files = find_export_files(
                export_job_id, directory, None if all_objects else object_type
            )
            if not files:
                raise ValidationError(
                    f"No downloaded files found for export job ID: {export_job_id}. "
                    "Run the export with download enabled first."
                )
            for path in files:
                logger.debug(f"Found downloaded file: {path}")

            staged = []
            for path in files:
                staged_file = self.stager.restage_export_file(path, object_type)
                staged.append(staged_file)
                run.staged_files.append(str(staged_file.path))
                run.object_types.append(staged_file.object_type.value)

            self._execute_import(run, staged, wait, timeout)

        return run

    def _execute_import(
        self,
        run: JobRun,
        staged: List[StagedFile],
        wait: bool,
        timeout: Optional[float]
    ) -> None:
        logger.info("=== SUBMITTING ===")
        run.phase = RunPhase.SUBMITTING
        batch = self.batcher.build(staged)
        run.job_id = self.submitter.submit(JobKind.IMPORT, batch)

        if not wait:
            run.phase = RunPhase.SUBMITTED
            logger.warning("Import job is running asynchronously. Use --wait to wait for completion.")
            return

        logger.info("=== POLLING ===")
        run.phase = RunPhase.POLLING
        state = self.poller.poll(run.job_id, JobKind.IMPORT, timeout)
        run.outcome = self.classifier.classify(state.job, [t.value for t in batch.object_types])

        run.phase = RunPhase.COMPLETED
        self.stager.cleanup(staged, verbose=self.config.verbose)

    # Exports

    def run_export(
        self,
        payload: ExportPayload,
        object_type: Optional[str] = None,
        wait: bool = True,
        download: bool = False,
        output: Optional[PathLike] = None,
        timeout: Optional[float] = None
    ) -> JobRun:
        """
        Create an export job, wait for it and optionally download its files.

        Args:
            payload: Query and variables
            object_type: Only download this object type
            wait: Poll the job to completion
            download: Download result files once the job is terminal
            output: Output path for a single object's file
            timeout: Polling timeout in seconds

        Returns:
            JobRun describing the export
        """
        run = JobRun(kind=JobKind.EXPORT)
        if object_type:
            run.object_types.append(object_type.lower())

        with self._tracked(run):
            logger.info("=== SUBMITTING ===")
            run.phase = RunPhase.SUBMITTING
            run.job_id = self.submitter.submit(JobKind.EXPORT, payload)

            if not wait:
                run.phase = RunPhase.SUBMITTED
                logger.warning("Job is running asynchronously.")
                logger.info(f"To download results later: bulkjob download {run.job_id}")
                return run

            logger.info("=== POLLING ===")
            run.phase = RunPhase.POLLING
            state = self.poller.poll(run.job_id, JobKind.EXPORT, timeout)
            run.outcome = self.classifier.classify(state.job)

            if download:
                logger.info("=== DOWNLOADING ===")
                run.phase = RunPhase.DOWNLOADING
                report = self.downloader.download(state.job, run.outcome, object_type, output)
                self._record_download(run, report)

            run.phase = RunPhase.COMPLETED

        return run

    def download_job(
        self,
        job_id: str,
        object_type: Optional[str] = None,
        output: Optional[PathLike] = None
    ) -> JobRun:
        """
        Download the results of an existing export job without polling.

        Raises:
            ValidationError: If the job is not terminal yet
            JobFailedError: If every object failed
        """
        run = JobRun(kind=JobKind.EXPORT, job_id=job_id)
        if object_type:
            run.object_types.append(object_type.lower())

        with self._tracked(run):
            logger.info(f"Checking status of export job {job_id}...")
            run.phase = RunPhase.POLLING
            job = self.poller.fetch(job_id, JobKind.EXPORT)

            if not job.status.is_terminal:
                raise ValidationError(
                    f"Job {job_id} is still {job.status_text or 'processing'}. Please wait and try again."
                )

            run.outcome = self.classifier.classify(job)

            run.phase = RunPhase.DOWNLOADING
            report = self.downloader.download(job, run.outcome, object_type, output)
            self._record_download(run, report)
            run.phase = RunPhase.COMPLETED

        return run

    @staticmethod
    def _record_download(run: JobRun, report: DownloadReport) -> None:
        run.downloaded_files.extend(str(p) for p in report.files)
        for name, error in report.errors.items():
            run.errors.append({"phase": RunPhase.DOWNLOADING.value, "object": name, "error": error})
