"""Classification of per-object results in a terminal job."""

import logging
from typing import Iterable, List, Optional

from ..errors import JobFailedError
from ..models.job import (
    ClassifiedObject,
    Job,
    JobObjectResult,
    JobOutcome,
    JobStatus,
    ObjectOutcome,
)

logger = logging.getLogger(__name__)

# The platform reports an export with nothing to fetch as a failure whose
# message reads like "No Product records fetched". Matching is case sensitive.
NO_RECORDS_MARKERS = ("No ", " fetched")


def is_no_records_error(result: JobObjectResult) -> bool:
    """True when a failed object only failed because it had nothing to export."""
    return (
        result.total_size == 0
        and any(all(marker in error for marker in NO_RECORDS_MARKERS) for error in result.errors)
    )


def classify_object(result: JobObjectResult) -> ClassifiedObject:
    """Classify a single object result."""
    status = result.status

    if status == JobStatus.COMPLETED:
        note = None if result.has_files else "no file to download"
        return ClassifiedObject(result, ObjectOutcome.COMPLETED, note)

    if status == JobStatus.PARTIAL_COMPLETED:
        return ClassifiedObject(result, ObjectOutcome.PARTIALLY_COMPLETED)

    if status == JobStatus.FAILED:
        if is_no_records_error(result):
            return ClassifiedObject(result, ObjectOutcome.NO_RECORDS_AVAILABLE, "No records available")
        return ClassifiedObject(result, ObjectOutcome.REAL_FAILURE)

    return ClassifiedObject(
        result,
        ObjectOutcome.REAL_FAILURE,
        f"Unexpected status in terminal job: {result.status_text or 'none'}",
    )


class ResultClassifier:
    """
    Decides the overall outcome of a terminal job.

    The job succeeds if any object completed, partially completed or simply
    had no records; warnings list every object that did not complete
    cleanly. Only when every object genuinely failed is JobFailedError
    raised.
    """

    def classify(self, job: Job, requested: Optional[Iterable[str]] = None) -> JobOutcome:
        """
        Classify every object of a terminal job exactly once.

        Args:
            job: Terminal job
            requested: Object type names the caller asked for, if known

        Returns:
            JobOutcome with per-object classifications and warnings

        Raises:
            JobFailedError: If every object is a real failure, or a failed
                job reports no objects at all
        """
        classified: List[ClassifiedObject] = [classify_object(result) for result in job.objects]
        warnings: List[str] = []

        for obj in classified:
            if obj.outcome == ObjectOutcome.COMPLETED:
                logger.info(f"  • {obj.describe()}")
            elif obj.outcome == ObjectOutcome.REAL_FAILURE:
                logger.error(f"  • {obj.describe()}")
                warnings.append(obj.describe())
            else:
                logger.warning(f"  • {obj.describe()}")
                warnings.append(obj.describe())

        if requested:
            present = {o.name.lower() for o in classified}
            for name in requested:
                if name.lower() not in present:
                    message = f"{name}: missing from job response"
                    logger.warning(f"  • {message}")
                    warnings.append(message)

        if not classified:
            if job.status == JobStatus.FAILED:
                raise JobFailedError(job.id, [], job.error)
            return JobOutcome(job_id=job.id, status=job.status, warnings=warnings)

        if not any(o.outcome.counts_as_success for o in classified):
            raise JobFailedError(job.id, classified, job.error)

        if job.status != JobStatus.COMPLETED or warnings:
            logger.warning(f"Job {job.id} completed with partial success")
        else:
            logger.info(f"Job {job.id} completed successfully")

        return JobOutcome(job_id=job.id, status=job.status, objects=classified, warnings=warnings)
