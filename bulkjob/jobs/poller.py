"""Polling of job status until a terminal state or timeout."""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from ..api.client import PlatformClient
from ..errors import JobTimeoutError, TransientNetworkError
from ..models.config import JobConfig
from ..models.job import Job, JobKind, JobStatus
from .scheduler import Scheduler, SystemScheduler

logger = logging.getLogger(__name__)


class PollPhase(str, Enum):
    """Poller state machine phases."""
    UNKNOWN = "unknown"
    PROCESSING = "processing"
    COMPLETED = "completed"
    PARTIAL_COMPLETED = "partial_completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (
            PollPhase.COMPLETED,
            PollPhase.PARTIAL_COMPLETED,
            PollPhase.FAILED,
            PollPhase.TIMED_OUT,
        )


_PHASE_FOR_STATUS = {
    JobStatus.PROCESSING: PollPhase.PROCESSING,
    JobStatus.COMPLETED: PollPhase.COMPLETED,
    JobStatus.PARTIAL_COMPLETED: PollPhase.PARTIAL_COMPLETED,
    JobStatus.FAILED: PollPhase.FAILED,
    JobStatus.UNKNOWN: PollPhase.UNKNOWN,
}


@dataclass(frozen=True)
class Transient:
    """A poll that got no status, e.g. because the job is not queryable yet."""
    reason: str


Observation = Union[Job, Transient, None]


@dataclass(frozen=True)
class PollState:
    """Where a job stands after the polls made so far."""
    phase: PollPhase = PollPhase.UNKNOWN
    elapsed: float = 0.0
    attempts: int = 0
    transient_count: int = 0
    last_transient: bool = False
    status_text: str = ""
    job: Optional[Job] = None

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal


def advance(state: PollState, observation: Observation, elapsed: float, timeout: float) -> PollState:
    """
    Compute the next poll state.

    Args:
        state: Current state
        observation: Job fetched by this poll, Transient if none could be
            fetched, or None when no poll was made
        elapsed: Seconds since polling started, measured before the poll
        timeout: Polling ceiling in seconds

    Returns:
        The new state. A terminal state is returned unchanged.
    """
    if state.is_terminal:
        return state

    if elapsed >= timeout:
        return replace(state, phase=PollPhase.TIMED_OUT, elapsed=elapsed)

    if observation is None:
        return replace(state, elapsed=elapsed)

    if isinstance(observation, Transient):
        return replace(
            state,
            elapsed=elapsed,
            attempts=state.attempts + 1,
            transient_count=state.transient_count + 1,
            last_transient=True,
        )

    return replace(
        state,
        phase=_PHASE_FOR_STATUS[observation.status],
        elapsed=elapsed,
        attempts=state.attempts + 1,
        last_transient=False,
        status_text=observation.status_text,
        job=observation,
    )


def next_delay(state: PollState, config: JobConfig) -> float:
    """Delay before the next poll."""
    return config.not_found_delay if state.last_transient else config.poll_interval


class JobPoller:
    """
    Polls a job until it reaches a terminal state.

    A top-level failed status is returned, not raised: the objects inside
    it still need classifying. Only running past the timeout raises.
    """

    def __init__(
        self,
        client: PlatformClient,
        config: Optional[JobConfig] = None,
        scheduler: Optional[Scheduler] = None
    ):
        self.client = client
        self.config = config or client.config
        self.scheduler = scheduler or SystemScheduler()

    def fetch(self, job_id: str, kind: JobKind) -> Job:
        """Fetch the current status once."""
        if kind == JobKind.EXPORT:
            payload = self.client.get_export_status(job_id)
        elif kind == JobKind.TRANSACTION_HUB:
            payload = self.client.get_transaction_hub_import_status(job_id)
        else:
            payload = self.client.get_import_status(job_id)
        return payload.to_job(job_id, kind)

    def observe(self, job_id: str, kind: JobKind) -> Union[Job, Transient]:
        """Fetch the current status, turning transient errors into a Transient."""
        try:
            return self.fetch(job_id, kind)
        except TransientNetworkError as e:
            return Transient(reason=str(e))

    def poll(self, job_id: str, kind: JobKind, timeout: Optional[float] = None) -> PollState:
        """
        Poll until the job is terminal.

        Args:
            job_id: Job to poll
            kind: Export, import or transaction hub import
            timeout: Caller timeout in seconds, bounded by config.max_timeout

        Returns:
            Terminal PollState carrying the last fetched Job

        Raises:
            JobTimeoutError: If the ceiling is reached first
            APIError: For non-transient HTTP errors
        """
        ceiling = self.config.effective_timeout(timeout)
        start = self.scheduler.monotonic()
        state = PollState()

        logger.info(f"Waiting for {kind.label} job {job_id} to complete...")

        while True:
            elapsed = self.scheduler.monotonic() - start
            if elapsed >= ceiling:
                state = advance(state, None, elapsed, ceiling)
                break

            observation = self.observe(job_id, kind)
            state = advance(state, observation, elapsed, ceiling)
            self._report(job_id, kind, state, observation)

            if state.is_terminal:
                break

            remaining = ceiling - (self.scheduler.monotonic() - start)
            if remaining > 0:
                self.scheduler.sleep(min(next_delay(state, self.config), remaining))

        if state.phase == PollPhase.TIMED_OUT:
            raise JobTimeoutError(job_id, state.elapsed)

        return state

    def _report(self, job_id: str, kind: JobKind, state: PollState, observation: Observation) -> None:
        if isinstance(observation, Transient):
            logger.warning(f"{kind.label.capitalize()} job not found yet, waiting... ({observation.reason})")
        elif state.phase == PollPhase.COMPLETED:
            logger.info(f"{kind.label.capitalize()} job {job_id} completed")
        elif state.phase == PollPhase.PARTIAL_COMPLETED:
            logger.warning(f"{kind.label.capitalize()} job {job_id} completed with partial success")
        elif state.phase == PollPhase.FAILED:
            logger.warning(f"{kind.label.capitalize()} job {job_id} reported failure; checking objects")
        elif state.phase == PollPhase.UNKNOWN:
            logger.warning(f"Job {job_id} returned unrecognized status '{state.status_text}', still waiting")
        else:
            logger.info(f"Job status: {state.status_text}")
