"""
Research job state machine.

    pending -> processing -> completed
                          -> failed
    pending -> failed

Submit stores a pending job and hands the query to the provider in a
background task. Poll is the only place a job advances afterwards: it asks
the provider (or the simulated timeline) for the current status and keeps
the reply only if it moves the job forward. Terminal jobs are never touched
again.
"""
import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set

from ..logger import setup_logger
from ..models import ResearchJob
from ..storage import MarketStore
from .caesar_client import CaesarClient, ProviderStatus, ResearchProviderError
from .simulation import COMPLETE_SECONDS, PENDING_SECONDS, simulated_status


STATUS_RANK = {
    "pending": 0,
    "processing": 1,
    "completed": 2,
    "failed": 2,
}
TERMINAL_STATUSES = frozenset({"completed", "failed"})

SUBMIT_FAILED_ERROR = "Failed to submit research request"
EXPIRED_ERROR = "Research job expired"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


class ResearchJobManager:
    """Creates research jobs and advances them on poll."""

    def __init__(
        self,
        store: MarketStore,
        client: Optional[CaesarClient] = None,
        pending_seconds: float = PENDING_SECONDS,
        complete_seconds: float = COMPLETE_SECONDS,
        max_job_age_seconds: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            store: Shared store holding the job records
            client: Live Caesar client; None runs every job on the simulated timeline
            pending_seconds: Simulated pending -> processing point
            complete_seconds: Simulated processing -> completed point
            max_job_age_seconds: Fail non-terminal jobs older than this on poll (None = never)
            clock: Returns the current UTC time
        """
        self.store = store
        self.client = client
        self.pending_seconds = pending_seconds
        self.complete_seconds = complete_seconds
        self.max_job_age_seconds = max_job_age_seconds
        self.clock = clock or _utcnow
        self.logger = setup_logger("research_jobs")
        self._tasks: Set[asyncio.Task] = set()

    @property
    def live(self) -> bool:
        return self.client is not None

    def list_jobs(self) -> List[ResearchJob]:
        return self.store.list_jobs()

    async def submit(self, query: str, compute_units: int = 1, market_id: Optional[str] = None) -> ResearchJob:
        """
        Create a pending job and dispatch it to the provider in the background.

        Never raises for provider problems; the returned job is always pending.
        """
        job = self.store.create_job(
            query=query,
            compute_units=compute_units,
            market_id=market_id,
            created_at=self.clock(),
        )
        self.logger.info(f"Created research job {job.id} ({compute_units} CU, live={self.live})")

        task = asyncio.create_task(self._dispatch(job.id, query, compute_units))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job

    async def _dispatch(self, job_id: str, query: str, compute_units: int):
        """Hand the query to the provider; any outcome is written back to the store."""
        try:
            if self.client is None:
                self.logger.debug(f"No research provider configured, simulating job {job_id}")
                return

            try:
                provider_job_id = await self.client.submit(query, compute_units)
            except ResearchProviderError as e:
                self.logger.warning(f"Caesar submit failed for job {job_id}, falling back to simulation: {e}")
                self.store.update_job(job_id, simulated=True)
                return

            self.store.update_job(job_id, provider_job_id=provider_job_id)
        except Exception as e:
            self.logger.error(f"Error submitting research job {job_id}: {e}", exc_info=True)
            job = self.store.get_job(job_id)
            if job is None or is_terminal(job.status):
                return
            self.store.update_job(
                job_id,
                status="failed",
                error=SUBMIT_FAILED_ERROR,
                completed_at=self.clock(),
            )

    async def poll(self, job_id: str) -> Optional[ResearchJob]:
        """
        Return the job, advancing it first if it is not terminal.

        Returns:
            Current job, or None if the id is unknown
        """
        job = self.store.get_job(job_id)
        if job is None:
            return None
        if is_terminal(job.status):
            return job

        now = self.clock()
        age = (now - job.created_at).total_seconds()

        if self.max_job_age_seconds is not None and age > self.max_job_age_seconds:
            self.logger.warning(f"Research job {job_id} expired after {age:.0f}s in {job.status}")
            return self.store.update_job(job_id, status="failed", error=EXPIRED_ERROR, completed_at=now)

        if self.client is None or job.simulated:
            reported = simulated_status(age, self.pending_seconds, self.complete_seconds)
        elif job.provider_job_id:
            try:
                reported = await self.client.get_status(job.provider_job_id)
            except ResearchProviderError as e:
                self.logger.warning(f"Caesar status check failed for job {job_id}: {e}")
                return job
        else:
            # Live submission still in flight
            return job

        return self._advance(job, reported, now)

    def _advance(self, job: ResearchJob, reported: ProviderStatus, now: datetime) -> ResearchJob:
        """Apply a reported status if it moves the job forward."""
        # The job may have changed while the status call was in flight
        current = self.store.get_job(job.id) or job
        if is_terminal(current.status):
            return current

        if STATUS_RANK[reported.status] < STATUS_RANK[current.status]:
            self.logger.debug(
                f"Ignoring status regression for job {current.id}: {current.status} -> {reported.status}"
            )
            return current

        if reported.status == current.status and not reported.result:
            return current

        changes = {
            "status": reported.status,
            "result": reported.result,
            "citations": reported.citations,
            "error": reported.error,
        }
        if is_terminal(reported.status):
            changes["completed_at"] = now
            self.logger.info(f"Research job {current.id} {reported.status}")

        return self.store.update_job(current.id, **changes)

    async def drain(self):
        """Wait for in-flight provider submissions."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self):
        """Wait for in-flight submissions and close the provider client."""
        await self.drain()
        if self.client is not None:
            await self.client.close()
