"""Work queue used to run immediate email sends on RQ workers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from redis import Redis
from redis.exceptions import LockError, RedisError
from redis.lock import Lock
from rq import Queue
from rq.exceptions import NoSuchJobError
from rq.job import Job, JobStatus

from homenotify.config import get_settings

logger = logging.getLogger(__name__)

SEND_EMAIL_JOB = "send_email_delivery"

# job name -> dotted path of the callable a worker imports
JOB_FUNCTIONS: dict[str, str] = {
    SEND_EMAIL_JOB: "homenotify.application.use_cases.deliveries.send_worker.run_send_email_job",
}

# seconds a submission may hold the per-key lock
SUBMIT_LOCK_TIMEOUT = 30

_LIVE_STATUSES = frozenset(
    {JobStatus.QUEUED, JobStatus.STARTED, JobStatus.SCHEDULED, JobStatus.DEFERRED}
)


class WorkQueueError(RuntimeError):
    """Raised when a job could not be submitted to the queue."""


class WorkQueue(Protocol):
    def enqueue(
        self, job_name: str, payload: Mapping[str, Any], *, idempotency_key: str
    ) -> bool:
        """Submit a job; return ``False`` when an equivalent job is already live."""


def get_redis_connection(redis_url: str | None = None) -> Redis:
    """Return a Redis client for ``redis_url`` or the configured URL."""

    url = redis_url or get_settings().redis_url
    # RQ stores pickled payloads, so responses must stay as bytes.
    return Redis.from_url(url)


class RQWorkQueue:
    """:class:`WorkQueue` implementation on top of an RQ queue.

    The idempotency key doubles as the RQ job id. Submitting a key whose job
    is still queued, started, scheduled or deferred is a no-op; a key whose
    previous job already finished or failed is submitted again. The fetch and
    the enqueue run under a non-blocking per-key Redis lock, so a concurrent
    submission of the same key is also a no-op.
    """

    def __init__(
        self,
        connection: Redis | None = None,
        *,
        queue_name: str | None = None,
        job_timeout: int | None = None,
    ) -> None:
        settings = get_settings()
        self.connection = connection if connection is not None else get_redis_connection()
        self.queue = Queue(queue_name or settings.email_queue_name, connection=self.connection)
        self.job_timeout = job_timeout or settings.email_job_timeout_seconds

    def enqueue(
        self, job_name: str, payload: Mapping[str, Any], *, idempotency_key: str
    ) -> bool:
        try:
            func = JOB_FUNCTIONS[job_name]
        except KeyError as exc:
            raise WorkQueueError(f"Unknown job name: {job_name}") from exc

        try:
            lock = self._lock(idempotency_key)
            if not lock.acquire(blocking=False):
                logger.debug("Job %s is being submitted elsewhere; skipping", idempotency_key)
                return False
            try:
                job = self._submit(func, payload, idempotency_key)
            finally:
                self._release(lock, idempotency_key)
        except RedisError as exc:
            raise WorkQueueError(f"Failed to enqueue {idempotency_key}: {exc}") from exc

        if job is None:
            return False
        logger.info("Enqueued job %s to queue '%s': %s", job.id, self.queue.name, job_name)
        return True

    def _submit(self, func: str, payload: Mapping[str, Any], job_id: str) -> Job | None:
        existing = self._fetch(job_id)
        if existing is not None:
            status = existing.get_status(refresh=True)
            if status in _LIVE_STATUSES:
                logger.debug("Job %s already %s; skipping duplicate submission", job_id, status)
                return None
            existing.delete()

        return self.queue.enqueue(
            func,
            kwargs=dict(payload),
            job_id=job_id,
            job_timeout=self.job_timeout,
        )

    def _lock(self, job_id: str) -> Lock:
        return self.connection.lock(f"homenotify:submit:{job_id}", timeout=SUBMIT_LOCK_TIMEOUT)

    @staticmethod
    def _release(lock: Lock, job_id: str) -> None:
        try:
            lock.release()
        except LockError as exc:
            # expired while submitting; the job itself is already decided
            logger.warning("Submission lock for %s was lost: %s", job_id, exc)

    def _fetch(self, job_id: str) -> Job | None:
        try:
            return Job.fetch(job_id, connection=self.connection)
        except NoSuchJobError:
            return None


__all__ = [
    "JOB_FUNCTIONS",
    "RQWorkQueue",
    "SEND_EMAIL_JOB",
    "WorkQueue",
    "WorkQueueError",
    "get_redis_connection",
]
