"""
Startup recovery: reload persisted jobs and resume the interrupted ones.
"""

import logging

from ytscribe.core.constants import JobStatus
from ytscribe.core.job_queue import JobQueueManager
from ytscribe.core.job_store import JobStore

logger = logging.getLogger(__name__)


def recover_jobs(store: JobStore, queue_manager: JobQueueManager) -> list[str]:
    """
    Load every job file into the store and dispatch a concurrent resume for
    each job that was not terminal. Returns the resumed job ids.
    """
    resumed = []
    for job in store.load_all():
        if job.is_terminal:
            continue

        logger.info("Resuming interrupted job: %s (was %s)", job.id, job.status)
        store.update(job.id, status=JobStatus.QUEUED)
        queue_manager.resume(job.id)
        resumed.append(job.id)

    if resumed:
        logger.info("Dispatched %d interrupted jobs for resumption", len(resumed))
    return resumed
