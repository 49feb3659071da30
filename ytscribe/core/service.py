"""
Transcription service: wires config, store, artifacts, tooling, pipeline
and queue together, and exposes the submission and query operations used
by the HTTP layer.
"""

import uuid
import logging

from ytscribe.core.artifacts import ArtifactStore
from ytscribe.core.config import AppConfig
from ytscribe.core.constants import JobStatus
from ytscribe.core.error_codes import JobError
from ytscribe.core.job_queue import JobQueueManager
from ytscribe.core.job_store import JobStore
from ytscribe.core.models import Job
from ytscribe.core.pipeline import PipelineExecutor
from ytscribe.core.recovery import recover_jobs
from ytscribe.core.tooling import ToolingAdapter
from ytscribe.core.url_parse import validate_source_url

logger = logging.getLogger(__name__)


class TranscriptionService:

    def __init__(self, config: AppConfig, tools: ToolingAdapter | None = None):
        self.config = config
        self.artifacts = ArtifactStore(config.data_root, config.tmp_dir)
        self.store = JobStore(config.jobs_dir, config.active_window_hours)
        self.tools = tools or ToolingAdapter(config, scratch_dir=self.artifacts.whisper_dir)
        self.executor = PipelineExecutor(self.store, self.tools, self.artifacts)
        self.queue = JobQueueManager(
            self.executor,
            maxsize=config.queue_size,
            overflow_policy=config.overflow_policy,
            spill_workers=config.spill_workers,
        )

    # ── Lifecycle ─────────────────────────────────────────────────────

    def start(self) -> list[str]:
        """Reload persisted jobs, resume interrupted ones, start the worker."""
        try:
            self.artifacts.ensure_dirs()
        except OSError as e:
            logger.warning("Could not create artifact directories: %s", e)
        resumed = recover_jobs(self.store, self.queue)
        self.queue.start_processing()
        return resumed

    def shutdown(self, timeout: float | None = None):
        self.queue.stop_processing(timeout)

    # ── Submission ────────────────────────────────────────────────────

    def submit(self, url) -> Job:
        """
        Validate url, create a queued job and hand it to the queue.
        Raises JobError for invalid input (no job is created) or when the
        queue rejects the job (the job is recorded as error).
        """
        url = validate_source_url(url)
        job = self.store.create(str(uuid.uuid4()), url=url)

        try:
            self.queue.enqueue(job.id)
        except JobError as e:
            self.store.update(job.id, status=JobStatus.ERROR, error=e.message,
                              error_code=e.code)
            raise
        return job

    # ── Queries ───────────────────────────────────────────────────────

    def get_job(self, job_id: str) -> Job | None:
        return self.store.get(job_id)

    def list_active(self) -> list[Job]:
        return self.store.list_active()

    def list_history(self) -> list[Job]:
        return self.store.list_history()
