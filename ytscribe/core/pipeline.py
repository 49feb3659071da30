"""
Pipeline executor: drives one job through
queued → fetching_info → downloading → transcribing → saving → done,
with error reachable from every non-terminal stage.

Every transition goes through the JobStore, so it is persisted before the
next stage starts. Stage helpers raise JobError; run() and resume() are the
only places that turn a failure into the terminal error state.
"""

import logging
from pathlib import Path

from ytscribe.core.artifacts import ArtifactStore
from ytscribe.core.constants import (
    JobStatus, ErrorCode,
    PROGRESS_FETCHING_INFO, PROGRESS_DOWNLOADING, PROGRESS_TRANSCRIBING,
    PROGRESS_SAVING, PROGRESS_DONE,
)
from ytscribe.core.error_codes import JobError
from ytscribe.core.job_store import JobStore
from ytscribe.core.models import Job
from ytscribe.core.tooling import ToolingAdapter

logger = logging.getLogger(__name__)


class PipelineExecutor:
    """Runs jobs against a shared JobStore. Safe to call from several threads
    as long as each job id is run by one thread at a time."""

    def __init__(self, store: JobStore, tools: ToolingAdapter, artifacts: ArtifactStore):
        self.store = store
        self.tools = tools
        self.artifacts = artifacts

    # ── Run boundaries ────────────────────────────────────────────────

    def run(self, job_id: str) -> bool:
        """Process a queued job. Returns True if it reached done."""
        return self._guarded(self._process_job, job_id, "Internal error")

    def resume(self, job_id: str) -> bool:
        """Resume an interrupted job from whatever artifacts exist on disk."""
        return self._guarded(self._resume_job, job_id, "Internal error during resume")

    def _guarded(self, stage_fn, job_id: str, fault_prefix: str) -> bool:
        try:
            stage_fn(job_id)
        except JobError as e:
            logger.warning("Job %s failed: %s", job_id, e.message)
            self._fail(job_id, e.code, e.message)
            return False
        except Exception as e:
            logger.error("Unexpected error processing job %s: %s", job_id, e, exc_info=True)
            self._fail(job_id, ErrorCode.UNEXPECTED, f"{fault_prefix}: {e}")
            return False

        job = self.store.get(job_id)
        return job is not None and job.status == JobStatus.DONE

    def _fail(self, job_id: str, code: str, message: str):
        # Sub-progress keeps its last value; only overall progress resets
        self.store.update(job_id,
                          status=JobStatus.ERROR,
                          progress=0,
                          error=message or "Unknown error",
                          error_code=code)

    # ── Normal path ───────────────────────────────────────────────────

    def _process_job(self, job_id: str):
        job = self.store.get(job_id)
        if job is None:
            logger.warning("Job %s not found in store", job_id)
            return

        self.store.update_status(job_id, JobStatus.FETCHING_INFO, PROGRESS_FETCHING_INFO)
        self._fetch_metadata(job)

        audio_path = self._acquire_audio(job)
        self._transcribe_and_save(job_id, audio_path)
        logger.info("Completed processing job %s", job_id)

    def _fetch_metadata(self, job: Job):
        """Best-effort: a failed probe is logged and the pipeline continues."""
        try:
            metadata = self.tools.probe_metadata(job.url)
        except JobError as e:
            logger.warning("Failed to extract video metadata for job %s: %s", job.id, e.message)
            return

        self.store.update(job.id, **metadata)
        logger.info("Extracted metadata for job %s: title=%s, duration=%ds, channel=%s",
                    job.id, metadata.get('title'), metadata.get('duration', 0),
                    metadata.get('channel_name'))

    def _acquire_audio(self, job: Job) -> Path:
        self.store.update_status(job.id, JobStatus.DOWNLOADING, PROGRESS_DOWNLOADING)
        if not job.url:
            raise JobError(ErrorCode.DOWNLOAD_FAILED, "Download failed: no source URL")

        try:
            audio_path = self.tools.acquire_audio(job.url, self.artifacts.tmp_audio_path(job.id))
        except JobError as e:
            raise JobError(ErrorCode.DOWNLOAD_FAILED, f"Download failed: {e.message}")

        self._publish_audio(job.id, audio_path)
        self.store.update_status(job.id, JobStatus.TRANSCRIBING, PROGRESS_TRANSCRIBING)
        return audio_path

    def _publish_audio(self, job_id: str, audio_path: Path):
        """Copy audio to the public store and record it right away."""
        try:
            self.artifacts.publish_audio(job_id, audio_path)
        except OSError as e:
            logger.warning("Failed to copy audio file for serving (job %s): %s", job_id, e)
            return
        self.store.update(job_id, audio_file=self.artifacts.audio_url(job_id))

    def _transcribe_and_save(self, job_id: str, audio_path: Path):
        try:
            transcript = self.tools.transcribe(audio_path)
        except JobError as e:
            raise JobError(ErrorCode.TRANSCRIBE_FAILED, f"Transcription failed: {e.message}")

        self.store.update_status(job_id, JobStatus.SAVING, PROGRESS_SAVING)
        try:
            self.artifacts.write_transcript(job_id, transcript)
        except JobError as e:
            raise JobError(ErrorCode.SAVE_FAILED, f"Save failed: {e.message}")

        self._complete(job_id, transcript)

    def _complete(self, job_id: str, transcript: str, **extra):
        self.store.update_status(job_id, JobStatus.DONE, PROGRESS_DONE,
                                 text=transcript,
                                 file=self.artifacts.transcript_url(job_id),
                                 error="", error_code="", **extra)
        if self.artifacts.has_public_audio(job_id):
            self.artifacts.discard_tmp_audio(job_id)
        else:
            logger.warning("Keeping temporary audio for job %s: no public copy", job_id)

    # ── Resume path ───────────────────────────────────────────────────

    def _resume_job(self, job_id: str):
        job = self.store.get(job_id)
        if job is None:
            logger.warning("Job %s not found in store", job_id)
            return

        logger.info("Resuming job %s from status: %s", job_id, job.status)

        # Artifact presence wins over the persisted status
        transcript = self._existing_transcript(job_id)
        if transcript is not None:
            extra = {}
            if self.artifacts.has_public_audio(job_id):
                extra['audio_file'] = self.artifacts.audio_url(job_id)
            self._complete(job_id, transcript, **extra)
            logger.info("Job %s already completed, loaded existing transcript", job_id)
            return

        audio_path = self._reconcile_audio(job)
        self._transcribe_and_save(job_id, audio_path)
        logger.info("Successfully resumed and completed job %s", job_id)

    def _existing_transcript(self, job_id: str) -> str | None:
        if not self.artifacts.has_transcript(job_id):
            return None
        try:
            transcript = self.artifacts.read_transcript(job_id)
        except OSError as e:
            logger.warning("Existing transcript for job %s unreadable: %s", job_id, e)
            return None
        return transcript if transcript.strip() else None

    def _reconcile_audio(self, job: Job) -> Path:
        """Find or re-create the job's audio, ending in the transcribing stage."""
        if self.artifacts.has_public_audio(job.id):
            logger.info("Found existing audio file for job %s", job.id)
            audio_path = self.artifacts.public_audio_path(job.id)
            if not job.audio_file:
                self.store.update(job.id, audio_file=self.artifacts.audio_url(job.id))
        elif self.artifacts.has_tmp_audio(job.id):
            logger.info("Found temporary audio file for job %s", job.id)
            audio_path = self.artifacts.tmp_audio_path(job.id)
            self._publish_audio(job.id, audio_path)
        else:
            logger.info("No audio file found, need to restart download for job %s", job.id)
            if not job.url:
                raise JobError(ErrorCode.RESUME_NO_SOURCE, "Cannot resume: source URL not saved")
            return self._acquire_audio(job)

        self.store.update_status(job.id, JobStatus.TRANSCRIBING, PROGRESS_TRANSCRIBING)
        return audio_path
