"""
Durable job store for ytscribe.
In-memory map of job id → Job guarded by a reader/writer lock, written
through to one JSON file per job under the jobs directory.
"""

import json
import os
import logging
from datetime import datetime, timedelta
from pathlib import Path

from ytscribe.core.constants import (
    JobStatus, ALL_STATUSES, TERMINAL_STATUSES, ACTIVE_WINDOW_HOURS,
)
from ytscribe.core.models import Job, utcnow
from ytscribe.core.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({
    'status', 'url', 'file', 'audio_file', 'text',
    'progress', 'audio_progress', 'transcript_progress',
    'error', 'error_code',
    'title', 'description', 'thumbnail', 'duration', 'channel_name',
})


class JobStore:
    """Authoritative job records, shared by the pipeline and query handlers."""

    def __init__(self, jobs_dir: Path, active_window_hours: float = ACTIVE_WINDOW_HOURS):
        self.jobs_dir = Path(jobs_dir)
        self.active_window = timedelta(hours=active_window_hours)
        self._jobs: dict[str, Job] = {}
        self._lock = ReadWriteLock()
        self._ensure_dirs()

    def _ensure_dirs(self):
        try:
            self.jobs_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Could not create jobs directory %s: %s", self.jobs_dir, e)

    # ── Helpers ───────────────────────────────────────────────────────

    def job_path(self, job_id: str) -> Path:
        return self.jobs_dir / f"{job_id}.json"

    def _persist(self, job: Job):
        """Write the full record. Failures are logged; memory stays authoritative."""
        path = self.job_path(job.id)
        tmp_path = path.with_suffix('.json.tmp')
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(job.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving job %s to disk: %s", job.id, e)

    # ── CRUD ──────────────────────────────────────────────────────────

    def create(self, job_id: str, url: str = "", created: datetime | None = None) -> Job:
        """Insert a new queued job. Raises KeyError if the id is taken."""
        job = Job(id=job_id, url=url, status=JobStatus.QUEUED)
        if created is not None:
            job.created = created
        with self._lock.write_locked():
            if job_id in self._jobs:
                raise KeyError(f"job {job_id} already exists")
            self._jobs[job_id] = job
            self._persist(job)
            return job.copy()

    def get(self, job_id: str) -> Job | None:
        with self._lock.read_locked():
            job = self._jobs.get(job_id)
            return job.copy() if job else None

    def list_active(self, now: datetime | None = None) -> list[Job]:
        """
        Non-terminal jobs, plus terminal jobs *created* within the active
        window (creation time, not completion time).
        """
        now = now or utcnow()
        cutoff = now - self.active_window
        with self._lock.read_locked():
            return [
                job.copy() for job in self._jobs.values()
                if job.status not in TERMINAL_STATUSES or job.created > cutoff
            ]

    def list_history(self) -> list[Job]:
        """Completed jobs, newest created first."""
        with self._lock.read_locked():
            done = [job.copy() for job in self._jobs.values()
                    if job.status == JobStatus.DONE]
        done.sort(key=lambda j: j.created, reverse=True)
        return done

    def update(self, job_id: str, **fields) -> Job | None:
        """
        Apply field changes under the write lock and persist the record
        before returning. Returns the new snapshot, or None if unknown.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update job fields: {sorted(unknown)}")
        status = fields.get('status')
        if status is not None and status not in ALL_STATUSES:
            raise ValueError(f"unknown job status: {status}")

        with self._lock.write_locked():
            job = self._jobs.get(job_id)
            if job is None:
                logger.warning("Update for unknown job %s ignored", job_id)
                return None
            for key, value in fields.items():
                setattr(job, key, value)
            self._persist(job)
            return job.copy()

    def update_status(self, job_id: str, status: str,
                      progress: tuple[int, int, int] | None = None, **extra) -> Job | None:
        """Set status and, optionally, the (overall, audio, transcript) progress triple."""
        fields = {'status': status}
        if progress is not None:
            fields['progress'], fields['audio_progress'], fields['transcript_progress'] = progress
        fields.update(extra)
        return self.update(job_id, **fields)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._jobs)

    # ── Startup ───────────────────────────────────────────────────────

    def load_all(self) -> list[Job]:
        """
        Load every persisted record into memory. Malformed files are
        skipped and logged. Returns snapshots of the loaded jobs.
        """
        try:
            paths = sorted(self.jobs_dir.glob("*.json"))
        except OSError as e:
            logger.warning("Could not read jobs directory: %s", e)
            return []

        loaded = []
        for path in paths:
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                job = Job.from_dict(data)
            except (OSError, ValueError, TypeError) as e:
                logger.warning("Skipping unreadable job file %s: %s", path, e)
                continue

            with self._lock.write_locked():
                self._jobs[job.id] = job
            loaded.append(job.copy())

        if loaded:
            logger.info("Loaded %d jobs from disk", len(loaded))
        return loaded
