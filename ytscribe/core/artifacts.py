"""
Artifact paths and file operations.
Public artifacts live in the data root as <job-id>.wav / <job-id>.txt and
are served under /files/; temporary audio lives in tmp_dir as <job-id>.wav.
"""

import shutil
import logging
from pathlib import Path

from ytscribe.core.constants import ErrorCode, AUDIO_EXT, TRANSCRIPT_EXT, FILES_URL_PREFIX
from ytscribe.core.error_codes import JobError

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Per-job artifact locations, namespaced by job id."""

    def __init__(self, public_dir: Path, tmp_dir: Path):
        self.public_dir = Path(public_dir)
        self.tmp_dir = Path(tmp_dir)

    def ensure_dirs(self):
        self.public_dir.mkdir(parents=True, exist_ok=True)
        self.tmp_dir.mkdir(parents=True, exist_ok=True)

    # ── Paths ─────────────────────────────────────────────────────────

    def public_audio_path(self, job_id: str) -> Path:
        return self.public_dir / f"{job_id}{AUDIO_EXT}"

    def transcript_path(self, job_id: str) -> Path:
        return self.public_dir / f"{job_id}{TRANSCRIPT_EXT}"

    def tmp_audio_path(self, job_id: str) -> Path:
        return self.tmp_dir / f"{job_id}{AUDIO_EXT}"

    @property
    def whisper_dir(self) -> Path:
        return self.tmp_dir / "whisper"

    @staticmethod
    def audio_url(job_id: str) -> str:
        return f"{FILES_URL_PREFIX}{job_id}{AUDIO_EXT}"

    @staticmethod
    def transcript_url(job_id: str) -> str:
        return f"{FILES_URL_PREFIX}{job_id}{TRANSCRIPT_EXT}"

    # ── Presence checks ───────────────────────────────────────────────

    def has_public_audio(self, job_id: str) -> bool:
        return self.public_audio_path(job_id).is_file()

    def has_tmp_audio(self, job_id: str) -> bool:
        return self.tmp_audio_path(job_id).is_file()

    def has_transcript(self, job_id: str) -> bool:
        return self.transcript_path(job_id).is_file()

    # ── Operations ────────────────────────────────────────────────────

    def publish_audio(self, job_id: str, source: Path) -> Path:
        """Copy audio into the public directory. Raises OSError on failure."""
        dest = self.public_audio_path(job_id)
        if Path(source) == dest:
            return dest
        self.public_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)
        logger.info("Audio file available for download: %s", self.audio_url(job_id))
        return dest

    def write_transcript(self, job_id: str, text: str) -> Path:
        """Write the transcript file. Raises JobError(SAVE_FAILED)."""
        path = self.transcript_path(job_id)
        try:
            self.public_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding='utf-8')
        except OSError as e:
            raise JobError(ErrorCode.SAVE_FAILED, f"failed to write {path.name}: {e}")
        logger.info("Wrote transcript: %s", path)
        return path

    def read_transcript(self, job_id: str) -> str:
        return self.transcript_path(job_id).read_text(encoding='utf-8')

    def discard_tmp_audio(self, job_id: str):
        """Delete the temporary audio copy, if any."""
        path = self.tmp_audio_path(job_id)
        try:
            path.unlink()
            logger.debug("Deleted: %s", path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete %s: %s", path, e)
