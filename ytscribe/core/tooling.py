"""
External tooling adapter: metadata probe, audio acquisition, transcription.
The pipeline only talks to these methods, so tests can swap the
subprocess-backed ones for fakes.
"""

import logging
from pathlib import Path

from ytscribe.core import chunking
from ytscribe.core import transcribe_deepgram, transcribe_whisper
from ytscribe.core.config import AppConfig
from ytscribe.core.constants import ErrorCode, Transcriber
from ytscribe.core.download_audio import download_audio
from ytscribe.core.error_codes import JobError
from ytscribe.core.yt_metadata import fetch_metadata, extract_job_metadata

logger = logging.getLogger(__name__)


class ToolingAdapter:

    def __init__(self, config: AppConfig, scratch_dir: Path | None = None):
        self.config = config
        self.scratch_dir = scratch_dir or (config.tmp_dir / "whisper")

    def probe_metadata(self, url: str) -> dict:
        """Job metadata fields for url. Raises JobError(METADATA_FAILED)."""
        return extract_job_metadata(fetch_metadata(url))

    def acquire_audio(self, url: str, dest: Path) -> Path:
        """Produce a mono 16kHz WAV at dest. Raises JobError(DOWNLOAD_FAILED)."""
        return download_audio(url, dest)

    def transcribe_direct(self, audio_path: Path) -> str:
        """Transcribe one file with the configured engine."""
        if self.config.transcriber == Transcriber.DEEPGRAM:
            return transcribe_deepgram.transcribe_audio(audio_path)
        return transcribe_whisper.transcribe_audio(
            audio_path, self.scratch_dir, model=self.config.whisper_model,
        )

    def split_audio(self, audio_path: Path) -> list[Path]:
        return chunking.split_audio_file(
            audio_path,
            segment_sec=self.config.chunk_segment_sec,
            max_segments=self.config.max_chunk_segments,
        )

    def transcribe(self, audio_path: Path) -> str:
        """
        Transcribe audio, chunking files above the size threshold.
        Raises JobError(TRANSCRIBE_FAILED) when no text is produced.
        """
        if not chunking.needs_chunking(audio_path, self.config.chunk_threshold_bytes):
            return self.transcribe_direct(audio_path)

        logger.info("Audio file is large (%d bytes), splitting into chunks",
                    audio_path.stat().st_size)
        try:
            chunks = self.split_audio(audio_path)
        except JobError as e:
            raise JobError(ErrorCode.TRANSCRIBE_FAILED, f"failed to split audio: {e.message}")

        text = chunking.transcribe_chunks(chunks, self.transcribe_direct)
        if not text:
            raise JobError(ErrorCode.TRANSCRIBE_FAILED,
                           f"no text from any of {len(chunks)} audio chunks")
        return text
