"""
Size-triggered, time-based audio chunking using ffmpeg.
Large audio is cut into fixed-length segments which are transcribed one by
one; audio past the segment cap is not transcribed.
"""

import logging
from pathlib import Path
from typing import Callable

from ytscribe.core.security_utils import run_subprocess_capture
from ytscribe.core.error_codes import JobError
from ytscribe.core.constants import (
    ErrorCode, CHUNK_THRESHOLD_BYTES, CHUNK_SEGMENT_SEC, MAX_CHUNK_SEGMENTS,
    MIN_CHUNK_BYTES, AUDIO_EXT,
)

logger = logging.getLogger(__name__)


def needs_chunking(audio_path: Path, threshold_bytes: int = CHUNK_THRESHOLD_BYTES) -> bool:
    """Check if audio needs chunking based on file size."""
    try:
        size = audio_path.stat().st_size
    except OSError as e:
        raise JobError(ErrorCode.TRANSCRIBE_FAILED, f"cannot check audio file: {e}")
    return size > threshold_bytes


def chunk_path(audio_path: Path, idx: int) -> Path:
    return audio_path.parent / f"{audio_path.stem}_chunk_{idx}{AUDIO_EXT}"


def split_audio_file(audio_path: Path,
                     segment_sec: int = CHUNK_SEGMENT_SEC,
                     max_segments: int = MAX_CHUNK_SEGMENTS) -> list[Path]:
    """
    Cut audio into sequential segments of segment_sec seconds, at most
    max_segments of them. Stops at the first segment ffmpeg cannot produce
    or that is too small to hold audio.
    """
    chunks = []

    for idx in range(max_segments):
        chunk_file = chunk_path(audio_path, idx)
        args = [
            "ffmpeg",
            "-y",
            "-i", str(audio_path),
            "-ss", str(idx * segment_sec),
            "-t", str(segment_sec),
            "-c", "copy",
            str(chunk_file),
        ]

        try:
            result = run_subprocess_capture(args)
        except OSError as e:
            for path in chunks + [chunk_file]:
                _remove(path)
            raise JobError(ErrorCode.CHUNKING, f"Chunk {idx} creation failed: {e}")

        if result.returncode != 0:
            # No more audio to split
            _remove(chunk_file)
            break

        try:
            size = chunk_file.stat().st_size
        except OSError:
            size = 0
        if size <= MIN_CHUNK_BYTES:
            _remove(chunk_file)
            break

        chunks.append(chunk_file)

    logger.info("Split %s into %d chunks", audio_path.name, len(chunks))
    return chunks


def transcribe_chunks(chunks: list[Path], transcribe: Callable[[Path], str]) -> str:
    """
    Transcribe segments in order. A failed segment is logged and skipped;
    successful texts are joined with single spaces. Every segment file is
    deleted, including when an unexpected error aborts the loop.
    """
    texts = []
    total = len(chunks)

    try:
        for i, chunk in enumerate(chunks):
            logger.info("Processing chunk %d/%d", i + 1, total)
            try:
                text = transcribe(chunk)
            except JobError as e:
                logger.warning("Chunk %d failed: %s", i + 1, e.message)
                continue
            except OSError as e:
                logger.warning("Chunk %d failed: %s", i + 1, e)
                continue
            finally:
                _remove(chunk)

            text = text.strip()
            if text:
                texts.append(text)
    finally:
        for chunk in chunks:
            _remove(chunk)

    return ' '.join(texts).strip()


def _remove(path: Path):
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to delete %s: %s", path, e)
