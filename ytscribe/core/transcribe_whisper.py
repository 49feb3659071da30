"""
Local speech-to-text via the OpenAI Whisper command line tool.
"""

import logging
from pathlib import Path

from ytscribe.core.security_utils import run_subprocess_capture
from ytscribe.core.error_codes import JobError
from ytscribe.core.constants import ErrorCode, WHISPER_MODEL

logger = logging.getLogger(__name__)


def transcribe_audio(audio_path: Path, output_dir: Path,
                     model: str = WHISPER_MODEL) -> str:
    """
    Transcribe one audio file with whisper and return the plain text.
    Whisper writes <output_dir>/<stem>.txt, which is read and removed.
    Raises JobError(TRANSCRIBE_FAILED), including for an empty transcript.
    """
    logger.info("Transcribing audio file: %s", audio_path.name)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise JobError(ErrorCode.TRANSCRIBE_FAILED, f"cannot create whisper output dir: {e}")

    args = [
        "whisper",
        str(audio_path),
        "--model", model,
        "--output_format", "txt",
        "--output_dir", str(output_dir),
        "--verbose", "False",
    ]

    try:
        result = run_subprocess_capture(args)
    except OSError as e:
        raise JobError(ErrorCode.TRANSCRIBE_FAILED, f"whisper could not be started: {e}")

    if result.returncode != 0:
        output = (result.stderr or result.stdout or "").strip()
        logger.warning("Whisper command failed (rc=%d): %s", result.returncode, output[-500:])
        raise JobError(ErrorCode.TRANSCRIBE_FAILED,
                       f"whisper transcription failed (rc={result.returncode})")

    transcript_file = output_dir / f"{audio_path.stem}.txt"
    try:
        transcript = transcript_file.read_text(encoding='utf-8').strip()
    except OSError as e:
        raise JobError(ErrorCode.TRANSCRIBE_FAILED, f"failed to read transcript file: {e}")
    finally:
        try:
            transcript_file.unlink()
        except OSError:
            pass

    if not transcript:
        raise JobError(ErrorCode.TRANSCRIBE_FAILED, "empty transcript generated")

    logger.info("Transcribed %s, transcript length: %d characters",
                audio_path.name, len(transcript))
    return transcript
