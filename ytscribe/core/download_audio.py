"""
Audio acquisition: yt-dlp best audio piped into ffmpeg.
Target: mono, 16kHz PCM WAV.
"""

import logging
import subprocess
import tempfile
from pathlib import Path

from ytscribe.core.security_utils import start_subprocess
from ytscribe.core.error_codes import JobError
from ytscribe.core.constants import ErrorCode, AUDIO_CHANNELS, AUDIO_SAMPLE_RATE

logger = logging.getLogger(__name__)


def download_audio(video_url: str, output_path: Path) -> Path:
    """
    Download the best audio stream and convert it to a WAV file at
    output_path. Returns output_path. Raises JobError(DOWNLOAD_FAILED).
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    yt_args = [
        "yt-dlp",
        "--no-playlist",
        "-f", "ba",
        "-o", "-",
        "--quiet",
        video_url,
    ]
    ff_args = [
        "ffmpeg",
        "-y",                             # overwrite
        "-i", "pipe:0",
        "-vn",
        "-ac", str(AUDIO_CHANNELS),       # mono
        "-ar", str(AUDIO_SAMPLE_RATE),    # 16kHz
        "-f", "wav",
        str(output_path),
    ]

    # yt-dlp stderr goes to a file: nothing reads it until ffmpeg is done
    with tempfile.TemporaryFile() as yt_err_file:
        try:
            yt_proc = start_subprocess(yt_args, stdout=subprocess.PIPE,
                                       stderr=yt_err_file)
        except OSError as e:
            raise JobError(ErrorCode.DOWNLOAD_FAILED, f"failed to start yt-dlp: {e}")

        try:
            ff_proc = start_subprocess(ff_args, stdin=yt_proc.stdout,
                                       stdout=subprocess.DEVNULL,
                                       stderr=subprocess.PIPE)
        except OSError as e:
            yt_proc.kill()
            yt_proc.wait()
            raise JobError(ErrorCode.DOWNLOAD_FAILED, f"failed to start ffmpeg: {e}")

        # ffmpeg owns the read end now; lets yt-dlp see SIGPIPE if ffmpeg exits
        yt_proc.stdout.close()

        _, ff_err = ff_proc.communicate()
        yt_rc = yt_proc.wait()
        yt_err_file.seek(0)
        yt_err = yt_err_file.read()

    if yt_rc != 0:
        raise JobError(ErrorCode.DOWNLOAD_FAILED,
                       f"yt-dlp failed (rc={yt_rc}): {_tail(yt_err)}")
    if ff_proc.returncode != 0:
        raise JobError(ErrorCode.DOWNLOAD_FAILED,
                       f"ffmpeg failed (rc={ff_proc.returncode}): {_tail(ff_err)}")
    if not output_path.exists():
        raise JobError(ErrorCode.DOWNLOAD_FAILED, "No audio file produced")

    logger.info("Downloaded audio: %s", output_path)
    return output_path


def _tail(stderr: bytes | None, limit: int = 300) -> str:
    if not stderr:
        return "unknown error"
    return stderr.decode('utf-8', errors='replace').strip()[-limit:]
