"""
Video metadata probing via yt-dlp.
"""

import json
import logging

from ytscribe.core.security_utils import run_subprocess_capture
from ytscribe.core.error_codes import JobError
from ytscribe.core.constants import ErrorCode

logger = logging.getLogger(__name__)


def fetch_metadata(video_url: str) -> dict:
    """
    Fetch raw video metadata using yt-dlp --dump-json.
    Raises JobError(METADATA_FAILED) on any failure.
    """
    args = [
        "yt-dlp",
        "--dump-json",
        "--no-download",
        "--no-playlist",
        video_url,
    ]

    try:
        result = run_subprocess_capture(args)
    except OSError as e:
        raise JobError(ErrorCode.METADATA_FAILED, f"failed to extract metadata: {e}")

    if result.returncode != 0:
        stderr = result.stderr or ""
        raise JobError(ErrorCode.METADATA_FAILED,
                       f"yt-dlp failed (rc={result.returncode}): {stderr[:300]}")

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise JobError(ErrorCode.METADATA_FAILED, f"failed to parse metadata JSON: {e}")

    if not isinstance(data, dict):
        raise JobError(ErrorCode.METADATA_FAILED, "metadata JSON is not an object")
    return data


def extract_job_metadata(metadata: dict) -> dict:
    """
    Map yt-dlp output onto Job metadata fields.
    Duration may be fractional and is truncated; channel falls back to uploader.
    """
    try:
        duration = int(float(metadata.get('duration') or 0))
    except (TypeError, ValueError):
        duration = 0

    return {
        'title': metadata.get('title') or "",
        'description': metadata.get('description') or "",
        'thumbnail': metadata.get('thumbnail') or "",
        'duration': max(duration, 0),
        'channel_name': metadata.get('channel') or metadata.get('uploader') or "",
    }
