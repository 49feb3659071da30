"""
Deepgram pre-recorded transcription, the optional cloud engine.
The WAV file is uploaded to /listen; 429 answers are retried with
exponential backoff.
"""

import logging
import random
import time
from pathlib import Path

import requests

from ytscribe.core.security_utils import get_deepgram_api_key
from ytscribe.core.error_codes import JobError
from ytscribe.core.constants import (
    ErrorCode, DEEPGRAM_API_BASE, DEEPGRAM_MODEL, DEEPGRAM_LANGUAGE,
)

logger = logging.getLogger(__name__)

LISTEN_URL = f"{DEEPGRAM_API_BASE}/listen"

_RETRY_DELAYS = (2.0, 4.0, 8.0, 16.0)   # seconds, +/- 10% jitter

_QUERY = {
    "model": DEEPGRAM_MODEL,
    "language": DEEPGRAM_LANGUAGE,
    "smart_format": "true",
    "punctuate": "true",
    "paragraphs": "true",
}


def _failed(message: str) -> JobError:
    return JobError(ErrorCode.TRANSCRIBE_FAILED, message)


def _upload_timeout(audio_path: Path) -> int:
    """Two minutes, or a minute per 10 MiB plus one, whichever is longer."""
    try:
        size = audio_path.stat().st_size
    except OSError as e:
        raise _failed(f"cannot read audio file: {e}")
    return max(120, int(size / (10 * 1024 * 1024) * 60) + 60)


def _post(audio_path: Path, headers: dict, timeout: int) -> requests.Response:
    try:
        with open(audio_path, 'rb') as f:
            return requests.post(LISTEN_URL, headers=headers, params=_QUERY,
                                 data=f, timeout=timeout)
    except requests.exceptions.Timeout:
        raise _failed("Deepgram request timed out")
    except (requests.exceptions.RequestException, OSError) as e:
        raise _failed(f"Deepgram request failed: {e}")


def transcribe_audio(audio_path: Path, api_key: str | None = None) -> str:
    """
    Transcribe one WAV file and return its text.
    Raises JobError(TRANSCRIBE_FAILED), including for an empty transcript.
    """
    api_key = api_key or get_deepgram_api_key()
    if not api_key:
        raise _failed("Deepgram API key not set (DEEPGRAM_API_KEY)")

    headers = {"Authorization": f"Token {api_key}", "Content-Type": "audio/wav"}
    timeout = _upload_timeout(audio_path)

    for delay in _RETRY_DELAYS + (None,):
        resp = _post(audio_path, headers, timeout)
        if resp.status_code != 429:
            break
        if delay is None:
            raise _failed(f"Deepgram rate limited (429) after {len(_RETRY_DELAYS)} retries")
        delay *= random.uniform(0.9, 1.1)
        logger.warning("Deepgram rate limited (429), retrying %s in %.1fs",
                       audio_path.name, delay)
        time.sleep(delay)

    if resp.status_code != 200:
        # Body only; the request headers carry the key
        body = (resp.text or "no response body")[:300]
        raise _failed(f"Deepgram returned {resp.status_code}: {body}")

    try:
        payload = resp.json()
    except ValueError:
        raise _failed("Deepgram response is not JSON")

    text = extract_transcript_text(payload)
    if not text:
        raise _failed("empty transcript generated")
    logger.info("Deepgram transcribed %s, %d characters", audio_path.name, len(text))
    return text


def extract_transcript_text(response: dict) -> str:
    """Paragraph text separated by blank lines if present, else the flat transcript."""
    try:
        alternative = response['results']['channels'][0]['alternatives'][0]
    except (KeyError, IndexError, TypeError):
        return ""

    paragraphs = (alternative.get('paragraphs') or {}).get('paragraphs') or []
    blocks = (' '.join(s.get('text', '') for s in p.get('sentences', [])).strip()
              for p in paragraphs)
    text = '\n\n'.join(block for block in blocks if block)
    return text or (alternative.get('transcript') or '').strip()
