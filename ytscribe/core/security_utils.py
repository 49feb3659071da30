"""
Security utilities for ytscribe.
- Safe subprocess execution (argument arrays only)
- Public artifact name checks
- API key lookup (environment only, never the config file)
"""

import os
import re
import subprocess
import logging

from ytscribe.core.constants import AUDIO_EXT, TRANSCRIPT_EXT, DEEPGRAM_API_KEY_ENV

logger = logging.getLogger(__name__)

_ARTIFACT_NAME_RE = re.compile(
    r'^[A-Za-z0-9-]{1,64}(' + re.escape(AUDIO_EXT) + '|' + re.escape(TRANSCRIPT_EXT) + r')$'
)


# ── Artifact name safety ──────────────────────────────────────────────

def is_public_artifact_name(name: str) -> bool:
    """Only `<job-id>.wav` and `<job-id>.txt` may be served."""
    return bool(name) and _ARTIFACT_NAME_RE.match(name) is not None


# ── Subprocess safety ─────────────────────────────────────────────────

def _check_args(args):
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")


def run_subprocess(args: list[str], **kwargs) -> subprocess.CompletedProcess:
    """
    Execute a subprocess using argument arrays only.
    shell=True is explicitly forbidden.
    """
    _check_args(args)
    kwargs.pop('shell', None)

    logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.run(args, shell=False, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int | None = None,
                           **kwargs) -> subprocess.CompletedProcess:
    """Run subprocess and capture stdout/stderr as text. No timeout by default."""
    return run_subprocess(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        **kwargs,
    )


def start_subprocess(args: list[str], **kwargs) -> subprocess.Popen:
    """Start a subprocess without waiting (argument arrays only)."""
    _check_args(args)
    kwargs.pop('shell', None)

    logger.debug("Starting subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.Popen(args, shell=False, **kwargs)


# ── API keys ──────────────────────────────────────────────────────────

def get_deepgram_api_key() -> str | None:
    """Retrieve the Deepgram API key from the environment."""
    key = os.environ.get(DEEPGRAM_API_KEY_ENV, "").strip()
    return key or None
