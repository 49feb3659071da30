"""
Diagnostics: external tool detection and version strings.
"""

import shutil
import logging
import subprocess

from ytscribe.core.security_utils import run_subprocess_capture

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("yt-dlp", "ffmpeg")


def get_tool_version(args: list[str]) -> str:
    """Return the first line a tool prints for its version flag, or an error message."""
    try:
        result = run_subprocess_capture(args, timeout=10)
    except FileNotFoundError:
        return "Not installed"
    except (OSError, subprocess.TimeoutExpired) as e:
        return f"Error: {e}"

    if result.returncode != 0:
        return f"Error (rc={result.returncode})"
    lines = (result.stdout or result.stderr or "").strip().splitlines()
    return lines[0] if lines else "unknown"


def get_ytdlp_version() -> str:
    return get_tool_version(["yt-dlp", "--version"])


def get_ffmpeg_version() -> str:
    return get_tool_version(["ffmpeg", "-version"])


def get_whisper_path() -> str:
    # whisper has no cheap version flag; report where it resolves
    return shutil.which("whisper") or "Not installed"


def missing_tools(extra: tuple[str, ...] = ()) -> list[str]:
    """Names of required executables not found on PATH."""
    return [tool for tool in REQUIRED_TOOLS + tuple(extra) if not shutil.which(tool)]


def get_diagnostics() -> dict:
    """Gather all diagnostic information."""
    return {
        "ytdlp_version": get_ytdlp_version(),
        "ffmpeg_version": get_ffmpeg_version(),
        "whisper": get_whisper_path(),
    }
