"""
Shared constants for ytscribe.
Single source of truth, imported by every other module.
"""

import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "ytscribe"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
DEFAULT_DATA_ROOT = pathlib.Path("/data")
DEFAULT_TMP_DIR = pathlib.Path("/tmp")
JOBS_SUBDIR = "jobs"
LOGS_SUBDIR = "logs"
DEFAULT_CONFIG_FILENAME = "ytscribe.json"
CONFIG_ENV_VAR = "YTSCRIBE_CONFIG"

# Public artifacts are served under this URL prefix
FILES_URL_PREFIX = "/files/"
AUDIO_EXT = ".wav"
TRANSCRIPT_EXT = ".txt"

# ── Job status values ─────────────────────────────────────────────────
class JobStatus:
    QUEUED = "queued"
    FETCHING_INFO = "fetching_info"
    DOWNLOADING = "downloading"
    TRANSCRIBING = "transcribing"
    SAVING = "saving"
    DONE = "done"
    ERROR = "error"

ALL_STATUSES = frozenset({
    JobStatus.QUEUED,
    JobStatus.FETCHING_INFO,
    JobStatus.DOWNLOADING,
    JobStatus.TRANSCRIBING,
    JobStatus.SAVING,
    JobStatus.DONE,
    JobStatus.ERROR,
})

TERMINAL_STATUSES = frozenset({JobStatus.DONE, JobStatus.ERROR})

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Submission (synchronous)
    INVALID_URL = "ERR_INVALID_URL"
    MISSING_URL = "ERR_MISSING_URL"
    QUEUE_FULL = "ERR_QUEUE_FULL"

    # Stage failures (terminal)
    DOWNLOAD_FAILED = "ERR_DOWNLOAD_FAILED"
    TRANSCRIBE_FAILED = "ERR_TRANSCRIBE_FAILED"
    SAVE_FAILED = "ERR_SAVE_FAILED"
    RESUME_NO_SOURCE = "ERR_RESUME_NO_SOURCE"
    UNEXPECTED = "ERR_UNEXPECTED"

    # Best-effort (logged, never terminal)
    METADATA_FAILED = "ERR_METADATA_FAILED"
    CHUNKING = "ERR_CHUNKING"

# ── Progress mapping (overall, audio, transcript) ─────────────────────
PROGRESS_FETCHING_INFO = (10, 0, 0)
PROGRESS_DOWNLOADING = (25, 0, 0)
PROGRESS_TRANSCRIBING = (50, 100, 0)
PROGRESS_SAVING = (90, 100, 90)
PROGRESS_DONE = (100, 100, 100)

# ── Audio pipeline defaults ───────────────────────────────────────────
AUDIO_CHANNELS = 1
AUDIO_SAMPLE_RATE = 16000

CHUNK_THRESHOLD_BYTES = 10 * 1024 * 1024   # 10 MiB
CHUNK_SEGMENT_SEC = 120                    # 2 minutes
MAX_CHUNK_SEGMENTS = 10                    # 20 minutes of coverage
MIN_CHUNK_BYTES = 1000                     # smaller segments mean end of audio

WHISPER_MODEL = "tiny"

# ── Transcription engines ─────────────────────────────────────────────
class Transcriber:
    WHISPER = "whisper"
    DEEPGRAM = "deepgram"

DEEPGRAM_API_BASE = "https://api.deepgram.com/v1"
DEEPGRAM_MODEL = "nova-3"
DEEPGRAM_LANGUAGE = "en"
DEEPGRAM_API_KEY_ENV = "DEEPGRAM_API_KEY"

# ── Work queue ────────────────────────────────────────────────────────
class OverflowPolicy:
    SPILL = "spill"
    REJECT = "reject"
    BLOCK = "block"

DEFAULT_QUEUE_SIZE = 100
DEFAULT_SPILL_WORKERS = 0   # 0 = one thread per spilled run

# ── Query views ───────────────────────────────────────────────────────
ACTIVE_WINDOW_HOURS = 24

# ── HTTP server ───────────────────────────────────────────────────────
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8081

# ── Misc ──────────────────────────────────────────────────────────────
# Plain substring match, not a URL parser
ALLOWED_SOURCE_DOMAINS = (
    "youtube.com",
    "youtu.be",
    "m.youtube.com",
)
