"""
Application configuration manager.
Reads settings from a JSON file; missing keys fall back to defaults.
"""

import json
import os
import logging
from pathlib import Path

from ytscribe.core.constants import (
    CONFIG_ENV_VAR, DEFAULT_CONFIG_FILENAME,
    DEFAULT_DATA_ROOT, DEFAULT_TMP_DIR, DEFAULT_HOST, DEFAULT_PORT,
    DEFAULT_QUEUE_SIZE, DEFAULT_SPILL_WORKERS, OverflowPolicy,
    CHUNK_THRESHOLD_BYTES, CHUNK_SEGMENT_SEC, MAX_CHUNK_SEGMENTS,
    Transcriber, WHISPER_MODEL, ACTIVE_WINDOW_HOURS, JOBS_SUBDIR, LOGS_SUBDIR,
)

# Validation bounds
_QUEUE_SIZE_MIN = 1
_QUEUE_SIZE_MAX = 10000
_SPILL_WORKERS_MAX = 256
_CHUNK_THRESHOLD_MIN = 1024 * 1024          # 1 MiB
_SEGMENT_SEC_MIN = 10
_SEGMENT_SEC_MAX = 3600
_MAX_SEGMENTS_MIN = 1
_MAX_SEGMENTS_MAX = 1000

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'data_root': str(DEFAULT_DATA_ROOT),
    'tmp_dir': str(DEFAULT_TMP_DIR),
    'host': DEFAULT_HOST,
    'port': DEFAULT_PORT,
    'queue_size': DEFAULT_QUEUE_SIZE,
    'overflow_policy': OverflowPolicy.SPILL,
    'spill_workers': DEFAULT_SPILL_WORKERS,
    'chunk_threshold_bytes': CHUNK_THRESHOLD_BYTES,
    'chunk_segment_sec': CHUNK_SEGMENT_SEC,
    'max_chunk_segments': MAX_CHUNK_SEGMENTS,
    'transcriber': Transcriber.WHISPER,
    'whisper_model': WHISPER_MODEL,
    'active_window_hours': ACTIVE_WINDOW_HOURS,
    'cors_origins': "*",
}


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_FILENAME


def _clamp_int(value, default: int, low: int, high: int | None, key: str) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s %r; using default", key, value)
        return default
    if high is not None:
        value = min(high, value)
    return max(low, value)


class AppConfig:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None, overrides: dict | None = None):
        self.path = config_path or default_config_path()
        self._data: dict = {}
        self.load()
        for key, value in (overrides or {}).items():
            self._data[key] = self._validate(key, value)

    def load(self):
        """Load config from disk, merging with defaults."""
        self._data = dict(_DEFAULTS)
        if self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load config %s: %s", self.path, e)
                return
            if not isinstance(saved, dict):
                logger.warning("Ignoring config %s: not a JSON object", self.path)
                return
            for key, value in saved.items():
                self._data[key] = self._validate(key, value)

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'queue_size':
            return _clamp_int(value, DEFAULT_QUEUE_SIZE, _QUEUE_SIZE_MIN, _QUEUE_SIZE_MAX, key)

        if key == 'spill_workers':
            return _clamp_int(value, DEFAULT_SPILL_WORKERS, 0, _SPILL_WORKERS_MAX, key)

        if key == 'port':
            return _clamp_int(value, DEFAULT_PORT, 1, 65535, key)

        if key == 'chunk_threshold_bytes':
            return _clamp_int(value, CHUNK_THRESHOLD_BYTES, _CHUNK_THRESHOLD_MIN, None, key)

        if key == 'chunk_segment_sec':
            return _clamp_int(value, CHUNK_SEGMENT_SEC, _SEGMENT_SEC_MIN, _SEGMENT_SEC_MAX, key)

        if key == 'max_chunk_segments':
            return _clamp_int(value, MAX_CHUNK_SEGMENTS, _MAX_SEGMENTS_MIN, _MAX_SEGMENTS_MAX, key)

        if key == 'active_window_hours':
            try:
                return max(0.0, float(value))
            except (TypeError, ValueError):
                logger.warning("Invalid active_window_hours %r; using default", value)
                return ACTIVE_WINDOW_HOURS

        if key == 'overflow_policy':
            if value not in (OverflowPolicy.SPILL, OverflowPolicy.REJECT, OverflowPolicy.BLOCK):
                logger.warning("Invalid overflow_policy %r; using spill", value)
                return OverflowPolicy.SPILL

        if key == 'transcriber':
            if value not in (Transcriber.WHISPER, Transcriber.DEEPGRAM):
                logger.warning("Invalid transcriber %r; using whisper", value)
                return Transcriber.WHISPER

        return value

    @property
    def data_root(self) -> Path:
        return Path(self._data['data_root'])

    @property
    def jobs_dir(self) -> Path:
        return self.data_root / JOBS_SUBDIR

    @property
    def logs_dir(self) -> Path:
        return self.data_root / LOGS_SUBDIR

    @property
    def tmp_dir(self) -> Path:
        return Path(self._data['tmp_dir'])

    @property
    def host(self) -> str:
        return self._data['host']

    @property
    def port(self) -> int:
        return self._data['port']

    @property
    def queue_size(self) -> int:
        return self._data['queue_size']

    @property
    def overflow_policy(self) -> str:
        return self._data['overflow_policy']

    @property
    def spill_workers(self) -> int:
        return self._data['spill_workers']

    @property
    def chunk_threshold_bytes(self) -> int:
        return self._data['chunk_threshold_bytes']

    @property
    def chunk_segment_sec(self) -> int:
        return self._data['chunk_segment_sec']

    @property
    def max_chunk_segments(self) -> int:
        return self._data['max_chunk_segments']

    @property
    def transcriber(self) -> str:
        return self._data['transcriber']

    @property
    def whisper_model(self) -> str:
        return self._data['whisper_model']

    @property
    def active_window_hours(self) -> float:
        return self._data['active_window_hours']

    @property
    def cors_origins(self):
        return self._data['cors_origins']
