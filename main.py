#!/usr/bin/env python3
"""
ytscribe v1.0.0: main entry point.
Loads config, resumes interrupted jobs and serves the HTTP API.
"""

import sys
import logging
import traceback
from pathlib import Path
from datetime import datetime

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ytscribe.core.config import AppConfig
from ytscribe.core.constants import APP_NAME, APP_VERSION, Transcriber
from ytscribe.core.diagnostics import missing_tools

logger = logging.getLogger(APP_NAME)


def setup_logging(log_dir: Path):
    """Log to <data_root>/logs/app.log and stderr."""
    handlers = [logging.StreamHandler()]
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "app.log", encoding="utf-8"))
    except OSError as e:
        print(f"Warning: could not open log file in {log_dir}: {e}", file=sys.stderr)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def check_prerequisites(config: AppConfig):
    """Check that yt-dlp, ffmpeg and the transcription tool are available."""
    extra = ("whisper",) if config.transcriber == Transcriber.WHISPER else ()
    missing = missing_tools(extra)
    if missing:
        logger.error("Missing required tools: %s", ", ".join(missing))
        sys.exit(1)


def main():
    config = AppConfig()
    setup_logging(config.logs_dir)

    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("Python: %s", sys.executable)
    logger.info("Config: %s", config.path)
    logger.info("Data root: %s", config.data_root)
    logger.info("=" * 60)

    try:
        check_prerequisites(config)

        from ytscribe.core.service import TranscriptionService
        from ytscribe.server.app import create_app

        service = TranscriptionService(config)
        service.start()
        app = create_app(service)

        logger.info("Server starting on %s:%d", config.host, config.port)
        app.run(host=config.host, port=config.port, threaded=True)
    except Exception as e:
        logger.critical("Fatal error: %s: %s\n%s", type(e).__name__, e, traceback.format_exc())
        sys.exit(1)


if __name__ == "__main__":
    main()
