"""Flask application factory for the ytscribe HTTP API."""
import logging

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from ytscribe.core.service import TranscriptionService
from ytscribe.server import routes

logger = logging.getLogger(__name__)


def create_app(service: TranscriptionService) -> Flask:
    """Create the Flask app around an already-built service.

    The service is not started here; the caller decides when recovery
    and the background worker begin.
    """
    app = Flask(__name__)
    app.config['TRANSCRIPTION_SERVICE'] = service
    app.json.sort_keys = False

    CORS(app,
         origins=service.config.cors_origins,
         methods=["GET", "POST", "OPTIONS"],
         allow_headers=["Content-Type"])

    app.register_blueprint(routes.bp)
    register_error_handlers(app)
    return app


def register_error_handlers(app: Flask) -> None:
    """Every error body is {"error": message}."""

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.error("Unhandled request error: %s", e, exc_info=True)
        return jsonify({'error': 'Internal server error'}), 500
