"""Job submission, query and artifact routes."""
import logging

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from ytscribe.core.constants import ErrorCode, APP_NAME, APP_VERSION
from ytscribe.core.diagnostics import get_diagnostics
from ytscribe.core.error_codes import JobError
from ytscribe.core.security_utils import is_public_artifact_name

bp = Blueprint('jobs', __name__)
logger = logging.getLogger(__name__)


def _service():
    return current_app.config['TRANSCRIPTION_SERVICE']


@bp.route('/job', methods=['POST'])
def submit_job():
    """Create a job for {"url": ...} and queue it for processing."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({'error': 'Invalid JSON'}), 400

    try:
        job = _service().submit(payload.get('url'))
    except JobError as e:
        if e.code == ErrorCode.QUEUE_FULL:
            return jsonify({'error': e.message}), 503
        return jsonify({'error': e.message}), 400

    return jsonify(job.to_dict())


@bp.route('/job/<job_id>', methods=['GET'])
def get_job(job_id):
    job = _service().get_job(job_id)
    if job is None:
        return jsonify({'error': 'Job not found'}), 404
    return jsonify(job.to_dict())


@bp.route('/jobs/active', methods=['GET'])
def active_jobs():
    """Running jobs plus anything created in the last day."""
    return jsonify([job.to_dict() for job in _service().list_active()])


@bp.route('/jobs/history', methods=['GET'])
def job_history():
    """Completed jobs, newest first."""
    return jsonify([job.to_dict() for job in _service().list_history()])


@bp.route('/files/<path:filename>', methods=['GET'])
def get_file(filename):
    if not is_public_artifact_name(filename):
        return jsonify({'error': 'File not found'}), 404
    return send_from_directory(_service().artifacts.public_dir, filename)


@bp.route('/health', methods=['GET'])
def health_check():
    logger.debug("Health check requested")
    service = _service()
    return jsonify({
        'status': 'healthy',
        'service': APP_NAME,
        'version': APP_VERSION,
        'worker_running': service.queue.is_running(),
        'queued': service.queue.qsize(),
        'current_job': service.queue.current_job_id,
        'tools': get_diagnostics(),
    })
