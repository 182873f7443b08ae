"""
Flask application for HTTP API.

Provides:
- GET /health: Service health check
- GET /session: Current tracks and attendance records of the session
"""

import time

from flask import Flask, jsonify
from flask_cors import CORS

from .config import Config
from . import status
from .logging_config import get_logger
from .utils.timing import format_uptime

logger = get_logger(__name__)


def create_app(config: Config) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Service configuration

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    CORS(app)
    stream_id = config.camera_id or config.service_name or status.DEFAULT_STREAM_ID
    started_at = time.time()

    @app.route('/health')
    def health():
        """Health check endpoint."""
        return jsonify({
            'status': 'ok',
            'sessionActive': status.is_session_active(stream_id),
            'uptime': format_uptime(time.time() - started_at),
            'cameraId': config.camera_id,
            'groupId': config.group_id,
            'service': config.service_name,
        })

    @app.route('/session')
    def session():
        """Latest session snapshot."""
        snapshot = status.get_snapshot(stream_id)
        if snapshot is None:
            return jsonify({'active': False, 'tracks': [], 'records': []})
        return jsonify(snapshot)

    return app
