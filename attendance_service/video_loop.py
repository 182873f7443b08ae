"""
Main video processing loop.

Wires the collaborators together and drives the session pipeline:
- InsightFace models (detector + embedder)
- Gallery loading
- Camera frames (newest only)
- Attendance sending
- Status publishing for the HTTP server
"""

import threading
from typing import Optional

from .app import create_app
from .camera import LatestFrameGrabber, connect_camera
from .config import Config
from .errors import ConfigurationError
from .events import make_attendance_sink
from .face_models import ArcFaceEmbedder, create_best_detector, initialize_face_app
from .gallery_store import load_gallery_from_backend
from .logging_config import get_logger
from .session import SessionPipeline
from . import status

logger = get_logger(__name__)


def start_flask_server(config: Config) -> None:
    """
    Start Flask server (blocking, run in a background thread).
    """
    logger.info(f'Starting status server on port {config.http_port}...')
    app = create_app(config)
    app.run(
        host='0.0.0.0',
        port=config.http_port,
        threaded=True,
        debug=False,
        use_reloader=False
    )


def run_session(
    pipeline: SessionPipeline,
    grabber: LatestFrameGrabber,
    stop_flag: threading.Event,
    stream_id: str
) -> None:
    """
    Feed the newest frames into the pipeline until stopped.

    Args:
        pipeline: Pipeline with an active session
        grabber: Started frame grabber
        stop_flag: Set to end the loop
        stream_id: Key under which status is published
    """
    last_seq = 0
    status.publish(pipeline.snapshot(), stream_id=stream_id)

    while not stop_flag.is_set():
        seq, frame = grabber.read_latest(last_seq, timeout=1.0)
        if frame is None:
            continue
        last_seq = seq

        pipeline.process_frame(frame)
        status.publish(pipeline.snapshot(), stream_id=stream_id)


def run(config: Config, stop_flag: Optional[threading.Event] = None) -> None:
    """
    Run one attendance session for the configured group and camera.

    Args:
        config: Service configuration
        stop_flag: Optional threading.Event to signal graceful shutdown
    """
    stop_flag = stop_flag or threading.Event()
    stream_id = config.camera_id or config.service_name or status.DEFAULT_STREAM_ID

    face_app = initialize_face_app(config)
    detector = create_best_detector(config, face_app)
    embedder = ArcFaceEmbedder(face_app)

    pipeline = SessionPipeline(detector, embedder, config, sink=make_attendance_sink(config))

    try:
        gallery = load_gallery_from_backend(config)
        pipeline.start_session(gallery)
    except ConfigurationError as e:
        logger.error(f'Session refused to start: {e}')
        return

    flask_thread = threading.Thread(target=start_flask_server, args=(config,), daemon=True)
    flask_thread.start()
    logger.info(f'Session status: http://localhost:{config.http_port}/session')

    grabber = LatestFrameGrabber(lambda: connect_camera(config)).start()

    logger.info('Starting main loop...')

    try:
        run_session(pipeline, grabber, stop_flag, stream_id)
    finally:
        grabber.stop()
        records = pipeline.end_session()
        status.publish(pipeline.snapshot(), stream_id=stream_id)
        logger.info(f'Attendance taken for {len(records)} identities')
