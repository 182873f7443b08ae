"""
Camera connection module.

Handles connection to local webcams, RTSP and HTTP streams, and a
background grabber that keeps only the newest frame. When processing is
slower than the camera, stale frames are overwritten instead of queued.
"""

import threading
import time
from typing import Any, Callable, Optional, Tuple

import cv2
import numpy as np

from .config import Config
from .logging_config import get_logger

logger = get_logger(__name__)


def is_rtsp_stream(camera_source: str) -> bool:
    return camera_source.startswith('rtsp://')


def _resolve_source(camera_source: str):
    if camera_source.isdigit():
        return int(camera_source)
    return camera_source


def connect_camera(config: Config, max_retries: int = 5) -> cv2.VideoCapture:
    """
    Connect to camera with retry logic.

    Args:
        config: Service configuration
        max_retries: Maximum connection attempts

    Returns:
        Opened VideoCapture object

    Raises:
        RuntimeError: If connection fails after max_retries
    """
    source = _resolve_source(config.camera_source)

    for attempt in range(max_retries):
        logger.info(
            f'Connecting to camera {_sanitize_url(str(source))} '
            f'(attempt {attempt + 1}/{max_retries})...'
        )
        video_capture = cv2.VideoCapture(source)

        if is_rtsp_stream(config.camera_source):
            video_capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        if video_capture.isOpened():
            ret, frame = video_capture.read()
            if ret and frame is not None:
                logger.info(f'Camera connected, frame size {frame.shape[1]}x{frame.shape[0]}')
                return video_capture
            logger.warning('Camera opened but failed to read frame')
        else:
            logger.warning('Failed to open camera')

        video_capture.release()

        if attempt < max_retries - 1:
            wait_time = 2 ** attempt
            logger.info(f'Retrying in {wait_time} seconds...')
            time.sleep(wait_time)

    raise RuntimeError(f'Cannot connect to camera after {max_retries} attempts')


def _sanitize_url(url: str) -> str:
    """
    Remove password from URL for logging.
    """
    if '://' not in url:
        return url

    protocol, rest = url.split('://', 1)
    if '@' not in rest:
        return url

    creds, host = rest.rsplit('@', 1)
    username = creds.split(':', 1)[0]
    return f'{protocol}://{username}@{host}'


class LatestFrameGrabber:
    """
    Reads frames in a background thread into a single-frame slot.

    The consumer always gets the newest frame; frames it had no time
    for are counted in `dropped`.
    """

    def __init__(
        self,
        capture_factory: Callable[[], Any],
        max_failures: int = 10,
        retry_delay: float = 2.0
    ):
        """
        Initialize grabber.

        Args:
            capture_factory: Returns an opened capture (read()/release())
            max_failures: Consecutive read failures before reconnecting
            retry_delay: Pause before reconnecting in seconds
        """
        self.capture_factory = capture_factory
        self.max_failures = max_failures
        self.retry_delay = retry_delay
        self.dropped = 0

        self._condition = threading.Condition()
        self._frame: Optional[np.ndarray] = None
        self._seq = 0
        self._consumed_seq = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._capture: Any = None

    def start(self) -> 'LatestFrameGrabber':
        self._thread = threading.Thread(target=self._run, daemon=True, name='FrameGrabber')
        self._thread.start()
        return self

    def _open(self) -> bool:
        try:
            self._capture = self.capture_factory()
            return True
        except RuntimeError as e:
            logger.error(f'Camera unavailable: {e}')
            self._capture = None
            return False

    def _release(self) -> None:
        if self._capture is not None:
            try:
                self._capture.release()
            except Exception as e:
                logger.warning(f'Error releasing camera: {e}')
            self._capture = None

    def _run(self) -> None:
        failures = 0

        while not self._stop.is_set():
            if self._capture is None and not self._open():
                self._stop.wait(self.retry_delay)
                continue

            ret, frame = self._capture.read()

            if not ret or frame is None:
                failures += 1
                logger.warning(f'Failed to read frame ({failures}/{self.max_failures})')
                if failures >= self.max_failures:
                    logger.error('Too many read failures, reconnecting...')
                    self._release()
                    failures = 0
                    self._stop.wait(self.retry_delay)
                else:
                    self._stop.wait(0.05)
                continue

            failures = 0
            self._put(frame)

        self._release()

    def _put(self, frame: np.ndarray) -> None:
        with self._condition:
            if self._seq > self._consumed_seq:
                self.dropped += 1
            self._frame = frame
            self._seq += 1
            self._condition.notify_all()

    def read_latest(
        self,
        last_seq: int,
        timeout: float = 1.0
    ) -> Tuple[int, Optional[np.ndarray]]:
        """
        Wait for a frame newer than last_seq.

        Args:
            last_seq: Sequence number of the last frame processed
            timeout: Maximum wait in seconds

        Returns:
            Tuple of (sequence number, frame); frame is None on timeout
        """
        with self._condition:
            self._condition.wait_for(
                lambda: self._seq > last_seq or self._stop.is_set(),
                timeout=timeout,
            )
            if self._seq <= last_seq:
                return last_seq, None
            self._consumed_seq = self._seq
            return self._seq, self._frame

    def stop(self) -> None:
        self._stop.set()
        with self._condition:
            self._condition.notify_all()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)
        logger.info(f'Frame grabber stopped ({self.dropped} stale frame(s) dropped)')
