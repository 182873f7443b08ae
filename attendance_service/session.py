"""
Attendance session pipeline.

Per frame: detect -> track -> throttle -> embed/match -> confirm -> record.

All session state (tracks, pending confirmations, recorded identities)
lives in one AttendanceSession object that is created by start_session()
and dropped by end_session(). Each session has an epoch; results of
detector or embedder calls that finish after the epoch moved on are
discarded.

process_frame() is meant to be driven by a single worker. It never
raises: per-frame failures are logged and the frame contributes nothing.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

import numpy as np

from .config import Config, validate_config
from .errors import DimensionMismatch
from .ledger import AttendanceLedger, AttendanceRecord, AttendanceSink
from .logging_config import get_logger
from .recognition.gallery import GalleryIndex
from .recognition.matching import IdentityMatcher
from .recognition.scheduler import RecognitionScheduler
from .recognition.tracker import Detection, FaceTracker, Track

logger = get_logger(__name__)


class Detector(Protocol):
    def detect(self, frame: np.ndarray) -> List[Detection]:
        ...


class Embedder(Protocol):
    def embed(self, face_crop: np.ndarray) -> np.ndarray:
        ...


@dataclass(frozen=True)
class TrackDisplay:
    """What the host needs to draw one tracked face."""

    track_id: int
    box: Tuple[float, float, float, float]
    status: str
    identity_id: Optional[str] = None
    display_name: Optional[str] = None
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trackId': self.track_id,
            'box': list(self.box),
            'status': self.status,
            'identityId': self.identity_id,
            'name': self.display_name,
            'confidence': self.confidence,
        }


@dataclass
class AttendanceSession:
    """State owned by one session, discarded as a whole when it ends."""

    epoch: int
    gallery: GalleryIndex
    tracker: FaceTracker
    scheduler: RecognitionScheduler
    matcher: IdentityMatcher
    ledger: AttendanceLedger
    started_at: float = field(default_factory=time.time)
    frames_processed: int = 0


def crop_face(frame: np.ndarray, box: np.ndarray, padding: float) -> Optional[np.ndarray]:
    """
    Cut a padded face region out of a frame.

    Args:
        frame: Image, shape (H, W, C)
        box: Normalized [x, y, width, height]
        padding: Fraction of the box size added on every side

    Returns:
        Cropped image, or None if the region falls outside the frame
    """
    height, width = frame.shape[:2]
    x, y, w, h = box

    x1 = int(round((x - w * padding) * width))
    y1 = int(round((y - h * padding) * height))
    x2 = int(round((x + w * (1 + padding)) * width))
    y2 = int(round((y + h * (1 + padding)) * height))

    x1, y1 = max(0, x1), max(0, y1)
    x2, y2 = min(width, x2), min(height, y2)

    if x2 <= x1 or y2 <= y1:
        return None
    return frame[y1:y2, x1:x2]


class SessionPipeline:
    """
    Drives the recognition engine for one camera.
    """

    def __init__(
        self,
        detector: Detector,
        embedder: Embedder,
        config: Config,
        sink: Optional[AttendanceSink] = None
    ):
        """
        Initialize pipeline.

        Args:
            detector: Face detector collaborator
            embedder: Embedding extractor collaborator
            config: Service configuration
            sink: Persistence callback for attendance records
        """
        self.detector = detector
        self.embedder = embedder
        self.config = config
        self.sink = sink
        self._epoch = 0
        self._session: Optional[AttendanceSession] = None

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Optional[AttendanceSession]:
        return self._session

    def start_session(self, gallery: GalleryIndex, group_id: Optional[str] = None) -> int:
        """
        Start a session for the given gallery.

        A running session is ended first.

        Args:
            gallery: Identities of the active group
            group_id: Group the attendance belongs to (defaults to config)

        Returns:
            Epoch of the new session

        Raises:
            ConfigurationError: If the gallery or settings are unusable
        """
        validate_config(self.config)
        gallery.validate_for_session()

        if self._session is not None:
            self.end_session()

        self._epoch += 1
        self._session = AttendanceSession(
            epoch=self._epoch,
            gallery=gallery,
            tracker=FaceTracker(self.config),
            scheduler=RecognitionScheduler(self.config),
            matcher=IdentityMatcher.from_config(self.config),
            ledger=AttendanceLedger(group_id or self.config.group_id, self.sink),
        )

        logger.info(
            f'Session {self._epoch} started: {gallery.usable_count}/{len(gallery)} '
            f'profiles ready ({gallery.dimension}-d embeddings)'
        )
        return self._epoch

    def end_session(self) -> List[AttendanceRecord]:
        """
        Tear down the active session.

        Returns:
            Attendance records of the ended session
        """
        session = self._session
        if session is None:
            return []

        self._session = None
        self._epoch += 1
        records = session.ledger.records

        logger.info(
            f'Session {session.epoch} ended: {len(records)} attendance record(s), '
            f'{session.frames_processed} frame(s) processed'
        )
        return records

    def process_frame(
        self,
        frame: np.ndarray,
        timestamp: Optional[float] = None
    ) -> List[TrackDisplay]:
        """
        Run one frame through the pipeline.

        Args:
            frame: Video frame, shape (H, W, C)
            timestamp: Frame time in seconds (defaults to now)

        Returns:
            Display info for every track in the frame
        """
        session = self._session
        if session is None:
            return []

        now = time.time() if timestamp is None else timestamp

        try:
            return self._process(session, frame, now)
        except Exception as e:
            logger.error(f'Frame processing failed: {e}', exc_info=True)
            return []

    def _is_current(self, session: AttendanceSession) -> bool:
        return self._session is session and self._epoch == session.epoch

    def _detect(self, frame: np.ndarray) -> List[Detection]:
        try:
            detections = self.detector.detect(frame) or []
        except Exception as e:
            logger.warning(f'Detector failed, skipping frame: {e}')
            return []
        return [d for d in detections if d.score >= self.config.min_detection_score]

    def _process(
        self,
        session: AttendanceSession,
        frame: np.ndarray,
        now: float
    ) -> List[TrackDisplay]:
        detections = self._detect(frame)
        if not self._is_current(session):
            logger.debug(f'Discarding detections of ended session {session.epoch}')
            return []

        tracks = session.tracker.update(detections)
        evaluations = {}

        for track in tracks:
            if not session.scheduler.is_due(track, now):
                continue

            crop = crop_face(frame, track.raw_box, self.config.crop_padding)
            if crop is None or crop.size == 0:
                # Unusable region, a decision without a match
                logger.debug(f'Empty crop for track {track.track_id}')
                session.tracker.mark_processed(track.track_id, now, track.last_match)
                evaluations[track.track_id] = None
                continue

            try:
                embedding = self.embedder.embed(crop)
            except Exception as e:
                logger.warning(f'Embedder failed on track {track.track_id}: {e}')
                session.tracker.mark_processed(track.track_id, now, track.last_match)
                continue

            if not self._is_current(session):
                logger.debug(f'Discarding embedding of ended session {session.epoch}')
                return []

            try:
                match = session.matcher.match(embedding, session.gallery)
            except DimensionMismatch as e:
                logger.warning(f'Track {track.track_id}: {e}')
                match = None

            session.tracker.mark_processed(track.track_id, now, match)
            evaluations[track.track_id] = match

            if match is not None:
                logger.debug(
                    f'Track {track.track_id} -> {match.display_name} '
                    f'(distance {match.distance:.3f}, confidence {match.confidence:.1f}%)'
                )

        live_track_ids = {t.track_id for t in session.tracker.tracks}
        confirmations = session.scheduler.update(evaluations, live_track_ids)

        for confirmation in confirmations:
            status = session.ledger.record(
                confirmation.identity_id,
                confirmation.confidence,
                time.time(),
            )
            if status == 'failed':
                session.scheduler.release(confirmation.identity_id)

        session.frames_processed += 1
        return [self._display(session, t) for t in session.tracker.tracks]

    def _display(self, session: AttendanceSession, track: Track) -> TrackDisplay:
        box = tuple(float(v) for v in track.smoothed_box)
        match = track.last_match
        if match is None:
            return TrackDisplay(track_id=track.track_id, box=box, status='unknown')

        if session.ledger.is_recorded(match.identity_id):
            status = 'confirmed'
        elif session.scheduler.state_of(match.identity_id) == 'pending':
            status = 'pending'
        else:
            status = 'unknown'

        return TrackDisplay(
            track_id=track.track_id,
            box=box,
            status=status,
            identity_id=match.identity_id,
            display_name=match.display_name,
            confidence=round(match.confidence, 1),
        )

    def snapshot(self) -> Dict[str, Any]:
        """
        JSON-ready summary of the active session.
        """
        session = self._session
        if session is None:
            return {'active': False, 'epoch': self._epoch, 'tracks': [], 'records': []}

        return {
            'active': True,
            'epoch': session.epoch,
            'groupId': session.ledger.group_id,
            'startedAt': session.started_at,
            'framesProcessed': session.frames_processed,
            'tracks': [self._display(session, t).to_dict() for t in session.tracker.tracks],
            'records': [r.to_payload() for r in session.ledger.records],
        }
