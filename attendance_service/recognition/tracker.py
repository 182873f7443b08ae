"""
Face tracking module.

Keeps a stable track id per face across frames by nearest-center
association with the previous frame's tracks, and smooths each track's
displayed box with an exponential moving average.

Association is greedy in detection order, not a global assignment.
A face that gets no detection in a frame loses its track immediately.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Set

import numpy as np

from ..config import Config
from ..logging_config import get_logger
from .matching import MatchResult

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class Detection:
    """
    A face found in one frame.

    Attributes:
        box: [x, y, width, height], normalized to 0..1 of the frame
        score: Detector confidence
    """

    box: np.ndarray
    score: float = 1.0

    @property
    def center(self) -> np.ndarray:
        return box_center(self.box)


@dataclass(frozen=True, eq=False)
class Track:
    """
    A face followed across frames.

    Attributes:
        track_id: Stable identifier while the face stays associated
        raw_box: Latest detector box (used for embedding crops)
        smoothed_box: EMA-smoothed box (used for display and association)
        score: Latest detector score
        last_processed_at: Time of the last recognition run, None if never
        last_match: Decision of the last recognition run, reused for display
    """

    track_id: int
    raw_box: np.ndarray
    smoothed_box: np.ndarray
    score: float = 1.0
    last_processed_at: Optional[float] = None
    last_match: Optional[MatchResult] = None


def box_center(box: np.ndarray) -> np.ndarray:
    x, y, w, h = box
    return np.array([x + w / 2.0, y + h / 2.0], dtype=np.float64)


def center_distance(box1: np.ndarray, box2: np.ndarray) -> float:
    """
    Distance between the centers of two [x, y, w, h] boxes.
    """
    return float(np.linalg.norm(box_center(box1) - box_center(box2)))


def smooth_box(smoothed: np.ndarray, raw: np.ndarray, alpha: float) -> np.ndarray:
    """Exponential moving average step towards the raw box."""
    return smoothed + (raw - smoothed) * alpha


class FaceTracker:
    """
    Assigns track ids to per-frame detections.

    The id counter is the only state that outlives a frame besides the
    current track list.
    """

    def __init__(self, config: Config):
        """
        Initialize face tracker.

        Args:
            config: Service configuration
        """
        self.proximity = config.track_proximity
        self.alpha = config.smoothing_alpha
        self.tracks: List[Track] = []
        self.next_track_id = 1

    def update(self, detections: List[Detection]) -> List[Track]:
        """
        Associate this frame's detections with the current tracks.

        Args:
            detections: Detections of the current frame

        Returns:
            Tracks alive in the current frame, in detection order
        """
        self.tracks = self.associate(detections, self.tracks)
        return self.tracks

    def associate(
        self,
        detections: List[Detection],
        previous_tracks: List[Track]
    ) -> List[Track]:
        """
        Build the current frame's tracks from the previous frame's.

        Each detection takes the closest previous track within the
        proximity bound. If an earlier detection already claimed that
        track, or none is in bound, it starts a new track. Previous tracks
        that nothing claims are dropped.

        Args:
            detections: Detections of the current frame
            previous_tracks: Tracks of the previous frame

        Returns:
            New list of tracks, one per detection
        """
        claimed: Set[int] = set()
        current: List[Track] = []

        for detection in detections:
            raw = np.asarray(detection.box, dtype=np.float64)
            previous = self._find_matching_track(raw, previous_tracks)

            if previous is not None and previous.track_id not in claimed:
                claimed.add(previous.track_id)
                current.append(replace(
                    previous,
                    raw_box=raw,
                    smoothed_box=smooth_box(previous.smoothed_box, raw, self.alpha),
                    score=float(detection.score),
                ))
            else:
                track = Track(
                    track_id=self.next_track_id,
                    raw_box=raw,
                    smoothed_box=raw.copy(),
                    score=float(detection.score),
                )
                self.next_track_id += 1
                current.append(track)
                logger.debug(f'Created new track {track.track_id}')

        for track in previous_tracks:
            if track.track_id not in claimed:
                logger.debug(f'Lost track {track.track_id}')

        return current

    def _find_matching_track(
        self,
        box: np.ndarray,
        previous_tracks: List[Track]
    ) -> Optional[Track]:
        """
        Closest track whose smoothed center lies within the bound.
        """
        best_track = None
        best_distance = self.proximity

        for track in previous_tracks:
            dist = center_distance(box, track.smoothed_box)
            if dist < best_distance:
                best_distance = dist
                best_track = track

        return best_track

    def mark_processed(
        self,
        track_id: int,
        timestamp: float,
        match: Optional[MatchResult]
    ) -> None:
        """
        Record a recognition run on a live track.
        """
        self.tracks = [
            replace(t, last_processed_at=timestamp, last_match=match)
            if t.track_id == track_id else t
            for t in self.tracks
        ]

    def reset(self) -> None:
        self.tracks = []
