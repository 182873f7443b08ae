"""
Recognition scheduling and confirmation module.

Two responsibilities:
- throttle: a track is embedded and matched at most once per interval
- confirmation: an identity must match on several consecutive evaluations,
  with enough average confidence, before it is confirmed

Confirmation state is kept per identity, not per track, so a person who
is re-tracked under a new id keeps accumulating evidence.

States per identity: unseen -> pending -> confirmed. A pending identity
that stops matching goes back to unseen. Confirmed is final for the session.
"""

from dataclasses import dataclass
from typing import Dict, List, Literal, Mapping, Optional, Set, Tuple

from ..config import Config
from ..logging_config import get_logger
from .matching import MatchResult
from .tracker import Track

logger = get_logger(__name__)

ConfirmationState = Literal['unseen', 'pending', 'confirmed']


@dataclass
class PendingConfirmation:
    """Evidence collected for one identity that is not confirmed yet."""

    identity_id: str
    display_name: str
    consecutive_match_count: int
    cumulative_confidence: float
    track_id: int

    @property
    def average_confidence(self) -> float:
        if self.consecutive_match_count == 0:
            return 0.0
        return self.cumulative_confidence / self.consecutive_match_count


@dataclass(frozen=True)
class Confirmation:
    """An identity that reached the confirmed state."""

    identity_id: str
    display_name: str
    confidence: float
    match_count: int
    track_id: int


class RecognitionScheduler:
    """
    Decides when tracks are evaluated and when identities are confirmed.
    """

    def __init__(self, config: Config):
        """
        Initialize scheduler.

        Args:
            config: Service configuration
        """
        self.interval = config.recognition_interval_seconds
        self.min_confidence = config.min_confidence
        self.required_matches = config.required_consecutive_matches
        self.pending: Dict[str, PendingConfirmation] = {}
        self.confirmed: Set[str] = set()

    def is_due(self, track: Track, now: float) -> bool:
        """
        Check whether a track should be embedded and matched now.

        Args:
            track: Live track
            now: Current frame timestamp in seconds

        Returns:
            True if the track was never evaluated or the interval has passed
        """
        if track.last_processed_at is None:
            return True
        return (now - track.last_processed_at) >= self.interval

    def is_qualifying(self, match: Optional[MatchResult]) -> bool:
        return match is not None and match.confidence >= self.min_confidence

    def state_of(self, identity_id: str) -> ConfirmationState:
        if identity_id in self.confirmed:
            return 'confirmed'
        if identity_id in self.pending:
            return 'pending'
        return 'unseen'

    def update(
        self,
        evaluations: Mapping[int, Optional[MatchResult]],
        live_track_ids: Set[int]
    ) -> List[Confirmation]:
        """
        Advance the confirmation state machine by one frame.

        Args:
            evaluations: Decision per track evaluated in this frame
                (None when the track matched nobody)
            live_track_ids: Tracks present in this frame

        Returns:
            Identities confirmed in this frame
        """
        # One piece of evidence per identity per cycle, the most confident one
        best: Dict[str, Tuple[int, MatchResult]] = {}
        for track_id, match in evaluations.items():
            if not self.is_qualifying(match) or match.identity_id in self.confirmed:
                continue
            current = best.get(match.identity_id)
            if current is None or match.confidence > current[1].confidence:
                best[match.identity_id] = (track_id, match)

        for identity_id in list(self.pending):
            if identity_id in best:
                continue
            source = self.pending[identity_id].track_id
            if source not in live_track_ids or source in evaluations:
                logger.debug(
                    f'Identity {identity_id} reset after '
                    f'{self.pending[identity_id].consecutive_match_count} match(es)'
                )
                del self.pending[identity_id]

        confirmations: List[Confirmation] = []

        for identity_id, (track_id, match) in best.items():
            entry = self.pending.get(identity_id)
            if entry is None:
                entry = PendingConfirmation(
                    identity_id=identity_id,
                    display_name=match.display_name,
                    consecutive_match_count=0,
                    cumulative_confidence=0.0,
                    track_id=track_id,
                )
                self.pending[identity_id] = entry

            entry.consecutive_match_count += 1
            entry.cumulative_confidence += match.confidence
            entry.track_id = track_id

            logger.debug(
                f'Identity {identity_id} pending '
                f'{entry.consecutive_match_count}/{self.required_matches} '
                f'(avg {entry.average_confidence:.1f}%)'
            )

            if (entry.consecutive_match_count >= self.required_matches and
                    entry.average_confidence >= self.min_confidence):
                del self.pending[identity_id]
                self.confirmed.add(identity_id)
                confirmations.append(Confirmation(
                    identity_id=identity_id,
                    display_name=entry.display_name,
                    confidence=entry.average_confidence,
                    match_count=entry.consecutive_match_count,
                    track_id=track_id,
                ))
                logger.info(
                    f'Confirmed {entry.display_name} ({identity_id}) on track {track_id} '
                    f'after {entry.consecutive_match_count} matches, '
                    f'avg confidence {entry.average_confidence:.1f}%'
                )

        return confirmations

    def release(self, identity_id: str) -> None:
        """
        Return a confirmed identity to unseen, e.g. when recording it failed.
        """
        self.confirmed.discard(identity_id)
        self.pending.pop(identity_id, None)

    def reset(self) -> None:
        self.pending.clear()
        self.confirmed.clear()
