"""
Attendance ledger module.

Records each confirmed identity at most once per session and forwards the
record to the persistence collaborator.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Set

from .logging_config import get_logger

logger = get_logger(__name__)

RecordStatus = Literal['recorded', 'already_recorded', 'failed']


@dataclass(frozen=True)
class AttendanceRecord:
    """One attendance event, append-only."""

    identity_id: str
    group_id: str
    confirmed_confidence: float
    timestamp: float
    status: str = 'present'

    def to_payload(self) -> Dict[str, Any]:
        """Backend JSON representation."""
        return {
            'identityId': self.identity_id,
            'groupId': self.group_id,
            'status': self.status,
            'confidence': round(self.confirmed_confidence, 2),
            'markedAt': datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat(),
        }


# Persists a record, returns False (or raises) when it could not be stored
AttendanceSink = Callable[[AttendanceRecord], bool]


class AttendanceLedger:
    """
    Session-scoped exactly-once attendance recorder.

    The in-memory set of recorded identities is the source of truth for
    the session; uniqueness in the backend is a second line of defense.
    """

    def __init__(self, group_id: str, sink: Optional[AttendanceSink] = None):
        """
        Initialize ledger.

        Args:
            group_id: Active group the records belong to
            sink: Persistence callback, None keeps records in memory only
        """
        self.group_id = group_id
        self.sink = sink
        self._recorded: Set[str] = set()
        self._records: List[AttendanceRecord] = []

    def record(self, identity_id: str, confidence: float, timestamp: float) -> RecordStatus:
        """
        Record attendance for an identity.

        Args:
            identity_id: Confirmed identity
            confidence: Confidence of the confirmation (percent)
            timestamp: Confirmation time (epoch seconds)

        Returns:
            'recorded' on success, 'already_recorded' if the identity is
            already in this session's ledger, 'failed' if persisting failed
        """
        if identity_id in self._recorded:
            logger.debug(f'Identity {identity_id} already recorded this session')
            return 'already_recorded'

        # Marked before persisting, a re-entrant call sees it
        self._recorded.add(identity_id)
        record = AttendanceRecord(
            identity_id=identity_id,
            group_id=self.group_id,
            confirmed_confidence=confidence,
            timestamp=timestamp,
        )

        if self.sink is not None:
            try:
                stored = self.sink(record)
            except Exception as e:
                logger.error(f'Persisting attendance for {identity_id} raised: {e}')
                stored = False

            if not stored:
                self._recorded.discard(identity_id)
                logger.error(f'Attendance for {identity_id} not stored, will retry on next confirmation')
                return 'failed'

        self._records.append(record)
        logger.info(f'Attendance recorded for {identity_id} ({confidence:.1f}%)')
        return 'recorded'

    def is_recorded(self, identity_id: str) -> bool:
        return identity_id in self._recorded

    @property
    def records(self) -> List[AttendanceRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)
