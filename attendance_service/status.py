"""
Session status module.

Holds the latest session snapshot per stream for the HTTP server.
The video worker publishes, Flask handlers read; access is lock-protected.
"""

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

DEFAULT_STREAM_ID = 'default'


@dataclass
class _StreamState:
    snapshot: Optional[Dict[str, Any]] = None
    lock: threading.Lock = field(default_factory=threading.Lock)


_streams: Dict[str, _StreamState] = {}
_streams_lock = threading.Lock()


def _get_stream_state(stream_id: str) -> _StreamState:
    """
    Return/create state for given stream identifier.
    """
    state = _streams.get(stream_id)
    if state is None:
        with _streams_lock:
            state = _streams.get(stream_id)
            if state is None:
                state = _StreamState()
                _streams[stream_id] = state
    return state


def publish(snapshot: Optional[Dict[str, Any]], stream_id: str = DEFAULT_STREAM_ID) -> None:
    """
    Replace the published snapshot of a stream.

    Args:
        snapshot: Session snapshot (None clears it)
        stream_id: Identifier of the stream (camera/service)
    """
    state = _get_stream_state(stream_id)
    with state.lock:
        state.snapshot = copy.deepcopy(snapshot) if snapshot is not None else None


def get_snapshot(stream_id: str = DEFAULT_STREAM_ID) -> Optional[Dict[str, Any]]:
    """
    Copy of the latest snapshot of a stream, or None.
    """
    state = _get_stream_state(stream_id)
    with state.lock:
        return copy.deepcopy(state.snapshot) if state.snapshot is not None else None


def is_session_active(stream_id: str = DEFAULT_STREAM_ID) -> bool:
    snapshot = get_snapshot(stream_id)
    return bool(snapshot and snapshot.get('active'))
