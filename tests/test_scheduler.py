import numpy as np
import pytest

from attendance_service.recognition.matching import MatchResult
from attendance_service.recognition.scheduler import RecognitionScheduler
from attendance_service.recognition.tracker import Track


def match(identity_id, confidence, name=None):
    return MatchResult(identity_id, name or identity_id.title(), confidence, 0.1)


def track(track_id, last_processed_at=None):
    box = np.array([0.4, 0.4, 0.2, 0.2])
    return Track(track_id, box, box.copy(), last_processed_at=last_processed_at)


@pytest.fixture
def scheduler(config):
    return RecognitionScheduler(config)


def test_throttle(scheduler):
    assert scheduler.is_due(track(1), now=10.0)
    assert not scheduler.is_due(track(1, last_processed_at=10.0), now=10.2)
    assert scheduler.is_due(track(1, last_processed_at=10.0), now=10.5)


def test_first_qualifying_match_creates_pending(scheduler):
    assert scheduler.update({1: match('alice', 80.0)}, {1}) == []

    entry = scheduler.pending['alice']
    assert scheduler.state_of('alice') == 'pending'
    assert entry.consecutive_match_count == 1
    assert entry.cumulative_confidence == pytest.approx(80.0)


def test_low_confidence_match_does_not_count(scheduler):
    scheduler.update({1: match('alice', 70.0)}, {1})

    assert scheduler.state_of('alice') == 'unseen'


def test_sustained_matches_confirm_once(scheduler):
    results = [
        scheduler.update({1: match('carla', confidence)}, {1})
        for confidence in [80.0, 82.0, 78.0, 85.0]
    ]

    assert results[:3] == [[], [], []]
    assert len(results[3]) == 1
    confirmation = results[3][0]
    assert confirmation.identity_id == 'carla'
    assert confirmation.confidence == pytest.approx(81.25)
    assert confirmation.match_count == 4
    assert scheduler.state_of('carla') == 'confirmed'
    assert 'carla' not in scheduler.pending


def test_confirmed_is_terminal(scheduler):
    for _ in range(4):
        scheduler.update({1: match('carla', 90.0)}, {1})

    for _ in range(6):
        assert scheduler.update({1: match('carla', 90.0)}, {1}) == []
    assert scheduler.state_of('carla') == 'confirmed'
    assert 'carla' not in scheduler.pending


def test_one_miss_resets_to_unseen(scheduler):
    for _ in range(3):
        scheduler.update({1: match('alice', 90.0)}, {1})

    scheduler.update({1: None}, {1})

    assert scheduler.state_of('alice') == 'unseen'

    scheduler.update({1: match('alice', 90.0)}, {1})
    assert scheduler.pending['alice'].consecutive_match_count == 1


def test_matching_someone_else_resets(scheduler):
    scheduler.update({1: match('alice', 90.0)}, {1})
    scheduler.update({1: match('bob', 90.0)}, {1})

    assert scheduler.state_of('alice') == 'unseen'
    assert scheduler.state_of('bob') == 'pending'


def test_low_confidence_evaluation_resets(scheduler):
    scheduler.update({1: match('alice', 90.0)}, {1})
    scheduler.update({1: match('alice', 60.0)}, {1})

    assert scheduler.state_of('alice') == 'unseen'


def test_lost_track_resets(scheduler):
    scheduler.update({1: match('alice', 90.0)}, {1})
    scheduler.update({}, set())

    assert scheduler.state_of('alice') == 'unseen'


def test_throttled_frames_keep_pending_state(scheduler):
    scheduler.update({1: match('alice', 90.0)}, {1})
    scheduler.update({}, {1})
    scheduler.update({2: None}, {1, 2})

    assert scheduler.pending['alice'].consecutive_match_count == 1


def test_evidence_follows_identity_across_track_ids(scheduler):
    scheduler.update({1: match('alice', 90.0)}, {1})
    scheduler.update({1: match('alice', 90.0)}, {1})

    scheduler.update({2: match('alice', 90.0)}, {2})

    entry = scheduler.pending['alice']
    assert entry.consecutive_match_count == 3
    assert entry.track_id == 2


def test_two_tracks_on_one_identity_count_once(scheduler):
    scheduler.update({1: match('alice', 80.0), 2: match('alice', 95.0)}, {1, 2})

    entry = scheduler.pending['alice']
    assert entry.consecutive_match_count == 1
    assert entry.cumulative_confidence == pytest.approx(95.0)
    assert entry.track_id == 2


def test_independent_identities(scheduler):
    confirmed = []
    for _ in range(4):
        confirmed += scheduler.update({1: match('alice', 90.0), 2: match('bob', 85.0)}, {1, 2})

    assert sorted(c.identity_id for c in confirmed) == ['alice', 'bob']


def test_single_required_match_confirms_immediately(config):
    from dataclasses import replace
    scheduler = RecognitionScheduler(replace(config, required_consecutive_matches=1))

    assert len(scheduler.update({1: match('alice', 76.0)}, {1})) == 1


def test_release_returns_identity_to_unseen(scheduler):
    for _ in range(4):
        scheduler.update({1: match('alice', 90.0)}, {1})

    scheduler.release('alice')

    assert scheduler.state_of('alice') == 'unseen'
    scheduler.update({1: match('alice', 90.0)}, {1})
    assert scheduler.state_of('alice') == 'pending'


def test_reset(scheduler):
    scheduler.update({1: match('alice', 90.0)}, {1})
    scheduler.reset()

    assert scheduler.pending == {}
    assert scheduler.confirmed == set()
