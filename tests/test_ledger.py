from unittest.mock import Mock

from attendance_service.ledger import AttendanceLedger, AttendanceRecord


def test_second_record_for_same_identity_is_a_no_op():
    ledger = AttendanceLedger('class-1')

    assert ledger.record('alice', 81.25, 1000.0) == 'recorded'
    assert ledger.record('alice', 99.0, 1001.0) == 'already_recorded'

    assert len(ledger) == 1
    assert ledger.records[0].confirmed_confidence == 81.25
    assert ledger.is_recorded('alice')


def test_distinct_identities_are_all_recorded():
    ledger = AttendanceLedger('class-1')

    ledger.record('alice', 80.0, 1.0)
    ledger.record('bob', 90.0, 2.0)

    assert [r.identity_id for r in ledger.records] == ['alice', 'bob']


def test_sink_receives_each_record_once():
    sink = Mock(return_value=True)
    ledger = AttendanceLedger('class-1', sink)

    ledger.record('alice', 80.0, 1.0)
    ledger.record('alice', 80.0, 2.0)

    sink.assert_called_once()
    record = sink.call_args[0][0]
    assert isinstance(record, AttendanceRecord)
    assert record.identity_id == 'alice'
    assert record.group_id == 'class-1'
    assert record.status == 'present'


def test_failed_write_can_be_retried():
    sink = Mock(side_effect=[False, True])
    ledger = AttendanceLedger('class-1', sink)

    assert ledger.record('alice', 80.0, 1.0) == 'failed'
    assert not ledger.is_recorded('alice')
    assert len(ledger) == 0

    assert ledger.record('alice', 85.0, 2.0) == 'recorded'
    assert len(ledger) == 1


def test_sink_exception_is_reported_as_failure():
    sink = Mock(side_effect=RuntimeError('database down'))
    ledger = AttendanceLedger('class-1', sink)

    assert ledger.record('alice', 80.0, 1.0) == 'failed'
    assert not ledger.is_recorded('alice')


def test_records_property_is_a_copy():
    ledger = AttendanceLedger('class-1')
    ledger.record('alice', 80.0, 1.0)

    ledger.records.clear()

    assert len(ledger.records) == 1


def test_payload():
    record = AttendanceRecord('alice', 'class-1', 81.2512, 0.0)

    assert record.to_payload() == {
        'identityId': 'alice',
        'groupId': 'class-1',
        'status': 'present',
        'confidence': 81.25,
        'markedAt': '1970-01-01T00:00:00+00:00',
    }
