import pytest

pytest.importorskip('insightface')

from attendance_service.main import parse_args  # noqa: E402


def test_group_from_arguments():
    args = parse_args(['--group-id', 'class-7', '--camera-source', 'rtsp://cam/1', '--debug'])

    assert args.group_id == 'class-7'
    assert args.camera_source == 'rtsp://cam/1'
    assert args.debug is True


def test_group_from_environment(monkeypatch):
    monkeypatch.setenv('GROUP_ID', 'class-9')

    assert parse_args([]).group_id == 'class-9'


def test_group_is_required(monkeypatch):
    monkeypatch.delenv('GROUP_ID', raising=False)

    with pytest.raises(SystemExit):
        parse_args([])
