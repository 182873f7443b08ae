from dataclasses import FrozenInstanceError, replace

import pytest

from attendance_service.config import load_config, validate_config
from attendance_service.errors import ConfigurationError


def test_defaults(monkeypatch):
    for name in ('MATCH_THRESHOLD', 'RATIO_TEST_MAX', 'THIRD_RATIO_MAX', 'MIN_CONFIDENCE',
                 'REQUIRED_MATCHES', 'RECOGNITION_INTERVAL', 'TRACK_PROXIMITY',
                 'SMOOTHING_ALPHA', 'DETECTOR'):
        monkeypatch.delenv(name, raising=False)

    config = load_config()

    assert config.match_threshold == 0.5
    assert config.ratio_test_max == 0.85
    assert config.third_candidate_ratio_max == 0.7
    assert config.min_confidence == 75.0
    assert config.required_consecutive_matches == 4
    assert config.recognition_interval_seconds == 0.5
    assert config.track_proximity == 0.15
    assert config.smoothing_alpha == 0.3
    assert config.detector_preference == 'auto'
    validate_config(config)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('MATCH_THRESHOLD', '0.6')
    monkeypatch.setenv('REQUIRED_MATCHES', '6')
    monkeypatch.setenv('DETECTOR', 'HAAR')
    monkeypatch.setenv('DEBUG', 'true')

    config = load_config()

    assert config.match_threshold == 0.6
    assert config.required_consecutive_matches == 6
    assert config.detector_preference == 'haar'
    assert config.debug_mode is True


def test_config_is_immutable(config):
    with pytest.raises(FrozenInstanceError):
        config.match_threshold = 1.0


@pytest.mark.parametrize('overrides', [
    {'match_threshold': 0.0},
    {'ratio_test_max': 1.5},
    {'third_candidate_ratio_max': 0.0},
    {'min_confidence': 120.0},
    {'required_consecutive_matches': 0},
    {'recognition_interval_seconds': -1.0},
    {'track_proximity': 0.0},
    {'smoothing_alpha': 0.0},
    {'crop_padding': -0.1},
    {'detector_preference': 'magic'},
])
def test_invalid_settings(config, overrides):
    with pytest.raises(ConfigurationError):
        validate_config(replace(config, **overrides))
