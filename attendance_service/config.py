"""
Configuration module for Attendance Service.

Loads configuration from environment variables with sensible defaults.
All settings are immutable after initialization.
"""

import os
from dataclasses import dataclass
from typing import Tuple

from .errors import ConfigurationError


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration for Attendance Service.

    Backend Integration:
        backend_url: Base URL of the backend API (e.g., http://backend:3000)
        group_id: Active group (class) whose enrolled identities form the gallery

    Camera Settings:
        camera_source: Webcam index, RTSP URL or HTTP stream URL
        camera_id: Logical identifier for this camera (for logging/monitoring)

    Service Identity:
        service_name: Name of this service instance
        http_port: Port for the Flask status server

    Detection:
        detector_preference: 'auto', 'insightface' or 'haar'
        det_size: Detection size for InsightFace (width, height)
        min_detection_score: Detections below this score are ignored
        crop_padding: Fraction of the box added on each side of the embedding crop

    Matching:
        match_threshold: Absolute Euclidean distance cutoff
        ratio_test_max: Maximum best/second-best distance ratio
        third_candidate_ratio_max: Maximum best/third-best distance ratio

    Confirmation:
        min_confidence: Confidence floor (percent) for a qualifying match
        required_consecutive_matches: Evaluations needed before confirmation
        recognition_interval_seconds: Minimum time between evaluations of one track

    Tracking:
        track_proximity: Maximum normalized center distance for association
        smoothing_alpha: EMA factor for displayed track geometry

    System:
        cache_file: Path to gallery cache file
        debug_mode: Enable debug logging
    """

    # Backend
    backend_url: str
    group_id: str

    # Camera
    camera_source: str
    camera_id: str

    # Service
    service_name: str
    http_port: int

    # Detection
    detector_preference: str
    det_size: Tuple[int, int]
    min_detection_score: float
    crop_padding: float

    # Matching
    match_threshold: float
    ratio_test_max: float
    third_candidate_ratio_max: float

    # Confirmation
    min_confidence: float
    required_consecutive_matches: int
    recognition_interval_seconds: float

    # Tracking
    track_proximity: float
    smoothing_alpha: float

    # System
    cache_file: str
    debug_mode: bool


DETECTOR_PREFERENCES = ('auto', 'insightface', 'haar')


def load_config() -> Config:
    """
    Load configuration from environment variables.

    Returns:
        Config: Immutable configuration object
    """
    camera_source_raw = os.getenv('CAMERA_SOURCE', '0')

    return Config(
        # Backend
        backend_url=os.getenv('BACKEND_URL', 'http://localhost:3000'),
        group_id=os.getenv('GROUP_ID', ''),

        # Camera
        camera_source=camera_source_raw,
        camera_id=os.getenv('CAMERA_ID', camera_source_raw),

        # Service
        service_name=os.getenv('SERVICE_NAME', 'attendance'),
        http_port=int(os.getenv('HTTP_PORT', '5001')),

        # Detection
        detector_preference=os.getenv('DETECTOR', 'auto').lower(),
        det_size=(640, 640),
        min_detection_score=float(os.getenv('MIN_DETECTION_SCORE', '0.5')),
        crop_padding=float(os.getenv('CROP_PADDING', '0.2')),

        # Matching
        match_threshold=float(os.getenv('MATCH_THRESHOLD', '0.5')),
        ratio_test_max=float(os.getenv('RATIO_TEST_MAX', '0.85')),
        third_candidate_ratio_max=float(os.getenv('THIRD_RATIO_MAX', '0.7')),

        # Confirmation
        min_confidence=float(os.getenv('MIN_CONFIDENCE', '75')),
        required_consecutive_matches=int(os.getenv('REQUIRED_MATCHES', '4')),
        recognition_interval_seconds=float(os.getenv('RECOGNITION_INTERVAL', '0.5')),

        # Tracking
        track_proximity=float(os.getenv('TRACK_PROXIMITY', '0.15')),
        smoothing_alpha=float(os.getenv('SMOOTHING_ALPHA', '0.3')),

        # System
        cache_file=os.getenv('CACHE_FILE', 'gallery_cache.pkl'),
        debug_mode=os.getenv('DEBUG', 'false').lower() == 'true',
    )


def validate_config(config: Config) -> None:
    """
    Check tunable parameters for values the engine cannot work with.

    Args:
        config: Configuration to validate

    Raises:
        ConfigurationError: On the first invalid setting found
    """
    if config.match_threshold <= 0:
        raise ConfigurationError('match_threshold must be positive')
    if not 0 < config.ratio_test_max <= 1:
        raise ConfigurationError('ratio_test_max must be in (0, 1]')
    if not 0 < config.third_candidate_ratio_max <= 1:
        raise ConfigurationError('third_candidate_ratio_max must be in (0, 1]')
    if not 0 <= config.min_confidence <= 100:
        raise ConfigurationError('min_confidence must be a percentage')
    if config.required_consecutive_matches < 1:
        raise ConfigurationError('required_consecutive_matches must be at least 1')
    if config.recognition_interval_seconds < 0:
        raise ConfigurationError('recognition_interval_seconds must not be negative')
    if config.track_proximity <= 0:
        raise ConfigurationError('track_proximity must be positive')
    if not 0 < config.smoothing_alpha <= 1:
        raise ConfigurationError('smoothing_alpha must be in (0, 1]')
    if config.crop_padding < 0:
        raise ConfigurationError('crop_padding must not be negative')
    if config.detector_preference not in DETECTOR_PREFERENCES:
        raise ConfigurationError(
            f'detector_preference must be one of {", ".join(DETECTOR_PREFERENCES)}'
        )
