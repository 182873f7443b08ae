from dataclasses import replace

import numpy as np
import pytest

from attendance_service.config import load_config
from attendance_service.recognition.gallery import GalleryIndex
from attendance_service.recognition.tracker import Detection


@pytest.fixture
def config(tmp_path):
    return replace(
        load_config(),
        group_id='class-1',
        camera_id='test-cam',
        match_threshold=0.5,
        ratio_test_max=0.85,
        third_candidate_ratio_max=0.7,
        min_confidence=75.0,
        required_consecutive_matches=4,
        recognition_interval_seconds=0.5,
        track_proximity=0.15,
        smoothing_alpha=0.3,
        crop_padding=0.2,
        min_detection_score=0.5,
        detector_preference='auto',
        cache_file=str(tmp_path / 'gallery_cache.pkl'),
        backend_url='http://backend.test',
    )


def unit(index, dim=4):
    v = np.zeros(dim)
    v[index] = 1.0
    return v


def make_gallery(*rows):
    """rows: (id, name, [vectors])"""
    return GalleryIndex.from_records([
        {'id': identity_id, 'name': name, 'embeddings': [list(v) for v in vectors]}
        for identity_id, name, vectors in rows
    ])


def detection(cx, cy, size=0.1, score=0.9):
    """Detection centered on (cx, cy) in normalized coordinates."""
    return Detection(box=np.array([cx - size / 2, cy - size / 2, size, size]), score=score)


class FakeDetector:
    def __init__(self, detections=None):
        self.detections = list(detections or [])
        self.error = None
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.detections)


class FakeEmbedder:
    def __init__(self, vector=None):
        self.vector = vector
        self.error = None
        self.calls = 0
        self.side_effect = None
        self.crops = []

    def embed(self, face_crop):
        self.calls += 1
        self.crops.append(face_crop.copy())
        if self.side_effect is not None:
            self.side_effect()
        if self.error is not None:
            raise self.error
        return np.asarray(self.vector, dtype=np.float64)


@pytest.fixture
def frame():
    return np.zeros((120, 160, 3), dtype=np.uint8)
