from dataclasses import replace
from types import SimpleNamespace

import numpy as np
import pytest

pytest.importorskip('insightface')

from attendance_service.errors import ConfigurationError  # noqa: E402
from attendance_service.face_models import (  # noqa: E402
    ArcFaceEmbedder,
    HaarCascadeDetector,
    InsightFaceDetector,
    create_best_detector,
    normalize_box,
)


class FakeDetModel:
    def detect(self, frame, max_num=0, metric='default'):
        return np.array([[20.0, 10.0, 60.0, 70.0, 0.93]]), None


class FakeRecModel:
    def __init__(self):
        self.inputs = []

    def get_feat(self, imgs):
        self.inputs.append(imgs[0].shape)
        return np.array([[3.0, 4.0]])


def test_normalize_box():
    np.testing.assert_allclose(normalize_box(20, 10, 60, 70, 200, 100), [0.1, 0.1, 0.2, 0.6])


def test_insightface_detector_normalizes_boxes():
    detector = InsightFaceDetector(SimpleNamespace(det_model=FakeDetModel()))

    detections = detector.detect(np.zeros((100, 200, 3), dtype=np.uint8))

    assert len(detections) == 1
    np.testing.assert_allclose(detections[0].box, [0.1, 0.1, 0.2, 0.6])
    assert detections[0].score == pytest.approx(0.93)


def test_arcface_embedder_resizes_and_normalizes():
    rec = FakeRecModel()
    embedder = ArcFaceEmbedder(SimpleNamespace(models={'recognition': rec}))

    embedding = embedder.embed(np.zeros((50, 40, 3), dtype=np.uint8))

    assert rec.inputs == [(112, 112, 3)]
    np.testing.assert_allclose(embedding, [0.6, 0.8])


def test_embedder_requires_recognition_model():
    with pytest.raises(ConfigurationError):
        ArcFaceEmbedder(SimpleNamespace(models={}))


def test_haar_detector_on_blank_frame():
    assert HaarCascadeDetector().detect(np.zeros((120, 160, 3), dtype=np.uint8)) == []


def test_auto_prefers_insightface(config):
    face_app = SimpleNamespace(det_model=FakeDetModel())

    assert isinstance(create_best_detector(config, face_app), InsightFaceDetector)


def test_auto_falls_back_to_haar(config):
    assert isinstance(create_best_detector(config, None), HaarCascadeDetector)


def test_haar_preference(config):
    face_app = SimpleNamespace(det_model=FakeDetModel())

    detector = create_best_detector(replace(config, detector_preference='haar'), face_app)

    assert isinstance(detector, HaarCascadeDetector)


def test_no_detector_available(config):
    with pytest.raises(ConfigurationError):
        create_best_detector(replace(config, detector_preference='insightface'), None)
