"""
Face model adapters.

Detector and embedder collaborators of the session pipeline:
- InsightFaceDetector: InsightFace detection model (preferred)
- HaarCascadeDetector: OpenCV Haar cascade (fallback)
- ArcFaceEmbedder: InsightFace recognition model on face crops

Detectors return boxes normalized to 0..1 of the frame.
"""

from typing import Any, List, Optional

import cv2
import numpy as np
from insightface.app import FaceAnalysis

from .config import Config
from .errors import ConfigurationError
from .logging_config import get_logger
from .recognition.metrics import l2_normalize
from .recognition.tracker import Detection

logger = get_logger(__name__)

ARCFACE_INPUT_SIZE = (112, 112)


def initialize_face_app(config: Config) -> FaceAnalysis:
    """
    Initialize InsightFace FaceAnalysis with detection and recognition only.

    Args:
        config: Service configuration

    Returns:
        Initialized FaceAnalysis instance
    """
    logger.info('Initializing InsightFace models...')

    face_app = FaceAnalysis(
        allowed_modules=['detection', 'recognition'],
        providers=['CPUExecutionProvider'],
    )
    face_app.prepare(ctx_id=0, det_size=config.det_size)

    logger.info(f'InsightFace initialized (det_size={config.det_size})')
    return face_app


def normalize_box(
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    frame_width: int,
    frame_height: int
) -> np.ndarray:
    """
    Convert a pixel [x1, y1, x2, y2] box to normalized [x, y, w, h].
    """
    fw = float(frame_width or 1)
    fh = float(frame_height or 1)
    return np.array([x1 / fw, y1 / fh, (x2 - x1) / fw, (y2 - y1) / fh], dtype=np.float64)


class InsightFaceDetector:
    """Face detection with the InsightFace detection model."""

    kind = 'insightface'

    def __init__(self, face_app: FaceAnalysis):
        self.det_model = face_app.det_model

    def detect(self, frame: np.ndarray) -> List[Detection]:
        bboxes, _ = self.det_model.detect(frame, max_num=0, metric='default')
        height, width = frame.shape[:2]
        return [
            Detection(
                box=normalize_box(x1, y1, x2, y2, width, height),
                score=float(score),
            )
            for x1, y1, x2, y2, score in bboxes
        ]


class HaarCascadeDetector:
    """Face detection with OpenCV's frontal face Haar cascade."""

    kind = 'haar'

    def __init__(self, scale_factor: float = 1.1, min_neighbors: int = 5):
        cascade_path = cv2.data.haarcascades + 'haarcascade_frontalface_default.xml'
        self.cascade = cv2.CascadeClassifier(cascade_path)
        if self.cascade.empty():
            raise RuntimeError(f'Failed to load Haar cascade from {cascade_path}')
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors

    def detect(self, frame: np.ndarray) -> List[Detection]:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
        faces = self.cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=(30, 30),
        )
        height, width = frame.shape[:2]
        # The cascade gives no score
        return [
            Detection(box=normalize_box(x, y, x + w, y + h, width, height), score=1.0)
            for (x, y, w, h) in faces
        ]


class ArcFaceEmbedder:
    """Embeddings from the InsightFace recognition model, L2-normalized."""

    def __init__(self, face_app: FaceAnalysis):
        self.rec_model = _find_recognition_model(face_app)

    def embed(self, face_crop: np.ndarray) -> np.ndarray:
        face = cv2.resize(face_crop, ARCFACE_INPUT_SIZE)
        feat = self.rec_model.get_feat([face])
        return l2_normalize(np.asarray(feat).flatten())


def _find_recognition_model(face_app: FaceAnalysis) -> Any:
    # Recognition model only, the crop is already a face
    model = face_app.models.get('recognition')
    if model is not None:
        return model
    for candidate in face_app.models.values():
        if hasattr(candidate, 'get_feat'):
            return candidate
    raise ConfigurationError('InsightFace recognition model is not loaded')


def create_best_detector(config: Config, face_app: Optional[FaceAnalysis] = None) -> Any:
    """
    Pick a detector by ordered preference with fallback.

    'auto' tries InsightFace first, then the Haar cascade. A specific
    preference tries only that detector.

    Args:
        config: Service configuration
        face_app: Initialized FaceAnalysis, required for the InsightFace detector

    Returns:
        Detector instance

    Raises:
        ConfigurationError: If no detector could be created
    """
    preference = config.detector_preference

    if preference in ('auto', 'insightface'):
        try:
            if face_app is None:
                raise RuntimeError('FaceAnalysis not initialized')
            detector = InsightFaceDetector(face_app)
            logger.info('Using InsightFace detector')
            return detector
        except Exception as e:
            logger.warning(f'InsightFace detector unavailable: {e}')

    if preference in ('auto', 'haar'):
        try:
            detector = HaarCascadeDetector()
            logger.info('Using Haar cascade detector')
            return detector
        except Exception as e:
            logger.warning(f'Haar cascade detector unavailable: {e}')

    raise ConfigurationError(f'No face detector available (preference: {preference})')
