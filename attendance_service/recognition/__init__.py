"""
Recognition algorithms package.

Contains modules for:
- Vector metrics
- Gallery of enrolled identities
- Identity matching
- Face tracking
- Recognition scheduling and confirmation
"""

from .metrics import distance, similarity, distances_to_references, l2_normalize
from .gallery import Identity, GalleryIndex
from .matching import IdentityMatcher, MatchResult, distance_to_confidence
from .tracker import Detection, Track, FaceTracker
from .scheduler import RecognitionScheduler, PendingConfirmation, Confirmation

__all__ = [
    'distance',
    'similarity',
    'distances_to_references',
    'l2_normalize',
    'Identity',
    'GalleryIndex',
    'IdentityMatcher',
    'MatchResult',
    'distance_to_confidence',
    'Detection',
    'Track',
    'FaceTracker',
    'RecognitionScheduler',
    'PendingConfirmation',
    'Confirmation',
]
