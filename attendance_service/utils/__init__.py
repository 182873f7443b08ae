"""
Utility modules package.
"""

from .cache import load_cache, save_cache, get_gallery_hash
from .timing import format_uptime, retry_with_backoff

__all__ = [
    'load_cache',
    'save_cache',
    'get_gallery_hash',
    'format_uptime',
    'retry_with_backoff',
]
