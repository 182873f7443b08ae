"""
Gallery cache module.

Keeps the last gallery fetched for a group on disk, so a session can
still start when the backend is unreachable.
"""

import hashlib
import json
import os
import pickle
import time
from typing import Any, Dict, List, Optional, Tuple

from ..logging_config import get_logger

logger = get_logger(__name__)


def get_gallery_hash(records: List[Dict[str, Any]]) -> str:
    """
    Compute hash of gallery rows for change detection.

    Args:
        records: Identity rows as returned by the backend

    Returns:
        MD5 hash string
    """
    data = json.dumps(records, sort_keys=True, default=str)
    return hashlib.md5(data.encode()).hexdigest()


def save_cache(
    records: List[Dict[str, Any]],
    group_id: str,
    gallery_hash: str,
    cache_file: str
) -> None:
    """
    Save gallery rows to file.

    Args:
        records: Identity rows
        group_id: Group the rows belong to
        gallery_hash: Hash of the rows
        cache_file: Path to cache file
    """
    try:
        cache_data = {
            'records': records,
            'group_id': group_id,
            'hash': gallery_hash,
            'timestamp': time.time(),
        }

        with open(cache_file, 'wb') as f:
            pickle.dump(cache_data, f)

        logger.info(f'Gallery cache saved for group {group_id} ({len(records)} identities)')

    except OSError as e:
        logger.error(f'Failed to save gallery cache: {e}')


def load_cache(
    cache_file: str
) -> Tuple[Optional[List[Dict[str, Any]]], Optional[str], Optional[str]]:
    """
    Load gallery rows from file.

    Args:
        cache_file: Path to cache file

    Returns:
        Tuple of (records, group_id, hash) or (None, None, None) if unusable
    """
    if not os.path.exists(cache_file):
        logger.debug('Gallery cache file not found')
        return None, None, None

    try:
        with open(cache_file, 'rb') as f:
            cache_data = pickle.load(f)

        age = time.time() - cache_data.get('timestamp', 0)
        logger.info(f'Gallery cache found (age: {age:.0f} seconds)')

        return (
            cache_data.get('records'),
            cache_data.get('group_id'),
            cache_data.get('hash'),
        )

    except (OSError, pickle.UnpicklingError, EOFError, AttributeError) as e:
        logger.error(f'Failed to load gallery cache: {e}')
        return None, None, None
