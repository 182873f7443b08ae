"""
Gallery loading module.

Fetches the enrolled identities of the active group, with their reference
embeddings, from the backend and builds the session's GalleryIndex.
"""

from typing import Any, Dict, List

import requests

from .config import Config
from .errors import ConfigurationError
from .logging_config import get_logger
from .recognition.gallery import GalleryIndex
from .utils.cache import get_gallery_hash, load_cache, save_cache

logger = get_logger(__name__)


def fetch_identity_records(config: Config) -> List[Dict[str, Any]]:
    """
    Fetch identity rows of the configured group.

    Args:
        config: Service configuration

    Returns:
        List of {'id', 'name', 'embeddings'} dicts

    Raises:
        requests.exceptions.RequestException: On HTTP failure
    """
    url = f"{config.backend_url.rstrip('/')}/api/groups/{config.group_id}/identities"
    response = requests.get(url, timeout=10)
    response.raise_for_status()
    records = response.json()

    logger.info(f'Fetched {len(records)} identities for group {config.group_id}')
    return records


def load_gallery_from_backend(config: Config) -> GalleryIndex:
    """
    Build the gallery for the configured group.

    Falls back to the on-disk cache for the same group when the backend
    cannot be reached.

    Args:
        config: Service configuration

    Returns:
        GalleryIndex

    Raises:
        ConfigurationError: If no group is configured or no gallery is available
    """
    if not config.group_id:
        raise ConfigurationError('No group configured (set GROUP_ID or --group-id)')

    logger.info(f'Loading gallery for group {config.group_id}...')

    cached_records, cached_group, cached_hash = load_cache(config.cache_file)

    try:
        records = fetch_identity_records(config)
    except requests.exceptions.RequestException as e:
        logger.error(f'Failed to fetch gallery from backend: {e}')
        if cached_records and cached_group == config.group_id:
            logger.warning(f'Using cached gallery ({len(cached_records)} identities)')
            return GalleryIndex.from_records(cached_records)
        raise ConfigurationError(f'No gallery available for group {config.group_id}') from e

    gallery = GalleryIndex.from_records(records)

    current_hash = get_gallery_hash(records)
    if cached_group != config.group_id or cached_hash != current_hash:
        save_cache(records, config.group_id, current_hash, config.cache_file)

    logger.info(
        f'Gallery ready: {gallery.usable_count}/{len(gallery)} identities '
        f'with reference embeddings'
    )
    return gallery
