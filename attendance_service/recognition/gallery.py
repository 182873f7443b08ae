"""
Gallery module.

In-memory, read-only view of the identities enrolled in the active group.
Built once per session from rows supplied by the backend.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

import numpy as np

from ..errors import ConfigurationError
from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class Identity:
    """
    An enrolled person.

    Attributes:
        identity_id: Backend identifier
        display_name: Human readable name
        references: Reference embeddings, shape (n, d); n may be 0
    """

    identity_id: str
    display_name: str
    references: np.ndarray

    @property
    def has_references(self) -> bool:
        return self.references.shape[0] > 0


class GalleryIndex:
    """
    Mapping of identity id to Identity.

    All reference embeddings share one dimensionality. Iteration order is
    the enrollment order, which the matcher relies on for tie-breaking.
    """

    def __init__(self, identities: Iterable[Identity]):
        self._identities: Dict[str, Identity] = {}
        self.dimension: Optional[int] = None

        for identity in identities:
            if identity.identity_id in self._identities:
                raise ConfigurationError(f'Duplicate identity id {identity.identity_id}')

            if identity.has_references:
                dim = int(identity.references.shape[1])
                if dim == 0:
                    raise ConfigurationError(
                        f'Identity {identity.identity_id} has zero-length embeddings'
                    )
                if self.dimension is None:
                    self.dimension = dim
                elif dim != self.dimension:
                    raise ConfigurationError(
                        f'Identity {identity.identity_id} has {dim}-d embeddings, '
                        f'gallery uses {self.dimension}-d'
                    )

            self._identities[identity.identity_id] = identity

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> 'GalleryIndex':
        """
        Build the index from backend rows.

        Args:
            records: Dicts with 'id', 'name' and 'embeddings' (list of vectors)

        Returns:
            GalleryIndex

        Raises:
            ConfigurationError: If a row is malformed
        """
        identities: List[Identity] = []

        for row in records:
            try:
                identity_id = str(row['id'])
                vectors = [
                    np.asarray(v, dtype=np.float64).ravel()
                    for v in row.get('embeddings') or []
                ]
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise ConfigurationError(f'Malformed gallery row: {e!r}') from e

            lengths = {len(v) for v in vectors}
            if len(lengths) > 1:
                raise ConfigurationError(
                    f"Identity {identity_id} has embeddings of mixed length {sorted(lengths)}"
                )

            if vectors:
                references = np.vstack(vectors)
            else:
                references = np.empty((0, 0), dtype=np.float64)
                logger.warning(f"Identity {identity_id} has no reference embeddings")

            identities.append(Identity(
                identity_id=identity_id,
                display_name=row.get('name') or identity_id,
                references=references,
            ))

        return cls(identities)

    def __len__(self) -> int:
        return len(self._identities)

    def __iter__(self) -> Iterator[Identity]:
        return iter(self._identities.values())

    def __contains__(self, identity_id: str) -> bool:
        return identity_id in self._identities

    def get(self, identity_id: str) -> Optional[Identity]:
        return self._identities.get(identity_id)

    @property
    def usable_count(self) -> int:
        """Number of identities with at least one reference embedding."""
        return sum(1 for identity in self._identities.values() if identity.has_references)

    def validate_for_session(self) -> None:
        """
        Refuse galleries a session cannot work with.

        Raises:
            ConfigurationError: If no identity has a usable reference
        """
        if self.usable_count == 0 or not self.dimension:
            raise ConfigurationError('Gallery has no identities with reference embeddings')
