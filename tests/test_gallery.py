import numpy as np
import pytest

from attendance_service.errors import ConfigurationError
from attendance_service.recognition.gallery import GalleryIndex, Identity

from conftest import make_gallery, unit


def test_from_records_builds_identities():
    gallery = make_gallery(
        ('a', 'Alice', [unit(0), unit(1)]),
        ('b', 'Bob', [unit(2)]),
    )

    assert len(gallery) == 2
    assert gallery.dimension == 4
    assert gallery.usable_count == 2
    assert 'a' in gallery
    assert gallery.get('a').display_name == 'Alice'
    assert gallery.get('a').references.shape == (2, 4)
    assert [identity.identity_id for identity in gallery] == ['a', 'b']


def test_identity_without_embeddings_is_kept_but_not_usable():
    gallery = make_gallery(('a', 'Alice', [unit(0)]), ('b', 'Bob', []))

    assert len(gallery) == 2
    assert gallery.usable_count == 1
    assert not gallery.get('b').has_references


def test_missing_name_falls_back_to_id():
    gallery = GalleryIndex.from_records([{'id': 7, 'embeddings': [[1.0, 0.0]]}])
    assert gallery.get('7').display_name == '7'


def test_mixed_dimensions_across_identities_are_rejected():
    with pytest.raises(ConfigurationError):
        make_gallery(('a', 'Alice', [unit(0, dim=4)]), ('b', 'Bob', [unit(0, dim=3)]))


def test_mixed_dimensions_within_identity_are_rejected():
    with pytest.raises(ConfigurationError):
        GalleryIndex.from_records([{'id': 'a', 'name': 'A', 'embeddings': [[1.0, 0.0], [1.0]]}])


@pytest.mark.parametrize('row', [
    {'name': 'No id', 'embeddings': [[1.0, 0.0]]},
    {'id': 'a', 'name': 'A', 'embeddings': [['x', 'y']]},
    'not-a-row',
])
def test_malformed_rows_are_rejected(row):
    with pytest.raises(ConfigurationError):
        GalleryIndex.from_records([row])


def test_duplicate_ids_are_rejected():
    refs = np.array([[1.0, 0.0]])
    with pytest.raises(ConfigurationError):
        GalleryIndex([Identity('a', 'A', refs), Identity('a', 'A again', refs)])


def test_zero_dimensional_embeddings_are_rejected():
    with pytest.raises(ConfigurationError):
        GalleryIndex([Identity('a', 'A', np.empty((1, 0)))])


@pytest.mark.parametrize('rows', [
    [],
    [('a', 'Alice', [])],
])
def test_gallery_without_usable_identities_cannot_start_a_session(rows):
    gallery = make_gallery(*rows)
    with pytest.raises(ConfigurationError):
        gallery.validate_for_session()


def test_usable_gallery_validates():
    make_gallery(('a', 'Alice', [unit(0)])).validate_for_session()
