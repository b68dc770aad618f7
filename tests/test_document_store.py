"""
Document store tests.

Verifies:
- Compare-and-set updates reject stale writers
- Soft-deleted documents stay stored but are hidden from live reads
- Filtering, ordering and pagination run in the query
"""

import pytest

from marketplace.extensions.document_store import ConcurrencyError, DocumentExistsError


@pytest.fixture
def things(app, services):
    return services.store.collection('things')


class TestVersioning:

    def test_create_starts_at_version_one(self, things):
        snapshot = things.create('a', {'n': 1})
        assert snapshot.version == 1
        assert things.get('a').data == {'n': 1}

    def test_update_merges_and_bumps_version(self, things):
        things.create('a', {'n': 1, 'label': 'first'})
        snapshot = things.update('a', {'n': 2})
        assert snapshot.version == 2
        assert things.get('a').data == {'n': 2, 'label': 'first'}

    def test_stale_write_is_rejected(self, things):
        things.create('a', {'n': 1})
        read = things.get('a')
        things.update('a', {'n': 2})

        with pytest.raises(ConcurrencyError):
            things.update('a', {'n': 3}, expected_version=read.version)
        assert things.get('a').data['n'] == 2
        assert things.get('a').version == 2

    def test_duplicate_id_is_rejected(self, things):
        things.create('a', {'n': 1})
        with pytest.raises(DocumentExistsError):
            things.create('a', {'n': 2})


class TestSoftDelete:

    def test_soft_deleted_product_is_kept(self, services, listed_product):
        services.products.soft_delete(listed_product.product_id)

        assert services.products.find_by_id(listed_product.product_id) is None
        raw = services.products.get_raw(listed_product.product_id)
        assert raw is not None
        assert raw.is_deleted
        assert raw.name == 'Vintage Camera'


class TestQueries:

    def test_where_and_numeric_order(self, things):
        for doc_id, n, kind in [('a', 10, 'x'), ('b', 2, 'x'), ('c', 5, 'y'), ('d', 7, 'x')]:
            things.create(doc_id, {'n': n, 'kind': kind})

        results = things.where('kind', 'x').order_by('n', numeric=True).stream()
        assert [s.id for s in results] == ['b', 'd', 'a']

    def test_offset_limit_and_count(self, things):
        for i in range(5):
            things.create(f"doc{i}", {'n': i})

        query = things.query().order_by('n', numeric=True)
        assert query.count() == 5
        page = things.query().order_by('n', numeric=True).offset(2).limit(2).stream()
        assert [s.data['n'] for s in page] == [2, 3]

    def test_live_excludes_deleted(self, things):
        things.create('a', {'n': 1})
        things.create('b', {'n': 2, 'deleted_at': '2024-01-01T00:00:00+00:00'})
        assert [s.id for s in things.query().live().stream()] == ['a']

    def test_contains_is_case_insensitive(self, things):
        things.create('a', {'name': 'Red Bicycle'})
        things.create('b', {'name': 'Blue Kettle'})
        assert [s.id for s in things.query().where_contains('name', 'bICy').stream()] == ['a']
