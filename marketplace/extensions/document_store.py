"""
Document store adapter.

Exposes the SQL database as named collections of schema-less JSON documents
addressed by id. Every write bumps a per-document ``version``; updates are
compare-and-set on that version, so two writers racing on the same document
cannot silently overwrite each other.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from marketplace.models.document import StoredDocument

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """The underlying database rejected or failed an operation."""


class DocumentNotFoundError(DocumentStoreError):
    pass


class DocumentExistsError(DocumentStoreError):
    pass


class ConcurrencyError(DocumentStoreError):
    """The document changed between read and write."""

    def __init__(self, collection, doc_id, expected_version=None):
        self.collection = collection
        self.doc_id = doc_id
        self.expected_version = expected_version
        super().__init__(f"Document {collection}/{doc_id} was modified concurrently")


@dataclass
class DocumentSnapshot:
    id: str
    data: dict = field(default_factory=dict)
    version: int = 1

    def get(self, key, default=None):
        return self.data.get(key, default)


def _snapshot(row):
    return DocumentSnapshot(id=row.id, data=dict(row.data or {}), version=row.version)


class Query:
    """Server-side filtered, ordered and paginated read over one collection."""

    def __init__(self, collection):
        self._collection = collection
        self._filters = [StoredDocument.collection == collection.name]
        self._order = []
        self._offset = None
        self._limit = None

    def where(self, field_name, value):
        if field_name == 'deleted_at' and value is None:
            self._filters.append(StoredDocument.deleted_at.is_(None))
            return self
        column = StoredDocument.data[field_name]
        if value is None:
            self._filters.append(column.as_string().is_(None))
        elif isinstance(value, bool):
            self._filters.append(column.as_boolean() == value)
        elif isinstance(value, int):
            self._filters.append(column.as_integer() == value)
        elif isinstance(value, float):
            self._filters.append(column.as_float() == value)
        else:
            self._filters.append(column.as_string() == str(value))
        return self

    def where_contains(self, field_name, text):
        """Case-insensitive substring match on a string field."""
        column = func.lower(StoredDocument.data[field_name].as_string())
        self._filters.append(column.contains(text.lower(), autoescape=True))
        return self

    def live(self):
        return self.where('deleted_at', None)

    def order_by(self, field_name='created_at', descending=False, numeric=False):
        if field_name == 'created_at':
            column = StoredDocument.created_at
        elif numeric:
            column = StoredDocument.data[field_name].as_float()
        else:
            column = StoredDocument.data[field_name].as_string()
        self._order.append(column.desc() if descending else column.asc())
        return self

    def offset(self, offset):
        self._offset = offset
        return self

    def limit(self, limit):
        self._limit = limit
        return self

    def _base(self):
        return StoredDocument.query.filter(*self._filters)

    def stream(self):
        query = self._base()
        if self._order:
            query = query.order_by(*self._order)
        # Tie-breaker keeps pagination stable for equal sort keys
        query = query.order_by(StoredDocument.id.asc())
        if self._offset:
            query = query.offset(self._offset)
        if self._limit is not None:
            query = query.limit(self._limit)
        try:
            return [_snapshot(row) for row in query.all()]
        except SQLAlchemyError as e:
            logger.error(f"Query on {self._collection.name} failed: {str(e)}")
            raise DocumentStoreError(str(e)) from e

    def first(self):
        results = self.limit(1).stream()
        return results[0] if results else None

    def count(self):
        try:
            return self._base().count()
        except SQLAlchemyError as e:
            logger.error(f"Count on {self._collection.name} failed: {str(e)}")
            raise DocumentStoreError(str(e)) from e


class Collection:
    def __init__(self, store, name):
        self.store = store
        self.name = name

    @property
    def session(self):
        return self.store.db.session

    @staticmethod
    def new_id():
        return uuid.uuid4().hex

    def _row(self, doc_id):
        return self.session.get(StoredDocument, (self.name, doc_id), populate_existing=True)

    def get(self, doc_id):
        """Return the snapshot for ``doc_id`` (soft-deleted or not), or None."""
        if not doc_id:
            return None
        try:
            row = self._row(str(doc_id))
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DocumentStoreError(str(e)) from e
        return _snapshot(row) if row else None

    def create(self, doc_id, data):
        row = StoredDocument(
            collection=self.name,
            id=str(doc_id),
            data=dict(data),
            version=1,
            deleted_at=data.get('deleted_at'),
        )
        try:
            self.session.add(row)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DocumentExistsError(f"Document {self.name}/{doc_id} already exists") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to create {self.name}/{doc_id}: {str(e)}")
            raise DocumentStoreError(str(e)) from e
        return DocumentSnapshot(id=row.id, data=dict(data), version=1)

    def update(self, doc_id, fields, expected_version=None):
        """
        Shallow-merge ``fields`` into the stored document.

        The write only commits if the stored version still matches the one
        that was read (or ``expected_version`` when the caller supplies it);
        otherwise ``ConcurrencyError`` is raised and nothing is written.
        """
        doc_id = str(doc_id)
        try:
            row = self._row(doc_id)
            if row is None:
                raise DocumentNotFoundError(f"Document {self.name}/{doc_id} not found")
            current_version = row.version
            if expected_version is not None and current_version != expected_version:
                raise ConcurrencyError(self.name, doc_id, expected_version)

            merged = dict(row.data or {})
            merged.update(fields)
            result = self.session.execute(
                update(StoredDocument)
                .where(
                    StoredDocument.collection == self.name,
                    StoredDocument.id == doc_id,
                    StoredDocument.version == current_version,
                )
                .values(
                    data=merged,
                    version=current_version + 1,
                    updated_at=datetime.utcnow(),
                    deleted_at=merged.get('deleted_at'),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                raise ConcurrencyError(self.name, doc_id, current_version)
            self.session.commit()
        except DocumentStoreError:
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to update {self.name}/{doc_id}: {str(e)}")
            raise DocumentStoreError(str(e)) from e
        return DocumentSnapshot(id=doc_id, data=merged, version=current_version + 1)

    def query(self):
        return Query(self)

    def where(self, field_name, value):
        return self.query().where(field_name, value)


class DocumentStore:
    """Handle onto the database, constructed once by the app factory and passed to each model."""

    def __init__(self, db):
        self.db = db
        self._collections = {}

    def collection(self, name):
        if name not in self._collections:
            self._collections[name] = Collection(self, name)
        return self._collections[name]
