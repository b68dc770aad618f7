import logging
from dataclasses import asdict, fields
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def utc_now_iso():
    return datetime.now(timezone.utc).isoformat()


class Record:
    """Mapping layer between a typed dataclass record and its stored document."""

    id_field = 'id'

    @classmethod
    def field_names(cls):
        return {f.name for f in fields(cls)}

    @classmethod
    def from_document(cls, snapshot):
        known = cls.field_names()
        values = {k: v for k, v in snapshot.data.items() if k in known}
        values[cls.id_field] = snapshot.id
        if 'version' in known:
            values['version'] = snapshot.version
        return cls(**values)

    def to_document(self):
        data = asdict(self)
        data.pop(self.id_field, None)
        data.pop('version', None)
        return data

    def to_json(self):
        return asdict(self)

    @property
    def doc_id(self):
        return getattr(self, self.id_field)

    @property
    def is_deleted(self):
        return bool(getattr(self, 'deleted_at', None))


class BaseModel:
    """Persistence operations shared by every entity collection."""

    collection_name = None
    record_class = None
    required_fields = ()
    immutable_fields = ('id', 'created_at')

    def __init__(self, store):
        self.store = store
        self.collection = store.collection(self.collection_name)

    def _check_required(self, data):
        missing = [name for name in self.required_fields if data.get(name) in (None, '')]
        if missing:
            raise ValueError(f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required.")

    def _insert(self, record):
        snapshot = self.collection.create(record.doc_id, record.to_document())
        logger.info(f"Created {self.collection_name}/{snapshot.id}")
        return self.record_class.from_document(snapshot)

    def get_raw(self, doc_id):
        """Load a record even if it is soft-deleted."""
        snapshot = self.collection.get(doc_id)
        return self.record_class.from_document(snapshot) if snapshot else None

    def find_by_id(self, doc_id):
        record = self.get_raw(doc_id)
        if record is None or record.is_deleted:
            return None
        return record

    def find_one_by(self, field_name, value):
        """First live document whose ``field_name`` equals ``value``."""
        snapshot = self.collection.query().where(field_name, value).live().order_by('created_at').first()
        return self.record_class.from_document(snapshot) if snapshot else None

    def find_all_by(self, field_name, value, descending=True):
        snapshots = self.collection.query().where(field_name, value).live().order_by('created_at', descending=descending).stream()
        return [self.record_class.from_document(s) for s in snapshots]

    def paginate(self, query, page=1, limit=10):
        total = query.count()
        snapshots = query.offset((page - 1) * limit).limit(limit).stream()
        items = [self.record_class.from_document(s) for s in snapshots]
        total_pages = (total + limit - 1) // limit if limit else 0
        return items, {
            'page': page,
            'limit': limit,
            'total': total,
            'total_pages': total_pages,
            'has_next': page * limit < total,
            'has_prev': page > 1
        }

    def update(self, doc_id, update_data, expected_version=None):
        data = {k: v for k, v in update_data.items() if k not in self.immutable_fields and k != 'version'}
        data['updated_at'] = utc_now_iso()
        self.collection.update(doc_id, data, expected_version=expected_version)
        return self.find_by_id(doc_id)

    def soft_delete(self, doc_id, expected_version=None):
        now = utc_now_iso()
        self.collection.update(doc_id, {'deleted_at': now, 'updated_at': now}, expected_version=expected_version)
        logger.info(f"Soft deleted {self.collection_name}/{doc_id}")
        return True
