from marketplace.extensions.extension import db
from datetime import datetime


class StoredDocument(db.Model):
    """Backing row for the document store: one schema-less document per (collection, id)."""
    __tablename__ = 'documents'

    collection = db.Column(db.String(64), primary_key=True)
    id = db.Column(db.String(64), primary_key=True)
    data = db.Column(db.JSON, nullable=False, default=dict)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    # Promoted out of `data` so live-document filters stay server-side
    deleted_at = db.Column(db.String(40), nullable=True, index=True)

    __table_args__ = (
        db.Index('ix_documents_collection_created', 'collection', 'created_at'),
    )

    def __repr__(self):
        return f'<StoredDocument {self.collection}/{self.id} v{self.version}>'
