from __future__ import annotations

from ..extensions import db
from storedesk.time_utils import to_utc_z, utcnow


class StorageEntry(db.Model):
    """
    One key of the local key-value storage.

    The value is the JSON text of a whole collection (or a single session
    object). Writes replace the value wholesale; there is no per-record row.
    """
    __tablename__ = "storage_entries"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<StorageEntry key={self.key!r}>"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "size": len(self.value or ""),
            "updated_at": to_utc_z(self.updated_at),
        }
