# Overview: Key-value storage primitives; JSON values persisted one row per key.

"""
Local Key-Value Storage

A flat mapping from string keys to JSON values, persisted in the
``storage_entries`` table. This is the only persistence primitive in the
system: it performs no validation, no tenant filtering and no merging.

CONTRACT:
- get(key, default) returns the decoded JSON value, or ``default`` when the
  key is absent
- set(key, value) replaces the whole value (last write wins)
- remove(key) deletes the key; removing an absent key is a no-op

Malformed JSON in a stored value raises StorageDecodeError rather than being
replaced by a default.
"""

from __future__ import annotations

import json
from typing import Any

from ..extensions import db
from ..models import StorageEntry, StorageDecodeError
from storedesk.time_utils import utcnow


class KeyValueStore:
    def get(self, key: str, default: Any = None) -> Any:
        entry = db.session.get(StorageEntry, key)
        if entry is None:
            return default
        try:
            return json.loads(entry.value)
        except json.JSONDecodeError as exc:
            raise StorageDecodeError(key, f"invalid JSON ({exc.msg})")

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        entry = db.session.get(StorageEntry, key)
        if entry is None:
            db.session.add(StorageEntry(key=key, value=payload))
        else:
            entry.value = payload
            entry.updated_at = utcnow()
        db.session.commit()

    def remove(self, key: str) -> None:
        entry = db.session.get(StorageEntry, key)
        if entry is None:
            return
        db.session.delete(entry)
        db.session.commit()

    def keys(self) -> list[str]:
        return [row.key for row in db.session.query(StorageEntry.key).order_by(StorageEntry.key).all()]

