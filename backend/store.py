from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from kv_store import Key, KeyValueStore, split_key

from . import models

logger = logging.getLogger(__name__)


class SqlStore(KeyValueStore):
    """KeyValueStore backed by the state_entries table. Every write commits."""

    def __init__(self, db: Session):
        self.db = db

    def _entry(self, key: Key):
        namespace, owner, qualifier = split_key(key)
        return self.db.get(models.StateEntry, (namespace, owner, qualifier))

    def get(self, key: Key, default: Any = None) -> Any:
        entry = self._entry(key)
        if entry is None:
            return default
        try:
            return json.loads(entry.data_json)
        except json.JSONDecodeError:
            logger.warning("Corrupt state entry %r, treating as missing", key)
            return default

    def set(self, key: Key, value: Any) -> None:
        entry = self._entry(key)
        if entry is None:
            namespace, owner, qualifier = split_key(key)
            entry = models.StateEntry(namespace=namespace, owner=owner, qualifier=qualifier)
            self.db.add(entry)
        entry.data_json = json.dumps(value)
        self.db.commit()

    def delete(self, key: Key) -> None:
        entry = self._entry(key)
        if entry is not None:
            self.db.delete(entry)
            self.db.commit()
