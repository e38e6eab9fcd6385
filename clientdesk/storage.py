"""Flat-file record store.

Each collection (clients, projects, invoices, users, notifications) is one
JSON array persisted as ``<data_dir>/<collection>.json``. Every write rewrites
the whole file. There is no locking and no multi-record transaction: a
composite operation is a sequence of independent read-modify-write cycles and
the last overwrite wins.
"""

import json
import logging
import random
import string
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "clients", "projects", "invoices", "notifications")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Millisecond timestamp followed by a 9 char base-36 suffix."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}{suffix}"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JSONFileStore:
    """JSON file store, one file per collection.

    A missing or unreadable file is treated as an empty collection, so a fresh
    deployment starts with no records instead of failing.
    """

    def __init__(self, data_dir: str = "db"):
        self.data_dir = Path(data_dir)

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def get_all(self, collection: str) -> list[dict]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Unreadable {path.name}, treating as empty: {e}")
            return []
        if not isinstance(data, list):
            logger.warning(f"{path.name} does not hold an array, treating as empty")
            return []
        return data

    def write_all(self, collection: str, records: list[dict]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._path(collection).write_text(json.dumps(records, indent=2, default=str))

    def find_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        return next(
            (r for r in self.get_all(collection) if r.get("id") == record_id), None
        )

    def create(self, collection: str, record: dict) -> dict:
        records = self.get_all(collection)
        now = utcnow_iso()
        new_record = {"id": generate_id()}
        new_record.update((k, v) for k, v in record.items() if k != "id")
        if not new_record.get("createdAt"):
            new_record["createdAt"] = now
        if not new_record.get("updatedAt"):
            new_record["updatedAt"] = new_record["createdAt"]
        records.append(new_record)
        self.write_all(collection, records)
        return new_record

    def update(self, collection: str, record_id: str, changes: dict) -> Optional[dict]:
        records = self.get_all(collection)
        for i, record in enumerate(records):
            if record.get("id") == record_id:
                records[i] = {**record, "updatedAt": utcnow_iso(), **changes}
                records[i]["id"] = record_id
                self.write_all(collection, records)
                return records[i]
        return None

    def delete(self, collection: str, record_id: str) -> bool:
        records = self.get_all(collection)
        remaining = [r for r in records if r.get("id") != record_id]
        if len(remaining) == len(records):
            return False
        self.write_all(collection, remaining)
        return True

    def describe(self) -> dict:
        """Per-collection record counts, used by the health endpoint."""
        return {
            "backend": self.__class__.__name__,
            "data_dir": str(self.data_dir),
            "collections": {c: len(self.get_all(c)) for c in COLLECTIONS},
        }
