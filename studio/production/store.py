"""
JSON-file key-value store for saved projects and characters.

Media references inside records (URIs, base64 blobs) are opaque strings.
"""

import json
import logging
import os
import time
import uuid
from typing import Optional

logger = logging.getLogger("store")


def _sort_key(record: dict):
    created = record.get("createdAt", record.get("timestamp", 0))
    return created if isinstance(created, (int, float)) else 0


class JsonStore:
    """One JSON file holding a list of records keyed by ``key``."""

    def __init__(self, path: str, key: str = "id"):
        self.path = path
        self.key = key
        self._records = self._load()

    def _load(self) -> list:
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Store file must contain a JSON list: {self.path}")
        return data

    def _save(self):
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._records, f, ensure_ascii=False, indent=2)

    def list(self) -> list:
        """All records, newest first."""
        return sorted(self._records, key=_sort_key, reverse=True)

    def get(self, record_id: str) -> Optional[dict]:
        for record in self._records:
            if record.get(self.key) == record_id:
                return record
        return None

    def save(self, record: dict) -> dict:
        """Insert or replace by key. A missing id or creation time is filled in."""
        record = dict(record)
        record.setdefault(self.key, uuid.uuid4().hex[:12])
        if "createdAt" not in record and "timestamp" not in record:
            record["createdAt"] = int(time.time() * 1000)

        for idx, existing in enumerate(self._records):
            if existing.get(self.key) == record[self.key]:
                self._records[idx] = record
                break
        else:
            self._records.append(record)

        self._save()
        logger.info(f"💾 Saved {record[self.key]} → {os.path.basename(self.path)}")
        return record

    def delete(self, record_id: str) -> bool:
        before = len(self._records)
        self._records = [r for r in self._records if r.get(self.key) != record_id]
        if len(self._records) == before:
            return False
        self._save()
        return True
