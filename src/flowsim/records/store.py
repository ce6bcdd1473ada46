"""
In-memory record store with a mutation feed for trigger dispatch.
"""

from __future__ import annotations

import base64
import copy
import logging
import mimetypes
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import RecordNotFoundError, RecordStoreError
from .query import QueryOptions, apply_query

logger = logging.getLogger("flowsim.records")

# (mutation, record_type, record, changed_attribute_names)
MutationListener = Callable[[str, str, Dict[str, Any], List[str]], Any]


@dataclass
class StoredFile:
    file_name: str
    content: bytes
    mime_type: str


def primary_key(record_type: str) -> str:
    return f"{record_type.lower()}id"


class InMemoryRecordStore:
    """
    Thread-safe CRUD over per-type dictionaries. Listeners are notified after
    the lock is released so flows can write back into the store.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._files: Dict[Tuple[str, str, str], StoredFile] = {}
        self._listeners: List[MutationListener] = []
        self._lock = threading.RLock()

    def subscribe(self, listener: MutationListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, mutation: str, record_type: str, record: Dict[str, Any], changed: List[str]) -> None:
        for listener in list(self._listeners):
            listener(mutation, record_type, record, changed)

    def _table(self, record_type: str) -> Dict[str, Dict[str, Any]]:
        if not record_type:
            raise RecordStoreError("A record type is required.")
        return self._tables.setdefault(record_type.lower(), {})

    def _normalize_id(self, record_id: Any) -> str:
        if record_id is None or str(record_id).strip() == "":
            raise RecordStoreError("A record id is required.")
        text = str(record_id).strip().strip("{}").lower()
        return text

    def _materialize(self, record_type: str, record_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        snapshot = copy.deepcopy(row)
        snapshot["id"] = record_id
        snapshot[primary_key(record_type)] = record_id
        return snapshot

    def create(self, record_type: str, attributes: Dict[str, Any] | None = None) -> str:
        attrs = {str(k).lower(): v for k, v in (attributes or {}).items()}
        key = primary_key(record_type)
        with self._lock:
            table = self._table(record_type)
            record_id = self._normalize_id(attrs.pop(key, None) or attrs.pop("id", None) or uuid.uuid4())
            if record_id in table:
                raise RecordStoreError(f"A {record_type} record with id {record_id} already exists.")
            table[record_id] = copy.deepcopy(attrs)
            snapshot = self._materialize(record_type, record_id, attrs)
        logger.debug("Created %s %s", record_type, record_id)
        self._notify("create", record_type.lower(), snapshot, sorted(attrs.keys()))
        return record_id

    def retrieve(self, record_type: str, record_id: Any) -> Dict[str, Any]:
        rid = self._normalize_id(record_id)
        with self._lock:
            row = self._table(record_type).get(rid)
            if row is None:
                raise RecordNotFoundError(f"{record_type} with id {rid} does not exist.")
            return self._materialize(record_type, rid, row)

    def exists(self, record_type: str, record_id: Any) -> bool:
        with self._lock:
            return self._normalize_id(record_id) in self._table(record_type)

    def update(self, record_type: str, record_id: Any, attributes: Dict[str, Any]) -> Dict[str, Any]:
        rid = self._normalize_id(record_id)
        key = primary_key(record_type)
        changes = {str(k).lower(): v for k, v in (attributes or {}).items() if str(k).lower() not in {key, "id"}}
        with self._lock:
            table = self._table(record_type)
            row = table.get(rid)
            if row is None:
                raise RecordNotFoundError(f"{record_type} with id {rid} does not exist.")
            row.update(copy.deepcopy(changes))
            snapshot = self._materialize(record_type, rid, row)
        logger.debug("Updated %s %s (%s)", record_type, rid, ", ".join(sorted(changes)))
        self._notify("update", record_type.lower(), snapshot, sorted(changes.keys()))
        return snapshot

    def delete(self, record_type: str, record_id: Any) -> None:
        rid = self._normalize_id(record_id)
        with self._lock:
            table = self._table(record_type)
            row = table.pop(rid, None)
            if row is None:
                raise RecordNotFoundError(f"{record_type} with id {rid} does not exist.")
            for file_key in [k for k in self._files if k[0] == record_type.lower() and k[1] == rid]:
                del self._files[file_key]
            snapshot = self._materialize(record_type, rid, row)
        logger.debug("Deleted %s %s", record_type, rid)
        self._notify("delete", record_type.lower(), snapshot, [])

    def query(self, record_type: str, options: Optional[QueryOptions] = None) -> Tuple[List[Dict[str, Any]], int]:
        with self._lock:
            rows = [self._materialize(record_type, rid, row) for rid, row in self._table(record_type).items()]
        return apply_query(rows, options or QueryOptions())

    def upload_file(self, record_type: str, record_id: Any, column: str, file_name: str, content: bytes) -> StoredFile:
        if not column:
            raise RecordStoreError("A file column name is required.")
        rid = self._normalize_id(record_id)
        mime_type = mimetypes.guess_type(file_name or "")[0] or "application/octet-stream"
        stored = StoredFile(file_name=file_name or "file", content=bytes(content), mime_type=mime_type)
        with self._lock:
            table = self._table(record_type)
            if rid not in table:
                raise RecordNotFoundError(f"{record_type} with id {rid} does not exist.")
            self._files[(record_type.lower(), rid, column.lower())] = stored
            table[rid][f"{column.lower()}_name"] = stored.file_name
        return stored

    def download_file(self, record_type: str, record_id: Any, column: str) -> StoredFile:
        if not column:
            raise RecordStoreError("A file column name is required.")
        rid = self._normalize_id(record_id)
        with self._lock:
            stored = self._files.get((record_type.lower(), rid, column.lower()))
        if stored is None:
            raise RecordNotFoundError(f"No file is stored in {record_type}.{column} for record {rid}.")
        return stored

    def count(self, record_type: str) -> int:
        with self._lock:
            return len(self._table(record_type))

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()
            self._files.clear()


def encode_file(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")
