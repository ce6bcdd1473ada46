"""
Built-in handler executing record actions against the record store.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict

from ..errors import ActionExecutionError, RecordStoreError
from ..flows.context import ExecutionContext
from ..flows.models import RECORD_CAPABILITY, ConnectorAction, RecordAction, RecordOperation
from ..records.store import InMemoryRecordStore, encode_file, primary_key

logger = logging.getLogger("flowsim.handlers.records")


class RecordStoreHandler:
    capability = RECORD_CAPABILITY

    def can_handle(self, action: ConnectorAction) -> bool:
        return isinstance(action, RecordAction)

    def execute(self, action: ConnectorAction, record_store: Any, context: ExecutionContext) -> Dict[str, Any]:
        if not isinstance(action, RecordAction):
            raise ActionExecutionError(f"Action '{action.name}' is not a record action.")
        if record_store is None:
            raise ActionExecutionError("No record store is attached to the simulator.")
        if not action.record_type:
            raise ActionExecutionError(f"Action '{action.name}' needs an entity name.")
        operation = action.record_operation
        try:
            if operation is RecordOperation.CREATE:
                return self._create(action, record_store)
            if operation is RecordOperation.RETRIEVE:
                return self._retrieve(action, record_store)
            if operation is RecordOperation.UPDATE:
                return self._update(action, record_store)
            if operation is RecordOperation.DELETE:
                return self._delete(action, record_store)
            if operation is RecordOperation.LIST:
                return self._list(action, record_store)
            if operation is RecordOperation.UPLOAD_FILE:
                return self._upload(action, record_store)
            if operation is RecordOperation.DOWNLOAD_FILE:
                return self._download(action, record_store)
        except RecordStoreError as exc:
            raise ActionExecutionError(exc.message) from exc
        raise ActionExecutionError(f"Unsupported record operation '{operation.value}'.")

    def _require_id(self, action: RecordAction) -> str:
        if action.record_id is None or str(action.record_id).strip() == "":
            raise ActionExecutionError(
                f"Action '{action.name}' needs a record id for {action.record_operation.value}."
            )
        return str(action.record_id)

    def _create(self, action: RecordAction, store: InMemoryRecordStore) -> Dict[str, Any]:
        record_id = store.create(action.record_type, action.attributes)
        record = store.retrieve(action.record_type, record_id)
        return {
            "id": record_id,
            primary_key(action.record_type): record_id,
            "recordType": action.record_type.lower(),
            "body": record,
        }

    def _retrieve(self, action: RecordAction, store: InMemoryRecordStore) -> Dict[str, Any]:
        record = store.retrieve(action.record_type, self._require_id(action))
        if action.query.select:
            record = {k: v for k, v in record.items() if k == "id" or k == primary_key(action.record_type) or k in action.query.select}
        return record

    def _update(self, action: RecordAction, store: InMemoryRecordStore) -> Dict[str, Any]:
        record_id = self._require_id(action)
        updated = store.update(action.record_type, record_id, action.attributes)
        return {"id": updated["id"], primary_key(action.record_type): updated["id"], "success": True}

    def _delete(self, action: RecordAction, store: InMemoryRecordStore) -> Dict[str, Any]:
        record_id = self._require_id(action)
        store.delete(action.record_type, record_id)
        return {"success": True, "deletedId": record_id}

    def _list(self, action: RecordAction, store: InMemoryRecordStore) -> Dict[str, Any]:
        rows, total = store.query(action.record_type, action.query)
        outputs: Dict[str, Any] = {"value": rows, "count": len(rows)}
        if action.query.include_count:
            outputs["@odata.count"] = total
        return outputs

    def _upload(self, action: RecordAction, store: InMemoryRecordStore) -> Dict[str, Any]:
        record_id = self._require_id(action)
        if not action.column_name:
            raise ActionExecutionError(f"Action '{action.name}' needs a column name to upload a file.")
        content = _as_bytes(action.file_content)
        stored = store.upload_file(action.record_type, record_id, action.column_name, str(action.file_name or ""), content)
        return {"success": True, "fileName": stored.file_name, "size": len(stored.content)}

    def _download(self, action: RecordAction, store: InMemoryRecordStore) -> Dict[str, Any]:
        record_id = self._require_id(action)
        if not action.column_name:
            raise ActionExecutionError(f"Action '{action.name}' needs a column name to download a file.")
        stored = store.download_file(action.record_type, record_id, action.column_name)
        return {
            "fileName": stored.file_name,
            "fileContent": encode_file(stored.content),
            "mimeType": stored.mime_type,
            "size": len(stored.content),
        }


def _as_bytes(content: Any) -> bytes:
    if content is None:
        raise ActionExecutionError("File upload needs file content.")
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    text = str(content)
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        logger.debug("File content is not base64; storing it as UTF-8 text")
        return text.encode("utf-8")
