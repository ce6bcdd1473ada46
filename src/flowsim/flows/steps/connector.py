from __future__ import annotations

import dataclasses
import logging
from typing import Mapping

from ...errors import ActionExecutionError, format_error
from ...expressions import ExpressionEvaluator, is_expression
from ...records.query import parse_filter
from ..context import ExecutionContext
from ..models import ActionResult, ConnectorAction, RecordAction

logger = logging.getLogger("flowsim.engine")

__all__ = ["FlowEngineConnectorMixin"]


class FlowEngineConnectorMixin:
    def _run_connector(self, action: ConnectorAction, context: ExecutionContext) -> ActionResult:
        evaluator = self._evaluator(context)
        resolved = self._resolve_connector_action(action, evaluator)
        handler = self.handlers.require(resolved)
        try:
            outputs = handler.execute(resolved, self.record_store, context)
            if outputs is None:
                outputs = {}
            elif not isinstance(outputs, Mapping):
                raise ActionExecutionError(
                    f"Handler for '{action.name}' returned {type(outputs).__name__}, expected an object"
                )
        except Exception as exc:  # handler code is user supplied
            logger.debug("Handler %s raised for '%s'", type(handler).__name__, action.name, exc_info=True)
            return self._failure(action, format_error(exc))
        return self._success(action, outputs)

    def _resolve_connector_action(self, action: ConnectorAction, evaluator: ExpressionEvaluator) -> ConnectorAction:
        if not isinstance(action, RecordAction):
            return dataclasses.replace(action, parameters=self._resolve_value(action.parameters, evaluator))
        # Record actions carry their inputs in typed fields; raw parameters stay unevaluated.
        query = action.query
        if query.filter_text and (query.filter is None or is_expression(query.filter_text)):
            text = evaluator.evaluate(query.filter_text)
            text = None if text is None else str(text)
            query = dataclasses.replace(query, filter=parse_filter(text), filter_text=text)
        return dataclasses.replace(
            action,
            record_type=str(self._resolve_value(action.record_type, evaluator) or ""),
            record_id=self._resolve_value(action.record_id, evaluator),
            attributes=self._resolve_value(action.attributes, evaluator),
            column_name=self._resolve_value(action.column_name, evaluator),
            file_name=self._resolve_value(action.file_name, evaluator),
            file_content=self._resolve_value(action.file_content, evaluator),
            query=query,
        )
