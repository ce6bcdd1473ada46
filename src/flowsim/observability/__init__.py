"""Logging helpers shared by the engine, dispatcher and server."""

from .logging_utils import redact_payload, summarize_payload

__all__ = ["redact_payload", "summarize_payload"]
