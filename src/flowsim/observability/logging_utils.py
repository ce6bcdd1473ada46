from __future__ import annotations

import os
from typing import Any, Dict

_SENSITIVE_KEYS = {
    "email",
    "emailaddress1",
    "emailaddress2",
    "telephone1",
    "mobilephone",
    "phone",
    "authorization",
    "access_token",
    "password",
    "secret",
    "token",
    "filecontent",
}


def _env_bool(name: str, default: bool = True) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def redact_value(key: str, value: Any) -> Any:
    if key.lower() in _SENSITIVE_KEYS and value not in (None, ""):
        return "[REDACTED]"
    if isinstance(value, dict):
        return redact_payload(value)
    return value


def redact_payload(payload: Dict[str, Any] | None) -> Dict[str, Any]:
    """
    Mask sensitive record attributes before they reach log output.
    """

    if not payload:
        return {}
    if not _env_bool("FLOWSIM_LOG_REDACT", True):
        return dict(payload)
    return {key: redact_value(str(key), value) for key, value in payload.items()}


def summarize_payload(payload: Dict[str, Any] | None, limit: int = 8) -> str:
    redacted = redact_payload(payload)
    keys = list(redacted.keys())
    shown = ", ".join(f"{key}={redacted[key]!r}" for key in keys[:limit])
    if len(keys) > limit:
        shown += f", ... (+{len(keys) - limit} more)"
    return "{" + shown + "}"
