"""URI decomposition functions."""

from __future__ import annotations

from urllib.parse import urlsplit

from ...errors import EvaluationError
from .registry import builtin, require_text

_DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21}


def _split(value, fn_name: str):
    text = require_text(value, fn_name)
    parts = urlsplit(text)
    if not parts.scheme or not parts.netloc:
        raise EvaluationError(f"{fn_name}() expected an absolute URI but got {text!r}")
    return parts


@builtin("uriHost", min_args=1, max_args=1)
def uri_host(rt, uri) -> str:
    return _split(uri, "uriHost").hostname or ""


@builtin("uriPath", min_args=1, max_args=1)
def uri_path(rt, uri) -> str:
    return _split(uri, "uriPath").path or "/"


@builtin("uriQuery", min_args=1, max_args=1)
def uri_query(rt, uri) -> str:
    query = _split(uri, "uriQuery").query
    return f"?{query}" if query else ""


@builtin("uriPathAndQuery", min_args=1, max_args=1)
def uri_path_and_query(rt, uri) -> str:
    parts = _split(uri, "uriPathAndQuery")
    return (parts.path or "/") + (f"?{parts.query}" if parts.query else "")


@builtin("uriScheme", min_args=1, max_args=1)
def uri_scheme(rt, uri) -> str:
    return _split(uri, "uriScheme").scheme


@builtin("uriPort", min_args=1, max_args=1)
def uri_port(rt, uri) -> int:
    parts = _split(uri, "uriPort")
    if parts.port is not None:
        return parts.port
    return _DEFAULT_PORTS.get(parts.scheme.lower(), -1)
