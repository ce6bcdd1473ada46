"""
Centralized configuration loader for the simulator runtime, logging and server.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_UNTIL_LIMIT = 60
DEFAULT_MAX_DISPATCH_DEPTH = 8


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    try:
        value = int(environ.get(name, default))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _env_bool(environ: Mapping[str, str], name: str, default: bool = True) -> bool:
    val = environ.get(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class FlowsimConfig:
    default_until_limit: int = DEFAULT_UNTIL_LIMIT
    max_dispatch_depth: int = DEFAULT_MAX_DISPATCH_DEPTH
    log_level: str = "INFO"
    log_redact: bool = True
    server_host: str = "127.0.0.1"
    server_port: int = 8000


def load_config(env: Optional[Mapping[str, str]] = None) -> FlowsimConfig:
    environ = env if env is not None else os.environ
    level = (environ.get("FLOWSIM_LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    return FlowsimConfig(
        default_until_limit=_env_int(environ, "FLOWSIM_DEFAULT_UNTIL_LIMIT", DEFAULT_UNTIL_LIMIT),
        max_dispatch_depth=_env_int(environ, "FLOWSIM_MAX_DISPATCH_DEPTH", DEFAULT_MAX_DISPATCH_DEPTH),
        log_level=level,
        log_redact=_env_bool(environ, "FLOWSIM_LOG_REDACT", True),
        server_host=environ.get("FLOWSIM_SERVER_HOST") or "127.0.0.1",
        server_port=_env_int(environ, "FLOWSIM_SERVER_PORT", 8000),
    )


def configure_logging(config: FlowsimConfig | None = None) -> None:
    """Attach a basic stream handler to the flowsim logger tree."""
    cfg = config or load_config()
    logger = logging.getLogger("flowsim")
    logger.setLevel(cfg.log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
