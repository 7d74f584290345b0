# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

lib_logger = logging.getLogger("repin_app.settings")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765
DEFAULT_STORE_FILE = "data/repin_store.json"
DEFAULT_BRIDGE_URL = "http://127.0.0.1:9223"
DEFAULT_BRIDGE_TIMEOUT = 5.0
DEFAULT_LOG_DIR = "logs"

TRUE_VALUES = {"1", "true", "yes", "on"}


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in TRUE_VALUES


def _as_int(name: str, value: Optional[str], default: int) -> int:
    if value is None or not str(value).strip():
        return default
    try:
        return int(value)
    except ValueError:
        lib_logger.warning(f"Invalid {name} '{value}'. Falling back to {default}.")
        return default


def _as_float(name: str, value: Optional[str], default: float) -> float:
    if value is None or not str(value).strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        lib_logger.warning(f"Invalid {name} '{value}'. Falling back to {default}s.")
        return default
    if parsed <= 0:
        lib_logger.warning(f"Invalid {name} '{value}'. Falling back to {default}s.")
        return default
    return parsed


@dataclass
class AppSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    store_file: Path = Path(DEFAULT_STORE_FILE)
    bridge_url: str = DEFAULT_BRIDGE_URL
    bridge_timeout: float = DEFAULT_BRIDGE_TIMEOUT
    log_dir: Path = Path(DEFAULT_LOG_DIR)
    api_key: Optional[str] = None
    apply_on_start: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppSettings":
        env = os.environ if environ is None else environ
        api_key = (env.get("REPIN_API_KEY") or "").strip() or None
        return cls(
            host=(env.get("REPIN_HOST") or DEFAULT_HOST).strip(),
            port=_as_int("REPIN_PORT", env.get("REPIN_PORT"), DEFAULT_PORT),
            store_file=Path(env.get("REPIN_STORE_FILE") or DEFAULT_STORE_FILE),
            bridge_url=(env.get("REPIN_BRIDGE_URL") or DEFAULT_BRIDGE_URL).rstrip("/"),
            bridge_timeout=_as_float(
                "REPIN_BRIDGE_TIMEOUT",
                env.get("REPIN_BRIDGE_TIMEOUT"),
                DEFAULT_BRIDGE_TIMEOUT,
            ),
            log_dir=Path(env.get("REPIN_LOG_DIR") or DEFAULT_LOG_DIR),
            api_key=api_key,
            apply_on_start=_as_bool(env.get("REPIN_APPLY_ON_START"), default=False),
        )
