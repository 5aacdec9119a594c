from __future__ import annotations

import keyword
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_CONFIG = Path("testx.yaml")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class RewriteSettings:
    decorator: str
    default_setup: str
    inner_suffix: str
    result_name: str
    marker_alias: str
    strict_entries: bool

    @property
    def marker_import(self) -> str:
        """Import statement that makes the entry-point marker available."""
        return f"import testx as {self.marker_alias}"

    @property
    def entry_marker(self) -> str:
        return f"{self.marker_alias}.entry_point"


@dataclass
class LoggingSettings:
    level: str
    json_format: bool
    log_file: str | None


@dataclass
class Settings:
    rewrite: RewriteSettings
    logging: LoggingSettings


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _is_name(value: str) -> bool:
    return value.isidentifier() and not keyword.iskeyword(value)


def _as_rewrite_settings(raw: Dict[str, Any]) -> RewriteSettings:
    settings = RewriteSettings(
        decorator=os.getenv("TESTX_DECORATOR", str(raw.get("decorator", "testx"))),
        default_setup=os.getenv(
            "TESTX_DEFAULT_SETUP", str(raw.get("default_setup", "setup"))
        ),
        inner_suffix=os.getenv(
            "TESTX_INNER_SUFFIX", str(raw.get("inner_suffix", "_inner"))
        ),
        result_name=os.getenv("TESTX_RESULT_NAME", str(raw.get("result_name", "sr"))),
        marker_alias=str(raw.get("marker_alias", "_testx")),
        strict_entries=_as_bool(
            os.getenv("TESTX_STRICT_ENTRIES", raw.get("strict_entries", False))
        ),
    )

    for field in ("decorator", "result_name", "marker_alias"):
        if not _is_name(getattr(settings, field)):
            raise ValueError(
                f"Configuration value rewrite.{field} must be a Python identifier."
            )
    if not all(_is_name(part) for part in settings.default_setup.split(".")):
        raise ValueError(
            "Configuration value rewrite.default_setup must be a dotted name."
        )
    if not settings.inner_suffix or not _is_name(f"x{settings.inner_suffix}"):
        raise ValueError(
            "Configuration value rewrite.inner_suffix must only contain identifier characters."
        )
    return settings


def _as_logging_settings(raw: Dict[str, Any]) -> LoggingSettings:
    log_file = raw.get("file")
    return LoggingSettings(
        level=os.getenv("TESTX_LOG_LEVEL", str(raw.get("level", "WARNING"))),
        json_format=_as_bool(raw.get("json", False)),
        log_file=str(log_file) if log_file else None,
    )


@lru_cache(maxsize=4)
def get_settings(config_path: Path | None = None) -> Settings:
    path = config_path or DEFAULT_CONFIG
    raw: Any = {}
    if path.exists():
        raw = yaml.safe_load(path.read_text()) or {}
    elif config_path is not None:
        raise FileNotFoundError(
            f"Configuration file not found at {path.resolve()}."
        )

    if not isinstance(raw, dict):
        raise ValueError("Configuration file is invalid; expected a top-level mapping.")

    rewrite = _as_rewrite_settings(dict(raw.get("rewrite") or {}))
    logging = _as_logging_settings(dict(raw.get("logging") or {}))
    return Settings(rewrite=rewrite, logging=logging)
