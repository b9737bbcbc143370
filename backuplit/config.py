"""Configuration dataclasses and loading helpers for the backuplit service."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional

from backuplit.errors import ConfigError
from backuplit.models import (
    DEFAULT_CHANGE_KINDS,
    DEFAULT_DEBOUNCE_WINDOW,
    DEFAULT_OBJECT_NAME,
    BackupJob,
    ChangeKind,
    EventDebouncePolicy,
    IntervalPolicy,
    TriggerPolicy,
)

TRIGGER_INTERVAL = "interval"
TRIGGER_EVENTS = "events"


def _parse_bool(value: Any, default: bool) -> bool:
    """Parse truthy/falsy values from multiple input types."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(value, (int, float)):
        return value != 0
    return default


def _parse_float(value: Any, default: float) -> float:
    """Parse a non-negative floating point number with fallback to default."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def _parse_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class StorageSettings:
    """Where and how the S3 client connects."""

    region: Optional[str] = None
    endpoint_url: Optional[str] = None


@dataclass(frozen=True)
class LoggingSettings:
    """Logging level and optional log file."""

    level: str = "INFO"
    file: Optional[Path] = None


@dataclass(frozen=True)
class Config:
    """Root configuration object for the backuplit service."""

    job: BackupJob
    storage: StorageSettings = field(default_factory=StorageSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def _parse_change_kinds(value: Any) -> ChangeKind:
    if value is None or value == "" or value == []:
        return DEFAULT_CHANGE_KINDS
    return ChangeKind.parse(value)


def _parse_trigger(raw: Any) -> TriggerPolicy:
    if raw is None:
        return EventDebouncePolicy()
    if not isinstance(raw, Mapping):
        raise ConfigError("'trigger' must be an object")

    trigger_type = str(raw.get("type", TRIGGER_EVENTS)).strip().lower()
    if trigger_type == TRIGGER_INTERVAL:
        seconds = _parse_float(raw.get("interval_seconds"), 0.0)
        if seconds <= 0:
            raise ConfigError("Interval trigger requires a positive 'interval_seconds'")
        return IntervalPolicy(period=timedelta(seconds=seconds))
    if trigger_type == TRIGGER_EVENTS:
        return EventDebouncePolicy(
            change_kinds=_parse_change_kinds(raw.get("change_kinds")),
            debounce_window=timedelta(
                seconds=_parse_float(
                    raw.get("debounce_seconds"),
                    DEFAULT_DEBOUNCE_WINDOW.total_seconds(),
                )
            ),
            recursive=_parse_bool(raw.get("recursive"), True),
        )
    raise ConfigError(f"Unknown trigger type: {trigger_type!r}")


def _build_job(source_dir: Any, bucket: Any, object_name: Any, trigger: TriggerPolicy) -> BackupJob:
    source = _parse_optional_str(source_dir)
    if source is None:
        raise ConfigError("A source directory is required")
    bucket_name = _parse_optional_str(bucket)
    if bucket_name is None:
        raise ConfigError("A target bucket is required")

    return BackupJob(
        source_dir=Path(os.path.expanduser(os.path.expandvars(source))),
        bucket=bucket_name,
        object_name=_parse_optional_str(object_name) or DEFAULT_OBJECT_NAME,
        trigger_policy=trigger,
    )


def _parse_logging_settings(raw: Any) -> LoggingSettings:
    default = LoggingSettings()
    if not isinstance(raw, Mapping):
        return default
    log_file = _parse_optional_str(raw.get("file"))
    return LoggingSettings(
        level=_parse_optional_str(raw.get("level")) or default.level,
        file=Path(log_file) if log_file else None,
    )


def _parse_storage_settings(raw: Any) -> StorageSettings:
    if not isinstance(raw, Mapping):
        return StorageSettings()
    return StorageSettings(
        region=_parse_optional_str(raw.get("region")),
        endpoint_url=_parse_optional_str(raw.get("endpoint_url")),
    )


def _load_env_config(env: Mapping[str, str]) -> Config:
    """Configuration derived from environment variables."""
    interval = env.get("BACKUP_INTERVAL_SECONDS")
    if interval:
        trigger = _parse_trigger({"type": TRIGGER_INTERVAL, "interval_seconds": interval})
    else:
        trigger = _parse_trigger({
            "type": TRIGGER_EVENTS,
            "change_kinds": env.get("CHANGE_KINDS"),
            "debounce_seconds": env.get("DEBOUNCE_SECONDS"),
            "recursive": env.get("WATCH_RECURSIVE"),
        })

    job = _build_job(
        env.get("SOURCE_DIR") or env.get("DB_PATH"),
        env.get("BUCKET_ID") or env.get("BUCKET"),
        env.get("BACKUP_NAME"),
        trigger,
    )
    storage = StorageSettings(
        region=_parse_optional_str(env.get("S3_REGION") or env.get("AWS_REGION")),
        endpoint_url=_parse_optional_str(env.get("S3_ENDPOINT_URL")),
    )
    logging_settings = _parse_logging_settings({
        "level": env.get("LOG_LEVEL"),
        "file": env.get("LOG_FILE"),
    })
    return Config(job=job, storage=storage, logging=logging_settings)


def load_config(config_path: Path | str, env: Mapping[str, str] | None = None) -> Config:
    """Load configuration from JSON file or environment variables."""
    source_env = os.environ if env is None else env
    path = Path(config_path)

    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ConfigError(f"Configuration in {path} must be a JSON object")

        job = _build_job(
            data.get("source_dir"),
            data.get("bucket"),
            data.get("object_name"),
            _parse_trigger(data.get("trigger")),
        )
        return Config(
            job=job,
            storage=_parse_storage_settings(data.get("storage")),
            logging=_parse_logging_settings(data.get("logging")),
        )

    return _load_env_config(source_env)


__all__ = [
    "Config",
    "LoggingSettings",
    "StorageSettings",
    "load_config",
    "_parse_bool",
    "_parse_float",
]
