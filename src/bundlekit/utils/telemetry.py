"""Opt-in JSONL event log for CLI commands."""

from __future__ import annotations

import json
import os
import time
from typing import Any, Iterator

from jsonschema import ValidationError

from bundlekit.settings import RuntimeSettings
from bundlekit.utils.schema import schema_errors

LEVELS = {"info", "warn", "error"}
LOG_FILENAME = "telemetry.jsonl"
SCHEMA_RESOURCE = "telemetry.schema.json"

_DISABLE_VALUES = {"0", "false", "no", "off"}


def telemetry_enabled() -> bool:
    value = os.getenv("BUNDLEKIT_TELEMETRY", "1").lower()
    return value not in _DISABLE_VALUES


def record_event(
    settings: RuntimeSettings,
    event: str,
    payload: dict[str, Any] | None = None,
    *,
    level: str = "info",
    status: str | None = None,
    duration_ms: float | None = None,
) -> None:
    if not telemetry_enabled():
        return
    record: dict[str, Any] = {
        "ts": time.time(),
        "event": event,
        "payload": payload or {},
        "level": level,
    }
    if level not in LEVELS:
        raise ValueError(f"Telemetry level '{level}' is not supported")
    if status:
        record["status"] = status
    if duration_ms is not None:
        record["durationMs"] = duration_ms
    errors = schema_errors(SCHEMA_RESOURCE, record)
    if errors:
        raise ValidationError("; ".join(errors))
    log_path = settings.log_dir / LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def iter_events(settings: RuntimeSettings) -> Iterator[dict[str, Any]]:
    log_path = settings.log_dir / LOG_FILENAME
    if not log_path.exists():
        return
    with log_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue


__all__ = ["iter_events", "record_event", "telemetry_enabled"]
