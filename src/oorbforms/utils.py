from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone
from typing import Any

import orjson
import ulid

KEY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    return ensure_aware(dt).isoformat()


def parse_dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, str):
        try:
            return ensure_aware(datetime.fromisoformat(value))
        except ValueError:
            return now_utc()
    return now_utc()


def dumps_json(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def loads_json(value: str | None) -> Any:
    if not value:
        return None
    return orjson.loads(value)


def new_ulid() -> str:
    value = ulid.new()
    return getattr(value, "str", str(value))


def new_short_id() -> str:
    return secrets.token_urlsafe(8)


def generate_field_key(existing: set[str]) -> str:
    while True:
        candidate = f"f_{secrets.token_hex(6)}"
        if candidate not in existing and KEY_PATTERN.match(candidate):
            return candidate
