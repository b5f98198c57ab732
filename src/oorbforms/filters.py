from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime, time
from typing import Any

from oorbforms.utils import ensure_aware

EXACT_FILTER_TYPES = {"select", "radio"}
DATE_ONLY = re.compile(r"\d{4}-\d{2}-\d{2}")


def normalize_number(value: Any, is_int: bool) -> Any:
    if value in (None, ""):
        return None
    try:
        return int(value) if is_int else float(value)
    except ValueError:
        return None


def parse_query_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def value_to_text(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(value_to_text(item) for item in value if item is not None)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def apply_filters(
    responses: list[dict[str, Any]],
    fields: list[dict[str, Any]],
    query_params: dict[str, Any],
) -> list[dict[str, Any]]:
    q = str(query_params.get("q", "")).strip().lower()
    from_dt = parse_query_datetime(query_params.get("submitted_from"))
    to_raw = query_params.get("submitted_to")
    to_dt = parse_query_datetime(to_raw)
    if to_dt and isinstance(to_raw, str) and DATE_ONLY.fullmatch(to_raw.strip()):
        to_dt = datetime.combine(to_dt.date(), time.max)

    def matches_free_text(answers: dict[str, Any]) -> bool:
        if not q:
            return True
        combined = " ".join(value_to_text(value) for value in answers.values()).lower()
        return q in combined

    filtered: list[dict[str, Any]] = []
    for response in responses:
        created_at = response.get("created_at")
        if isinstance(created_at, datetime) and (from_dt or to_dt):
            created_value = ensure_aware(created_at)
            if from_dt and created_value < ensure_aware(from_dt):
                continue
            if to_dt and created_value > ensure_aware(to_dt):
                continue
        answers = response.get("answers", {})
        if not matches_free_text(answers):
            continue
        if all(_field_matches(field, answers.get(field["id"]), query_params) for field in fields):
            filtered.append(response)
    return filtered


def _field_matches(field: dict[str, Any], value: Any, query_params: dict[str, Any]) -> bool:
    param_key = f"f_{field['id']}"
    field_type = field["type"]

    if field_type in {"number", "rating"}:
        min_val = normalize_number(query_params.get(f"{param_key}_min"), False)
        max_val = normalize_number(query_params.get(f"{param_key}_max"), False)
        if min_val is None and max_val is None:
            return True
        if not isinstance(value, (int, float)):
            return False
        if min_val is not None and value < min_val:
            return False
        if max_val is not None and value > max_val:
            return False
        return True

    filter_value = str(query_params.get(param_key, "")).strip()
    if not filter_value:
        return True
    if field_type == "checkbox":
        return filter_value in (value or [])
    if field_type in EXACT_FILTER_TYPES:
        return str(value) == filter_value
    return filter_value.lower() in str(value or "").lower()


def encode_cursor(created_at: datetime, response_id: str) -> str:
    value = f"{ensure_aware(created_at).isoformat()}|{response_id}"
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("utf-8")


def decode_cursor(cursor: str) -> tuple[datetime, str] | None:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("utf-8")).decode("utf-8")
        created_at_raw, response_id = raw.split("|", 1)
        created_at = datetime.fromisoformat(created_at_raw)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    return ensure_aware(created_at), response_id


def paginate(
    responses: list[dict[str, Any]], cursor: tuple[datetime, str] | None, limit: int
) -> tuple[list[dict[str, Any]], str | None]:
    items = sorted(
        responses, key=lambda item: (ensure_aware(item["created_at"]), item["id"]), reverse=True
    )
    if cursor:
        cursor_dt, cursor_id = cursor
        items = [
            item
            for item in items
            if (ensure_aware(item["created_at"]) < cursor_dt)
            or (ensure_aware(item["created_at"]) == cursor_dt and item["id"] < cursor_id)
        ]
    page_items = items[:limit]
    next_cursor = None
    if len(page_items) == limit and len(items) > limit:
        last = page_items[-1]
        next_cursor = encode_cursor(last["created_at"], last["id"])
    return page_items, next_cursor
