from __future__ import annotations

import math
import re
from typing import Any

from jsonschema import Draft7Validator

from oorbforms.utils import KEY_PATTERN, generate_field_key, to_iso

FIELD_TYPES = {
    "text",
    "textarea",
    "email",
    "number",
    "phone",
    "url",
    "date",
    "time",
    "select",
    "radio",
    "checkbox",
    "rating",
}
CHOICE_TYPES = {"select", "radio", "checkbox"}
NUMERIC_TYPES = {"number", "rating"}
TEXT_TYPES = {"text", "textarea"}
FORM_STATUSES = {"draft", "published"}
DEFAULT_RATING_MAX = 5

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^\+?[0-9()\-\s.]{5,20}$"
URL_PATTERN = r"^https?://\S+$"
TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9](:[0-5][0-9])?$"


def _parse_number(value: Any) -> int | float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, (int, float)):
        number = value
    else:
        text = str(value).strip()
        number = int(text) if re.fullmatch(r"-?\d+", text) else float(text)
    if isinstance(number, float) and not math.isfinite(number):
        raise ValueError(value)
    return number


def _parse_validation(raw: Any, loc: str, errors: list[str]) -> dict[str, Any]:
    if raw in (None, ""):
        return {}
    if not isinstance(raw, dict):
        errors.append(f"{loc}: validation must be an object")
        return {}
    validation: dict[str, Any] = {}
    for key in ("min", "max", "min_length", "max_length"):
        try:
            value = _parse_number(raw.get(key))
        except ValueError:
            errors.append(f"{loc}: {key} must be a number")
            continue
        if value is None:
            continue
        if key in {"min_length", "max_length"}:
            if int(value) != value or value < 0:
                errors.append(f"{loc}: {key} must be a non-negative integer")
                continue
            value = int(value)
        validation[key] = value
    for low, high in (("min", "max"), ("min_length", "max_length")):
        if low in validation and high in validation and validation[low] > validation[high]:
            errors.append(f"{loc}: {low} is greater than {high}")
    pattern = str(raw.get("pattern") or "").strip()
    if pattern:
        try:
            re.compile(pattern)
        except re.error:
            errors.append(f"{loc}: pattern is not a valid regular expression")
        else:
            validation["pattern"] = pattern
    return validation


def parse_fields(raw_fields: Any) -> tuple[list[dict[str, Any]], list[str]]:
    if raw_fields is None:
        return [], []
    if not isinstance(raw_fields, list):
        return [], ["fields must be a list"]

    errors: list[str] = []
    seen_keys: set[str] = set()
    fields: list[dict[str, Any]] = []

    for index, raw in enumerate(raw_fields, start=1):
        loc = f"field {index}"
        if not isinstance(raw, dict):
            errors.append(f"{loc}: must be an object")
            continue

        key = str(raw.get("id") or raw.get("key") or "").strip()
        label = str(raw.get("label") or "").strip()
        if not label:
            errors.append(f"{loc}: label is required")

        if not key:
            key = generate_field_key(seen_keys)
        if not KEY_PATTERN.match(key):
            errors.append(
                f"{loc}: id must start with a letter and contain only letters, digits and underscores"
            )
        if key in seen_keys:
            errors.append(f"{loc}: duplicate id ({key})")
        else:
            seen_keys.add(key)

        field_type = str(raw.get("type") or "").strip()
        if field_type not in FIELD_TYPES:
            errors.append(f"{loc}: unknown type ({field_type})")

        raw_options = raw.get("options") or []
        if not isinstance(raw_options, list):
            errors.append(f"{loc}: options must be a list")
            raw_options = []
        options = [
            value.strip()
            for value in raw_options
            if isinstance(value, str) and value.strip()
        ]
        if field_type in CHOICE_TYPES and not options:
            errors.append(f"{loc}: {field_type} requires at least one option")
        if len(set(options)) != len(options):
            errors.append(f"{loc}: options must be unique")

        validation = _parse_validation(raw.get("validation"), loc, errors)
        if field_type == "rating":
            rating_max = validation.get("max", DEFAULT_RATING_MAX)
            if int(rating_max) != rating_max or not 1 <= rating_max <= 10:
                errors.append(f"{loc}: rating max must be an integer between 1 and 10")

        fields.append(
            {
                "id": key,
                "type": field_type,
                "label": label,
                "required": bool(raw.get("required")),
                "description": str(raw.get("description") or "").strip(),
                "placeholder": str(raw.get("placeholder") or "").strip(),
                "options": options if field_type in CHOICE_TYPES else [],
                "validation": validation,
            }
        )

    return fields, errors


def build_property(field: dict[str, Any]) -> dict[str, Any]:
    field_type = field["type"]
    validation = field.get("validation") or {}

    if field_type in TEXT_TYPES:
        prop: dict[str, Any] = {"type": "string"}
        if "min_length" in validation:
            prop["minLength"] = validation["min_length"]
        if "max_length" in validation:
            prop["maxLength"] = validation["max_length"]
        if validation.get("pattern"):
            prop["pattern"] = validation["pattern"]
    elif field_type == "email":
        prop = {"type": "string", "format": "email", "pattern": EMAIL_PATTERN}
    elif field_type == "phone":
        prop = {"type": "string", "pattern": PHONE_PATTERN}
    elif field_type == "url":
        prop = {"type": "string", "format": "uri", "pattern": URL_PATTERN}
    elif field_type == "date":
        prop = {"type": "string", "format": "date"}
    elif field_type == "time":
        prop = {"type": "string", "pattern": TIME_PATTERN}
    elif field_type == "number":
        prop = {"type": "number"}
        if "min" in validation:
            prop["minimum"] = validation["min"]
        if "max" in validation:
            prop["maximum"] = validation["max"]
    elif field_type == "rating":
        prop = {
            "type": "integer",
            "minimum": 1,
            "maximum": int(validation.get("max", DEFAULT_RATING_MAX)),
        }
    elif field_type in {"select", "radio"}:
        prop = {"type": "string", "enum": field.get("options", [])}
    elif field_type == "checkbox":
        prop = {
            "type": "array",
            "items": {"type": "string", "enum": field.get("options", [])},
            "uniqueItems": True,
        }
        if field.get("required"):
            prop["minItems"] = 1
        if "min" in validation:
            prop["minItems"] = int(validation["min"])
        if "max" in validation:
            prop["maxItems"] = int(validation["max"])
    else:
        prop = {"type": "string"}

    prop["title"] = field.get("label") or field["id"]
    if field.get("description"):
        prop["description"] = field["description"]
    return prop


def schema_from_fields(fields: list[dict[str, Any]]) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    required: list[str] = []
    for field in fields:
        properties[field["id"]] = build_property(field)
        if field.get("required"):
            required.append(field["id"])
    schema: dict[str, Any] = {
        "type": "object",
        "properties": properties,
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return schema


def clean_empty_recursive(data: Any) -> Any:
    if isinstance(data, dict):
        cleaned = {}
        for k, v in data.items():
            result = clean_empty_recursive(v)
            if result is not None and result != "":
                cleaned[k] = result
        return cleaned if cleaned else None
    if isinstance(data, list):
        cleaned_list = []
        for item in data:
            result = clean_empty_recursive(item)
            if result is not None and result != "":
                cleaned_list.append(result)
        return cleaned_list if cleaned_list else None
    if isinstance(data, str) and not data.strip():
        return None
    return data


def coerce_answers(fields: list[dict[str, Any]], answers: dict[str, Any]) -> dict[str, Any]:
    """Convert string input coming from HTML controls into the field's JSON type."""
    by_id = {field["id"]: field for field in fields}
    coerced: dict[str, Any] = {}
    for key, value in answers.items():
        field = by_id.get(key)
        if field is None:
            coerced[key] = value
            continue
        if field["type"] in NUMERIC_TYPES and isinstance(value, str):
            try:
                value = _parse_number(value)
            except ValueError:
                pass
        elif field["type"] == "checkbox" and isinstance(value, str):
            value = [value]
        coerced[key] = value
    return coerced


def _error_field(error: Any) -> str | None:
    if error.validator == "required":
        match = re.match(r"'(.+)' is a required property", error.message)
        return match.group(1) if match else None
    if error.path:
        return str(error.path[0])
    return None


def validate_answers(
    fields: list[dict[str, Any]], answers: dict[str, Any]
) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Clean and validate submitted answers against the form's fields.

    Returns the answers ordered by the form's field order and a list of
    ``{"field", "message"}`` errors. Empty values are dropped before
    validation so optional fields may be left blank.
    """
    cleaned = clean_empty_recursive(coerce_answers(fields, answers)) or {}
    validator = Draft7Validator(
        schema_from_fields(fields), format_checker=Draft7Validator.FORMAT_CHECKER
    )
    labels = {field["id"]: field.get("label") or field["id"] for field in fields}

    errors: list[dict[str, Any]] = []
    for field_id in [field["id"] for field in fields if field["id"] in cleaned]:
        value = cleaned[field_id]
        if isinstance(value, float) and not math.isfinite(value):
            del cleaned[field_id]
            errors.append(
                {"field": field_id, "message": f"{labels[field_id]}: must be a finite number"}
            )
    for error in sorted(validator.iter_errors(cleaned), key=lambda err: list(err.path)):
        field_id = _error_field(error)
        if error.validator == "required" and field_id:
            message = f"{labels.get(field_id, field_id)} is required"
        elif error.validator == "additionalProperties":
            message = error.message
        else:
            message = f"{labels.get(field_id or '', field_id)}: {error.message}"
        errors.append({"field": field_id, "message": message})

    ordered = {field["id"]: cleaned[field["id"]] for field in fields if field["id"] in cleaned}
    return ordered, errors


def sanitize_form_output(
    form: dict[str, Any], response_count: int | None = None
) -> dict[str, Any]:
    output = {
        "id": form["id"],
        "public_id": form["public_id"],
        "owner_id": form["owner_id"],
        "title": form.get("title", ""),
        "description": form.get("description", ""),
        "fields": form.get("fields", []),
        "status": form.get("status", "draft"),
        "folder_id": form.get("folder_id"),
        "created_at": to_iso(form["created_at"]),
        "updated_at": to_iso(form["updated_at"]),
    }
    if response_count is not None:
        output["response_count"] = response_count
    return output


def public_form_output(form: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": form["id"],
        "public_id": form["public_id"],
        "title": form.get("title", ""),
        "description": form.get("description", ""),
        "fields": form.get("fields", []),
    }
