from __future__ import annotations

import csv
import io
import re
from typing import Any

import orjson

from oorbforms.filters import value_to_text
from oorbforms.utils import to_iso

EXPORT_FORMATS = {
    "csv": "text/csv",
    "tsv": "text/tab-separated-values",
    "json": "application/json",
}
BASE_HEADERS = ["Response ID", "Submitted At"]


def export_headers_and_rows(
    fields: list[dict[str, Any]],
    responses: list[dict[str, Any]],
) -> tuple[list[str], list[list[str]]]:
    headers = BASE_HEADERS + [field.get("label") or field["id"] for field in fields]
    rows: list[list[str]] = []
    for response in responses:
        answers = response.get("answers", {})
        row = [response["id"], to_iso(response["created_at"])]
        row.extend(value_to_text(answers.get(field["id"])) for field in fields)
        rows.append(row)
    return headers, rows


def render_export(headers: list[str], rows: list[list[str]], fmt: str) -> bytes:
    if fmt == "json":
        return orjson.dumps([dict(zip(headers, row)) for row in rows])
    output = io.StringIO()
    writer = csv.writer(output, delimiter="," if fmt == "csv" else "\t")
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue().encode("utf-8")


def export_filename(title: str, fmt: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", title).strip("_").lower() or "form"
    return f"{slug}_responses.{fmt}"
