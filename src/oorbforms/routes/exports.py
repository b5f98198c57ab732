from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from oorbforms.auth import current_user
from oorbforms.export import (
    EXPORT_FORMATS,
    export_filename,
    export_headers_and_rows,
    render_export,
)
from oorbforms.filters import apply_filters
from oorbforms.routes.common import get_owned_form

router = APIRouter(prefix="/api/exports", tags=["api/exports"])


@router.get("/{form_id}")
async def export_responses(
    request: Request, form_id: str, user: dict[str, Any] = Depends(current_user)
) -> Response:
    storage = request.app.state.storage
    fmt = request.query_params.get("format", "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {fmt}")

    form = get_owned_form(request, form_id, user)
    fields = form.get("fields", [])
    responses = storage.responses.list_responses(form["id"])
    filtered = apply_filters(responses, fields, dict(request.query_params))
    filtered.sort(key=lambda item: (item["created_at"], item["id"]))

    headers, rows = export_headers_and_rows(fields, filtered)
    filename = export_filename(form["title"], fmt)
    return Response(
        render_export(headers, rows, fmt),
        media_type=EXPORT_FORMATS[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
