from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from oorbforms.auth import current_user
from oorbforms.filters import apply_filters, decode_cursor, paginate
from oorbforms.routes.common import get_owned_form, read_json
from oorbforms.schema import validate_answers
from oorbforms.utils import new_ulid, now_utc, to_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/responses", tags=["api/responses"])

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def response_output(response: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": response["id"],
        "form_id": response["form_id"],
        "answers": response.get("answers", {}),
        "meta": response.get("meta", {}),
        "created_at": to_iso(response["created_at"]),
    }


def _page_size(raw: str | None) -> int:
    if raw in (None, ""):
        return DEFAULT_PAGE_SIZE
    try:
        limit = int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="limit must be an integer")
    if limit < 1:
        raise HTTPException(status_code=400, detail="limit must be positive")
    return min(limit, MAX_PAGE_SIZE)


@router.get("/form/{form_id}")
async def list_responses(
    request: Request, form_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    form = get_owned_form(request, form_id, user)
    responses = storage.responses.list_responses(form["id"])
    filtered = apply_filters(responses, form.get("fields", []), dict(request.query_params))

    cursor = None
    cursor_raw = request.query_params.get("cursor")
    if cursor_raw:
        cursor = decode_cursor(cursor_raw)
        if cursor is None:
            raise HTTPException(status_code=400, detail="Invalid cursor")

    page_items, next_cursor = paginate(
        filtered, cursor, _page_size(request.query_params.get("limit"))
    )
    headers = {"X-Total-Count": str(len(filtered))}
    if next_cursor:
        headers["X-Next-Cursor"] = next_cursor
    return JSONResponse([response_output(item) for item in page_items], headers=headers)


@router.post("/{form_id}", status_code=201)
async def submit_response(request: Request, form_id: str) -> JSONResponse:
    storage = request.app.state.storage
    form = storage.forms.get_form(form_id) or storage.forms.get_form_by_public_id(form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    if form.get("status") != "published":
        raise HTTPException(status_code=400, detail="This form is not accepting responses")

    payload = await read_json(request)
    answers = payload.get("answers", payload)
    if not isinstance(answers, dict):
        raise HTTPException(status_code=400, detail="answers must be an object")

    cleaned, errors = validate_answers(form.get("fields", []), answers)
    if errors:
        raise HTTPException(
            status_code=400, detail={"message": "Validation failed", "errors": errors}
        )

    response = {
        "id": new_ulid(),
        "form_id": form["id"],
        "answers": cleaned,
        "meta": {
            "user_agent": request.headers.get("user-agent", ""),
            "ip": request.client.host if request.client else "",
        },
        "created_at": now_utc(),
    }
    storage.responses.create_response(response)
    logger.info("Stored response %s for form %s", response["id"], form["id"])
    return JSONResponse(response_output(response), status_code=201)


@router.get("/{response_id}")
async def get_response(
    request: Request, response_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    response = storage.responses.get_response(response_id)
    if not response:
        raise HTTPException(status_code=404, detail="Response not found")
    form = storage.forms.get_form(response["form_id"])
    if not form or form["owner_id"] != user["id"]:
        raise HTTPException(status_code=404, detail="Response not found")
    return JSONResponse(response_output(response))
