from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from oorbforms.auth import current_user
from oorbforms.routes.common import get_owned_folder, get_owned_form, read_json
from oorbforms.schema import (
    FORM_STATUSES,
    parse_fields,
    public_form_output,
    sanitize_form_output,
)
from oorbforms.utils import new_short_id, new_ulid, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/forms", tags=["api/forms"])


def _validated_fields(raw_fields: Any) -> list[dict[str, Any]]:
    fields, errors = parse_fields(raw_fields)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid field definitions", "errors": errors},
        )
    return fields


def _validated_status(raw_status: Any) -> str:
    value = str(raw_status or "draft").strip().lower()
    if value not in FORM_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status: {value}")
    return value


def _resolve_folder_id(request: Request, raw: Any, user: dict[str, Any]) -> str | None:
    folder_id = str(raw).strip() if raw else ""
    if not folder_id:
        return None
    return get_owned_folder(request, folder_id, user)["id"]


def _with_count(request: Request, form: dict[str, Any]) -> dict[str, Any]:
    count = request.app.state.storage.responses.count_responses(form["id"])
    return sanitize_form_output(form, response_count=count)


@router.get("")
async def list_forms(
    request: Request, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    forms = storage.forms.list_forms(user["id"])

    folder_id = request.query_params.get("folder_id")
    if folder_id == "root":
        forms = [form for form in forms if not form.get("folder_id")]
    elif folder_id:
        forms = [form for form in forms if form.get("folder_id") == folder_id]

    form_status = request.query_params.get("status")
    if form_status:
        forms = [form for form in forms if form.get("status") == form_status]

    q = request.query_params.get("q", "").strip().lower()
    if q:
        forms = [
            form
            for form in forms
            if q in form.get("title", "").lower() or q in form.get("description", "").lower()
        ]

    sort = request.query_params.get("sort", "updated_at")
    order = request.query_params.get("order", "desc")
    reverse = order != "asc"
    if sort == "title":
        forms.sort(key=lambda f: (f.get("title") or "").lower(), reverse=reverse)
    elif sort == "created_at":
        forms.sort(key=lambda f: f["created_at"], reverse=reverse)
    else:
        forms.sort(key=lambda f: f["updated_at"], reverse=reverse)

    return JSONResponse([_with_count(request, form) for form in forms])


@router.post("", status_code=201)
async def create_form(
    request: Request, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    payload = await read_json(request)
    title = str(payload.get("title") or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="title is required")
    description = str(payload.get("description") or "").strip()
    folder_id = _resolve_folder_id(request, payload.get("folder_id", payload.get("folderId")), user)
    fields = _validated_fields(payload.get("fields"))

    form_id = new_ulid()
    now = now_utc()
    storage.forms.create_form(
        {
            "id": form_id,
            "public_id": new_short_id(),
            "owner_id": user["id"],
            "title": title,
            "description": description,
            "fields": fields,
            "status": "draft",
            "folder_id": folder_id,
            "created_at": now,
            "updated_at": now,
        }
    )
    logger.info("Created form %s for user %s", form_id, user["id"])
    form = storage.forms.get_form(form_id)
    return JSONResponse(sanitize_form_output(form, response_count=0), status_code=201)


@router.get("/public/{form_id}")
async def get_public_form(request: Request, form_id: str) -> JSONResponse:
    storage = request.app.state.storage
    form = storage.forms.get_form(form_id) or storage.forms.get_form_by_public_id(form_id)
    if not form or form.get("status") != "published":
        raise HTTPException(status_code=404, detail="Form not found")
    return JSONResponse(public_form_output(form))


@router.get("/{form_id}")
async def get_form(
    request: Request, form_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    form = get_owned_form(request, form_id, user)
    return JSONResponse(_with_count(request, form))


@router.api_route("/{form_id}", methods=["PUT", "PATCH"])
async def update_form(
    request: Request, form_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    get_owned_form(request, form_id, user)
    payload = await read_json(request)

    updates: dict[str, Any] = {}
    if "title" in payload:
        title = str(payload.get("title") or "").strip()
        if not title:
            raise HTTPException(status_code=400, detail="title is required")
        updates["title"] = title
    if "description" in payload:
        updates["description"] = str(payload.get("description") or "").strip()
    if "fields" in payload:
        updates["fields"] = _validated_fields(payload.get("fields") or [])
    if "status" in payload:
        updates["status"] = _validated_status(payload.get("status"))
    for key in ("folder_id", "folderId"):
        if key in payload:
            updates["folder_id"] = _resolve_folder_id(request, payload.get(key), user)
    updates["updated_at"] = now_utc()

    updated = storage.forms.update_form(form_id, updates)
    return JSONResponse(_with_count(request, updated))


async def _set_status(request: Request, form_id: str, user: dict[str, Any], status: str) -> JSONResponse:
    storage = request.app.state.storage
    get_owned_form(request, form_id, user)
    storage.forms.set_status(form_id, status)
    return JSONResponse(_with_count(request, storage.forms.get_form(form_id)))


@router.post("/{form_id}/publish")
async def publish_form(
    request: Request, form_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    return await _set_status(request, form_id, user, "published")


@router.post("/{form_id}/unpublish")
async def unpublish_form(
    request: Request, form_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    return await _set_status(request, form_id, user, "draft")


@router.post("/{form_id}/duplicate", status_code=201)
async def duplicate_form(
    request: Request, form_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    source = get_owned_form(request, form_id, user)
    new_id = new_ulid()
    now = now_utc()
    storage.forms.create_form(
        {
            "id": new_id,
            "public_id": new_short_id(),
            "owner_id": user["id"],
            "title": f"{source['title']} (Copy)",
            "description": source.get("description", ""),
            "fields": source.get("fields", []),
            "status": "draft",
            "folder_id": source.get("folder_id"),
            "created_at": now,
            "updated_at": now,
        }
    )
    form = storage.forms.get_form(new_id)
    return JSONResponse(sanitize_form_output(form, response_count=0), status_code=201)


@router.delete("/{form_id}", status_code=204)
async def delete_form(
    request: Request, form_id: str, user: dict[str, Any] = Depends(current_user)
) -> Response:
    storage = request.app.state.storage
    get_owned_form(request, form_id, user)
    removed = storage.responses.delete_for_form(form_id)
    storage.forms.delete_form(form_id)
    logger.info("Deleted form %s and %d responses", form_id, removed)
    return Response(status_code=204)
