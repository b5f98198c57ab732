from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from oorbforms.auth import current_user
from oorbforms.routes.common import get_owned_folder, read_json
from oorbforms.schema import sanitize_form_output
from oorbforms.utils import new_ulid, now_utc, to_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["api/folders"])


def folder_output(folder: dict[str, Any], form_count: int | None = None) -> dict[str, Any]:
    output = {
        "id": folder["id"],
        "name": folder["name"],
        "owner_id": folder["owner_id"],
        "parent_id": folder.get("parent_id"),
        "created_at": to_iso(folder["created_at"]),
        "updated_at": to_iso(folder["updated_at"]),
    }
    if form_count is not None:
        output["form_count"] = form_count
    return output


def _validated_name(raw: Any) -> str:
    name = str(raw or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    return name


def _resolve_parent(
    request: Request,
    raw: Any,
    user: dict[str, Any],
    folder_id: str | None = None,
) -> str | None:
    """Check that a folder may live under ``raw``.

    Nesting is one level deep: the parent has to be a top-level folder and a
    folder that already has children stays at the top level.
    """
    parent_id = str(raw).strip() if raw else ""
    if not parent_id:
        return None
    if parent_id == folder_id:
        raise HTTPException(status_code=400, detail="A folder cannot be its own parent")
    parent = get_owned_folder(request, parent_id, user)
    if parent.get("parent_id"):
        raise HTTPException(
            status_code=400, detail="Folders can only be nested one level deep"
        )
    if folder_id:
        folders = request.app.state.storage.folders.list_folders(user["id"])
        if any(item.get("parent_id") == folder_id for item in folders):
            raise HTTPException(
                status_code=400, detail="A folder with subfolders cannot be nested"
            )
    return parent["id"]


def _form_counts(request: Request, user: dict[str, Any]) -> Counter:
    forms = request.app.state.storage.forms.list_forms(user["id"])
    return Counter(form["folder_id"] for form in forms if form.get("folder_id"))


@router.get("")
async def list_folders(
    request: Request, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    folders = storage.folders.list_folders(user["id"])
    parent_id = request.query_params.get("parent_id")
    if parent_id == "root":
        folders = [folder for folder in folders if not folder.get("parent_id")]
    elif parent_id:
        folders = [folder for folder in folders if folder.get("parent_id") == parent_id]
    counts = _form_counts(request, user)
    return JSONResponse([folder_output(folder, counts[folder["id"]]) for folder in folders])


@router.post("", status_code=201)
async def create_folder(
    request: Request, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    payload = await read_json(request)
    name = _validated_name(payload.get("name"))
    parent_id = _resolve_parent(request, payload.get("parent_id", payload.get("parentId")), user)

    folder_id = new_ulid()
    now = now_utc()
    storage.folders.create_folder(
        {
            "id": folder_id,
            "owner_id": user["id"],
            "name": name,
            "parent_id": parent_id,
            "created_at": now,
            "updated_at": now,
        }
    )
    folder = storage.folders.get_folder(folder_id)
    return JSONResponse(folder_output(folder, 0), status_code=201)


@router.get("/{folder_id}")
async def get_folder(
    request: Request, folder_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    folder = get_owned_folder(request, folder_id, user)
    counts = _form_counts(request, user)
    children = [
        folder_output(child, counts[child["id"]])
        for child in storage.folders.list_folders(user["id"])
        if child.get("parent_id") == folder_id
    ]
    forms = [
        sanitize_form_output(form, storage.responses.count_responses(form["id"]))
        for form in storage.forms.list_forms(user["id"])
        if form.get("folder_id") == folder_id
    ]
    output = folder_output(folder, counts[folder_id])
    output["folders"] = children
    output["forms"] = forms
    return JSONResponse(output)


@router.api_route("/{folder_id}", methods=["PUT", "PATCH"])
async def update_folder(
    request: Request, folder_id: str, user: dict[str, Any] = Depends(current_user)
) -> JSONResponse:
    storage = request.app.state.storage
    get_owned_folder(request, folder_id, user)
    payload = await read_json(request)

    updates: dict[str, Any] = {}
    if "name" in payload:
        updates["name"] = _validated_name(payload.get("name"))
    for key in ("parent_id", "parentId"):
        if key in payload:
            updates["parent_id"] = _resolve_parent(request, payload.get(key), user, folder_id)
    updates["updated_at"] = now_utc()

    updated = storage.folders.update_folder(folder_id, updates)
    counts = _form_counts(request, user)
    return JSONResponse(folder_output(updated, counts[folder_id]))


@router.delete("/{folder_id}", status_code=204)
async def delete_folder(
    request: Request, folder_id: str, user: dict[str, Any] = Depends(current_user)
) -> Response:
    storage = request.app.state.storage
    folder = get_owned_folder(request, folder_id, user)
    moved_forms = storage.forms.clear_folder(folder_id)
    storage.folders.reparent_children(folder_id, folder.get("parent_id"))
    storage.folders.delete_folder(folder_id)
    logger.info("Deleted folder %s, moved %d forms to root", folder_id, moved_forms)
    return Response(status_code=204)
