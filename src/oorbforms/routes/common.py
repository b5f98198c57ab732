from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request


async def read_json(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return payload


def get_owned_form(request: Request, form_id: str, user: dict[str, Any]) -> dict[str, Any]:
    form = request.app.state.storage.forms.get_form(form_id)
    if not form or form["owner_id"] != user["id"]:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


def get_owned_folder(request: Request, folder_id: str, user: dict[str, Any]) -> dict[str, Any]:
    folder = request.app.state.storage.folders.get_folder(folder_id)
    if not folder or folder["owner_id"] != user["id"]:
        raise HTTPException(status_code=404, detail="Folder not found")
    return folder
