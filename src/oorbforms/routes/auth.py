from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from oorbforms.auth import (
    MIN_PASSWORD_LENGTH,
    current_user,
    hash_password,
    is_valid_email,
    normalize_email,
    user_output,
    verify_password,
)
from oorbforms.routes.common import read_json
from oorbforms.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["api/auth"])


def create_user(storage: Any, email: str, password: str, name: str) -> dict[str, Any]:
    email = normalize_email(email)
    name = name.strip()
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="A valid email is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if storage.users.get_user_by_email(email):
        raise HTTPException(status_code=409, detail="Email is already registered")

    user = {
        "id": new_ulid(),
        "email": email,
        "name": name or email.split("@", 1)[0],
        "password_hash": hash_password(password),
        "created_at": now_utc(),
    }
    storage.users.create_user(user)
    logger.info("Registered user %s", user["id"])
    return user


@router.post("/register", status_code=201)
async def register(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    auth = request.app.state.auth_provider
    payload = await read_json(request)
    user = create_user(
        storage,
        str(payload.get("email") or ""),
        str(payload.get("password") or ""),
        str(payload.get("name") or ""),
    )
    return JSONResponse(
        {"token": auth.issue_token(user["id"]), "user": user_output(user)},
        status_code=201,
    )


@router.post("/login")
async def login(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    auth = request.app.state.auth_provider
    payload = await read_json(request)
    email = normalize_email(payload.get("email"))
    password = str(payload.get("password") or "")
    if not email or not password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    user = storage.users.get_user_by_email(email)
    if not user or not verify_password(password, user["password_hash"]):
        raise HTTPException(
            status_code=401,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return JSONResponse({"token": auth.issue_token(user["id"]), "user": user_output(user)})


@router.get("/me")
async def me(user: dict[str, Any] = Depends(current_user)) -> JSONResponse:
    return JSONResponse(user_output(user))
