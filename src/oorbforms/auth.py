from __future__ import annotations

import re
from datetime import timedelta
from typing import Any

import jwt
from fastapi import HTTPException, Request, status
from passlib.context import CryptContext

from oorbforms.config import Settings
from oorbforms.utils import now_utc, to_iso

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def normalize_email(email: Any) -> str:
    return str(email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def user_output(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user.get("name", ""),
        "created_at": to_iso(user["created_at"]),
    }


class JWTAuthProvider:
    def __init__(self, settings: Settings) -> None:
        self._secret = settings.secret_key
        self._algorithm = settings.jwt_algorithm
        self._expires = timedelta(minutes=settings.access_token_expire_minutes)

    def issue_token(self, user_id: str) -> str:
        now = now_utc()
        payload = {"sub": user_id, "iat": now, "exp": now + self._expires}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def resolve_user_id(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise _unauthorized("Token has expired")
        except jwt.InvalidTokenError:
            raise _unauthorized("Invalid token")
        user_id = payload.get("sub")
        if not user_id:
            raise _unauthorized("Invalid token payload")
        return str(user_id)

    def require_user(self, request: Request) -> dict[str, Any]:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise _unauthorized("Not authenticated")
        user_id = self.resolve_user_id(token.strip())
        user = request.app.state.storage.users.get_user(user_id)
        if not user:
            raise _unauthorized("Could not validate credentials")
        return user


def get_auth_provider(settings: Settings) -> JWTAuthProvider:
    return JWTAuthProvider(settings)


def current_user(request: Request) -> dict[str, Any]:
    return request.app.state.auth_provider.require_user(request)
