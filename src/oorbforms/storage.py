from __future__ import annotations

import logging
from typing import Any, Protocol

from oorbforms.config import Settings, ensure_dirs
from oorbforms.repo_json import JSONStorage
from oorbforms.repo_sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


class FormRepository(Protocol):
    def list_forms(self, owner_id: str) -> list[dict[str, Any]]: ...

    def get_form(self, form_id: str) -> dict[str, Any] | None: ...

    def get_form_by_public_id(self, public_id: str) -> dict[str, Any] | None: ...

    def create_form(self, form: dict[str, Any]) -> None: ...

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]: ...

    def set_status(self, form_id: str, status: str) -> None: ...

    def delete_form(self, form_id: str) -> None: ...

    def clear_folder(self, folder_id: str) -> int: ...


class ResponseRepository(Protocol):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]: ...

    def get_response(self, response_id: str) -> dict[str, Any] | None: ...

    def create_response(self, response: dict[str, Any]) -> None: ...

    def count_responses(self, form_id: str) -> int: ...

    def delete_for_form(self, form_id: str) -> int: ...


class FolderRepository(Protocol):
    def list_folders(self, owner_id: str) -> list[dict[str, Any]]: ...

    def get_folder(self, folder_id: str) -> dict[str, Any] | None: ...

    def create_folder(self, folder: dict[str, Any]) -> None: ...

    def update_folder(self, folder_id: str, updates: dict[str, Any]) -> dict[str, Any]: ...

    def delete_folder(self, folder_id: str) -> None: ...

    def reparent_children(self, folder_id: str, parent_id: str | None) -> int: ...


class UserRepository(Protocol):
    def get_user(self, user_id: str) -> dict[str, Any] | None: ...

    def get_user_by_email(self, email: str) -> dict[str, Any] | None: ...

    def create_user(self, user: dict[str, Any]) -> None: ...


class Storage(Protocol):
    forms: FormRepository
    responses: ResponseRepository
    folders: FolderRepository
    users: UserRepository


def init_storage(settings: Settings) -> Storage:
    backend = settings.storage_backend
    try:
        ensure_dirs(settings)
        if backend == "json":
            storage: Storage = JSONStorage(settings.json_path)
        elif backend == "sqlite":
            storage = SQLiteStorage(settings.sqlite_path)
        else:
            raise StorageError(f"Unknown storage backend: {backend}")
    except StorageError:
        raise
    except Exception as exc:
        raise StorageError(f"Failed to open {backend} storage: {exc}") from exc
    logger.info("Storage backend initialised: %s", backend)
    return storage
