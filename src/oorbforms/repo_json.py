from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from filelock import FileLock
from tinydb import Query, TinyDB

from oorbforms.utils import now_utc, parse_dt, to_iso


class JSONRepoBase:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterable[TinyDB]:
        with self._lock:
            db = TinyDB(self._path)
            try:
                yield db
            finally:
                db.close()

    @staticmethod
    def _to_record(item: dict[str, Any], partial: bool = False) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for key, value in item.items():
            if key in {"created_at", "updated_at"}:
                record[key] = to_iso(value) if isinstance(value, datetime) else value
            else:
                record[key] = value
        if not partial:
            record.setdefault("created_at", to_iso(now_utc()))
            record.setdefault("updated_at", to_iso(now_utc()))
        return record


class JSONFormRepo(JSONRepoBase):
    def list_forms(self, owner_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("forms").search(Query().owner_id == owner_id)
        forms = [self._from_record(item) for item in items]
        return sorted(forms, key=lambda x: x["updated_at"], reverse=True)

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().id == form_id)
        return self._from_record(item) if item else None

    def get_form_by_public_id(self, public_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().public_id == public_id)
        return self._from_record(item) if item else None

    def create_form(self, form: dict[str, Any]) -> None:
        record = self._to_record(form)
        with self._db() as db:
            db.table("forms").insert(record)

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("forms")
            item = table.get(Query().id == form_id)
            if not item:
                raise KeyError(form_id)
            item.update(self._to_record(updates, partial=True))
            table.update(item, Query().id == form_id)
        return self._from_record(item)

    def set_status(self, form_id: str, status: str) -> None:
        with self._db() as db:
            table = db.table("forms")
            item = table.get(Query().id == form_id)
            if not item:
                raise KeyError(form_id)
            item["status"] = status
            item["updated_at"] = to_iso(now_utc())
            table.update(item, Query().id == form_id)

    def delete_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("forms").remove(Query().id == form_id)

    def clear_folder(self, folder_id: str) -> int:
        with self._db() as db:
            updated = db.table("forms").update(
                {"folder_id": None, "updated_at": to_iso(now_utc())},
                Query().folder_id == folder_id,
            )
        return len(updated)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "public_id": record["public_id"],
            "owner_id": record["owner_id"],
            "title": record["title"],
            "description": record.get("description", ""),
            "fields": record.get("fields", []),
            "status": record.get("status", "draft"),
            "folder_id": record.get("folder_id"),
            "created_at": parse_dt(record.get("created_at")),
            "updated_at": parse_dt(record.get("updated_at")),
        }


class JSONResponseRepo(JSONRepoBase):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("responses").search(Query().form_id == form_id)
        responses = [self._from_record(item) for item in items]
        return sorted(responses, key=lambda x: (x["created_at"], x["id"]), reverse=True)

    def get_response(self, response_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("responses").get(Query().id == response_id)
        return self._from_record(item) if item else None

    def create_response(self, response: dict[str, Any]) -> None:
        record = {
            "id": response["id"],
            "form_id": response["form_id"],
            "answers": response["answers"],
            "meta": response.get("meta", {}),
            "created_at": to_iso(response["created_at"]),
        }
        with self._db() as db:
            db.table("responses").insert(record)

    def count_responses(self, form_id: str) -> int:
        with self._db() as db:
            return db.table("responses").count(Query().form_id == form_id)

    def delete_for_form(self, form_id: str) -> int:
        with self._db() as db:
            removed = db.table("responses").remove(Query().form_id == form_id)
        return len(removed)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "form_id": record["form_id"],
            "answers": record.get("answers", {}),
            "meta": record.get("meta", {}),
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONFolderRepo(JSONRepoBase):
    def list_folders(self, owner_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("folders").search(Query().owner_id == owner_id)
        folders = [self._from_record(item) for item in items]
        return sorted(folders, key=lambda x: (x["name"].lower(), x["id"]))

    def get_folder(self, folder_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("folders").get(Query().id == folder_id)
        return self._from_record(item) if item else None

    def create_folder(self, folder: dict[str, Any]) -> None:
        record = self._to_record(folder)
        with self._db() as db:
            db.table("folders").insert(record)

    def update_folder(self, folder_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("folders")
            item = table.get(Query().id == folder_id)
            if not item:
                raise KeyError(folder_id)
            item.update(self._to_record(updates, partial=True))
            table.update(item, Query().id == folder_id)
        return self._from_record(item)

    def delete_folder(self, folder_id: str) -> None:
        with self._db() as db:
            db.table("folders").remove(Query().id == folder_id)

    def reparent_children(self, folder_id: str, parent_id: str | None) -> int:
        with self._db() as db:
            updated = db.table("folders").update(
                {"parent_id": parent_id, "updated_at": to_iso(now_utc())},
                Query().parent_id == folder_id,
            )
        return len(updated)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "owner_id": record["owner_id"],
            "name": record["name"],
            "parent_id": record.get("parent_id"),
            "created_at": parse_dt(record.get("created_at")),
            "updated_at": parse_dt(record.get("updated_at")),
        }


class JSONUserRepo(JSONRepoBase):
    def get_user(self, user_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("users").get(Query().id == user_id)
        return self._from_record(item) if item else None

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("users").get(Query().email == email)
        return self._from_record(item) if item else None

    def create_user(self, user: dict[str, Any]) -> None:
        record = {
            "id": user["id"],
            "email": user["email"],
            "name": user.get("name", ""),
            "password_hash": user["password_hash"],
            "created_at": to_iso(user["created_at"]),
        }
        with self._db() as db:
            db.table("users").insert(record)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "email": record["email"],
            "name": record.get("name", ""),
            "password_hash": record["password_hash"],
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONStorage:
    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        with self._lock:
            db = TinyDB(path)
            try:
                db.tables()
            finally:
                db.close()
        self.forms = JSONFormRepo(path, self._lock)
        self.responses = JSONResponseRepo(path, self._lock)
        self.folders = JSONFolderRepo(path, self._lock)
        self.users = JSONUserRepo(path, self._lock)
