from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, func, select, text
from sqlalchemy.orm import sessionmaker

from oorbforms.models import Base, FolderModel, FormModel, ResponseModel, UserModel
from oorbforms.utils import dumps_json, ensure_aware, loads_json, now_utc


class SQLiteFormRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def list_forms(self, owner_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(FormModel)
                .filter(FormModel.owner_id == owner_id)
                .order_by(FormModel.updated_at.desc())
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            return self._to_dict(row) if row else None

    def get_form_by_public_id(self, public_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = (
                session.query(FormModel)
                .filter(FormModel.public_id == public_id)
                .first()
            )
            return self._to_dict(row) if row else None

    def create_form(self, form: dict[str, Any]) -> None:
        with self._Session() as session:
            row = FormModel(
                id=form["id"],
                public_id=form["public_id"],
                owner_id=form["owner_id"],
                title=form["title"],
                description=form.get("description", ""),
                fields_json=dumps_json(form.get("fields", [])),
                status=form["status"],
                folder_id=form.get("folder_id"),
                created_at=form["created_at"],
                updated_at=form["updated_at"],
            )
            session.add(row)
            session.commit()

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            for key, value in updates.items():
                if key == "fields":
                    row.fields_json = dumps_json(value)
                else:
                    setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return self._to_dict(row)

    def set_status(self, form_id: str, status: str) -> None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            row.status = status
            row.updated_at = now_utc()
            session.commit()

    def delete_form(self, form_id: str) -> None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if row:
                session.delete(row)
                session.commit()

    def clear_folder(self, folder_id: str) -> int:
        with self._Session() as session:
            count = (
                session.query(FormModel)
                .filter(FormModel.folder_id == folder_id)
                .update(
                    {FormModel.folder_id: None, FormModel.updated_at: now_utc()},
                    synchronize_session=False,
                )
            )
            session.commit()
            return count

    @staticmethod
    def _to_dict(row: FormModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "public_id": row.public_id,
            "owner_id": row.owner_id,
            "title": row.title,
            "description": row.description or "",
            "fields": loads_json(row.fields_json) or [],
            "status": row.status,
            "folder_id": row.folder_id,
            "created_at": ensure_aware(row.created_at),
            "updated_at": ensure_aware(row.updated_at),
        }


class SQLiteResponseRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(ResponseModel)
                .filter(ResponseModel.form_id == form_id)
                .order_by(ResponseModel.created_at.desc(), ResponseModel.id.desc())
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def get_response(self, response_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(ResponseModel, response_id)
            return self._to_dict(row) if row else None

    def create_response(self, response: dict[str, Any]) -> None:
        with self._Session() as session:
            row = ResponseModel(
                id=response["id"],
                form_id=response["form_id"],
                answers_json=dumps_json(response["answers"]),
                meta_json=dumps_json(response.get("meta", {})),
                created_at=response["created_at"],
            )
            session.add(row)
            session.commit()

    def count_responses(self, form_id: str) -> int:
        with self._Session() as session:
            return session.scalar(
                select(func.count())
                .select_from(ResponseModel)
                .where(ResponseModel.form_id == form_id)
            ) or 0

    def delete_for_form(self, form_id: str) -> int:
        with self._Session() as session:
            count = (
                session.query(ResponseModel)
                .filter(ResponseModel.form_id == form_id)
                .delete(synchronize_session=False)
            )
            session.commit()
            return count

    @staticmethod
    def _to_dict(row: ResponseModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "form_id": row.form_id,
            "answers": loads_json(row.answers_json) or {},
            "meta": loads_json(row.meta_json) or {},
            "created_at": ensure_aware(row.created_at),
        }


class SQLiteFolderRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def list_folders(self, owner_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(FolderModel)
                .filter(FolderModel.owner_id == owner_id)
                .all()
            )
            folders = [self._to_dict(row) for row in rows]
        return sorted(folders, key=lambda x: (x["name"].lower(), x["id"]))

    def get_folder(self, folder_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FolderModel, folder_id)
            return self._to_dict(row) if row else None

    def create_folder(self, folder: dict[str, Any]) -> None:
        with self._Session() as session:
            row = FolderModel(
                id=folder["id"],
                owner_id=folder["owner_id"],
                name=folder["name"],
                parent_id=folder.get("parent_id"),
                created_at=folder["created_at"],
                updated_at=folder["updated_at"],
            )
            session.add(row)
            session.commit()

    def update_folder(self, folder_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._Session() as session:
            row = session.get(FolderModel, folder_id)
            if not row:
                raise KeyError(folder_id)
            for key, value in updates.items():
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return self._to_dict(row)

    def delete_folder(self, folder_id: str) -> None:
        with self._Session() as session:
            row = session.get(FolderModel, folder_id)
            if row:
                session.delete(row)
                session.commit()

    def reparent_children(self, folder_id: str, parent_id: str | None) -> int:
        with self._Session() as session:
            count = (
                session.query(FolderModel)
                .filter(FolderModel.parent_id == folder_id)
                .update(
                    {FolderModel.parent_id: parent_id, FolderModel.updated_at: now_utc()},
                    synchronize_session=False,
                )
            )
            session.commit()
            return count

    @staticmethod
    def _to_dict(row: FolderModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "owner_id": row.owner_id,
            "name": row.name,
            "parent_id": row.parent_id,
            "created_at": ensure_aware(row.created_at),
            "updated_at": ensure_aware(row.updated_at),
        }


class SQLiteUserRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(UserModel, user_id)
            return self._to_dict(row) if row else None

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.query(UserModel).filter(UserModel.email == email).first()
            return self._to_dict(row) if row else None

    def create_user(self, user: dict[str, Any]) -> None:
        with self._Session() as session:
            row = UserModel(
                id=user["id"],
                email=user["email"],
                name=user.get("name", ""),
                password_hash=user["password_hash"],
                created_at=user["created_at"],
            )
            session.add(row)
            session.commit()

    @staticmethod
    def _to_dict(row: UserModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "email": row.email,
            "name": row.name or "",
            "password_hash": row.password_hash,
            "created_at": ensure_aware(row.created_at),
        }


class SQLiteStorage:
    def __init__(self, db_path: Path) -> None:
        self._engine = create_engine(
            f"sqlite:///{db_path}",
            future=True,
            connect_args={"check_same_thread": False},
        )
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        with self._engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        Base.metadata.create_all(self._engine)
        self.forms = SQLiteFormRepo(self._Session)
        self.responses = SQLiteResponseRepo(self._Session)
        self.folders = SQLiteFolderRepo(self._Session)
        self.users = SQLiteUserRepo(self._Session)
