from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    password_hash = Column(String)
    created_at = Column(DateTime(timezone=True))


class FolderModel(Base):
    __tablename__ = "folders"

    id = Column(String, primary_key=True)
    owner_id = Column(String, index=True)
    name = Column(String)
    parent_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True))


class FormModel(Base):
    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    public_id = Column(String, unique=True, index=True)
    owner_id = Column(String, index=True)
    title = Column(String)
    description = Column(Text)
    fields_json = Column(Text)
    status = Column(String)
    folder_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True))


class ResponseModel(Base):
    __tablename__ = "responses"

    id = Column(String, primary_key=True)
    form_id = Column(String, index=True)
    answers_json = Column(Text)
    meta_json = Column(Text)
    created_at = Column(DateTime(timezone=True))
