"""Pydantic schemas for todo payloads and responses."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from todo_api.core.sanitize import clean_multiline, clean_single_line

MAX_TITLE_LEN = 255
MAX_DESCRIPTION_LEN = 4000


class TodoStatusFilter(str, Enum):
    completed = "completed"
    pending = "pending"


class TodoSort(str, Enum):
    created_at = "created_at"
    title = "title"
    updated_at = "updated_at"


class TodoCreate(BaseModel):
    title: str = Field(min_length=1, max_length=MAX_TITLE_LEN)
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LEN)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str:
        return clean_multiline(value)


class TodoUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=MAX_TITLE_LEN)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LEN)
    completed: bool | None = None

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str | None) -> str | None:
        return None if value is None else clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return None if value is None else clean_multiline(value)


class TodoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    completed: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class TodoListOut(BaseModel):
    data: list[TodoOut]
    page: int
    limit: int
    total: int
