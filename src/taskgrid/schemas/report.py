"""Schemas for spreadsheet import responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ImportResponse(BaseModel):
    """Outcome of an import in which every row was accepted."""

    message: str
    users_created: int = Field(default=0, ge=0)
    users_updated: int = Field(default=0, ge=0)
    tasks_created: int = Field(default=0, ge=0)
    tasks_updated: int = Field(default=0, ge=0)


__all__ = ["ImportResponse"]
