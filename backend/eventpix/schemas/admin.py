from __future__ import annotations

from pydantic import BaseModel, Field


class OrphanReport(BaseModel):
    """Objects under ``events/`` that no photo row references."""

    object_count: int
    photo_count: int
    orphaned_keys: list[str]


class StorageDeleteRequest(BaseModel):
    keys: list[str] = Field(min_length=1)


class StorageDeleteResult(BaseModel):
    deleted: int
    failed: list[str] = []
