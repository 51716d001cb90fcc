"""Pydantic schemas for insight records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class InsightSchema(BaseModel):
    id: str | None = None
    period: str
    insight_type: str
    title: str
    body: str
    severity: str
    source: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class InsightListResponse(BaseModel):
    ok: bool = True
    period: str
    insights: list[InsightSchema] = Field(default_factory=list)


__all__ = ["InsightListResponse", "InsightSchema"]
