"""Roadmap schemas for API requests and responses."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from learnmap.schemas.node import MAX_INT


class RoadmapCreate(BaseModel):
    """Create a new roadmap."""

    title: str = Field(min_length=1)
    description: str | None = None
    daily_focus_time: int | None = Field(default=None, ge=0, le=MAX_INT)  # minutes


class RoadmapUpdate(BaseModel):
    """Partial update of a roadmap; only the fields sent are applied."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    daily_focus_time: int | None = Field(default=None, ge=0, le=MAX_INT)


class RoadmapResponse(BaseModel):
    """Roadmap response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    description: str | None
    daily_focus_time: int
    created_at: datetime
    updated_at: datetime


class RoadmapProgress(BaseModel):
    """Progress metrics derived from a roadmap's nodes."""

    roadmap_id: int
    item_percent: int
    total_count: int
    completed_count: int
    total_minutes: int
    completed_minutes: int
    remaining_minutes: int
    daily_focus_time: int
    days_remaining: int
    projected_completion: date
