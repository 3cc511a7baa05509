"""Node schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Largest value an INTEGER column takes on every supported database
MAX_INT = 2**31 - 1


class NodeType(str, Enum):
    """Kind of learning resource."""

    ARTICLE = "article"
    VIDEO = "video"
    BOOK = "book"
    COURSE = "course"
    PROJECT = "project"
    OTHER = "other"


class NodeStatus(str, Enum):
    """Learning status of a node."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class NodeCreate(BaseModel):
    """Create node request (roadmap comes from the URL)."""

    title: str
    parent_id: int | None = Field(default=None, le=MAX_INT)
    type: NodeType = NodeType.OTHER
    topic: str | None = None
    resource_url: str | None = None
    time_estimate: int = Field(default=0, ge=0, le=MAX_INT)
    status: NodeStatus = NodeStatus.NOT_STARTED
    content: str | None = None
    order: int = Field(default=0, ge=-MAX_INT, le=MAX_INT)


class NodeUpdate(BaseModel):
    """Partial node update.

    ``completed_at`` is deliberately absent: it follows ``status`` and any
    value a client sends for it is dropped.
    """

    title: str | None = None
    parent_id: int | None = Field(default=None, le=MAX_INT)
    type: NodeType | None = None
    topic: str | None = None
    resource_url: str | None = None
    time_estimate: int | None = Field(default=None, ge=0, le=MAX_INT)
    status: NodeStatus | None = None
    content: str | None = None
    order: int | None = Field(default=None, ge=-MAX_INT, le=MAX_INT)


class NodeResponse(BaseModel):
    """Node response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    roadmap_id: int
    parent_id: int | None
    title: str
    type: str
    topic: str | None
    resource_url: str | None
    time_estimate: int
    status: str
    content: str | None
    order: int
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class NodeTreeResponse(NodeResponse):
    """Node with its children, recursively."""

    children: list[NodeTreeResponse] = Field(default_factory=list)


class NodeReorderItem(BaseModel):
    """One entry of a batch reorder."""

    id: int = Field(le=MAX_INT)
    parent_id: int | None = Field(le=MAX_INT)
    order: int = Field(ge=-MAX_INT, le=MAX_INT)


class NodeReorderRequest(BaseModel):
    """Batch reorder request."""

    updates: list[NodeReorderItem]
    atomic: bool | None = None


class NodeImportRecord(BaseModel):
    """A node to create during bulk import, parent referenced by title."""

    title: str = ""
    type: NodeType = NodeType.ARTICLE
    topic: str | None = None
    resource_url: str | None = None
    time_estimate: int = Field(default=0, ge=0, le=MAX_INT)
    status: NodeStatus = NodeStatus.NOT_STARTED
    content: str | None = None
    order: int = Field(default=0, ge=-MAX_INT, le=MAX_INT)
    parent_title: str | None = None


class NodeImportRequest(BaseModel):
    """Bulk import request: raw CSV text or already parsed records."""

    csv: str | None = None
    nodes: list[NodeImportRecord] | None = None
    atomic: bool | None = None

    @model_validator(mode="after")
    def _one_source(self) -> NodeImportRequest:
        if (self.csv is None) == (self.nodes is None):
            raise ValueError("Provide exactly one of 'csv' or 'nodes'")
        return self


class ImportResult(BaseModel):
    """Outcome of a bulk import."""

    count: int
    message: str
    linked: int = 0
    unresolved: list[str] = Field(default_factory=list)
