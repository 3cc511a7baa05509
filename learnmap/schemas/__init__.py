"""Pydantic schemas."""

from learnmap.schemas.node import (
    ImportResult,
    NodeCreate,
    NodeImportRecord,
    NodeImportRequest,
    NodeReorderItem,
    NodeReorderRequest,
    NodeResponse,
    NodeStatus,
    NodeTreeResponse,
    NodeType,
    NodeUpdate,
)
from learnmap.schemas.roadmap import (
    RoadmapCreate,
    RoadmapProgress,
    RoadmapResponse,
    RoadmapUpdate,
)

__all__ = [
    "RoadmapCreate",
    "RoadmapUpdate",
    "RoadmapResponse",
    "RoadmapProgress",
    "NodeType",
    "NodeStatus",
    "NodeCreate",
    "NodeUpdate",
    "NodeResponse",
    "NodeTreeResponse",
    "NodeReorderItem",
    "NodeReorderRequest",
    "NodeImportRecord",
    "NodeImportRequest",
    "ImportResult",
]
