"""Service layer modules."""

from learnmap.services import (
    csv_parser,
    hierarchy,
    import_service,
    node_service,
    progress,
    roadmap_service,
)

__all__ = [
    "csv_parser",
    "hierarchy",
    "import_service",
    "node_service",
    "progress",
    "roadmap_service",
]
