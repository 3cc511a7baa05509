"""Roadmap API routes."""

from fastapi import APIRouter, Response, status
from fastapi.responses import PlainTextResponse

from learnmap.api.deps import CurrentUser, DBSession
from learnmap.core.logging import get_logger
from learnmap.schemas import (
    ImportResult,
    NodeCreate,
    NodeImportRequest,
    NodeReorderRequest,
    NodeResponse,
    NodeTreeResponse,
    RoadmapCreate,
    RoadmapProgress,
    RoadmapResponse,
    RoadmapUpdate,
)
from learnmap.services import csv_parser, import_service, node_service, roadmap_service
from learnmap.services.hierarchy import TreeNode

logger = get_logger(__name__)
router = APIRouter(prefix="/roadmaps", tags=["roadmaps"])


def _tree_response(tree_node: TreeNode) -> NodeTreeResponse:
    data = NodeResponse.model_validate(tree_node.node).model_dump()
    return NodeTreeResponse(**data, children=[_tree_response(c) for c in tree_node.children])


@router.get("", response_model=list[RoadmapResponse])
async def list_roadmaps(db: DBSession, user_id: CurrentUser) -> list:
    """List the current user's roadmaps, newest first."""
    return await roadmap_service.list_roadmaps(db, user_id)


@router.post("", response_model=RoadmapResponse, status_code=status.HTTP_201_CREATED)
async def create_roadmap(data: RoadmapCreate, db: DBSession, user_id: CurrentUser):
    """Create a roadmap with its default "Intro" root node."""
    return await roadmap_service.create_roadmap(db, user_id, data)


# Fixed paths must come before parameterized ones
@router.get("/import/template", response_class=PlainTextResponse)
async def get_import_template() -> str:
    """CSV template for bulk import."""
    return csv_parser.CSV_TEMPLATE


@router.get("/{roadmap_id}", response_model=RoadmapResponse)
async def get_roadmap(roadmap_id: int, db: DBSession, user_id: CurrentUser):
    """Get a roadmap by ID."""
    return await roadmap_service.get_roadmap(db, roadmap_id, user_id)


@router.patch("/{roadmap_id}", response_model=RoadmapResponse)
async def update_roadmap(
    roadmap_id: int,
    data: RoadmapUpdate,
    db: DBSession,
    user_id: CurrentUser,
):
    """Update a roadmap; only the fields sent are changed."""
    return await roadmap_service.update_roadmap(db, roadmap_id, user_id, data)


@router.delete("/{roadmap_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_roadmap(roadmap_id: int, db: DBSession, user_id: CurrentUser) -> Response:
    """Delete a roadmap and all of its nodes."""
    await roadmap_service.delete_roadmap(db, roadmap_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{roadmap_id}/progress", response_model=RoadmapProgress)
async def get_roadmap_progress(roadmap_id: int, db: DBSession, user_id: CurrentUser) -> dict:
    """Completion percentage, time totals and projected finish date."""
    return await roadmap_service.get_roadmap_progress(db, roadmap_id, user_id)


@router.get("/{roadmap_id}/nodes", response_model=list[NodeResponse])
async def list_nodes(roadmap_id: int, db: DBSession, user_id: CurrentUser) -> list:
    """Flat node list ordered by (order, created_at)."""
    return await node_service.list_nodes(db, roadmap_id, user_id)


@router.post(
    "/{roadmap_id}/nodes",
    response_model=NodeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_node(
    roadmap_id: int,
    data: NodeCreate,
    db: DBSession,
    user_id: CurrentUser,
):
    """Create a node in a roadmap."""
    return await node_service.create_node(db, roadmap_id, user_id, data)


@router.post(
    "/{roadmap_id}/nodes/batch",
    response_model=ImportResult,
    status_code=status.HTTP_201_CREATED,
)
async def import_nodes(
    roadmap_id: int,
    data: NodeImportRequest,
    db: DBSession,
    user_id: CurrentUser,
) -> ImportResult:
    """Bulk create nodes from CSV text or parsed records.

    Parents are referenced by title and linked after every node exists.
    """
    if data.csv is not None:
        return await import_service.import_csv(db, roadmap_id, user_id, data.csv, atomic=data.atomic)
    return await import_service.import_batch(
        db, roadmap_id, user_id, data.nodes or [], atomic=data.atomic
    )


@router.get("/{roadmap_id}/tree", response_model=list[NodeTreeResponse])
async def get_tree(roadmap_id: int, db: DBSession, user_id: CurrentUser) -> list[NodeTreeResponse]:
    """Nodes as an ordered forest."""
    forest = await node_service.get_tree(db, roadmap_id, user_id)
    return [_tree_response(t) for t in forest]


@router.get("/{roadmap_id}/levels", response_model=list[list[NodeResponse]])
async def get_levels(roadmap_id: int, db: DBSession, user_id: CurrentUser) -> list:
    """Nodes grouped into breadth-first levels for the flow view."""
    return await node_service.get_levels(db, roadmap_id, user_id)


@router.post("/{roadmap_id}/reorder", response_model=list[NodeResponse])
async def reorder_nodes(
    roadmap_id: int,
    data: NodeReorderRequest,
    db: DBSession,
    user_id: CurrentUser,
) -> list:
    """Batch update parent and sibling order after a drag-and-drop."""
    return await node_service.batch_update(
        db, roadmap_id, user_id, data.updates, atomic=data.atomic
    )
