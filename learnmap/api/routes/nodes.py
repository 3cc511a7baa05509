"""Node routes."""

from fastapi import APIRouter, Response, status

from learnmap.api.deps import CurrentUser, DBSession
from learnmap.schemas import NodeResponse, NodeUpdate
from learnmap.services import node_service

router = APIRouter(prefix="/nodes", tags=["nodes"])


@router.get("/{node_id}", response_model=NodeResponse)
async def get_node(node_id: int, db: DBSession, user_id: CurrentUser):
    """Get node by ID."""
    return await node_service.get_node(db, node_id, user_id)


@router.patch("/{node_id}", response_model=NodeResponse)
async def update_node(
    node_id: int,
    data: NodeUpdate,
    db: DBSession,
    user_id: CurrentUser,
):
    """Update a node.

    ``completed_at`` follows ``status``; a value sent by the client is ignored.
    """
    return await node_service.update_node(db, node_id, user_id, data)


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(node_id: int, db: DBSession, user_id: CurrentUser) -> Response:
    """Delete a node; children are handled by the configured delete policy."""
    await node_service.delete_node(db, node_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
