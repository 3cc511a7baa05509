"""Roadmap service for CRUD operations and progress tracking."""

from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnmap.core.config import get_settings
from learnmap.core.database import utcnow
from learnmap.core.errors import ForbiddenError, NotFoundError
from learnmap.core.logging import get_logger
from learnmap.models.node import Node
from learnmap.models.roadmap import Roadmap
from learnmap.schemas.node import NodeStatus, NodeType
from learnmap.schemas.roadmap import RoadmapCreate, RoadmapUpdate
from learnmap.services import progress

logger = get_logger(__name__)


async def get_roadmap(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
) -> Roadmap:
    """Get a roadmap owned by ``user_id``.

    Args:
        db: Database session
        roadmap_id: Roadmap ID
        user_id: Acting user

    Returns:
        Roadmap

    Raises:
        NotFoundError: No roadmap with this id
        ForbiddenError: The roadmap belongs to someone else
    """
    roadmap = await db.get(Roadmap, roadmap_id)
    if not roadmap:
        raise NotFoundError(f"Roadmap {roadmap_id} not found")
    if roadmap.user_id != user_id:
        raise ForbiddenError(f"Roadmap {roadmap_id} belongs to another user")
    return roadmap


async def list_roadmaps(
    db: AsyncSession,
    user_id: str,
) -> list[Roadmap]:
    """List a user's roadmaps, newest first."""
    result = await db.execute(
        select(Roadmap)
        .where(Roadmap.user_id == user_id)
        .order_by(Roadmap.created_at.desc(), Roadmap.id.desc())
    )
    return list(result.scalars().all())


async def create_roadmap(
    db: AsyncSession,
    user_id: str,
    roadmap_data: RoadmapCreate,
) -> Roadmap:
    """Create a roadmap together with its default root node.

    Args:
        db: Database session
        user_id: Owner
        roadmap_data: Roadmap data

    Returns:
        Created roadmap

    Note: This function commits the transaction.
    """
    settings = get_settings()
    daily_focus_time = roadmap_data.daily_focus_time
    if daily_focus_time is None:
        daily_focus_time = settings.DEFAULT_DAILY_FOCUS_TIME

    roadmap = Roadmap(
        user_id=user_id,
        title=roadmap_data.title,
        description=roadmap_data.description,
        daily_focus_time=daily_focus_time,
    )
    db.add(roadmap)
    await db.flush()

    intro = Node(
        roadmap_id=roadmap.id,
        parent_id=None,
        title=settings.INTRO_NODE_TITLE,
        type=NodeType.OTHER.value,
        status=NodeStatus.NOT_STARTED.value,
        order=0,
    )
    db.add(intro)
    await db.commit()
    await db.refresh(roadmap)

    logger.info("Roadmap created", roadmap_id=roadmap.id, user_id=user_id)
    return roadmap


async def update_roadmap(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
    update_data: RoadmapUpdate,
) -> Roadmap:
    """Apply a partial update to a roadmap.

    Note: This function commits the transaction.
    """
    roadmap = await get_roadmap(db, roadmap_id, user_id)

    changes = update_data.model_dump(exclude_unset=True)
    for field in ("title", "daily_focus_time"):
        if field in changes and changes[field] is None:
            del changes[field]
    for field, value in changes.items():
        setattr(roadmap, field, value)
    roadmap.updated_at = utcnow()

    await db.commit()
    await db.refresh(roadmap)

    logger.info("Roadmap updated", roadmap_id=roadmap_id, fields=sorted(changes))
    return roadmap


async def delete_roadmap(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
) -> None:
    """Delete a roadmap and every node in it.

    Note: This function commits the transaction.
    """
    roadmap = await get_roadmap(db, roadmap_id, user_id)

    result = await db.execute(delete(Node).where(Node.roadmap_id == roadmap_id))
    await db.delete(roadmap)
    await db.commit()

    logger.info("Roadmap deleted", roadmap_id=roadmap_id, nodes_deleted=result.rowcount)


async def get_roadmap_progress(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
    today: date | None = None,
) -> dict:
    """Calculate progress metrics for a roadmap from its current nodes."""
    roadmap = await get_roadmap(db, roadmap_id, user_id)
    result = await db.execute(select(Node).where(Node.roadmap_id == roadmap_id))
    return progress.roadmap_progress(roadmap, result.scalars().all(), today=today)
