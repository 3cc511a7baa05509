"""Node service: CRUD, hierarchy views and batch reorder."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnmap.core.config import get_settings
from learnmap.core.database import utcnow
from learnmap.core.errors import (
    BatchOperationError,
    InvalidInputError,
    LearnmapError,
    NotFoundError,
)
from learnmap.core.logging import get_logger
from learnmap.models.node import Node
from learnmap.schemas.node import NodeCreate, NodeReorderItem, NodeStatus, NodeUpdate
from learnmap.services import hierarchy
from learnmap.services.roadmap_service import get_roadmap

logger = get_logger(__name__)

# Columns that must never be written as NULL by a partial update
_NON_NULLABLE = ("title", "type", "status", "time_estimate", "order")


def sync_completed_at(node: Node, previous_status: str | None) -> None:
    """Keep ``completed_at`` consistent with ``status``.

    Set when the node enters ``completed``, cleared for any other status.
    """
    if node.status == NodeStatus.COMPLETED.value:
        if previous_status != NodeStatus.COMPLETED.value or node.completed_at is None:
            node.completed_at = utcnow()
    else:
        node.completed_at = None


async def _parent_map(db: AsyncSession, roadmap_id: int) -> dict[int, int | None]:
    """Map every node id of a roadmap to its parent id."""
    result = await db.execute(
        select(Node.id, Node.parent_id).where(Node.roadmap_id == roadmap_id)
    )
    return {row.id: row.parent_id for row in result}


async def _check_parent(
    db: AsyncSession,
    roadmap_id: int,
    node_id: int | None,
    parent_id: int | None,
) -> None:
    """Validate a proposed parent for a node of ``roadmap_id``.

    ``node_id`` is None for a node that does not exist yet, which cannot
    close a cycle.
    """
    if parent_id is None:
        return
    if node_id is not None and parent_id == node_id:
        raise InvalidInputError(f"Node {node_id} cannot be its own parent")

    parent = await db.get(Node, parent_id)
    if not parent:
        raise NotFoundError(f"Parent node {parent_id} not found")
    if parent.roadmap_id != roadmap_id:
        raise InvalidInputError(
            f"Parent node {parent_id} belongs to roadmap {parent.roadmap_id}, not {roadmap_id}"
        )

    if node_id is not None:
        parent_of = await _parent_map(db, roadmap_id)
        if hierarchy.would_create_cycle(parent_of, node_id, parent_id):
            raise InvalidInputError(
                f"Moving node {node_id} under node {parent_id} would create a cycle"
            )


async def list_nodes(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
) -> list[Node]:
    """List a roadmap's nodes ordered by sibling order, then creation time."""
    await get_roadmap(db, roadmap_id, user_id)
    result = await db.execute(
        select(Node)
        .where(Node.roadmap_id == roadmap_id)
        .order_by(Node.order.asc(), Node.created_at.asc(), Node.id.asc())
    )
    return list(result.scalars().all())


async def get_node(
    db: AsyncSession,
    node_id: int,
    user_id: str,
) -> Node:
    """Get a node, checking ownership through its roadmap."""
    node = await db.get(Node, node_id)
    if not node:
        raise NotFoundError(f"Node {node_id} not found")
    await get_roadmap(db, node.roadmap_id, user_id)
    return node


async def create_node(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
    node_data: NodeCreate,
) -> Node:
    """Create a node in a roadmap.

    Note: This function commits the transaction.
    """
    await get_roadmap(db, roadmap_id, user_id)
    await _check_parent(db, roadmap_id, None, node_data.parent_id)

    node = Node(roadmap_id=roadmap_id, **node_data.model_dump(mode="json"))
    sync_completed_at(node, previous_status=None)
    db.add(node)
    await db.commit()
    await db.refresh(node)

    logger.info("Node created", node_id=node.id, roadmap_id=roadmap_id, parent_id=node.parent_id)
    return node


async def update_node(
    db: AsyncSession,
    node_id: int,
    user_id: str,
    update_data: NodeUpdate,
) -> Node:
    """Apply a partial update to a node.

    Raises:
        NotFoundError: Node or requested parent does not exist
        InvalidInputError: Parent in another roadmap, or the move would create a cycle

    Note: This function commits the transaction.
    """
    node = await get_node(db, node_id, user_id)

    changes = update_data.model_dump(exclude_unset=True, mode="json")
    for field in _NON_NULLABLE:
        if field in changes and changes[field] is None:
            del changes[field]

    if "parent_id" in changes and changes["parent_id"] != node.parent_id:
        await _check_parent(db, node.roadmap_id, node.id, changes["parent_id"])

    previous_status = node.status
    for field, value in changes.items():
        setattr(node, field, value)
    if "status" in changes:
        sync_completed_at(node, previous_status)
    node.updated_at = utcnow()

    await db.commit()
    await db.refresh(node)

    logger.info("Node updated", node_id=node_id, fields=sorted(changes))
    return node


async def delete_node(
    db: AsyncSession,
    node_id: int,
    user_id: str,
    policy: str | None = None,
) -> None:
    """Delete a node and deal with its children.

    Policies:
        reparent: children move to the deleted node's parent (default)
        cascade: the whole subtree is deleted
        reject: refuse while the node has children

    Note: This function commits the transaction.
    """
    policy = policy or get_settings().NODE_DELETE_POLICY
    node = await get_node(db, node_id, user_id)

    result = await db.execute(select(Node).where(Node.parent_id == node_id))
    children = list(result.scalars().all())

    if policy == "reject" and children:
        raise InvalidInputError(
            f"Node {node_id} has {len(children)} children; move or delete them first"
        )

    removed = [node_id]
    if policy == "cascade":
        siblings = await db.execute(
            select(Node.id, Node.parent_id).where(Node.roadmap_id == node.roadmap_id)
        )
        removed += hierarchy.descendant_ids(siblings.all(), node_id)
        await db.execute(delete(Node).where(Node.id.in_(removed)))
    else:
        now = utcnow()
        for child in children:
            child.parent_id = node.parent_id
            child.updated_at = now
        await db.flush()
        await db.delete(node)

    await db.commit()
    logger.info("Node deleted", node_id=node_id, policy=policy, removed=len(removed))


async def get_tree(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
) -> list[hierarchy.TreeNode]:
    """Roadmap nodes assembled into an ordered forest."""
    nodes = await list_nodes(db, roadmap_id, user_id)
    forest = hierarchy.build_tree(nodes)
    logger.debug(
        "Tree built",
        roadmap_id=roadmap_id,
        roots=len(forest),
        nodes=hierarchy.count_tree(forest),
    )
    return forest


async def get_levels(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
) -> list[list[Node]]:
    """Roadmap nodes grouped into breadth-first levels."""
    nodes = await list_nodes(db, roadmap_id, user_id)
    return hierarchy.build_levels(nodes)


async def _check_reorder_item(
    db: AsyncSession,
    roadmap_id: int,
    item: NodeReorderItem,
    projected: dict[int, int | None],
) -> Node:
    """Validate one reorder entry against the roadmap and the projected hierarchy."""
    node = await db.get(Node, item.id)
    if not node:
        raise NotFoundError(f"Node {item.id} not found")
    if node.roadmap_id != roadmap_id:
        raise InvalidInputError(f"Node {item.id} does not belong to roadmap {roadmap_id}")

    if item.parent_id is not None:
        if item.parent_id == item.id:
            raise InvalidInputError(f"Node {item.id} cannot be its own parent")
        if item.parent_id not in projected:
            parent = await db.get(Node, item.parent_id)
            if not parent:
                raise NotFoundError(f"Parent node {item.parent_id} not found")
            raise InvalidInputError(
                f"Parent node {item.parent_id} does not belong to roadmap {roadmap_id}"
            )
        if hierarchy.would_create_cycle(projected, item.id, item.parent_id):
            raise InvalidInputError(
                f"Moving node {item.id} under node {item.parent_id} would create a cycle"
            )
    return node


async def batch_update(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
    updates: list[NodeReorderItem],
    atomic: bool | None = None,
) -> list[Node]:
    """Apply a drag-and-drop reorder: new parent and order per node.

    Updates run in input order and touch only ``parent_id``, ``order`` and
    ``updated_at``. Cycle checks use the hierarchy as it will look after the
    whole batch, so the outcome does not depend on the order of the entries.

    Processing stops at the first bad entry. In sequential mode (the
    default) entries are committed as soon as the hierarchy is free of loops.
    Entries that are only valid together, such as swapping a parent and its
    child, are held back until a later entry closes the gap. On failure the
    held-back entries are rolled back, so a stored hierarchy never loops.
    In atomic mode nothing is kept.

    Args:
        db: Database session
        roadmap_id: Roadmap every node must belong to
        user_id: Acting user
        updates: Reorder entries
        atomic: Override ``BATCH_ATOMIC``

    Returns:
        Updated nodes in input order

    Raises:
        BatchOperationError: Wraps the failure of one entry
    """
    await get_roadmap(db, roadmap_id, user_id)
    if atomic is None:
        atomic = get_settings().BATCH_ATOMIC
    if not updates:
        return []

    current = await _parent_map(db, roadmap_id)
    projected = dict(current)
    for item in updates:
        if item.id in projected:
            projected[item.id] = item.parent_id

    applied: list[Node] = []
    committed_ids: list[int] = []
    pending_ids: list[int] = []
    for index, item in enumerate(updates):
        try:
            node = await _check_reorder_item(db, roadmap_id, item, projected)
            node.parent_id = item.parent_id
            node.order = item.order
            node.updated_at = utcnow()
            current[item.id] = item.parent_id
            pending_ids.append(item.id)
            # A loop left by this entry must be resolved by a later one before committing
            if atomic or hierarchy.has_cycle(current, pending_ids):
                await db.flush()
            else:
                await db.commit()
                committed_ids.extend(pending_ids)
                pending_ids = []
        except Exception as exc:
            cause = (
                exc
                if isinstance(exc, LearnmapError)
                else LearnmapError(f"Could not store node: {exc.__class__.__name__}")
            )
            applied_ids = [] if atomic else list(committed_ids)
            if atomic or pending_ids or cause is not exc:
                await db.rollback()
            logger.warning(
                "Batch reorder stopped",
                roadmap_id=roadmap_id,
                index=index,
                node_id=item.id,
                applied=len(applied_ids),
                rolled_back=0 if atomic else len(pending_ids),
                error=cause.message,
            )
            raise BatchOperationError(
                f"Reorder failed at item {index} (node {item.id}): {cause.message}",
                index=index,
                item=item.model_dump(),
                cause=cause,
                applied_ids=applied_ids,
            ) from exc
        applied.append(node)

    await db.commit()

    logger.info("Nodes reordered", roadmap_id=roadmap_id, count=len(applied), atomic=atomic)
    return applied
