"""Bulk node import with parent links resolved by title."""

from collections.abc import Sequence

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from learnmap.core.config import get_settings
from learnmap.core.errors import BatchOperationError, InvalidInputError, LearnmapError
from learnmap.core.logging import get_logger
from learnmap.models.node import Node
from learnmap.schemas.node import ImportResult, NodeImportRecord
from learnmap.services import csv_parser, hierarchy
from learnmap.services.node_service import sync_completed_at
from learnmap.services.roadmap_service import get_roadmap

logger = get_logger(__name__)


def validate_records(records: Sequence[NodeImportRecord | dict]) -> list[NodeImportRecord]:
    """Validate raw records, failing on the first bad one with its index."""
    validated = []
    for index, record in enumerate(records):
        if isinstance(record, NodeImportRecord):
            validated.append(record)
            continue
        try:
            validated.append(NodeImportRecord.model_validate(record))
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            cause = InvalidInputError(f"Invalid record: {problems}")
            raise BatchOperationError(
                f"Import failed at row {index}: {problems}",
                index=index,
                item=record,
                cause=cause,
            ) from exc
    return validated


def _find_parent(
    created: list[tuple[Node, str | None]], node: Node, parent_title: str
) -> Node | None:
    # First match in creation order wins when titles repeat
    for candidate, _ in created:
        if candidate.title == parent_title and candidate.id != node.id:
            return candidate
    return None


async def _store_failed(
    db: AsyncSession,
    roadmap_id: int,
    index: int,
    record: NodeImportRecord,
    created_ids: list[int],
    atomic: bool,
    exc: Exception,
) -> BatchOperationError:
    # Ids are read before the rollback expires the session's objects
    applied_ids = [] if atomic else list(created_ids)
    await db.rollback()
    logger.warning(
        "Import stopped",
        roadmap_id=roadmap_id,
        index=index,
        title=record.title,
        kept=len(applied_ids),
        error=exc.__class__.__name__,
    )
    return BatchOperationError(
        f"Import failed at row {index} ({record.title!r}); {len(applied_ids)} nodes were kept",
        index=index,
        item=record.model_dump(mode="json"),
        cause=LearnmapError(f"Could not store node: {exc.__class__.__name__}"),
        applied_ids=applied_ids,
    )


async def import_batch(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
    records: Sequence[NodeImportRecord | dict],
    atomic: bool | None = None,
) -> ImportResult:
    """Create nodes from import records, then link parents by title.

    Pass 1 creates every record as a root node. Pass 2 points each node with
    a ``parent_title`` at the first *other* node of this batch carrying that
    title. Titles that match nothing, and links that would close a cycle,
    leave the node as a root and are reported in ``unresolved``.

    If pass 1 fails, pass 2 is skipped. In sequential mode (the default) the
    nodes created so far stay; in atomic mode the batch is rolled back.
    A store failure while linking stops the import the same way.

    Args:
        db: Database session
        roadmap_id: Target roadmap
        user_id: Acting user
        records: ``NodeImportRecord`` instances or plain dicts
        atomic: Override ``BATCH_ATOMIC``

    Returns:
        Import result with the created count

    Raises:
        BatchOperationError: A record is invalid or could not be stored
    """
    await get_roadmap(db, roadmap_id, user_id)
    if atomic is None:
        atomic = get_settings().BATCH_ATOMIC

    validated = validate_records(records)

    # Pass 1: create
    created: list[tuple[Node, str | None]] = []
    created_ids: list[int] = []
    for index, record in enumerate(validated):
        fields = record.model_dump(mode="json", exclude={"parent_title"})
        node = Node(roadmap_id=roadmap_id, parent_id=None, **fields)
        sync_completed_at(node, previous_status=None)
        db.add(node)
        try:
            if atomic:
                await db.flush()
            else:
                await db.commit()
        except Exception as exc:
            raise await _store_failed(
                db, roadmap_id, index, record, created_ids, atomic, exc
            ) from exc
        created.append((node, record.parent_title))
        created_ids.append(node.id)

    # Pass 2: link parents by title
    parent_of: dict[int, int | None] = dict.fromkeys(created_ids)
    linked = 0
    unresolved: list[str] = []
    for index, (node, parent_title) in enumerate(created):
        if not parent_title:
            continue
        parent = _find_parent(created, node, parent_title)
        if parent is None:
            unresolved.append(parent_title)
            logger.info("Parent title not found", node_id=node.id, parent_title=parent_title)
            continue
        if hierarchy.would_create_cycle(parent_of, node.id, parent.id):
            unresolved.append(parent_title)
            logger.warning(
                "Parent link skipped, would create a cycle",
                node_id=node.id,
                parent_id=parent.id,
            )
            continue

        node.parent_id = parent.id
        parent_of[node.id] = parent.id
        try:
            if atomic:
                await db.flush()
            else:
                await db.commit()
        except Exception as exc:
            raise await _store_failed(
                db, roadmap_id, index, validated[index], created_ids, atomic, exc
            ) from exc
        linked += 1

    await db.commit()

    count = len(created)
    logger.info(
        "Nodes imported",
        roadmap_id=roadmap_id,
        count=count,
        linked=linked,
        unresolved=len(unresolved),
    )
    return ImportResult(
        count=count,
        message=f"Created {count} nodes",
        linked=linked,
        unresolved=unresolved,
    )


async def import_csv(
    db: AsyncSession,
    roadmap_id: int,
    user_id: str,
    text: str,
    atomic: bool | None = None,
) -> ImportResult:
    """Parse CSV text and import the rows."""
    records = csv_parser.parse_rows(text)
    logger.debug("CSV parsed", roadmap_id=roadmap_id, rows=len(records))
    return await import_batch(db, roadmap_id, user_id, records, atomic=atomic)
