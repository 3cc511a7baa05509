"""Tests for bulk import."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from learnmap.core.errors import BatchOperationError, ForbiddenError
from learnmap.models import Roadmap
from learnmap.schemas import NodeImportRecord
from learnmap.services import import_service, node_service
from learnmap.services.csv_parser import CSV_TEMPLATE

TEST_USER = "test-user"


async def _imported(db: AsyncSession, roadmap: Roadmap) -> dict:
    nodes = await node_service.list_nodes(db, roadmap.id, TEST_USER)
    return {n.title: n for n in nodes if n.title != "Intro"}


@pytest.mark.asyncio
async def test_links_child_to_parent_by_title(
    test_session: AsyncSession, roadmap: Roadmap
) -> None:
    result = await import_service.import_batch(
        test_session,
        roadmap.id,
        TEST_USER,
        [{"title": "A", "parent_title": ""}, {"title": "B", "parent_title": "A"}],
    )

    assert result.count == 2
    assert result.message == "Created 2 nodes"
    assert result.linked == 1
    nodes = await _imported(test_session, roadmap)
    assert nodes["A"].parent_id is None
    assert nodes["B"].parent_id == nodes["A"].id


@pytest.mark.asyncio
async def test_parent_listed_after_child(test_session: AsyncSession, roadmap: Roadmap) -> None:
    await import_service.import_batch(
        test_session,
        roadmap.id,
        TEST_USER,
        [{"title": "Child", "parent_title": "Parent"}, {"title": "Parent"}],
    )
    nodes = await _imported(test_session, roadmap)
    assert nodes["Child"].parent_id == nodes["Parent"].id


@pytest.mark.asyncio
async def test_unmatched_parent_title_stays_root(
    test_session: AsyncSession, roadmap: Roadmap
) -> None:
    result = await import_service.import_batch(
        test_session,
        roadmap.id,
        TEST_USER,
        [{"title": "Orphan", "parent_title": "Nobody"}],
    )
    assert result.unresolved == ["Nobody"]
    nodes = await _imported(test_session, roadmap)
    assert nodes["Orphan"].parent_id is None


@pytest.mark.asyncio
async def test_existing_nodes_not_matched(test_session: AsyncSession, roadmap: Roadmap) -> None:
    # "Intro" exists in the roadmap but is not part of this batch
    await import_service.import_batch(
        test_session, roadmap.id, TEST_USER, [{"title": "X", "parent_title": "Intro"}]
    )
    nodes = await _imported(test_session, roadmap)
    assert nodes["X"].parent_id is None


@pytest.mark.asyncio
async def test_duplicate_titles_first_match_wins(
    test_session: AsyncSession, roadmap: Roadmap
) -> None:
    await import_service.import_batch(
        test_session,
        roadmap.id,
        TEST_USER,
        [
            {"title": "Dup", "topic": "first"},
            {"title": "Dup", "topic": "second"},
            {"title": "Kid", "parent_title": "Dup"},
        ],
    )
    nodes = await node_service.list_nodes(test_session, roadmap.id, TEST_USER)
    first = next(n for n in nodes if n.topic == "first")
    kid = next(n for n in nodes if n.title == "Kid")
    assert kid.parent_id == first.id


@pytest.mark.asyncio
async def test_self_title_is_not_own_parent(test_session: AsyncSession, roadmap: Roadmap) -> None:
    await import_service.import_batch(
        test_session, roadmap.id, TEST_USER, [{"title": "Self", "parent_title": "Self"}]
    )
    nodes = await _imported(test_session, roadmap)
    assert nodes["Self"].parent_id is None


@pytest.mark.asyncio
async def test_mutual_parents_do_not_form_cycle(
    test_session: AsyncSession, roadmap: Roadmap
) -> None:
    result = await import_service.import_batch(
        test_session,
        roadmap.id,
        TEST_USER,
        [{"title": "P", "parent_title": "Q"}, {"title": "Q", "parent_title": "P"}],
    )
    assert result.linked == 1
    assert result.unresolved == ["P"]
    nodes = await _imported(test_session, roadmap)
    assert nodes["P"].parent_id == nodes["Q"].id
    assert nodes["Q"].parent_id is None


@pytest.mark.asyncio
async def test_completed_rows_get_completed_at(
    test_session: AsyncSession, roadmap: Roadmap
) -> None:
    await import_service.import_batch(
        test_session,
        roadmap.id,
        TEST_USER,
        [NodeImportRecord(title="Done", status="completed", time_estimate=20)],
    )
    nodes = await _imported(test_session, roadmap)
    assert nodes["Done"].completed_at is not None
    assert nodes["Done"].time_estimate == 20


@pytest.mark.asyncio
async def test_invalid_record_rejected_before_writes(
    test_session: AsyncSession, roadmap: Roadmap
) -> None:
    with pytest.raises(BatchOperationError) as exc_info:
        await import_service.import_batch(
            test_session,
            roadmap.id,
            TEST_USER,
            [{"title": "Fine"}, {"title": "Bad", "type": "podcast"}],
        )

    err = exc_info.value
    assert err.index == 1
    assert err.status_code == 400
    assert "type" in err.message
    assert await _imported(test_session, roadmap) == {}


@pytest.mark.asyncio
async def test_import_other_users_roadmap(test_session: AsyncSession, roadmap: Roadmap) -> None:
    with pytest.raises(ForbiddenError):
        await import_service.import_batch(test_session, roadmap.id, "intruder", [{"title": "x"}])


@pytest.mark.asyncio
async def test_import_csv_template(test_session: AsyncSession, roadmap: Roadmap) -> None:
    result = await import_service.import_csv(test_session, roadmap.id, TEST_USER, CSV_TEMPLATE)

    assert result.count == 5
    assert result.unresolved == []
    nodes = await _imported(test_session, roadmap)
    intro = nodes["Introduction"]
    assert nodes["HTML Basics"].parent_id == intro.id
    assert nodes["Build Portfolio"].parent_id == nodes["JavaScript Basics"].id
    assert nodes["Build Portfolio"].status == "in_progress"
    assert nodes["CSS Fundamentals"].resource_url == "https://example.com/css"


@pytest.mark.asyncio
async def test_import_csv_empty(test_session: AsyncSession, roadmap: Roadmap) -> None:
    result = await import_service.import_csv(test_session, roadmap.id, TEST_USER, "title\n")
    assert result.count == 0
    assert result.message == "Created 0 nodes"


@pytest.mark.asyncio
async def test_oversized_time_estimate_rejected_before_writes(
    test_session: AsyncSession, roadmap: Roadmap
) -> None:
    with pytest.raises(BatchOperationError) as exc_info:
        await import_service.import_batch(
            test_session,
            roadmap.id,
            TEST_USER,
            [{"title": "ok"}, {"title": "huge", "time_estimate": 10**20}],
            atomic=False,
        )

    assert exc_info.value.index == 1
    assert exc_info.value.status_code == 400
    assert await _imported(test_session, roadmap) == {}


@pytest.mark.asyncio
async def test_store_failure_keeps_created_nodes_and_skips_linking(
    test_session: AsyncSession, roadmap: Roadmap, monkeypatch: pytest.MonkeyPatch
) -> None:
    roadmap_id = roadmap.id
    real_commit = test_session.commit
    calls = 0

    async def commit_fails_second_time() -> None:
        nonlocal calls
        calls += 1
        if calls == 2:
            raise OperationalError("INSERT INTO nodes", {}, Exception("disk I/O error"))
        await real_commit()

    monkeypatch.setattr(test_session, "commit", commit_fails_second_time)

    with pytest.raises(BatchOperationError) as exc_info:
        await import_service.import_batch(
            test_session,
            roadmap_id,
            TEST_USER,
            [{"title": "a"}, {"title": "b"}, {"title": "c", "parent_title": "a"}],
            atomic=False,
        )

    err = exc_info.value
    assert err.index == 1
    assert err.status_code == 500
    assert err.item["title"] == "b"
    assert len(err.applied_ids) == 1

    monkeypatch.undo()
    nodes = await node_service.list_nodes(test_session, roadmap_id, TEST_USER)
    imported = [n for n in nodes if n.title != "Intro"]
    assert [n.title for n in imported] == ["a"]
    assert imported[0].id == err.applied_ids[0]
    assert imported[0].parent_id is None


@pytest.mark.asyncio
async def test_store_failure_in_atomic_mode_keeps_nothing(
    test_session: AsyncSession, roadmap: Roadmap, monkeypatch: pytest.MonkeyPatch
) -> None:
    roadmap_id = roadmap.id
    real_flush = test_session.flush
    calls = 0

    async def flush_fails_second_time(*args, **kwargs) -> None:
        nonlocal calls
        calls += 1
        if calls == 2:
            raise OperationalError("INSERT INTO nodes", {}, Exception("database is locked"))
        await real_flush(*args, **kwargs)

    monkeypatch.setattr(test_session, "flush", flush_fails_second_time)

    with pytest.raises(BatchOperationError) as exc_info:
        await import_service.import_batch(
            test_session,
            roadmap_id,
            TEST_USER,
            [{"title": "a"}, {"title": "b", "parent_title": "a"}],
            atomic=True,
        )

    assert exc_info.value.index == 1
    assert exc_info.value.applied_ids == []

    monkeypatch.undo()
    nodes = await node_service.list_nodes(test_session, roadmap_id, TEST_USER)
    assert [n.title for n in nodes] == ["Intro"]
