"""Progress metrics over a roadmap's nodes.

Recomputed from the flat node list on every call; nothing is cached.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from learnmap.schemas.node import NodeStatus


@dataclass(frozen=True)
class ProgressSummary:
    item_percent: int
    total_count: int
    completed_count: int
    total_minutes: int
    completed_minutes: int
    remaining_minutes: int


def _is_completed(node: Any) -> bool:
    return node.status in (NodeStatus.COMPLETED, NodeStatus.COMPLETED.value)


def _percent(part: int, whole: int) -> int:
    """Percentage rounded half-up (12.5 -> 13), 0 for an empty whole."""
    if whole == 0:
        return 0
    return math.floor(100 * part / whole + 0.5)


def compute_progress(nodes: Iterable[Any]) -> ProgressSummary:
    """Completion percentage and time totals for a set of nodes.

    Missing time estimates count as 0 minutes.
    """
    total_count = 0
    completed_count = 0
    total_minutes = 0
    completed_minutes = 0

    for node in nodes:
        minutes = node.time_estimate or 0
        total_count += 1
        total_minutes += minutes
        if _is_completed(node):
            completed_count += 1
            completed_minutes += minutes

    return ProgressSummary(
        item_percent=_percent(completed_count, total_count),
        total_count=total_count,
        completed_count=completed_count,
        total_minutes=total_minutes,
        completed_minutes=completed_minutes,
        remaining_minutes=total_minutes - completed_minutes,
    )


def days_remaining(remaining_minutes: int, daily_focus_minutes: int | None) -> int:
    """Whole days left at the given daily pace.

    A non-positive pace yields 0 days even when work remains.
    """
    if not daily_focus_minutes or daily_focus_minutes <= 0:
        return 0
    return math.ceil(remaining_minutes / daily_focus_minutes)


def projected_completion(days: int, today: date | None = None) -> date:
    """Local calendar date ``days`` from today."""
    return (today or date.today()) + timedelta(days=days)


def roadmap_progress(roadmap: Any, nodes: Iterable[Any], today: date | None = None) -> dict:
    """Full progress payload for a roadmap.

    Args:
        roadmap: Roadmap model (``id`` and ``daily_focus_time`` are read)
        nodes: The roadmap's nodes
        today: Reference date for the projection, defaults to the local date

    Returns:
        Dict matching ``RoadmapProgress``
    """
    summary = compute_progress(nodes)
    daily_focus = roadmap.daily_focus_time or 0
    days = days_remaining(summary.remaining_minutes, daily_focus)

    return {
        "roadmap_id": roadmap.id,
        "item_percent": summary.item_percent,
        "total_count": summary.total_count,
        "completed_count": summary.completed_count,
        "total_minutes": summary.total_minutes,
        "completed_minutes": summary.completed_minutes,
        "remaining_minutes": summary.remaining_minutes,
        "daily_focus_time": daily_focus,
        "days_remaining": days,
        "projected_completion": projected_completion(days, today),
    }
