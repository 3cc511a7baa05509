"""CSV parsing for bulk node import.

The format is deliberately simple: the first non-empty line is a header,
every following non-empty line is split on commas and matched to the header
by position. There is no quoting, so a comma inside a value shifts every
later column of that row.
"""

import re

# Lower-cased header cell -> record field
HEADER_ALIASES: dict[str, str] = {
    "title": "title",
    "type": "type",
    "timeestimate": "time_estimate",
    "time_estimate": "time_estimate",
    "status": "status",
    "parenttitle": "parent_title",
    "parent_title": "parent_title",
    "topic": "topic",
    "resourceurl": "resource_url",
    "resource_url": "resource_url",
    "url": "resource_url",
    "content": "content",
    "notes": "content",
}

RECORD_DEFAULTS: dict[str, object] = {
    "title": "",
    "type": "article",
    "time_estimate": 0,
    "status": "not_started",
}

CSV_TEMPLATE = """title,type,timeEstimate,status,parentTitle,topic,resourceUrl,content
Introduction,article,30,not_started,,Welcome,https://example.com,Welcome to the course
HTML Basics,video,45,not_started,Introduction,HTML,https://example.com/html,Learn HTML fundamentals
CSS Fundamentals,article,60,not_started,Introduction,CSS,https://example.com/css,Learn CSS basics
JavaScript Basics,course,120,not_started,Introduction,JavaScript,https://example.com/js,Learn JavaScript essentials
Build Portfolio,project,180,in_progress,JavaScript Basics,Project,https://example.com/portfolio,Build a portfolio website"""

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_minutes(value: str) -> int:
    """Leading integer of ``value`` clamped at 0 ("45min" -> 45, "abc" -> 0)."""
    match = _LEADING_INT.match(value)
    if not match:
        return 0
    return max(0, int(match.group(1)))


def _convert(field: str, value: str) -> object:
    if field == "time_estimate":
        return parse_minutes(value)
    if field in ("type", "status"):
        return value.lower() or RECORD_DEFAULTS[field]
    return value


def parse_rows(text: str) -> list[dict]:
    """Parse CSV text into node import records.

    Args:
        text: Header line plus data lines

    Returns:
        One dict per data line with ``title``, ``type``, ``time_estimate``,
        ``status`` always present and ``parent_title``, ``topic``,
        ``resource_url``, ``content`` when their column exists. Empty when
        there is no data line.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return []

    headers = [HEADER_ALIASES.get(h.strip().lower()) for h in lines[0].split(",")]

    records = []
    for line in lines[1:]:
        values = [v.strip() for v in line.split(",")]
        record = dict(RECORD_DEFAULTS)
        for index, field in enumerate(headers):
            if field is None:
                continue
            value = values[index] if index < len(values) else ""
            record[field] = _convert(field, value)
        records.append(record)

    return records
