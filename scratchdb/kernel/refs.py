"""
scratchdb Kernel: Database View References

A note embeds a database view as a markdown link:

    [database:my-tasks](view:table)
    [database:my-tasks](view:board)
    [database:my-tasks](view:calendar)

Board group-by and calendar date column are block properties; they are not
part of the markdown form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from scratchdb.kernel.types import VIEW_TYPES

_REF_PATTERN = re.compile(r"\[database:([^\]]+)\]\(view:(\w+)\)")


@dataclass
class DatabaseViewRef:
    database_id: str
    view: str = "table"
    group_by: str | None = None
    date_column: str | None = None


def format_ref(ref: DatabaseViewRef) -> str:
    return f"[database:{ref.database_id}](view:{ref.view})"


def parse_ref(text: str) -> DatabaseViewRef | None:
    """Parse a block whose whole text is one reference."""
    m = _REF_PATTERN.fullmatch(text.strip())
    if not m or m.group(2) not in VIEW_TYPES:
        return None
    return DatabaseViewRef(database_id=m.group(1), view=m.group(2))


def find_refs(markdown: str) -> list[DatabaseViewRef]:
    """Every database reference in a note, in document order."""
    return [
        DatabaseViewRef(database_id=m.group(1), view=m.group(2))
        for m in _REF_PATTERN.finditer(markdown)
        if m.group(2) in VIEW_TYPES
    ]
