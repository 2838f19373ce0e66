"""
scratchdb Kernel: Template Engine

Expands a RowTemplate into the fields and body of a new row.

- `{{title}}` in the title pattern (and body) is replaced by the caller's
  title verbatim. No other placeholder is interpreted in titles.
- Template fields naming unknown or rollup columns are dropped.
- Every other stored column receives its type's default.
- A `{{cursor}}` marker in the body is removed; its line index is returned
  as a hint for the editor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from scratchdb.kernel.columns import default_value
from scratchdb.kernel.types import DatabaseSchema, RowTemplate

logger = logging.getLogger(__name__)

TITLE_PLACEHOLDER = "{{title}}"
CURSOR_MARKER = "{{cursor}}"


class TitleRequired(ValueError):
    """The template's title pattern has a placeholder and no title was given."""

    pass


@dataclass
class ExpandedTemplate:
    fields: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    cursor_line: int | None = None


def needs_title(template: RowTemplate) -> bool:
    return template.title is not None and TITLE_PLACEHOLDER in template.title


def title_column_id(schema: DatabaseSchema) -> str | None:
    """Column that receives a template title: `title` if present, else the first text column."""
    for col in schema.columns:
        if col.id == "title":
            return col.id
    for col in schema.columns:
        if col.type == "text":
            return col.id
    return None


def expand_template(
    template: RowTemplate,
    schema: DatabaseSchema,
    title: str | None = None,
) -> ExpandedTemplate:
    """
    Build the fields and body of a row created from `template`.
    Raises TitleRequired when the title pattern needs a title and none (or a blank one) is given.
    """
    if needs_title(template) and (title is None or not title.strip()):
        raise TitleRequired(f"Template '{template.name}' requires a title")

    fields: dict[str, Any] = {}
    for key, value in template.fields.items():
        col = schema.column(key)
        if col is None or col.type == "rollup":
            logger.debug("Template %s: dropping field for unknown column %s", template.name, key)
            continue
        fields[key] = _substitute(value, title) if isinstance(value, str) else value

    if template.title is not None:
        col_id = title_column_id(schema)
        if col_id is not None:
            fields[col_id] = _substitute(template.title, title)

    for col in schema.columns:
        if col.type == "rollup" or col.id in fields:
            continue
        fields[col.id] = default_value(col.type)

    body, cursor_line = _expand_body(template.body or "", title)
    return ExpandedTemplate(fields=fields, body=body, cursor_line=cursor_line)


def template_variables(title: str | None) -> dict[str, str]:
    """Variables sent to a row store that expands templates itself."""
    return {} if title is None else {"title": title}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _substitute(text: str, title: str | None) -> str:
    if title is None:
        return text
    return text.replace(TITLE_PLACEHOLDER, title)


def _expand_body(body: str, title: str | None) -> tuple[str, int | None]:
    pos = body.find(CURSOR_MARKER)
    if pos < 0:
        return _substitute(body, title), None
    before = _substitute(body[:pos], title)
    after = _substitute(body[pos + len(CURSOR_MARKER):].replace(CURSOR_MARKER, ""), title)
    return before + after, before.count("\n")
