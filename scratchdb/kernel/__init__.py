"""
scratchdb Kernel: the database engine.

Pure components:
  columns     column types, defaults, display coercion
  filters     structured and quick filters
  sorting     multi-level stable sort
  templates   row template expansion
  projector   table / board / calendar projection

Stateful:
  rollup      cross-database aggregates over a read-through cache
  session     local state reconciled with a RowStore
"""

from scratchdb.kernel.filters import apply_filters, matches_all
from scratchdb.kernel.projector import prepare_rows, project
from scratchdb.kernel.session import DatabaseCatalog, DatabaseSession, render_database_block
from scratchdb.kernel.sorting import sort_rows
from scratchdb.kernel.templates import expand_template

__all__ = [
    "apply_filters",
    "matches_all",
    "sort_rows",
    "expand_template",
    "prepare_rows",
    "project",
    "DatabaseCatalog",
    "DatabaseSession",
    "render_database_block",
]
