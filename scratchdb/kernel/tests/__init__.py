"""
scratchdb Kernel Test Suite

Pure components (columns, filters, sorting, rollup aggregation, templates,
board, calendar, table) are tested directly. Rollup resolution and the
session run against MemoryRowStore.
"""
