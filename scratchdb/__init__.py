"""scratchdb: schema-driven databases embedded in notes."""

__version__ = "0.1.0"
