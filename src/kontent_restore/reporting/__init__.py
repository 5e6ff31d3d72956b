"""Progress and error reporting for restore runs."""

from kontent_restore.reporting.reporter import ImportReporter

__all__ = [
    "ImportReporter",
]
