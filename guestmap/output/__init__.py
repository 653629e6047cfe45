"""Output sinks for pipeline artifacts."""

from .sinks import TableSink, MemoryTableSink, CsvTableSink

__all__ = ["TableSink", "MemoryTableSink", "CsvTableSink"]
