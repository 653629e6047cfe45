"""Run log for external audit."""

from .run_log import RunLog

__all__ = ["RunLog"]
