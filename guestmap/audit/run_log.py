"""
Append-only run log.

Stages report summary counts and phase durations here. A run log that
cannot be written never stops the pipeline; the failure is logged and
the event is dropped.
"""

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class RunLog:
    """
    Logging collaborator: log_event(message, context).

    Attributes:
        path: JSON-lines file to append to (None keeps events in memory only)
        events: Events recorded during this process
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self.events: List[Dict[str, Any]] = []

    def log_event(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Record one event. Never raises."""
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "message": message,
            "context": context or {}
        }
        self.events.append(event)
        logger.info(f"{message}: {event['context']}")

        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            line = json.dumps(event, sort_keys=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not write run log event '{message}': {e}")

    @contextmanager
    def phase(self, name: str) -> Iterator[Dict[str, Any]]:
        """
        Time a pipeline phase and log its duration on exit.

        The yielded dict is merged into the logged context, so a stage can
        attach its own counts.
        """
        context: Dict[str, Any] = {}
        start = time.perf_counter()
        try:
            yield context
        finally:
            context["duration_s"] = round(time.perf_counter() - start, 4)
            self.log_event(f"phase:{name}", context)
