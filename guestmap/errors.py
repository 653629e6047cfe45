"""
Error taxonomy for the guestmap engine.

Only configuration problems are raised as exceptions. Everything that goes
wrong for a single record, variable pair or guest pair is recorded as an
Issue and recovered locally so the rest of the run can complete.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class GuestmapError(Exception):
    """Base class for guestmap errors."""


class ConfigurationError(GuestmapError, ValueError):
    """Raised when a configured variable key or option does not match the schema."""


class InputError(GuestmapError, ValueError):
    """Raised when the rows handed to a stage break its input contract (e.g. repeated UIDs)."""


class IssueKind(Enum):
    """Kinds of recoverable problems recorded during a run."""
    MISSING_FIELD = "missing_field"
    LOW_SAMPLE = "low_sample"
    UNPARSEABLE_VALUE = "unparseable_value"
    CONFIGURATION = "configuration"
    PAIR_FAILURE = "pair_failure"


@dataclass(frozen=True)
class Issue:
    """
    A recoverable problem tied to one subject.

    Attributes:
        kind: Issue category
        subject: What the issue is about (a UID, a variable pair, a guest pair)
        field: Field or variable name involved, if any
        detail: Human-readable description
    """
    kind: IssueKind
    subject: str
    field: Optional[str] = None
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d
