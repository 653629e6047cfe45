"""
Record schema for checked-in registration responses.

The registration sheet is loosely typed. This module pins it down to a
fixed set of named fields at the input boundary, so that nothing outside
the schema reaches the engine.

Field groups:
- Categorical: encoded through the code dictionary
- Numeric: passed through when they parse within range
- Date/time: normalized to ISO-8601
- Identity/text: carried on the record, never encoded
"""

import re
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Tuple


# Sheet header -> Record attribute, in sheet order
HEADER_TO_FIELD: Dict[str, str] = {
    "Timestamp": "timestamp",
    "Birthday": "birthday",
    "Zodiac": "zodiac",
    "Age Range": "age_range",
    "Education": "education",
    "Zip": "zip",
    "Ethnicity": "ethnicity",
    "Gender": "gender",
    "Orientation": "orientation",
    "Industry": "industry",
    "Role": "role",
    "Known From": "known_from",
    "Know Score": "know_score",
    "Interest_1": "interest_1",
    "Interest_2": "interest_2",
    "Interest_3": "interest_3",
    "Music Preference": "music_pref",
    "Recent Purchase": "recent_purchase",
    "At Your Worst": "at_worst",
    "Social Stance": "social_stance",
    "Screen Name": "screen_name",
    "UID": "uid",
    "Checked In": "checked_in",
    "Check-In Time": "checkin_time",
    "Photo URL": "photo_url",
}

# Categorical field -> dictionary variable key.
# The three interest fields share one code space.
CATEGORICAL_FIELDS: Dict[str, str] = {
    "zodiac": "zodiac",
    "age_range": "age_range",
    "education": "education",
    "ethnicity": "ethnicity",
    "gender": "gender",
    "orientation": "orientation",
    "industry": "industry",
    "role": "role",
    "known_from": "known_from",
    "interest_1": "interest",
    "interest_2": "interest",
    "interest_3": "interest",
    "music_pref": "music_pref",
    "recent_purchase": "recent_purchase",
    "at_worst": "at_worst",
}

INTEREST_FIELDS: Tuple[str, ...] = ("interest_1", "interest_2", "interest_3")

# Numeric field -> default inclusive (min, max)
NUMERIC_FIELDS: Dict[str, Tuple[float, float]] = {
    "zip": (0, 99999),
    "know_score": (1, 10),
    "social_stance": (1, 10),
}

# Date field -> "date" or "datetime"
DATE_FIELDS: Dict[str, str] = {
    "timestamp": "datetime",
    "birthday": "date",
    "checkin_time": "datetime",
}

CHECKED_IN_VALUES = frozenset({"true", "yes", "y", "1", "x", "checked in"})

_WHITESPACE_RE = re.compile(r"\s+")


def canonical_header(header: str) -> str:
    """Canonical form used to match sheet headers (casefolded, single-spaced)."""
    return _WHITESPACE_RE.sub(" ", str(header).strip()).casefold()


_CANONICAL_HEADERS: Dict[str, str] = {
    canonical_header(h): f for h, f in HEADER_TO_FIELD.items()
}


def field_for_header(header: str) -> Optional[str]:
    """Return the Record attribute for a sheet header, or None if unknown."""
    return _CANONICAL_HEADERS.get(canonical_header(header))


def is_checked_in(value: Any) -> bool:
    """Interpret a checked-in flag cell."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return _WHITESPACE_RE.sub(" ", str(value).strip()).casefold() in CHECKED_IN_VALUES


@dataclass(frozen=True)
class Record:
    """
    One eligible guest response.

    Values are kept exactly as read from the input provider. A field that
    was absent from the source is None. Records are immutable for the
    duration of a pipeline run.
    """
    uid: str
    timestamp: Any = None
    birthday: Any = None
    zodiac: Any = None
    age_range: Any = None
    education: Any = None
    zip: Any = None
    ethnicity: Any = None
    gender: Any = None
    orientation: Any = None
    industry: Any = None
    role: Any = None
    known_from: Any = None
    know_score: Any = None
    interest_1: Any = None
    interest_2: Any = None
    interest_3: Any = None
    music_pref: Any = None
    recent_purchase: Any = None
    at_worst: Any = None
    social_stance: Any = None
    screen_name: Any = None
    checked_in: Any = True
    checkin_time: Any = None
    photo_url: Any = None

    def __post_init__(self):
        if self.uid is None or not str(self.uid).strip():
            raise ValueError("Record requires a non-empty uid")

    def get(self, name: str) -> Any:
        """Return a field value by attribute name."""
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_mapping(cls, values: Dict[str, Any]) -> Tuple["Record", List[str]]:
        """
        Build a Record from a header-keyed or attribute-keyed mapping.

        Keys are matched against sheet headers first and Record attribute
        names second. Keys that match neither are returned, not stored.

        Args:
            values: Mapping of source column -> raw value

        Returns:
            Tuple of (record, unknown_keys)

        Raises:
            ValueError: If the mapping has no usable uid
        """
        attribute_names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        unknown: List[str] = []

        for key, value in values.items():
            name = field_for_header(key)
            if name is None and key in attribute_names:
                name = key
            if name is None:
                unknown.append(key)
                continue
            kwargs[name] = value

        uid = kwargs.pop("uid", None)
        if uid is not None:
            uid = str(uid).strip()
        return cls(uid=uid, **kwargs), unknown


def schema_field_names() -> List[str]:
    """All Record attribute names in sheet order."""
    return list(HEADER_TO_FIELD.values())
