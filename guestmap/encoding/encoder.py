"""
Numeric encoding of eligible records.

Turns each Record into a FeatureRow:
- Categorical answers become dictionary codes
- Numeric answers pass through when they parse within range (postal codes
  keep their original text)
- Date/time answers become ISO-8601 strings

Missing Values:
    Categorical: absent, unresolved, or invalid labels encode as None.
    Invalid data stays visible in the dictionary but is excluded from
    numeric analysis.
    Numeric/date: unparseable or out-of-range values encode as None.
    Dates without a four-digit year are unparseable.
    N/A answers keep their code but are listed in FeatureRow.na_fields so
    similarity scoring can tell them apart from real answers.

Every record produces exactly one row, even when all of its fields are
missing, so guest counts agree across artifacts.
"""

import logging
import math
import re
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..data_loading.schema import CATEGORICAL_FIELDS, DATE_FIELDS, INTEREST_FIELDS, NUMERIC_FIELDS, Record
from ..dictionary import CodeDictionary
from ..errors import Issue, IssueKind

logger = logging.getLogger(__name__)

MISSING_VALUE = "N/A"

TEXT_NUMERIC_FIELDS: Tuple[str, ...] = ("zip",)

_YEAR_RE = re.compile(r"\d{4}")

Number = Union[int, float]


@dataclass
class EncodingConfig:
    """
    Configuration for the encoder.

    Attributes:
        numeric_ranges: Numeric field -> inclusive (min, max)
        date_fields: Date field -> "date" or "datetime"
        text_numeric_fields: Numeric fields range-checked but kept as text
            (postal codes keep their leading zeros)
    """
    numeric_ranges: Dict[str, Tuple[float, float]] = field(default_factory=lambda: dict(NUMERIC_FIELDS))
    date_fields: Dict[str, str] = field(default_factory=lambda: dict(DATE_FIELDS))
    text_numeric_fields: Tuple[str, ...] = TEXT_NUMERIC_FIELDS

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EncodingConfig":
        """Create from main config dictionary."""
        encoding_config = config.get("encoding", {})
        ranges = dict(NUMERIC_FIELDS)
        for name, bounds in encoding_config.get("numeric_ranges", {}).items():
            ranges[name] = (float(bounds[0]), float(bounds[1]))
        text_fields = tuple(encoding_config.get("text_numeric_fields", TEXT_NUMERIC_FIELDS))
        return cls(numeric_ranges=ranges, text_numeric_fields=text_fields)


@dataclass(frozen=True)
class FeatureRow:
    """
    One numeric-encoded record, keyed by UID.

    Attributes:
        uid: Guest identifier
        codes: Categorical field -> dictionary code (None = missing)
        numerics: Numeric field -> value (None = missing)
        dates: Date field -> ISO-8601 string (None = missing)
        na_fields: Categorical fields whose code is the N/A entry
    """
    uid: str
    codes: Dict[str, Optional[int]]
    numerics: Dict[str, Optional[Union[Number, str]]]
    dates: Dict[str, Optional[str]]
    na_fields: FrozenSet[str] = frozenset()

    def code(self, field_name: str) -> Optional[int]:
        return self.codes.get(field_name)

    def answered_code(self, field_name: str) -> Optional[int]:
        """Code for a real answer; None when missing or N/A."""
        if field_name in self.na_fields:
            return None
        return self.codes.get(field_name)

    def interest_codes(self) -> frozenset:
        """Answered interest codes as a set (missing and N/A excluded)."""
        return frozenset(c for c in (self.answered_code(f) for f in INTEREST_FIELDS) if c is not None)

    def to_dict(self) -> Dict[str, Any]:
        """Flat row for the feature table; missing cells become the N/A marker."""
        row: Dict[str, Any] = {"uid": self.uid}
        for part in (self.codes, self.numerics, self.dates):
            for name, value in part.items():
                row[name] = MISSING_VALUE if value is None else value
        return row


@dataclass
class FeatureTable:
    """
    Feature rows for one run, tied to the dictionary that produced them.

    Attributes:
        rows: Feature rows in record order
        dictionary_fingerprint: Fingerprint of the CodeDictionary used
        categorical_fields: Categorical columns in schema order
    """
    rows: List[FeatureRow]
    dictionary_fingerprint: str
    categorical_fields: List[str] = field(default_factory=lambda: list(CATEGORICAL_FIELDS))

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def uids(self) -> List[str]:
        return [r.uid for r in self.rows]

    def to_rows(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.rows]

    def codes_frame(self) -> pd.DataFrame:
        """Categorical codes as a DataFrame with nullable integer columns."""
        data = {f: [r.codes.get(f) for r in self.rows] for f in self.categorical_fields}
        df = pd.DataFrame(data, index=self.uids, columns=self.categorical_fields)
        return df.astype("Int64")


@dataclass
class EncodingResult:
    """Output of the encoder: the table plus issues and per-field counts."""
    table: FeatureTable
    issues: List[Issue]
    counts: Dict[str, Dict[str, int]]

    @property
    def rows(self) -> List[FeatureRow]:
        return self.table.rows


def parse_number(value: Any, bounds: Tuple[float, float]) -> Optional[Number]:
    """
    Parse a numeric answer and check it against an inclusive range.

    Returns:
        int for integral values, float otherwise, or None if the value
        does not parse, is not finite, or is out of range
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip().replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    low, high = bounds
    if not low <= number <= high:
        return None
    return int(number) if number.is_integer() else number


def parse_date(value: Any, kind: str = "datetime") -> Optional[str]:
    """
    Normalize a date/time answer to ISO-8601.

    Args:
        value: Raw cell value
        kind: "date" for YYYY-MM-DD, "datetime" for YYYY-MM-DDTHH:MM:SS

    Returns:
        ISO-8601 string, or None if unparseable or missing a four-digit year
    """
    if value is None:
        return None
    text = str(value).strip()
    # pandas fills a missing year from the clock
    if not _YEAR_RE.search(text):
        return None

    with warnings.catch_warnings():
        # Format inference on single values warns on every call
        warnings.simplefilter("ignore", UserWarning)
        try:
            ts = pd.to_datetime(text, errors="coerce")
        except (ValueError, OverflowError, TypeError):
            return None

    if ts is None or pd.isna(ts):
        return None
    if kind == "date":
        return ts.strftime("%Y-%m-%d")
    return ts.isoformat(timespec="seconds")


def encode_record(
    record: Record,
    dictionary: CodeDictionary,
    config: EncodingConfig,
    issues: Optional[List[Issue]] = None
) -> FeatureRow:
    """
    Encode a single record.

    Args:
        record: Eligible record
        dictionary: Dictionary from the same run
        config: Encoding configuration
        issues: List to append unparseable-value issues to

    Returns:
        FeatureRow for the record
    """
    codes: Dict[str, Optional[int]] = {}
    na_fields = set()
    for field_name, key in CATEGORICAL_FIELDS.items():
        entry = dictionary.lookup(key, record.get(field_name))
        codes[field_name] = entry.code if entry is not None and entry.is_valid else None
        if codes[field_name] is not None and codes[field_name] == dictionary.na_code(key):
            na_fields.add(field_name)

    numerics: Dict[str, Optional[Union[Number, str]]] = {}
    for field_name, bounds in config.numeric_ranges.items():
        raw = record.get(field_name)
        value = parse_number(raw, bounds)
        if value is None and raw is not None and str(raw).strip() and issues is not None:
            issues.append(Issue(
                IssueKind.UNPARSEABLE_VALUE, record.uid, field_name,
                f"not a number in [{bounds[0]:g}, {bounds[1]:g}]: {raw!r}"
            ))
        if value is not None and field_name in config.text_numeric_fields:
            value = str(raw).strip()
        numerics[field_name] = value

    dates: Dict[str, Optional[str]] = {}
    for field_name, kind in config.date_fields.items():
        raw = record.get(field_name)
        value = parse_date(raw, kind)
        if value is None and raw is not None and str(raw).strip() and issues is not None:
            issues.append(Issue(IssueKind.UNPARSEABLE_VALUE, record.uid, field_name, f"unparseable date: {raw!r}"))
        dates[field_name] = value

    return FeatureRow(uid=record.uid, codes=codes, numerics=numerics, dates=dates, na_fields=frozenset(na_fields))


def encode_records(
    records: Sequence[Record],
    dictionary: CodeDictionary,
    config: Optional[EncodingConfig] = None
) -> EncodingResult:
    """
    Encode all eligible records against the run's dictionary.

    Args:
        records: Eligible records in input order
        dictionary: Dictionary built from the same records
        config: Encoding configuration (defaults if None)

    Returns:
        EncodingResult with one row per record
    """
    config = config or EncodingConfig()
    logger.info(f"Encoding {len(records)} records")

    issues: List[Issue] = []
    rows = [encode_record(record, dictionary, config, issues) for record in records]

    counts: Dict[str, Dict[str, int]] = {}
    for field_name, key in CATEGORICAL_FIELDS.items():
        na_code = dictionary.na_code(key)
        c = {"valid": 0, "na": 0, "missing": 0}
        for row in rows:
            code = row.codes[field_name]
            if code is None:
                c["missing"] += 1
            elif code == na_code:
                c["na"] += 1
            else:
                c["valid"] += 1
        counts[field_name] = c

    logger.info(f"Encoded {len(rows)} rows ({len(issues)} unparseable values)")

    table = FeatureTable(rows=rows, dictionary_fingerprint=dictionary.fingerprint)
    return EncodingResult(table=table, issues=issues, counts=counts)


def decode_row(row: FeatureRow, dictionary: CodeDictionary) -> Dict[str, Optional[str]]:
    """Map a row's categorical codes back to their dictionary labels."""
    return {
        field_name: (dictionary.decode(key, row.codes[field_name]) if row.codes[field_name] is not None else None)
        for field_name, key in CATEGORICAL_FIELDS.items()
    }
