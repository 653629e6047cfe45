"""
Categorical code dictionary construction.

Builds one code space per categorical variable from the eligible records.
Labels are normalized before comparison so that noisy free-text answers
("leo ", "Leo", "LEO") fold into one entry.

Normalization Rule:
    trim -> collapse internal whitespace -> NA spellings map to "N/A"
    equality is case-insensitive; display keeps the first-seen casing

Code Assignment:
    codes start at 1 per variable and follow first-seen order while
    scanning records in input order (fields in schema order within a record)

Validity:
    invalid labels (too long, disallowed characters, empty but not NA)
    still receive a code but are flagged is_valid=False
"""

import hashlib
import logging
import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..data_loading.schema import CATEGORICAL_FIELDS, Record

logger = logging.getLogger(__name__)

NA_LABEL = "N/A"
DEFAULT_NA_SPELLINGS: Tuple[str, ...] = ("", "n/a", "na", "none", "null", "-")

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_label(raw: Any, na_spellings: Iterable[str] = DEFAULT_NA_SPELLINGS) -> Optional[str]:
    """
    Normalize a raw categorical answer.

    Args:
        raw: Raw cell value
        na_spellings: Spellings (compared casefolded) that mean "not applicable"

    Returns:
        Normalized label, "N/A" for recognized NA spellings, or None if the
        value is absent altogether
    """
    if raw is None:
        return None
    if isinstance(raw, float) and math.isnan(raw):
        return None

    label = _WHITESPACE_RE.sub(" ", str(raw).strip())
    if label.casefold() in {s.casefold() for s in na_spellings}:
        return NA_LABEL
    return label


def label_key(label: str) -> str:
    """Equality key for a normalized label."""
    return label.casefold()


@dataclass
class DictionaryConfig:
    """
    Configuration for dictionary construction.

    Attributes:
        max_label_length: Labels longer than this are invalid
        disallowed_characters: Characters that make a label invalid (empty = none)
        na_spellings: Answers that map to the canonical "N/A" label
        fields: Categorical field -> variable key, in scan order
    """
    max_label_length: int = 60
    disallowed_characters: str = ""
    na_spellings: Tuple[str, ...] = DEFAULT_NA_SPELLINGS
    fields: Dict[str, str] = field(default_factory=lambda: dict(CATEGORICAL_FIELDS))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DictionaryConfig":
        """Create from main config dictionary."""
        dict_config = config.get("dictionary", {})
        return cls(
            max_label_length=dict_config.get("max_label_length", 60),
            disallowed_characters=dict_config.get("disallowed_characters", "") or "",
            na_spellings=tuple(dict_config.get("na_spellings", DEFAULT_NA_SPELLINGS))
        )

    def is_valid_label(self, label: str) -> bool:
        """Apply the categorical-label policy to a normalized label."""
        if label == NA_LABEL:
            return True
        if not label:
            return False
        if len(label) > self.max_label_length:
            return False
        if not label.isprintable():
            return False
        if self.disallowed_characters and any(c in self.disallowed_characters for c in label):
            return False
        return True


@dataclass(frozen=True)
class DictionaryEntry:
    """One code assignment: (key, label, code, is_valid)."""
    key: str
    label: str
    code: int
    is_valid: bool

    def to_row(self) -> Dict[str, Any]:
        return {"key": self.key, "label": self.label, "code": self.code, "valid": self.is_valid}


class CodeDictionary:
    """
    Immutable code dictionary produced by one build run.

    Lookups go through the same normalization as the build, so callers can
    pass raw answers directly.
    """

    def __init__(
        self,
        entries: Sequence[DictionaryEntry],
        na_spellings: Iterable[str] = DEFAULT_NA_SPELLINGS
    ):
        self._entries: Tuple[DictionaryEntry, ...] = tuple(entries)
        self._na_spellings = tuple(na_spellings)

        by_label: Dict[str, Dict[str, DictionaryEntry]] = {}
        by_code: Dict[str, Dict[int, DictionaryEntry]] = {}
        for entry in self._entries:
            labels = by_label.setdefault(entry.key, {})
            codes = by_code.setdefault(entry.key, {})
            if label_key(entry.label) in labels or entry.code in codes:
                raise ValueError(f"Duplicate dictionary entry for {entry.key}: {entry.label} / {entry.code}")
            labels[label_key(entry.label)] = entry
            codes[entry.code] = entry

        self._by_label = MappingProxyType({k: MappingProxyType(v) for k, v in by_label.items()})
        self._by_code = MappingProxyType({k: MappingProxyType(v) for k, v in by_code.items()})
        self._fingerprint = _fingerprint(self._entries)

    @property
    def entries(self) -> Tuple[DictionaryEntry, ...]:
        return self._entries

    @property
    def keys(self) -> List[str]:
        """Variable keys in first-entry order."""
        return list(self._by_label.keys())

    @property
    def fingerprint(self) -> str:
        """Content hash identifying this build."""
        return self._fingerprint

    @property
    def na_spellings(self) -> Tuple[str, ...]:
        return self._na_spellings

    def entries_for(self, key: str) -> List[DictionaryEntry]:
        return [e for e in self._entries if e.key == key]

    def lookup(self, key: str, raw: Any) -> Optional[DictionaryEntry]:
        """Find the entry for a raw answer, or None if unknown or absent."""
        label = normalize_label(raw, self._na_spellings)
        if label is None:
            return None
        return self._by_label.get(key, {}).get(label_key(label))

    def decode(self, key: str, code: int) -> Optional[str]:
        """Return the display label for a code, or None if the code is unknown."""
        entry = self._by_code.get(key, {}).get(code)
        return entry.label if entry is not None else None

    def na_code(self, key: str) -> Optional[int]:
        entry = self._by_label.get(key, {}).get(label_key(NA_LABEL))
        return entry.code if entry is not None else None

    def to_rows(self) -> List[Dict[str, Any]]:
        """Rows for the dictionary table (key, label, code, valid)."""
        return [e.to_row() for e in self._entries]

    def summary(self) -> Dict[str, Dict[str, int]]:
        """Entry counts per key."""
        counts: Dict[str, Dict[str, int]] = {}
        for entry in self._entries:
            c = counts.setdefault(entry.key, {"entries": 0, "valid": 0, "invalid": 0})
            c["entries"] += 1
            c["valid" if entry.is_valid else "invalid"] += 1
        return counts

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CodeDictionary({len(self._entries)} entries, {len(self._by_label)} keys)"


def _fingerprint(entries: Sequence[DictionaryEntry]) -> str:
    digest = hashlib.sha256()
    for e in entries:
        digest.update(f"{e.key}\x1f{e.label}\x1f{e.code}\x1f{int(e.is_valid)}\x1e".encode("utf-8"))
    return digest.hexdigest()


def build_dictionary(
    records: Sequence[Record],
    config: Optional[DictionaryConfig] = None
) -> CodeDictionary:
    """
    Build the code dictionary from eligible records.

    Args:
        records: Eligible records in stable input order
        config: Dictionary configuration (defaults if None)

    Returns:
        CodeDictionary for this run
    """
    config = config or DictionaryConfig()
    logger.info(f"Building dictionary over {len(records)} records, {len(config.fields)} fields")

    entries: List[DictionaryEntry] = []
    seen: Dict[str, Dict[str, DictionaryEntry]] = {}

    # Make sure every variable key exists even when no record answers it
    for key in config.fields.values():
        seen.setdefault(key, {})

    for record in records:
        for field_name, key in config.fields.items():
            label = normalize_label(record.get(field_name), config.na_spellings)
            if label is None:
                continue
            labels = seen[key]
            if label_key(label) in labels:
                continue
            entry = DictionaryEntry(
                key=key,
                label=label,
                code=len(labels) + 1,
                is_valid=config.is_valid_label(label)
            )
            labels[label_key(label)] = entry
            entries.append(entry)

    invalid = sum(1 for e in entries if not e.is_valid)
    logger.info(f"Dictionary built: {len(entries)} entries across {len(seen)} keys ({invalid} invalid)")

    return CodeDictionary(entries, na_spellings=config.na_spellings)
