"""
Data loading functions for registration sheets.

This module handles loading the raw registration export from CSV and
turning it into strict Record objects. No normalization or encoding is
done here - that's handled by the dictionary and encoding modules.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from ..errors import Issue, IssueKind
from .schema import Record, field_for_header, is_checked_in, schema_field_names

logger = logging.getLogger(__name__)


def load_registration_data(filepath: str, delimiter: str = ",") -> pd.DataFrame:
    """
    Load the registration sheet export from CSV.

    Every cell is read as text and pandas' NA detection is disabled, so a
    literal "N/A" or an empty answer reaches the dictionary builder as-is.

    Args:
        filepath: Path to the registration CSV
        delimiter: Field delimiter (default: comma)

    Returns:
        DataFrame with raw registration data

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Registration data file not found: {filepath}")

    logger.info(f"Loading registration data from {filepath} (delimiter: {repr(delimiter)})")
    df = pd.read_csv(filepath, sep=delimiter, dtype=str, keep_default_na=False)

    if df.empty:
        raise ValueError(f"Registration data file is empty: {filepath}")

    logger.info(f"Loaded {len(df)} rows with {len(df.columns)} columns")
    return df


def records_from_frame(
    df: pd.DataFrame,
    checked_in_only: bool = True
) -> Tuple[List[Record], List[Issue]]:
    """
    Convert a raw registration DataFrame into Records.

    Rows keep their sheet order. Columns outside the schema are dropped and
    reported once. Schema fields missing from the sheet are reported once and
    left as None on every record.

    Args:
        df: Raw registration DataFrame
        checked_in_only: Keep only rows whose checked-in flag is set

    Returns:
        Tuple of (records, issues)
    """
    issues: List[Issue] = []

    column_to_field: Dict[str, str] = {}
    unknown_columns: List[str] = []
    for column in df.columns:
        name = field_for_header(column)
        if name is None or name in column_to_field.values():
            unknown_columns.append(column)
        else:
            column_to_field[column] = name

    if unknown_columns:
        logger.warning(f"Dropping {len(unknown_columns)} columns outside the schema: {unknown_columns}")

    present = set(column_to_field.values())
    for name in schema_field_names():
        if name not in present:
            issues.append(Issue(IssueKind.MISSING_FIELD, "*", name, "column absent from source"))
            logger.warning(f"Source has no column for field '{name}'; treating it as missing")

    records: List[Record] = []
    seen_uids = set()
    skipped_gate = 0

    for position, row in enumerate(df.to_dict(orient="records")):
        values: Dict[str, Any] = {
            name: _clean_cell(row[column]) for column, name in column_to_field.items()
        }

        if checked_in_only and not is_checked_in(values.get("checked_in")):
            skipped_gate += 1
            continue

        try:
            record, _ = Record.from_mapping(values)
        except ValueError:
            logger.warning(f"Skipping row {position}: no UID")
            issues.append(Issue(IssueKind.MISSING_FIELD, f"row:{position}", "uid", "row has no UID"))
            continue

        if record.uid in seen_uids:
            logger.warning(f"Skipping row {position}: duplicate UID {record.uid}")
            continue

        seen_uids.add(record.uid)
        records.append(record)

    logger.info(f"Built {len(records)} records ({skipped_gate} rows not checked in)")
    return records, issues


def _clean_cell(value: Any) -> Any:
    """Map pandas NA markers to None; leave everything else untouched."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


class CsvRegistrationProvider:
    """
    Input provider backed by a CSV export of the registration sheet.

    Attributes:
        filepath: Path to the registration CSV
        delimiter: Field delimiter
        issues: Issues recorded by the last fetch
    """

    def __init__(self, filepath: str, delimiter: str = ","):
        self.filepath = filepath
        self.delimiter = delimiter
        self.issues: List[Issue] = []

    def fetch_eligible_records(self) -> List[Record]:
        """Load the sheet and return checked-in records in sheet order."""
        df = load_registration_data(self.filepath, delimiter=self.delimiter)
        records, self.issues = records_from_frame(df, checked_in_only=True)
        return records


class FrameRegistrationProvider:
    """Input provider over an in-memory DataFrame (synthetic data, notebooks)."""

    def __init__(self, df: pd.DataFrame):
        self.df = df
        self.issues: List[Issue] = []

    def fetch_eligible_records(self) -> List[Record]:
        records, self.issues = records_from_frame(self.df, checked_in_only=True)
        return records


def count_not_checked_in(records: List[Record]) -> int:
    """Sanity check on provider output: records not flagged as checked in."""
    return sum(1 for r in records if not is_checked_in(r.checked_in))


def load_provider(config: Dict[str, Any]) -> Optional[CsvRegistrationProvider]:
    """
    Create a CSV provider from the data section of the config.

    Returns:
        Provider, or None if no registrations path is configured
    """
    data_config = config.get("data", {}).get("registrations", {})
    path = data_config.get("path")
    if not path:
        return None
    return CsvRegistrationProvider(path, delimiter=data_config.get("delimiter", ","))
