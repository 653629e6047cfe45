"""Data loading module for registration records."""

from .loaders import (
    load_registration_data,
    records_from_frame,
    CsvRegistrationProvider,
    FrameRegistrationProvider,
    count_not_checked_in,
    load_provider
)
from .schema import (
    Record,
    CATEGORICAL_FIELDS,
    INTEREST_FIELDS,
    NUMERIC_FIELDS,
    DATE_FIELDS
)

__all__ = [
    "load_registration_data",
    "records_from_frame",
    "CsvRegistrationProvider",
    "FrameRegistrationProvider",
    "count_not_checked_in",
    "load_provider",
    "Record",
    "CATEGORICAL_FIELDS",
    "INTEREST_FIELDS",
    "NUMERIC_FIELDS",
    "DATE_FIELDS"
]
