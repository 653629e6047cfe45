"""Encoding module for numeric feature rows."""

from .encoder import (
    encode_records,
    encode_record,
    decode_row,
    parse_number,
    parse_date,
    EncodingConfig,
    EncodingResult,
    FeatureRow,
    FeatureTable,
    MISSING_VALUE
)

__all__ = [
    "encode_records",
    "encode_record",
    "decode_row",
    "parse_number",
    "parse_date",
    "EncodingConfig",
    "EncodingResult",
    "FeatureRow",
    "FeatureTable",
    "MISSING_VALUE"
]
