"""Code dictionary module for categorical variables."""

from .builder import (
    normalize_label,
    label_key,
    build_dictionary,
    CodeDictionary,
    DictionaryConfig,
    DictionaryEntry,
    NA_LABEL
)

__all__ = [
    "normalize_label",
    "label_key",
    "build_dictionary",
    "CodeDictionary",
    "DictionaryConfig",
    "DictionaryEntry",
    "NA_LABEL"
]
