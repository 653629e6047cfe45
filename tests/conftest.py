"""Pytest configuration and fixtures for test suite."""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Optional, Sequence

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from guestmap.data_loading import CATEGORICAL_FIELDS, Record  # noqa: E402
from guestmap.encoding import FeatureRow, FeatureTable  # noqa: E402


@pytest.fixture
def make_record() -> Callable[..., Record]:
    """Factory for records; unspecified fields stay None."""

    def _factory(uid: str = "u001", **fields) -> Record:
        return Record(uid=uid, **fields)

    return _factory


@pytest.fixture
def make_row() -> Callable[..., FeatureRow]:
    """Factory for feature rows with only the categorical codes that matter."""

    def _factory(
        uid: str,
        interests: Sequence[Optional[int]] = (),
        music: Optional[int] = None,
        purchase: Optional[int] = None,
        at_worst: Optional[int] = None,
        **codes: Optional[int],
    ) -> FeatureRow:
        values = {name: None for name in CATEGORICAL_FIELDS}
        padded = list(interests) + [None] * (3 - len(interests))
        values.update({"interest_1": padded[0], "interest_2": padded[1], "interest_3": padded[2]})
        values.update({"music_pref": music, "recent_purchase": purchase, "at_worst": at_worst})
        values.update(codes)
        return FeatureRow(uid=uid, codes=values, numerics={}, dates={})

    return _factory


@pytest.fixture
def make_table() -> Callable[..., FeatureTable]:
    """Wrap feature rows in a table with a placeholder fingerprint."""

    def _factory(rows: Sequence[FeatureRow]) -> FeatureTable:
        return FeatureTable(rows=list(rows), dictionary_fingerprint="test")

    return _factory


@pytest.fixture
def config_path() -> Path:
    """Path to the repository's default configuration."""
    return PROJECT_ROOT / "configs" / "config.yaml"
