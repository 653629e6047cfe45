"""Tests for output sinks."""

import json

import pytest
import yaml

from guestmap.output import CsvTableSink, MemoryTableSink


@pytest.mark.unit
def test_memory_sink_stores_copies() -> None:
    """Test the memory sink keeps rows by table name."""
    sink = MemoryTableSink()
    rows = [{"a": 1}]
    sink.write_table("t", rows)
    rows[0]["a"] = 2

    assert sink.tables == {"t": [{"a": 1}]}


@pytest.mark.unit
def test_csv_sink_writes_in_first_row_order(tmp_path) -> None:
    """Test columns follow the first row's keys with LF line endings."""
    sink = CsvTableSink(str(tmp_path / "out"))
    sink.write_table("dictionary", [
        {"key": "zodiac", "label": "Leo", "code": 1, "valid": True},
        {"key": "zodiac", "label": "Virgo", "code": 2, "valid": True},
    ])

    content = sink.path_for("dictionary").read_bytes()
    assert content == b"key,label,code,valid\nzodiac,Leo,1,True\nzodiac,Virgo,2,True\n"


@pytest.mark.unit
def test_csv_sink_utf8(tmp_path) -> None:
    """Test non-ASCII labels are written as UTF-8."""
    sink = CsvTableSink(str(tmp_path))
    sink.write_table("dictionary", [{"label": "Café"}])
    assert "Café" in sink.path_for("dictionary").read_text(encoding="utf-8")


@pytest.mark.unit
def test_csv_sink_empty_table(tmp_path) -> None:
    """Test an empty table with known columns writes just the header."""
    sink = CsvTableSink(str(tmp_path), columns={"similarity_edges": ["uid_a", "uid_b", "score", "reasons"]})
    sink.write_table("similarity_edges", [])
    assert sink.path_for("similarity_edges").read_text() == "uid_a,uid_b,score,reasons\n"


@pytest.mark.unit
def test_csv_sink_metadata_and_config(tmp_path) -> None:
    """Test metadata and config snapshots are written beside the tables."""
    sink = CsvTableSink(str(tmp_path))
    sink.save_metadata({"n_records": 3})
    sink.save_yaml_config({"similarity": {"top_n": 5}})

    assert json.loads((tmp_path / "metadata.json").read_text()) == {"n_records": 3}
    assert yaml.safe_load((tmp_path / "config_used.yaml").read_text()) == {"similarity": {"top_n": 5}}
    assert sink.list_artifacts() == ["config_used.yaml", "metadata.json"]
