"""
Table sinks for pipeline artifacts.

Every artifact is a named table of rows (dicts). Column order comes from
the first row so repeated runs write byte-identical files.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import yaml

logger = logging.getLogger(__name__)


class TableSink:
    """Output collaborator: accepts named tables of rows."""

    def write_table(self, name: str, rows: List[Dict[str, Any]]) -> None:
        raise NotImplementedError

    def save_metadata(self, metadata: Dict[str, Any]) -> None:
        """Store run metadata; sinks without a place for it ignore it."""


class MemoryTableSink(TableSink):
    """Keeps tables in memory, keyed by name. Later writes replace earlier ones."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.metadata: Dict[str, Any] = {}

    def write_table(self, name: str, rows: List[Dict[str, Any]]) -> None:
        self.tables[name] = [dict(r) for r in rows]

    def save_metadata(self, metadata: Dict[str, Any]) -> None:
        self.metadata = dict(metadata)


class CsvTableSink(TableSink):
    """
    Writes each table to <output_dir>/<name>.csv.

    Attributes:
        output_dir: Directory receiving the artifacts
    """

    def __init__(self, output_dir: str, columns: Optional[Dict[str, List[str]]] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._columns = columns or {}

    def path_for(self, name: str) -> Path:
        return self.output_dir / f"{name}.csv"

    def write_table(self, name: str, rows: List[Dict[str, Any]]) -> None:
        columns = self._columns.get(name) or (list(rows[0].keys()) if rows else [])
        df = pd.DataFrame(rows, columns=columns)
        path = self.path_for(name)
        df.to_csv(path, index=False, encoding="utf-8", lineterminator="\n")
        logger.info(f"Wrote {len(df)} rows to {path}")

    def save_metadata(self, metadata: Dict[str, Any]) -> None:
        path = self.output_dir / "metadata.json"
        with open(path, "w") as f:
            json.dump(metadata, f, indent=2, default=str)
        logger.info(f"Saved run metadata to {path}")

    def save_yaml_config(self, config: Dict[str, Any], name: str = "config_used") -> None:
        path = self.output_dir / f"{name}.yaml"
        with open(path, "w") as f:
            yaml.safe_dump(config, f, sort_keys=False)
        logger.info(f"Saved configuration to {path}")

    def list_artifacts(self) -> List[str]:
        return sorted(p.name for p in self.output_dir.iterdir() if p.is_file())
