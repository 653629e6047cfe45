"""
Main pipeline runner for the guestmap engine.

This is the single entrypoint for recomputing all artifacts from the
current set of checked-in registrations.

Usage:
    python -m guestmap.run --config configs/config.yaml

The pipeline performs the following steps:
1. Load eligible (checked-in) records
2. Build the categorical code dictionary
3. Encode records into feature rows
4. Compute the Cramér's V association matrix
5. Compute the guest similarity graph
6. Build wall connections (optional)
7. Write all artifacts and the run summary
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .association import AssociationConfig, compute_association_matrix
from .audit import RunLog
from .configs import load_config, validate_config
from .data_loading import (
    CATEGORICAL_FIELDS,
    FrameRegistrationProvider,
    Record,
    count_not_checked_in,
    load_provider
)
from .dictionary import DictionaryConfig, build_dictionary
from .encoding import EncodingConfig, encode_records
from .errors import GuestmapError, Issue, IssueKind
from .evaluation import create_run_report
from .grouping import build_wall_connections
from .output import CsvTableSink, TableSink
from .similarity import SimilarityConfig, compute_similarity

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2

# Header rows for tables that may legitimately be empty
EMPTY_TABLE_COLUMNS = {
    "association_diagnostics": ["variable_a", "variable_b", "n", "reason"],
    "similarity_edges": ["uid_a", "uid_b", "score", "reasons"],
    "wall_connections": ["key", "label", "uid_a", "uid_b"],
}


def setup_logging(log_level: str) -> None:
    """Configure logging level from config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


def _banner(title: str) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def run_engine(
    records: Sequence[Record],
    config: Dict[str, Any],
    sink: TableSink,
    run_log: Optional[RunLog] = None
) -> Dict[str, Any]:
    """
    Run the four engine stages over an eligible record set.

    Each artifact is written to the sink as soon as its stage completes.
    A configuration or input error in the association, similarity or wall
    stage is reported in the result and does not stop the other stages.

    Args:
        records: Eligible records in stable input order
        config: Configuration dictionary
        sink: Output collaborator for artifact tables
        run_log: Logging collaborator (in-memory if None)

    Returns:
        Dictionary with stage outputs, issues, errors and the run report
    """
    run_log = run_log or RunLog()
    records = list(records)
    errors: List[str] = []
    issues: List[Issue] = []

    not_checked_in = count_not_checked_in(records)
    if not_checked_in:
        logger.warning(f"{not_checked_in} records passed to the engine are not flagged as checked in")

    # =========================================================================
    # 1. Dictionary
    # =========================================================================
    _banner("STEP 1: Building Dictionary")

    with run_log.phase("dictionary") as ctx:
        dictionary = build_dictionary(records, DictionaryConfig.from_config(config))
        sink.write_table("dictionary", dictionary.to_rows())
        ctx["entries_per_key"] = {k: c["entries"] for k, c in dictionary.summary().items()}

    # =========================================================================
    # 2. Encoding
    # =========================================================================
    _banner("STEP 2: Encoding Features")

    with run_log.phase("encoding") as ctx:
        encoding = encode_records(records, dictionary, EncodingConfig.from_config(config))
        if encoding.table.dictionary_fingerprint != dictionary.fingerprint:
            raise RuntimeError("Feature rows were encoded against a different dictionary build")
        issues.extend(encoding.issues)
        sink.write_table("features", encoding.table.to_rows())
        ctx["rows"] = len(encoding.rows)
        ctx["field_counts"] = encoding.counts
        ctx["unparseable_values"] = len(encoding.issues)

    # =========================================================================
    # 3. Association
    # =========================================================================
    _banner("STEP 3: Association Matrix (Cramér's V)")

    association = None
    with run_log.phase("association") as ctx:
        try:
            association = compute_association_matrix(encoding.table, AssociationConfig.from_config(config))
            sink.write_table("association", association.matrix_rows())
            sink.write_table("association_diagnostics", association.diagnostic_rows())
            for d in association.diagnostics:
                issues.append(Issue(IssueKind.LOW_SAMPLE, f"{d.variable_a}|{d.variable_b}", None,
                                    f"{d.reason} (n={d.sample_size})"))
            ctx["skipped_pairs"] = [d.to_row() for d in association.diagnostics]
        except GuestmapError as e:
            logger.error(f"Association stage failed: {e}")
            errors.append(f"association: {e}")
            ctx["error"] = str(e)

    # =========================================================================
    # 4. Similarity
    # =========================================================================
    _banner("STEP 4: Guest Similarity")

    similarity = None
    with run_log.phase("similarity") as ctx:
        try:
            similarity = compute_similarity(encoding.table, SimilarityConfig.from_config(config))
            sink.write_table(similarity.table_name, similarity.to_rows())
            issues.extend(similarity.issues)
            ctx["mode"] = similarity.mode
            ctx["edges"] = len(similarity.edges)
            ctx["pairs_scored"] = len(similarity.scores)
            ctx["truncated"] = similarity.truncated
        except GuestmapError as e:
            logger.error(f"Similarity stage failed: {e}")
            errors.append(f"similarity: {e}")
            ctx["error"] = str(e)

    # =========================================================================
    # 5. Wall connections
    # =========================================================================
    group_keys = config.get("wall", {}).get("group_keys", []) or []
    if group_keys:
        _banner("STEP 5: Wall Connections")
        with run_log.phase("wall") as ctx:
            unknown = [k for k in group_keys if k not in CATEGORICAL_FIELDS]
            if unknown:
                message = f"Unknown wall group keys: {unknown}"
                logger.error(message)
                errors.append(f"wall: {message}")
                ctx["error"] = message
            else:
                rows = build_wall_connections(encoding.table, dictionary, group_keys, CATEGORICAL_FIELDS)
                sink.write_table("wall_connections", rows)
                ctx["connections"] = len(rows)

    report = create_run_report(
        n_records=len(records),
        dictionary_counts=dictionary.summary(),
        feature_counts=encoding.counts,
        association=association,
        similarity=similarity
    )
    logger.info("\n" + report.summary())
    run_log.log_event("run:complete", {"records": len(records), "issues": len(issues), "errors": errors})

    return {
        "success": not errors,
        "errors": errors,
        "issues": issues,
        "dictionary": dictionary,
        "encoding": encoding,
        "association": association,
        "similarity": similarity,
        "report": report
    }


def run_pipeline(config_path: str, output_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Run the complete pipeline from a configuration file.

    Args:
        config_path: Path to the configuration YAML file
        output_dir: If provided, write artifacts to this directory instead of config default

    Returns:
        Dictionary with pipeline results and paths to artifacts
    """
    _banner("GUESTMAP PIPELINE")

    config = load_config(config_path)
    for issue in validate_config(config):
        logger.warning(f"Config issue: {issue}")

    setup_logging(config.get("global", {}).get("log_level", "INFO"))

    effective_output_dir = output_dir or config.get("global", {}).get("output_dir", "artifacts")
    sink = CsvTableSink(effective_output_dir, columns=EMPTY_TABLE_COLUMNS)

    run_log_path = config.get("audit", {}).get("run_log_path")
    if output_dir or not run_log_path:
        run_log_path = str(sink.output_dir / "run_log.jsonl")
    run_log = RunLog(run_log_path)

    # =========================================================================
    # Load data
    # =========================================================================
    _banner("STEP 0: Loading Records")

    provider = load_provider(config)
    try:
        if provider is None:
            raise FileNotFoundError("No data.registrations.path configured")
        records = provider.fetch_eligible_records()
        provider_issues = provider.issues
    except FileNotFoundError as e:
        logger.error(f"Registration data not found: {e}")
        logger.info("Creating synthetic registration data for demonstration...")
        synthetic = FrameRegistrationProvider(_create_synthetic_registrations())
        records = synthetic.fetch_eligible_records()
        provider_issues = synthetic.issues

    run_log.log_event("records:loaded", {"eligible": len(records), "provider_issues": len(provider_issues)})

    result = run_engine(records, config, sink, run_log)
    result["issues"] = list(provider_issues) + result["issues"]

    metadata = {
        "run_timestamp": datetime.now().isoformat(),
        "config_path": config_path,
        "eligible_records": len(records),
        "dictionary_fingerprint": result["dictionary"].fingerprint,
        "errors": result["errors"],
        "issues": [i.to_dict() for i in result["issues"]]
    }
    sink.save_metadata(metadata)
    sink.save_yaml_config(config, "config_used")

    _banner("PIPELINE COMPLETE" if result["success"] else "PIPELINE COMPLETE WITH ERRORS")
    logger.info("Artifacts saved:")
    for name in sink.list_artifacts():
        logger.info(f"  - {name}")

    result["output_dir"] = str(sink.output_dir)
    return result


def _create_synthetic_registrations(n_guests: int = 60, seed: int = 42) -> pd.DataFrame:
    """Create synthetic registration data for demonstration when real data is unavailable."""
    rng = np.random.RandomState(seed)

    zodiacs = ["Leo", "leo ", "Virgo", "Aries", "Pisces", "N/A", ""]
    interests = ["Hiking", "hiking", "Board Games", "Cooking", "Film", "Jazz", "Climbing", "Poetry"]
    music = ["Jazz", "Hip Hop", "Indie", "Classical", "n/a"]
    purchases = ["Books", "Plants", "Concert tickets", "Sneakers"]
    worst = ["Grumpy", "Withdrawn", "Anxious", "Hangry"]

    rows = []
    for i in range(n_guests):
        picked = rng.choice(interests, size=3, replace=False)
        rows.append({
            "Timestamp": f"2024-05-{1 + i % 28:02d} 19:{i % 60:02d}:00",
            "Birthday": f"19{80 + i % 20}-0{1 + i % 9}-1{i % 10}",
            "Zodiac": rng.choice(zodiacs),
            "Age Range": rng.choice(["18-24", "25-34", "35-44", "45+"]),
            "Education": rng.choice(["High School", "Bachelors", "Masters", "PhD"]),
            "Zip": str(rng.choice([94110, 10001, 60614, 2139, 999999])),
            "Ethnicity": rng.choice(["Asian", "Black", "Hispanic", "White", "Mixed"]),
            "Gender": rng.choice(["Woman", "Man", "Non-binary"]),
            "Orientation": rng.choice(["Straight", "Gay", "Bi", "Queer"]),
            "Industry": rng.choice(["Tech", "Health", "Education", "Arts"]),
            "Role": rng.choice(["Engineer", "Manager", "Student", "Artist"]),
            "Known From": rng.choice(["Work", "School", "Friend of friend"]),
            "Know Score": str(rng.randint(1, 11)),
            "Interest_1": picked[0],
            "Interest_2": picked[1],
            "Interest_3": picked[2],
            "Music Preference": rng.choice(music),
            "Recent Purchase": rng.choice(purchases),
            "At Your Worst": rng.choice(worst),
            "Social Stance": str(rng.randint(1, 11)),
            "Screen Name": f"guest{i:03d}",
            "UID": f"G{i:04d}",
            "Checked In": "TRUE" if rng.rand() < 0.85 else "FALSE",
            "Check-In Time": f"2024-06-01 18:{i % 60:02d}:00",
            "Photo URL": ""
        })

    df = pd.DataFrame(rows)
    logger.info(f"Created synthetic registration data: {n_guests} rows")
    return df


def main():
    """Main entry point for the pipeline."""
    parser = argparse.ArgumentParser(
        description="Recompute dictionary, features, association and similarity artifacts"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for artifacts (overrides config)"
    )

    args = parser.parse_args()

    try:
        result = run_pipeline(args.config, output_dir=args.output_dir)
        if result["success"]:
            logger.info("\nPipeline completed successfully!")
            return EXIT_OK
        else:
            for error in result["errors"]:
                logger.error(f"Stage error: {error}")
            return EXIT_CONFIGURATION
    except Exception as e:
        logger.exception(f"Pipeline failed with error: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
