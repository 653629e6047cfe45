"""
Configuration loading and validation.

This module handles loading of YAML configuration files and
validates that all required fields are present.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List

import yaml

logger = logging.getLogger(__name__)


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        filepath: Path to the YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    logger.info(f"Loading configuration from {filepath}")
    with open(filepath, "r") as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Configuration file is empty: {filepath}")

    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return list of warnings/errors.

    Scope keys are not checked here; the association and similarity stages
    raise ConfigurationError for those so the caller sees which stage failed.

    Args:
        config: Configuration dictionary

    Returns:
        List of warning/error messages (empty if valid)
    """
    issues = []

    # Check required top-level sections
    required_sections = ["global", "data", "dictionary", "association", "similarity"]

    for section in required_sections:
        if section not in config:
            issues.append(f"Missing required section: {section}")

    # Check data path
    if "data" in config:
        data = config["data"]
        if "registrations" not in data or "path" not in data.get("registrations", {}):
            issues.append("Missing data.registrations.path")

    if "dictionary" in config:
        max_len = config["dictionary"].get("max_label_length", 60)
        if not isinstance(max_len, int) or max_len < 1:
            issues.append(f"dictionary.max_label_length must be a positive integer, got {max_len}")

    if "association" in config:
        min_n = config["association"].get("min_sample_size", 5)
        if not isinstance(min_n, int) or min_n < 2:
            issues.append(f"association.min_sample_size must be an integer >= 2, got {min_n}")

    # Check similarity settings
    if "similarity" in config:
        similarity = config["similarity"]
        mode = similarity.get("mode", "auto")
        if mode not in ("auto", "dense", "sparse"):
            issues.append(f"similarity.mode must be auto, dense or sparse, got {mode}")
        top_n = similarity.get("top_n", 5)
        if not isinstance(top_n, int) or top_n < 1:
            issues.append(f"similarity.top_n must be a positive integer, got {top_n}")
        for name, weight in similarity.get("weights", {}).items():
            if not isinstance(weight, (int, float)) or weight < 0:
                issues.append(f"similarity.weights.{name} must be a non-negative number, got {weight}")

    return issues


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "similarity.weights.music")
        default: Default value if path doesn't exist

    Returns:
        Configuration value or default
    """
    keys = path.split(".")
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
