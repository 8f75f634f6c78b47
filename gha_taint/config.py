"""
Configuration file support for gha-taint.

Looks for a .gha-taint.yml file in the repository root and loads settings
that control which findings to report and which workflow files to scan.

Example .gha-taint.yml:

    # Minimum severity to report (critical, high, medium, low)
    severity: high

    # Finding types to ignore (by rule ID)
    ignore_rules:
      - secret-in-pull-request

    # Workflow files to exclude (glob patterns relative to the repository root)
    exclude:
      - ".github/workflows/legacy-*.yml"

    # Where workflow files live
    workflow_dir: .github/workflows

    # Analyze files in parallel
    max_workers: 4
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from gha_taint.exceptions import ConfigError
from gha_taint.rules.engine import Severity

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".gha-taint.yml"
DEFAULT_WORKFLOW_DIR = ".github/workflows"


@dataclass
class Config:
    """Parsed gha-taint configuration."""
    severity: str = "low"
    ignore_rules: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    workflow_dir: str = DEFAULT_WORKFLOW_DIR
    max_workers: int = 1


def _string_list(raw: dict[str, Any], key: str) -> list[str]:
    value = raw.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list, got {type(value).__name__}")
    return [str(item) for item in value]


def _validate(raw: dict[str, Any]) -> Config:
    severity = str(raw.get("severity", "low")).lower()
    if severity not in {s.value for s in Severity}:
        raise ConfigError(f"Unknown severity '{severity}'")

    max_workers = raw.get("max_workers", 1)
    if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
        raise ConfigError(f"'max_workers' must be a positive integer, got {max_workers!r}")

    workflow_dir = str(raw.get("workflow_dir") or DEFAULT_WORKFLOW_DIR).strip("/")

    return Config(
        severity=severity,
        ignore_rules=_string_list(raw, "ignore_rules"),
        exclude=_string_list(raw, "exclude"),
        workflow_dir=workflow_dir,
        max_workers=max_workers,
    )


def load_config(config_path: Optional[str] = None, scan_path: Optional[str] = None) -> Config:
    """
    Load configuration from a .gha-taint.yml file.

    Search order:
      1. Explicit config_path if provided
      2. .gha-taint.yml in the scan_path directory (or its parents)
      3. .gha-taint.yml in the current working directory

    Returns a Config with defaults if no config file is found.

    Raises:
        ConfigError: If the file is not valid YAML or holds invalid values.
    """
    path = _find_config_file(config_path, scan_path)

    if path is None:
        logger.debug("No config file found, using defaults")
        return Config()

    logger.info("Loading config from %s", path)

    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        logger.warning("Config file is not a YAML mapping, using defaults")
        return Config()

    return _validate(raw)


def _find_config_file(
    config_path: Optional[str] = None,
    scan_path: Optional[str] = None,
) -> Optional[str]:
    """Find the config file, returning its path or None."""
    # 1. Explicit path
    if config_path:
        p = Path(config_path)
        if p.is_file():
            return str(p)
        logger.warning("Config file not found: %s", config_path)
        return None

    # 2. Relative to scan path
    if scan_path:
        scan_p = Path(scan_path)
        if scan_p.is_file():
            scan_p = scan_p.parent
        for directory in (scan_p, *scan_p.parents):
            candidate = directory / DEFAULT_CONFIG_FILENAME
            if candidate.is_file():
                return str(candidate)

    # 3. Current working directory
    cwd_candidate = Path.cwd() / DEFAULT_CONFIG_FILENAME
    if cwd_candidate.is_file():
        return str(cwd_candidate)

    return None
