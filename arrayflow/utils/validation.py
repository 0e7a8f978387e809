"""
Validation utilities for ArrayFlow
"""

import importlib
import logging
import subprocess
import sys
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from ..exceptions import DataShapeError

logger = logging.getLogger(__name__)

CORE_PACKAGES = [
    "numpy",
    "pandas",
    "scipy",
    "matplotlib",
    "seaborn",
    "sklearn",
    "statsmodels",
    "requests",
    "gprofiler",
]

R_PACKAGES = [
    "oligo",
    "affycoretools",
    "limma",
    "pathview",
]


def require_columns(
    df: pd.DataFrame, columns: Iterable[str], source: str = "table"
) -> None:
    """
    Fail fast when required columns are missing

    Raises:
        DataShapeError naming the first missing column
    """
    for column in columns:
        if column not in df.columns:
            raise DataShapeError(
                f"Required column '{column}' missing from {source}; "
                f"available columns: {', '.join(map(str, df.columns))}",
                field=column,
            )


def validate_python_packages(packages: List[str]) -> Dict[str, bool]:
    """
    Check if Python packages are importable

    Args:
        packages: List of package names

    Returns:
        Dictionary mapping package names to availability status
    """
    results = {}

    for package in packages:
        try:
            importlib.import_module(package)
            results[package] = True
        except ImportError:
            results[package] = False
            logger.debug(f"Package {package}: not available")

    return results


def validate_r_environment(r_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Validate R environment and Bioconductor packages

    Returns:
        Dictionary with R validation results
    """
    results = {"r_available": False, "r_version": None, "packages": {}}

    try:
        result = subprocess.run(
            ["R", "--version"], capture_output=True, text=True, timeout=10
        )
    except (subprocess.TimeoutExpired, FileNotFoundError):
        logger.debug("R not found")
        return results

    if result.returncode != 0:
        return results

    results["r_available"] = True
    for line in result.stdout.split("\n"):
        if "R version" in line:
            results["r_version"] = line.strip()
            break

    from .r_utils import check_r_packages

    required = list((r_config or {}).get("required_packages", R_PACKAGES))
    results["packages"] = check_r_packages(required, r_config)

    return results


def validate_environment(r_config: Optional[Dict[str, Any]] = None) -> List[str]:
    """
    Comprehensive environment validation

    Returns:
        List of validation issues found
    """
    issues = []

    logger.info("Validating ArrayFlow environment...")

    if sys.version_info < (3, 8):
        issues.append(
            f"Python 3.8+ required, found "
            f"{sys.version_info.major}.{sys.version_info.minor}"
        )

    package_status = validate_python_packages(CORE_PACKAGES)
    missing_packages = [pkg for pkg, ok in package_status.items() if not ok]
    if missing_packages:
        issues.append(f"Missing Python packages: {', '.join(missing_packages)}")

    r_results = validate_r_environment(r_config)
    if not r_results["r_available"]:
        issues.append("R not available")
    else:
        missing_r = [pkg for pkg, ok in r_results["packages"].items() if not ok]
        if missing_r:
            issues.append(f"Missing R packages: {', '.join(missing_r)}")

    if issues:
        logger.warning(f"Environment validation found {len(issues)} issues")
        for issue in issues:
            logger.warning(f"  - {issue}")
    else:
        logger.info("Environment validation passed")

    return issues
