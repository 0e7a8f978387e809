"""
ArrayFlow: microarray differential expression and pathway overlay pipelines

ArrayFlow runs two related workflows on Affymetrix expression data:

- Pathway overlay: average duplicated genes of a fold-change table and
  colour KEGG pathway diagrams with it (R pathview)
- Microarray pipeline: RMA preprocessing and QC (R oligo), limma contrasts
  with a global Benjamini-Hochberg decision, g:Profiler enrichment, REVIGO
  reduction of GO terms, k-means grouping and p-value heatmaps

Example:
    >>> from arrayflow import ArrayFlowAnalysis
    >>> analysis = ArrayFlowAnalysis("config.yaml")
    >>> results = analysis.run_microarray_pipeline()
"""

import logging
import sys
from importlib import metadata
from typing import Any, Dict

try:
    __version__ = metadata.version("arrayflow")
except metadata.PackageNotFoundError:
    __version__ = "0.1.0-dev"

# Module imports
from . import differential, enrichment, pathway, quality_control, utils
from .config import Config, load_config
# Main imports
from .core import ArrayFlowAnalysis
from .utils import setup_logging, validate_environment

__all__ = [
    "__version__",
    "ArrayFlowAnalysis",
    "Config",
    "load_config",
    "setup_logging",
    "validate_environment",
    "pathway",
    "quality_control",
    "differential",
    "enrichment",
    "utils",
]


def get_info() -> Dict[str, Any]:
    """Get package information."""
    return {
        "name": "ArrayFlow",
        "version": __version__,
        "description": "Microarray DEG, enrichment and KEGG pathway overlay pipelines",
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        "modules": __all__[6:],  # Just the module names
    }


def check_dependencies() -> Dict[str, bool]:
    """Check if key dependencies are available."""
    dependencies = {}

    for name in ["numpy", "pandas", "sklearn", "statsmodels", "requests", "gprofiler"]:
        try:
            __import__(name)
            dependencies[name] = True
        except ImportError:
            dependencies[name] = False

    return dependencies


logger = logging.getLogger(__name__)
logger.debug(f"ArrayFlow v{__version__} initialized")
