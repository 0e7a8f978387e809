"""
Differential expression module for ArrayFlow

Builds design and contrast matrices from sample targets, fits them with
limma through R and calls differentially expressed genes with a global
Benjamini-Hochberg decision across all contrasts.
"""

from .analyzer import DifferentialResult, LimmaAnalyzer
from .calling import (decide_tests, deg_presence_matrix,
                      plot_contrast_dendrogram, select_deg_rows,
                      unique_deg_lists)
from .design import (DesignSpec, build_contrast_matrix, build_design_matrix,
                     load_sample_targets, make_names, validate_targets)

__all__ = [
    "DesignSpec",
    "load_sample_targets",
    "validate_targets",
    "build_design_matrix",
    "build_contrast_matrix",
    "make_names",
    "decide_tests",
    "select_deg_rows",
    "unique_deg_lists",
    "deg_presence_matrix",
    "plot_contrast_dendrogram",
    "LimmaAnalyzer",
    "DifferentialResult",
]
