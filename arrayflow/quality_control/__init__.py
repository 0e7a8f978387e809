"""
Quality control module for ArrayFlow

RMA preprocessing of raw arrays with per-sample QC images, plus density,
boxplot and PCA summaries of the raw and normalised intensities.
"""

from .preprocessing import ArrayPreprocessor, PreprocessingResult
from .visualization import QCPlotter, confidence_ellipse

__all__ = [
    "ArrayPreprocessor",
    "PreprocessingResult",
    "QCPlotter",
    "confidence_ellipse",
]
