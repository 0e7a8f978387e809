"""
Pathway overlay module for ArrayFlow

Averages duplicated genes of a fold-change table and colours KEGG pathway
diagrams with it through the R pathview package.
"""

from .expression import (ColorScale, compute_color_scale,
                         deduplicate_expression, load_expression_table)
from .pipeline import PathwayOverlayPipeline, PathwayOverlayResult
from .reference import PathwayReference, load_pathway_ids, parse_pathway_id
from .renderer import PathviewRenderer

__all__ = [
    "ColorScale",
    "compute_color_scale",
    "deduplicate_expression",
    "load_expression_table",
    "PathwayReference",
    "parse_pathway_id",
    "load_pathway_ids",
    "PathviewRenderer",
    "PathwayOverlayPipeline",
    "PathwayOverlayResult",
]
