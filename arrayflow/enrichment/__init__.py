"""
Enrichment module for ArrayFlow

g:Profiler enrichment of DEG lists, REVIGO reduction of the GO terms,
k-means grouping on the REVIGO semantic space and p-value heatmaps.
"""

from .clustering import (SUMMARY_COLUMNS, TermCluster, cluster_revigo_result,
                         cluster_terms, propagate_heads, summarize_clusters,
                         top_keywords)
from .gprofiler import GProfilerClient, organism_code
from .heatmap import (build_cluster_heatmap, build_term_heatmap,
                      cluster_pvalue_map, order_heatmap_rows)
from .revigo import RevigoClient, RevigoRequest, RevigoResult
from .visualization import HeatmapPlotter, plot_title

__all__ = [
    "GProfilerClient",
    "organism_code",
    "RevigoClient",
    "RevigoRequest",
    "RevigoResult",
    "propagate_heads",
    "cluster_terms",
    "top_keywords",
    "summarize_clusters",
    "cluster_revigo_result",
    "TermCluster",
    "SUMMARY_COLUMNS",
    "cluster_pvalue_map",
    "build_cluster_heatmap",
    "build_term_heatmap",
    "order_heatmap_rows",
    "HeatmapPlotter",
    "plot_title",
]
