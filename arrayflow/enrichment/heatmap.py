"""
Comparison x term p-value matrices for the enrichment heatmaps
"""

import logging
from typing import Dict, Iterable, List

import pandas as pd

from ..utils import require_columns

logger = logging.getLogger(__name__)

ENRICHMENT_COLUMNS = ["query", "p_value", "term_id", "source", "term_name"]


def comparison_order(enrichment: pd.DataFrame) -> List[str]:
    """Comparisons in the order they first appear"""
    return list(dict.fromkeys(enrichment["query"]))


def cluster_pvalue_map(
    term_ids: Iterable[str], enrichment: pd.DataFrame
) -> Dict[str, float]:
    """Lowest p-value per comparison among the given terms"""
    subset = enrichment[enrichment["term_id"].isin(set(term_ids))]
    return subset.groupby("query", sort=False)["p_value"].min().to_dict()


def build_cluster_heatmap(
    summary: pd.DataFrame, enrichment: pd.DataFrame
) -> pd.DataFrame:
    """
    One row per cluster (``FinalDescription``), one column per comparison

    ``enrichment`` should hold a single GO category. A cell is the lowest
    p-value of any of the cluster's terms (``AllGOs``) in that comparison,
    or NaN when none of them was enriched there.
    """
    require_columns(summary, ["AllGOs", "FinalDescription"], source="cluster summary")
    require_columns(enrichment, ENRICHMENT_COLUMNS, source="enrichment table")

    columns = comparison_order(enrichment)
    rows = []
    for all_gos in summary["AllGOs"]:
        pvalues = cluster_pvalue_map(str(all_gos).split(" "), enrichment)
        rows.append([pvalues.get(c, float("nan")) for c in columns])

    return pd.DataFrame(
        rows,
        index=pd.Index(summary["FinalDescription"], name="Description"),
        columns=columns,
        dtype=float,
    )


def build_term_heatmap(enrichment: pd.DataFrame, source: str = "KEGG") -> pd.DataFrame:
    """
    One row per term name of ``source``, one column per comparison

    A term reported more than once for a comparison keeps its lowest p-value.
    """
    require_columns(enrichment, ENRICHMENT_COLUMNS, source="enrichment table")
    subset = enrichment[enrichment["source"] == source]
    if subset.empty:
        return pd.DataFrame(index=pd.Index([], name="Description"), dtype=float)

    columns = comparison_order(subset)
    rows = list(dict.fromkeys(subset["term_name"]))
    matrix = (
        subset.groupby(["term_name", "query"], sort=False)["p_value"]
        .min()
        .unstack("query")
    )
    matrix = matrix.reindex(index=rows, columns=columns).astype(float)
    matrix.index.name = "Description"
    matrix.columns.name = None
    return matrix


def order_heatmap_rows(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Stable sort of rows by the number of comparisons they appear in, then
    by the ``" * "``-joined names of those comparisons
    """
    present = matrix.notna().to_numpy()
    keys = pd.DataFrame(
        {
            "n_groups": present.sum(axis=1),
            "group_name": [
                " * ".join(c for c, p in zip(matrix.columns, row) if p)
                for row in present
            ],
        }
    )
    order = keys.sort_values(["n_groups", "group_name"], kind="mergesort").index
    return matrix.iloc[order]
