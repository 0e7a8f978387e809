"""
Significance calls and DEG list assembly from a limma fit table
"""

import logging
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import dendrogram, linkage
from scipy.spatial.distance import pdist
from statsmodels.stats.multitest import multipletests

from ..exceptions import DataShapeError
from ..utils import require_columns

logger = logging.getLogger(__name__)

ENTREZ_COLUMN = "genes.ENTREZID"
PROBE_COLUMN = "genes.PROBEID"
DEG_COLUMN = "DEG"

# limma adjust.method -> statsmodels method
ADJUST_METHODS = {
    "BH": "fdr_bh",
    "fdr": "fdr_bh",
    "BY": "fdr_by",
    "holm": "holm",
    "hochberg": "simes-hochberg",
    "bonferroni": "bonferroni",
    "none": None,
}


def coefficient_column(contrast: str) -> str:
    return f"coefficients.{contrast}"


def p_value_column(contrast: str) -> str:
    return f"p.value.{contrast}"


def adjust_p_values(p_values: np.ndarray, adjust_method: str = "BH") -> np.ndarray:
    """Multiple-testing adjustment ignoring NaN entries"""
    if adjust_method not in ADJUST_METHODS:
        raise ValueError(
            f"Unsupported adjust_method '{adjust_method}'; "
            f"choose from {sorted(ADJUST_METHODS)}"
        )

    p_values = np.asarray(p_values, dtype=float)
    adjusted = np.full(p_values.shape, np.nan)
    finite = ~np.isnan(p_values)
    if not finite.any():
        return adjusted

    method = ADJUST_METHODS[adjust_method]
    if method is None:
        adjusted[finite] = p_values[finite]
    else:
        adjusted[finite] = multipletests(p_values[finite], method=method)[1]
    return adjusted


def decide_tests(
    coefficients: pd.DataFrame,
    p_values: pd.DataFrame,
    p_value: float = 0.000005,
    lfc: float = 1.0,
    adjust_method: str = "BH",
    method: str = "global",
) -> pd.DataFrame:
    """
    Classify every (gene, contrast) pair as up (+1), down (-1) or not called (0)

    With ``method="global"`` all p-values of all contrasts are adjusted
    together as one family; ``"separate"`` adjusts each contrast on its own.
    A pair is called when the adjusted p-value is below ``p_value`` and the
    absolute coefficient is at least ``lfc``.

    Args:
        coefficients: genes x contrasts effect sizes
        p_values: genes x contrasts raw p-values, same shape and labels

    Returns:
        genes x contrasts integer DataFrame of calls
    """
    if coefficients.shape != p_values.shape:
        raise DataShapeError(
            f"Coefficient table {coefficients.shape} and p-value table "
            f"{p_values.shape} differ in shape"
        )

    coef = coefficients.to_numpy(dtype=float)
    raw = p_values.to_numpy(dtype=float)

    if method == "global":
        adjusted = adjust_p_values(raw.ravel(), adjust_method).reshape(raw.shape)
    elif method == "separate":
        adjusted = np.column_stack(
            [adjust_p_values(raw[:, j], adjust_method) for j in range(raw.shape[1])]
        )
    else:
        raise ValueError(f"Unsupported decide method '{method}'")

    with np.errstate(invalid="ignore"):
        selected = (adjusted < p_value) & (np.abs(coef) >= lfc)
    calls = np.where(selected, np.sign(coef), 0).astype(int)

    return pd.DataFrame(calls, index=coefficients.index, columns=coefficients.columns)


def calls_from_fit(
    fit_table: pd.DataFrame,
    contrasts: List[str],
    p_value: float = 0.000005,
    lfc: float = 1.0,
    adjust_method: str = "BH",
    method: str = "global",
) -> pd.DataFrame:
    """Run ``decide_tests`` on the coefficient/p-value columns of a fit table"""
    coef_cols = [coefficient_column(c) for c in contrasts]
    p_cols = [p_value_column(c) for c in contrasts]
    require_columns(fit_table, coef_cols + p_cols, source="limma fit table")

    coefficients = fit_table[coef_cols].set_axis(contrasts, axis=1)
    p_values = fit_table[p_cols].set_axis(contrasts, axis=1)
    return decide_tests(
        coefficients,
        p_values,
        p_value=p_value,
        lfc=lfc,
        adjust_method=adjust_method,
        method=method,
    )


def select_deg_rows(all_info: pd.DataFrame, contrasts: List[str]) -> pd.DataFrame:
    """
    Keep annotated genes called in at least one contrast

    Rows without an ENTREZ id are dropped, as are rows whose summed absolute
    calls are zero. The returned table holds the ``genes*``, ``p.value*``
    and ``coefficients*`` columns followed by the call columns.
    """
    require_columns(all_info, [ENTREZ_COLUMN] + list(contrasts), source="all_info")

    table = all_info.copy()
    table[DEG_COLUMN] = table[contrasts].abs().sum(axis=1)

    entrez = table[ENTREZ_COLUMN]
    annotated = entrez.notna() & (entrez.astype(str).str.strip() != "") & (
        entrez.astype(str) != "NA"
    )
    table = table[annotated & (table[DEG_COLUMN] > 0)]

    selected = [
        col
        for prefix in ("genes", "p.value", "coefficients")
        for col in table.columns
        if col.startswith(prefix)
    ]
    selected += list(contrasts)

    logger.info(
        f"{len(table)} annotated probes are differential in at least one contrast"
    )
    return table[selected]


def unique_deg_lists(
    deg_table: pd.DataFrame, contrasts: List[str]
) -> Dict[str, List[str]]:
    """Distinct ENTREZ ids with a non-zero call per contrast, first-seen order"""
    require_columns(deg_table, [ENTREZ_COLUMN] + list(contrasts), source="DEG table")

    lists = {}
    for contrast in contrasts:
        called = deg_table.loc[deg_table[contrast] != 0, ENTREZ_COLUMN]
        lists[contrast] = list(dict.fromkeys(called.astype(str)))
        logger.info(f"{contrast}: {len(lists[contrast])} unique DEGs")
    return lists


def unique_lists_frame(unique_lists: Dict[str, List[str]]) -> pd.DataFrame:
    """Ragged per-contrast lists as one column each, padded with NaN"""
    return pd.DataFrame(
        {name: pd.Series(ids, dtype=object) for name, ids in unique_lists.items()}
    )


def deg_presence_matrix(unique_lists: Dict[str, List[str]]) -> pd.DataFrame:
    """0/1 genes x contrasts matrix of DEG membership"""
    genes = list(dict.fromkeys(g for ids in unique_lists.values() for g in ids))
    presence = pd.DataFrame(0, index=genes, columns=list(unique_lists), dtype=int)
    for contrast, ids in unique_lists.items():
        presence.loc[ids, contrast] = 1
    return presence


def plot_contrast_dendrogram(
    presence: pd.DataFrame, title: str = "Cluster Dendrogram"
) -> Optional[plt.Figure]:
    """
    Average-linkage dendrogram of contrasts by euclidean distance between
    their DEG membership vectors; None when fewer than two contrasts
    """
    if presence.shape[1] < 2:
        logger.warning("Need at least two contrasts for a dendrogram")
        return None

    distances = pdist(presence.T.to_numpy(dtype=float), metric="euclidean")
    tree = linkage(distances, method="average")

    fig, ax = plt.subplots(figsize=(8, 6))
    dendrogram(tree, labels=list(presence.columns), ax=ax, leaf_rotation=30)
    ax.set_title(title)
    ax.set_ylabel("Height")
    fig.tight_layout()
    return fig
