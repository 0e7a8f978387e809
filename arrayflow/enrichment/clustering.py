"""
Grouping of REVIGO terms: head propagation, k-means and keyword summaries

Two groupings are kept apart. Head propagation assigns every returned term
to the most recent embedded term above it in the REVIGO table; k-means
partitions only the embedded terms by their 2-D semantic coordinates. A
cluster summary uses the k-means members for its position and
representative, and every term whose head is one of those members for its
full keyword description and term count.

Head propagation depends on REVIGO returning terms grouped under their
head; a response in a different order would silently change the groups.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from ..exceptions import DataShapeError
from ..utils import require_columns
from .revigo import RevigoResult

logger = logging.getLogger(__name__)

HEAD_COLUMN = "HeadGO"
CLUSTER_COLUMN = "Cluster"

SUMMARY_COLUMNS = [
    "Cluster",
    "PlotX",
    "PlotY",
    "RevigoGOs",
    "RevigoRep",
    "RevigoDescription",
    "AllGOs",
    "AllWords",
    "AllDescription",
    "FinalDescription",
]


def propagate_heads(table: pd.DataFrame) -> pd.DataFrame:
    """
    Add a ``HeadGO`` column by walking the table in order

    An embedded term (non-NaN ``plot_x``) becomes the current head and is
    its own head; every other term takes the current head, or NaN when no
    embedded term has been seen yet.
    """
    require_columns(table, ["term_id", "plot_x"], source="REVIGO table")

    heads = []
    current = np.nan
    for term_id, plot_x in zip(table["term_id"], table["plot_x"]):
        if pd.notna(plot_x):
            current = term_id
        heads.append(current)

    annotated = table.copy()
    annotated[HEAD_COLUMN] = pd.Series(heads, index=table.index, dtype=object)
    return annotated


def cluster_terms(
    embedded: pd.DataFrame, n_clusters: int = 40, seed: int = 100
) -> pd.DataFrame:
    """
    k-means over (``plot_x``, ``plot_y``) of embedded terms

    ``n_clusters`` is lowered to one less than the number of terms when it
    is not smaller than it. A single term forms its own cluster. Clusters
    are numbered from 1.
    """
    require_columns(embedded, ["term_id", "plot_x", "plot_y"], source="embedded terms")
    clustered = embedded.copy()
    n_terms = len(clustered)

    if n_terms == 0:
        clustered[CLUSTER_COLUMN] = pd.Series(dtype=int)
        return clustered
    if clustered[["plot_x", "plot_y"]].isna().any().any():
        raise DataShapeError(
            "Embedded terms must all have coordinates", field="plot_x"
        )
    if n_terms == 1:
        clustered[CLUSTER_COLUMN] = 1
        return clustered

    k = n_clusters if n_clusters < n_terms else n_terms - 1
    model = KMeans(n_clusters=k, random_state=seed, n_init=10)
    labels = model.fit_predict(clustered[["plot_x", "plot_y"]].to_numpy(dtype=float))
    clustered[CLUSTER_COLUMN] = labels + 1

    logger.debug(f"k-means: {n_terms} terms into {k} clusters")
    return clustered


def top_keywords(descriptions: Iterable[str], n: int = 5) -> str:
    """
    Most frequent non-stop-words across descriptions

    Descriptions are joined and split on single spaces. Words are ranked by
    count, ties keeping the order in which they first appear.
    """
    words = " ".join(str(d) for d in descriptions).split(" ")
    counts = Counter(w for w in words if w and w not in ENGLISH_STOP_WORDS)
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return " ".join(word for word, _ in ranked[:n])


@dataclass
class TermCluster:
    """One k-means cluster and the head-propagated terms attached to it"""

    cluster: int
    plot_x: float
    plot_y: float
    revigo_gos: List[str]
    revigo_rep: str
    revigo_description: str
    all_gos: List[str]
    all_words: str
    all_description: str

    @property
    def final_description(self) -> str:
        return f"{self.revigo_rep} * {self.all_description} * {len(self.all_gos)}"

    def to_row(self) -> Dict[str, object]:
        return {
            "Cluster": self.cluster,
            "PlotX": self.plot_x,
            "PlotY": self.plot_y,
            "RevigoGOs": " ".join(self.revigo_gos),
            "RevigoRep": self.revigo_rep,
            "RevigoDescription": self.revigo_description,
            "AllGOs": " ".join(self.all_gos),
            "AllWords": self.all_words,
            "AllDescription": self.all_description,
            "FinalDescription": self.final_description,
        }


def _representative(members: pd.DataFrame) -> str:
    """Description of the member with the highest representative score"""
    scores = members["representative"]
    if scores.notna().any():
        return str(members.loc[scores.idxmax(), "description"])
    return str(members["description"].iloc[0])


def build_term_clusters(
    annotated: pd.DataFrame, clustered: pd.DataFrame, n_keywords: int = 5
) -> List[TermCluster]:
    require_columns(
        annotated, ["term_id", "description", HEAD_COLUMN], source="REVIGO table"
    )
    require_columns(
        clustered,
        [
            "term_id",
            "description",
            "plot_x",
            "plot_y",
            "representative",
            CLUSTER_COLUMN,
        ],
        source="clustered terms",
    )

    clusters = []
    for number in sorted(clustered[CLUSTER_COLUMN].unique()):
        members = clustered[clustered[CLUSTER_COLUMN] == number]
        attached = annotated[annotated[HEAD_COLUMN].isin(members["term_id"])]
        descriptions = attached["description"].fillna("").astype(str)

        clusters.append(
            TermCluster(
                cluster=int(number),
                plot_x=float(members["plot_x"].mean()),
                plot_y=float(members["plot_y"].mean()),
                revigo_gos=list(members["term_id"]),
                revigo_rep=_representative(members),
                revigo_description=top_keywords(
                    members["description"].fillna("").astype(str), n_keywords
                ),
                all_gos=list(attached["term_id"]),
                all_words=" ".join(descriptions),
                all_description=top_keywords(descriptions, n_keywords),
            )
        )
    return clusters


def summarize_clusters(
    annotated: pd.DataFrame, clustered: pd.DataFrame, n_keywords: int = 5
) -> pd.DataFrame:
    """One summary row per k-means cluster, ``SUMMARY_COLUMNS`` layout"""
    clusters = build_term_clusters(annotated, clustered, n_keywords)
    return pd.DataFrame([c.to_row() for c in clusters], columns=SUMMARY_COLUMNS)


def cluster_revigo_result(
    result: RevigoResult, n_clusters: int = 40, seed: int = 100, n_keywords: int = 5
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Head-annotated term table and cluster summary for one GO category

    Raises:
        DataShapeError when no term was placed in the semantic space
    """
    annotated = propagate_heads(result.table)
    embedded = annotated[annotated["plot_x"].notna()]
    if embedded.empty:
        raise DataShapeError(
            f"REVIGO placed no {result.category} term in the semantic space"
        )

    clustered = cluster_terms(embedded, n_clusters=n_clusters, seed=seed)
    summary = summarize_clusters(annotated, clustered, n_keywords=n_keywords)
    logger.info(
        f"{result.category}: {len(embedded)} embedded of {len(annotated)} terms "
        f"in {len(summary)} clusters"
    )
    return annotated, summary
