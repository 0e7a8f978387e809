"""
Functional enrichment of DEG lists with g:Profiler
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd
from gprofiler import GProfiler

from ..config import ENRICHMENT_SOURCES
from ..exceptions import EnrichmentServiceError

logger = logging.getLogger(__name__)

RESULT_COLUMNS = ["query", "p_value", "term_id", "source", "term_name"]


def organism_code(organism: str) -> str:
    """
    g:Profiler organism id from a scientific name

    'Homo sapiens' -> 'hsapiens', 'Mus musculus' -> 'mmusculus'
    """
    parts = str(organism).lower().split()
    if len(parts) < 2:
        raise ValueError(f"Expected a genus and species name, got '{organism}'")
    return parts[0][0] + parts[1]


class GProfilerClient:
    """Multi-query g:Profiler client returning one tidy term table"""

    def __init__(
        self,
        organism: str = "Homo sapiens",
        sources: Optional[List[str]] = None,
        user_threshold: float = 0.05,
        correction_method: str = "g_SCS",
        exclude_iea: bool = True,
        domain_scope: str = "annotated",
        client: Optional[Any] = None,
    ):
        self.organism = organism_code(organism)
        self.sources = list(sources or ENRICHMENT_SOURCES)
        self.user_threshold = user_threshold
        self.correction_method = correction_method
        self.exclude_iea = exclude_iea
        self.domain_scope = domain_scope
        self._gp = client

    @classmethod
    def from_config(cls, enrichment: Dict[str, Any]) -> "GProfilerClient":
        return cls(
            organism=enrichment["organism"],
            sources=enrichment["sources"],
            user_threshold=enrichment["user_threshold"],
            correction_method=enrichment["correction_method"],
            exclude_iea=enrichment["exclude_iea"],
            domain_scope=enrichment["domain_scope"],
        )

    def _get_client(self) -> Any:
        if self._gp is None:
            self._gp = GProfiler(user_agent="arrayflow", return_dataframe=True)
        return self._gp

    def query(self, gene_lists: Dict[str, List[str]]) -> pd.DataFrame:
        """
        Enrich every named gene list in one multi-query request

        Empty lists are not submitted. Results are restricted to the
        configured sources and returned with columns
        ``query, p_value, term_id, source, term_name``.

        Raises:
            EnrichmentServiceError on any failure of the service call
        """
        queries = {name: list(genes) for name, genes in gene_lists.items() if genes}
        if not queries:
            logger.warning("No non-empty gene lists to enrich")
            return pd.DataFrame(columns=RESULT_COLUMNS)

        logger.info(
            f"Querying g:Profiler ({self.organism}) with {len(queries)} gene lists: "
            + ", ".join(f"{k} ({len(v)})" for k, v in queries.items())
        )

        try:
            raw = self._get_client().profile(
                query=queries,
                organism=self.organism,
                sources=self.sources,
                user_threshold=self.user_threshold,
                significance_threshold_method=self.correction_method,
                no_iea=self.exclude_iea,
                domain_scope=self.domain_scope,
                ordered=False,
                all_results=False,
                measure_underrepresentation=False,
            )
        except Exception as e:
            raise EnrichmentServiceError(f"g:Profiler query failed: {e}") from e

        return self._tidy(raw, queries)

    def _tidy(self, raw: Any, queries: Dict[str, List[str]]) -> pd.DataFrame:
        table = raw if isinstance(raw, pd.DataFrame) else pd.DataFrame(raw or [])
        if table.empty:
            logger.warning("g:Profiler returned no significant terms")
            return pd.DataFrame(columns=RESULT_COLUMNS)

        table = table.rename(columns={"native": "term_id", "name": "term_name"})
        if "query" not in table.columns and len(queries) == 1:
            table["query"] = next(iter(queries))

        missing = [c for c in RESULT_COLUMNS if c not in table.columns]
        if missing:
            raise EnrichmentServiceError(
                f"g:Profiler response lacks columns: {', '.join(missing)}"
            )

        table = table[table["source"].isin(self.sources)]
        table = table[RESULT_COLUMNS].reset_index(drop=True)

        counts = table.groupby("source").size().to_dict()
        logger.info(
            f"g:Profiler returned {len(table)} terms: "
            + ", ".join(f"{s} {counts.get(s, 0)}" for s in self.sources)
        )
        return table
