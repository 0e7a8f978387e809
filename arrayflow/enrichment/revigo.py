"""
REVIGO semantic reduction of GO term lists

REVIGO is driven through its job API: submit the term list, poll until the
job finishes, then download the term table for one GO namespace. The table
is staged in a transient CSV file that is always removed before returning.
"""

import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pandas as pd
import requests

from ..config import (GO_CATEGORIES, REVIGO_CUTOFFS, REVIGO_MEASURES,
                      REVIGO_VALUE_ORDERS)
from ..exceptions import RevigoServiceError

logger = logging.getLogger(__name__)

# REVIGO namespace ids
GO_NAMESPACES = {"GO:BP": 1, "GO:CC": 2, "GO:MF": 3}

VALUE_TYPES = {
    "higher": "Higher",
    "lower": "Lower",
    "absolute": "HigherAbsolute",
    "abs_log": "HigherAbsLog2",
}

# Both the legacy CSV export and the job API table are accepted
COLUMN_ALIASES = {
    "term_ID": "term_id",
    "TermID": "term_id",
    "description": "description",
    "Name": "description",
    "frequency": "frequency",
    "Frequency": "frequency",
    "plot_X": "plot_x",
    "PlotX": "plot_x",
    "PC_0": "plot_x",
    "plot_Y": "plot_y",
    "PlotY": "plot_y",
    "PC_1": "plot_y",
    "plot_size": "plot_size",
    "LogSize": "plot_size",
    "uniqueness": "uniqueness",
    "Uniqueness": "uniqueness",
    "dispensability": "dispensability",
    "Dispensability": "dispensability",
    "representative": "representative",
    "Representative": "representative",
}

NUMERIC_COLUMNS = [
    "frequency",
    "plot_x",
    "plot_y",
    "plot_size",
    "uniqueness",
    "dispensability",
    "representative",
]


@dataclass
class RevigoRequest:
    """One REVIGO submission; parameters are checked on construction"""

    terms: List[str]
    cutoff: str = "0.40"
    is_pvalue: str = "yes"
    what_is_better: str = "higher"
    size_basis: str = "0"
    measure: str = "SIMREL"
    values: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        self.cutoff = str(self.cutoff)
        self.size_basis = str(self.size_basis)
        self.terms = list(dict.fromkeys(str(t) for t in self.terms))

        if not self.terms:
            raise ValueError("REVIGO request needs at least one term")
        if self.cutoff not in REVIGO_CUTOFFS:
            raise ValueError(
                f"cutoff must be one of {REVIGO_CUTOFFS}, got {self.cutoff}"
            )
        if self.is_pvalue not in ("yes", "no"):
            raise ValueError(f"is_pvalue must be 'yes' or 'no', got {self.is_pvalue}")
        if self.what_is_better not in REVIGO_VALUE_ORDERS:
            raise ValueError(
                f"what_is_better must be one of {REVIGO_VALUE_ORDERS}, "
                f"got {self.what_is_better}"
            )
        if self.measure not in REVIGO_MEASURES:
            raise ValueError(
                f"measure must be one of {REVIGO_MEASURES}, got {self.measure}"
            )

    @classmethod
    def from_config(
        cls,
        terms: List[str],
        revigo: Dict[str, Any],
        values: Optional[Dict[str, float]] = None,
    ) -> "RevigoRequest":
        return cls(
            terms=terms,
            values=dict(values or {}),
            cutoff=revigo["cutoff"],
            is_pvalue=revigo["is_pvalue"],
            what_is_better=revigo["what_is_better"],
            size_basis=revigo["size_basis"],
            measure=revigo["measure"],
        )

    @property
    def value_type(self) -> str:
        if self.is_pvalue == "yes":
            return "PValue"
        return VALUE_TYPES[self.what_is_better]

    @property
    def go_list(self) -> str:
        """One term per line, followed by its value when one is known"""
        lines = []
        for term in self.terms:
            if term in self.values:
                lines.append(f"{term} {self.values[term]}")
            else:
                lines.append(term)
        return "\n".join(lines)

    def form_data(self) -> Dict[str, str]:
        return {
            "cutoff": self.cutoff,
            "valueType": self.value_type,
            "speciesTaxon": self.size_basis,
            "measure": self.measure,
            "goList": self.go_list,
        }


@dataclass
class RevigoResult:
    """Term table returned for one GO category, in response order"""

    category: str
    table: pd.DataFrame

    @property
    def embedded(self) -> pd.DataFrame:
        """Terms placed in the 2-D semantic space"""
        return self.table[self.table["plot_x"].notna()]

    @property
    def is_empty(self) -> bool:
        return self.table.empty


def normalize_revigo_table(table: pd.DataFrame) -> pd.DataFrame:
    """
    Rename REVIGO columns to snake_case and coerce the numeric ones

    ``null`` coordinates become NaN, which marks a term as not embedded.
    Frequencies lose their percent sign.
    """
    table = table.rename(columns=lambda c: COLUMN_ALIASES.get(str(c).strip(), c))
    if "term_id" not in table.columns or "plot_x" not in table.columns:
        raise RevigoServiceError(
            f"REVIGO table lacks term or coordinate columns: {list(table.columns)}"
        )

    table = table.copy()
    table["term_id"] = table["term_id"].astype(str).str.strip().str.strip('"')

    for column in NUMERIC_COLUMNS:
        if column not in table.columns:
            table[column] = float("nan")
            continue
        values = table[column].astype(str).str.strip()
        if column == "frequency":
            values = values.str.rstrip("%")
        if column == "representative":
            values = values.str.replace(r"^GO:", "", regex=True)
        table[column] = pd.to_numeric(values, errors="coerce")

    return table.reset_index(drop=True)


def read_revigo_table(path: Union[str, Path]) -> pd.DataFrame:
    table = pd.read_csv(path, na_values=["null"], skipinitialspace=True)
    return normalize_revigo_table(table)


class RevigoClient:
    """Submit GO term lists to REVIGO and read back the reduced table"""

    def __init__(
        self,
        base_url: str = "http://revigo.irb.hr/",
        timeout: float = 60,
        poll_interval: float = 1.0,
        max_polls: int = 300,
        temp_dir: Optional[Union[str, Path]] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.temp_dir = temp_dir
        self.session_factory = session_factory

    @classmethod
    def from_config(
        cls, revigo: Dict[str, Any], temp_dir: Optional[Union[str, Path]] = None
    ) -> "RevigoClient":
        return cls(
            base_url=revigo["base_url"],
            timeout=revigo["timeout"],
            poll_interval=revigo["poll_interval"],
            max_polls=revigo["max_polls"],
            temp_dir=temp_dir,
        )

    def reduce(self, request: RevigoRequest, category: str) -> RevigoResult:
        """
        Run one REVIGO job and return the term table for ``category``

        Raises:
            RevigoServiceError on network, job or parsing failures
        """
        if category not in GO_NAMESPACES:
            raise ValueError(
                f"category must be one of {GO_CATEGORIES}, got {category}"
            )

        logger.info(
            f"Submitting {len(request.terms)} {category} terms to REVIGO "
            f"(cutoff {request.cutoff}, {request.measure})"
        )
        try:
            with self.session_factory() as session:
                job_id = self._start_job(session, request)
                self._wait_for_job(session, job_id)
                table = self._download_table(session, job_id, GO_NAMESPACES[category])
        except requests.RequestException as e:
            raise RevigoServiceError(
                f"REVIGO request for {category} failed: {e}"
            ) from e

        logger.info(
            f"REVIGO kept {int(table['plot_x'].notna().sum())} of {len(table)} "
            f"{category} terms in the semantic space"
        )
        return RevigoResult(category=category, table=table)

    def _start_job(self, session: requests.Session, request: RevigoRequest) -> Any:
        response = session.post(
            self.base_url + "StartJob", data=request.form_data(), timeout=self.timeout
        )
        response.raise_for_status()
        try:
            job_id = response.json()["jobid"]
        except (ValueError, KeyError) as e:
            raise RevigoServiceError(f"REVIGO did not return a job id: {e}") from e
        logger.debug(f"REVIGO job {job_id} started")
        return job_id

    def _wait_for_job(self, session: requests.Session, job_id: Any) -> None:
        for _ in range(self.max_polls):
            response = session.get(
                self.base_url + "QueryJob",
                params={"jobid": job_id, "type": "jstatus"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            try:
                status = response.json()
            except ValueError as e:
                raise RevigoServiceError(f"Unreadable REVIGO job status: {e}") from e
            if not isinstance(status, dict):
                raise RevigoServiceError(
                    f"Unexpected REVIGO job status for job {job_id}: {status!r}"
                )

            if status.get("error"):
                raise RevigoServiceError(
                    f"REVIGO job {job_id} failed: {status['error']}"
                )
            if not status.get("running", 0):
                return
            time.sleep(self.poll_interval)

        raise RevigoServiceError(
            f"REVIGO job {job_id} still running after {self.max_polls} polls"
        )

    def _download_table(
        self, session: requests.Session, job_id: Any, namespace: int
    ) -> pd.DataFrame:
        response = session.get(
            self.base_url + "QueryJob",
            params={"jobid": job_id, "namespace": namespace, "type": "csvtable"},
            timeout=self.timeout,
        )
        response.raise_for_status()

        fd, path = tempfile.mkstemp(prefix="revigo_", suffix=".csv", dir=self.temp_dir)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(response.text)
            return read_revigo_table(path)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise RevigoServiceError(f"Unreadable REVIGO table: {e}") from e
        finally:
            os.unlink(path)
