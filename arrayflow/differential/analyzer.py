"""
limma contrast fitting and DEG table assembly
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages

from ..config import Config, PathConfig
from ..exceptions import DataShapeError
from ..utils import RInterface, get_logger, r_string
from .calling import (ENTREZ_COLUMN, PROBE_COLUMN, calls_from_fit,
                      deg_presence_matrix, plot_contrast_dendrogram,
                      select_deg_rows, unique_deg_lists, unique_lists_frame)
from .design import DesignSpec, make_names

logger = get_logger(__name__)

FIT_TABLE = "limma_fit.csv"
DESIGN_TABLE = "design.csv"
CONTRAST_TABLE = "contrasts.csv"


@dataclass
class DifferentialResult:
    """Result of differential expression calling"""

    contrasts: List[str]
    success: bool

    # Results data
    all_info: Optional[pd.DataFrame] = None
    deg_table: Optional[pd.DataFrame] = None
    unique_lists: Dict[str, List[str]] = field(default_factory=dict)
    presence: Optional[pd.DataFrame] = None

    # Statistics
    n_tested: Optional[int] = None
    n_significant: Optional[int] = None
    n_up_regulated: Dict[str, int] = field(default_factory=dict)
    n_down_regulated: Dict[str, int] = field(default_factory=dict)

    # Thresholds
    p_value: float = 0.000005
    lfc: float = 1.0
    adjust_method: str = "BH"

    # Files
    output_files: Dict[str, Path] = field(default_factory=dict)

    # Execution info
    execution_time: Optional[float] = None
    error_message: Optional[str] = None


class LimmaAnalyzer:
    """Fit group contrasts with limma and call DEGs with a global BH decision"""

    def __init__(self, config: Config, r_interface: Optional[RInterface] = None):
        self.config = config
        self.diff_params = config.differential
        self.annotation_package = config.microarray["annotation_package"]
        self.paths = PathConfig(
            output_dir=config.output_dir or ".",
            input_dir=config.input_dir,
            temp_dir=config.temp_dir,
        )
        self.r_interface = r_interface or RInterface(config.r_config)

    def _create_limma_script(self, eset_path: Union[str, Path]) -> str:
        """lmFit -> contrasts.fit -> eBayes on the annotated RMA expression set"""
        package = r_string(self.annotation_package)

        return f"""
suppressPackageStartupMessages({{
    library(Biobase)
    library(limma)
    library(affycoretools)
    library({package}, character.only = TRUE)
}})

data.rma <- readRDS({r_string(Path(eset_path).absolute())})

design <- as.matrix(read.csv("{DESIGN_TABLE}", row.names = 1, check.names = FALSE))
design <- design[sampleNames(data.rma), , drop = FALSE]
contrast.matrix <- as.matrix(read.csv("{CONTRAST_TABLE}", row.names = 1, check.names = FALSE))
contrast.matrix <- contrast.matrix[colnames(design), , drop = FALSE]

data.annot <- annotateEset(data.rma, get({package}))
data.fit <- lmFit(data.annot, design)
data.fit.con <- contrasts.fit(data.fit, contrast.matrix)
data.fit.eb <- eBayes(data.fit.con)

write.csv(as.data.frame(data.fit.eb), "{FIT_TABLE}", row.names = FALSE)
cat("Fitted", nrow(data.fit.eb), "probes\\n")
"""

    def fit(
        self,
        eset_path: Union[str, Path],
        design: DesignSpec,
        working_dir: Union[str, Path],
    ) -> pd.DataFrame:
        """
        Run the limma fit in R and read back the wide result table

        Column names are normalised with ``make_names`` so contrast columns
        read ``coefficients.<contrast>`` and ``p.value.<contrast>``.
        """
        working_dir = Path(working_dir)
        working_dir.mkdir(parents=True, exist_ok=True)
        design.design.to_csv(working_dir / DESIGN_TABLE)
        design.contrasts.to_csv(working_dir / CONTRAST_TABLE)

        logger.info(
            f"Fitting {len(design.contrast_names)} contrasts over "
            f"{design.design.shape[0]} samples with limma"
        )
        output = self.r_interface.run_or_raise(
            self._create_limma_script(eset_path),
            working_dir=working_dir,
            description="limma fit",
        )
        if output:
            logger.debug(output.strip())

        return self.read_fit_table(working_dir / FIT_TABLE)

    @staticmethod
    def read_fit_table(path: Union[str, Path]) -> pd.DataFrame:
        path = Path(path)
        if not path.exists():
            raise DataShapeError(f"limma fit table not found: {path}")
        fit_table = pd.read_csv(path, dtype={ENTREZ_COLUMN: str})
        fit_table.columns = [make_names(c) for c in fit_table.columns]
        return fit_table

    def analyze(
        self, fit_table: pd.DataFrame, design: DesignSpec
    ) -> DifferentialResult:
        """
        Decide tests on a fit table and write the DEG artifacts

        Writes ``all_info.csv``, ``deg_analysis_duplicates.csv``,
        ``deg_unique_group.csv`` and ``dendogram.pdf``.
        """
        start_time = time.time()
        contrasts = design.contrast_names
        p_value = self.diff_params["p_value"]
        lfc = self.diff_params["lfc"]
        adjust_method = self.diff_params["adjust_method"]

        calls = calls_from_fit(
            fit_table,
            contrasts,
            p_value=p_value,
            lfc=lfc,
            adjust_method=adjust_method,
            method=self.diff_params["method"],
        )
        all_info = pd.concat([fit_table, calls], axis=1)
        if PROBE_COLUMN in all_info.columns:
            all_info = all_info.sort_values(PROBE_COLUMN, kind="mergesort")

        deg_table = select_deg_rows(all_info, contrasts)
        unique_lists = unique_deg_lists(deg_table, contrasts)
        presence = deg_presence_matrix(unique_lists)

        result = DifferentialResult(
            contrasts=contrasts,
            success=True,
            all_info=all_info,
            deg_table=deg_table,
            unique_lists=unique_lists,
            presence=presence,
            n_tested=len(fit_table),
            n_significant=int((calls != 0).any(axis=1).sum()),
            n_up_regulated={c: int((calls[c] > 0).sum()) for c in contrasts},
            n_down_regulated={c: int((calls[c] < 0).sum()) for c in contrasts},
            p_value=p_value,
            lfc=lfc,
            adjust_method=adjust_method,
        )

        result.output_files = self._save_results(result)
        result.execution_time = time.time() - start_time
        self._log_summary(result, design)
        return result

    def run(
        self,
        eset_path: Union[str, Path],
        design: DesignSpec,
        working_dir: Union[str, Path],
    ) -> DifferentialResult:
        fit_table = self.fit(eset_path, design, working_dir)
        return self.analyze(fit_table, design)

    def _save_results(self, result: DifferentialResult) -> Dict[str, Path]:
        """Save DEG tables and the contrast dendrogram"""
        self.paths.create_output_dirs()
        output_files = {}

        result.all_info.to_csv(self.paths.all_info_csv)
        output_files["all_info"] = self.paths.all_info_csv

        result.deg_table.to_csv(self.paths.deg_duplicates_csv)
        output_files["deg_duplicates"] = self.paths.deg_duplicates_csv

        unique_lists_frame(result.unique_lists).to_csv(self.paths.deg_unique_csv)
        output_files["deg_unique"] = self.paths.deg_unique_csv

        fig = plot_contrast_dendrogram(result.presence)
        if fig is not None:
            with PdfPages(self.paths.dendrogram_pdf) as pdf:
                pdf.savefig(fig)
            plt.close(fig)
            output_files["dendrogram"] = self.paths.dendrogram_pdf

        logger.info(f"Results saved: {len(output_files)} DEG files")
        return output_files

    def _log_summary(self, result: DifferentialResult, design: DesignSpec) -> None:
        logger.info("=== DIFFERENTIAL EXPRESSION SUMMARY ===")
        logger.info(
            f"{result.n_significant}/{result.n_tested} probes called "
            f"(adj.p < {result.p_value}, |logFC| >= {result.lfc}, "
            f"{result.adjust_method})"
        )
        for contrast in result.contrasts:
            label = design.contrast_labels.get(contrast, contrast)
            logger.info(
                f"{label}: {result.n_up_regulated[contrast]} up, "
                f"{result.n_down_regulated[contrast]} down, "
                f"{len(result.unique_lists.get(contrast, []))} unique genes"
            )
