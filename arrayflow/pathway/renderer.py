"""
KEGG diagram rendering through the Bioconductor pathview package
"""

import logging
from pathlib import Path
from typing import List, Union

from ..exceptions import RIntegrationError
from ..utils import RInterface, r_bool, r_string, r_vector
from .expression import ColorScale
from .reference import PathwayReference

logger = logging.getLogger(__name__)


class PathviewRenderer:
    """Render one coloured pathway diagram per call"""

    def __init__(
        self,
        r_interface: RInterface,
        out_suffix: str = "arrayflow",
        kegg_native: bool = True,
    ):
        self.r_interface = r_interface
        self.out_suffix = out_suffix
        self.kegg_native = kegg_native

    def build_script(
        self,
        table_path: Union[str, Path],
        reference: PathwayReference,
        columns: List[str],
        scale: ColorScale,
    ) -> str:
        """Generate the pathview call for one pathway"""
        multi_state = len(columns) > 1

        return f"""
suppressPackageStartupMessages(library(pathview))

gene_data <- read.csv({r_string(Path(table_path).absolute())}, row.names = 1, check.names = FALSE)
gene_data <- as.matrix(gene_data[, {r_vector(columns)}, drop = FALSE])

pv <- pathview(
    gene.data = gene_data,
    pathway.id = {r_string(reference.code)},
    species = {r_string(reference.organism)},
    out.suffix = {r_string(self.out_suffix)},
    kegg.native = {r_bool(self.kegg_native)},
    multi.state = {r_bool(multi_state)},
    same.layer = TRUE,
    limit = list(gene = {scale.bound}, cpd = 1),
    bins = list(gene = {scale.bins}, cpd = 10),
    both.dirs = list(gene = TRUE, cpd = TRUE)
)

if (is.null(pv)) {{
    stop("pathview returned no result for {reference.pathway_id}")
}}
"""

    def expected_outputs(
        self, output_dir: Path, reference: PathwayReference
    ) -> List[Path]:
        """Diagram files pathview wrote for this pathway"""
        pattern = f"{reference.pathway_id}.{self.out_suffix}*"
        return sorted(
            p
            for p in Path(output_dir).glob(pattern)
            if p.suffix.lower() in (".png", ".pdf")
        )

    def render(
        self,
        table_path: Union[str, Path],
        reference: PathwayReference,
        columns: List[str],
        scale: ColorScale,
        output_dir: Union[str, Path],
    ) -> Path:
        """
        Render a single pathway diagram

        Raises:
            RIntegrationError when R fails or no diagram was produced
        """
        output_dir = Path(output_dir)
        logger.info(f"Rendering pathway {reference} ({len(columns)} columns)")

        script = self.build_script(table_path, reference, columns, scale)
        self.r_interface.run_or_raise(
            script, working_dir=output_dir, description=f"pathview {reference}"
        )

        outputs = self.expected_outputs(output_dir, reference)
        if not outputs:
            raise RIntegrationError(f"pathview produced no diagram for {reference}")

        return outputs[0]
