"""
Raw array preprocessing through oligo: RMA normalisation and QC images
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from ..config import Config, PathConfig
from ..config.paths import MA_PLOT_DIRS, QC_IMAGE_DIRS
from ..exceptions import DataShapeError
from ..utils import RInterface, r_string, r_vector

logger = logging.getLogger(__name__)

ESET_FILE = "data_rma.rds"
PM_LOG2_TABLE = "pm_log2.csv"

# probe-level model image types, in QC_IMAGE_DIRS order after the raw image
PLM_IMAGE_TYPES = [
    "weights",
    "residuals",
    "pos.residuals",
    "neg.residuals",
    "sign.residuals",
]


@dataclass
class PreprocessingResult:
    """Artifacts of one preprocessing run"""

    eset_path: Path
    normalized: pd.DataFrame
    raw_log2: pd.DataFrame
    image_dirs: List[Path] = field(default_factory=list)
    rma_norm_file: Optional[Path] = None


class ArrayPreprocessor:
    """Read CEL files, write per-sample QC images and RMA-normalise"""

    def __init__(self, config: Config, r_interface: Optional[RInterface] = None):
        self.config = config
        self.params = config.microarray
        self.qc_params = self.params.get("qc", {})
        self.paths = PathConfig(
            output_dir=config.output_dir or ".",
            input_dir=config.input_dir,
            temp_dir=config.temp_dir,
        )
        self.r_interface = r_interface or RInterface(config.r_config)

    def discover_cel_files(
        self, cel_dir: Optional[Union[str, Path]] = None
    ) -> List[Path]:
        """Array files matching ``cel_pattern``, sorted by file name"""
        if cel_dir is None:
            cel_dir = self.params.get("cel_dir") or self.paths.input_dir or "."
        cel_dir = Path(cel_dir)

        cel_files = sorted(
            (p for p in cel_dir.glob(self.params["cel_pattern"]) if p.is_file()),
            key=lambda p: p.name,
        )
        if not cel_files:
            raise DataShapeError(
                f"No array files matching '{self.params['cel_pattern']}' in {cel_dir}"
            )

        logger.info(f"Found {len(cel_files)} array files in {cel_dir}")
        return cel_files

    def _create_preprocessing_script(
        self, cel_files: List[Path], output_dir: Path
    ) -> str:
        """Generate the oligo QC + RMA script"""
        max_probes = int(self.qc_params.get("max_probes", 200000))
        raw_dir, *plm_dirs = QC_IMAGE_DIRS
        raw_ma_dir, norm_ma_dir = MA_PLOT_DIRS

        plm_loops = "\n".join(
            f"""
for (i in seq_len(n_samples)) {{
    sample_jpeg({r_string(subdir)}, i)
    image(Pset, which = i, type = {r_string(image_type)}, main = sample_names[i])
    dev.off()
}}"""
            for subdir, image_type in zip(plm_dirs, PLM_IMAGE_TYPES)
        )

        return f"""
suppressPackageStartupMessages({{
    library(oligo)
}})

cel_files <- {r_vector(p.absolute() for p in cel_files)}
out_dir <- {r_string(output_dir.absolute())}

data <- read.celfiles(cel_files)
sample_names <- basename(cel_files)
sampleNames(data) <- sample_names
n_samples <- length(sample_names)

sample_jpeg <- function(subdir, i) {{
    dir.create(file.path(out_dir, subdir), showWarnings = FALSE, recursive = TRUE)
    jpeg(file.path(out_dir, subdir, paste0(sample_names[i], ".jpg")))
}}

# Raw intensity pseudo-images
for (i in seq_len(n_samples)) {{
    sample_jpeg({r_string(raw_dir)}, i)
    image(data[, i], main = sample_names[i])
    dev.off()
}}

# Probe-level model pseudo-images
Pset <- fitProbeLevelModel(data)
{plm_loops}

# Raw log2 PM intensities, subsampled for plotting
pmexp <- log2(pm(data))
if (nrow(pmexp) > {max_probes}) {{
    set.seed({int(self.config.random_seed)})
    pmexp <- pmexp[sort(sample(nrow(pmexp), {max_probes})), , drop = FALSE]
}}
colnames(pmexp) <- sample_names
write.csv(pmexp, {r_string(PM_LOG2_TABLE)}, row.names = FALSE)

data.rma <- rma(data)

for (i in seq_len(n_samples)) {{
    sample_jpeg({r_string(raw_ma_dir)}, i)
    MAplot(data, which = i)
    dev.off()
}}
for (i in seq_len(n_samples)) {{
    sample_jpeg({r_string(norm_ma_dir)}, i)
    MAplot(data.rma, which = i)
    dev.off()
}}

saveRDS(data.rma, {r_string(ESET_FILE)})

norm <- exprs(data.rma)
colnames(norm) <- sample_names
write.csv(
    data.frame(PROBEID = rownames(norm), norm, check.names = FALSE),
    file.path(out_dir, "rma_norm.csv"),
    row.names = FALSE
)
cat("Normalised", nrow(norm), "probesets over", n_samples, "samples\\n")
"""

    def run(
        self, cel_files: List[Path], working_dir: Union[str, Path]
    ) -> PreprocessingResult:
        """
        Run QC imaging and RMA in R

        The expression set and the raw intensity table are written to
        ``working_dir``; QC images and ``rma_norm.csv`` go to the output
        directory.
        """
        working_dir = Path(working_dir)
        self.paths.create_output_dirs()

        logger.info(f"Preprocessing {len(cel_files)} arrays with oligo (RMA)")
        output = self.r_interface.run_or_raise(
            self._create_preprocessing_script(cel_files, self.paths.output_dir),
            working_dir=working_dir,
            description="array preprocessing",
        )
        if output:
            logger.debug(output.strip())

        eset_path = working_dir / ESET_FILE
        if not eset_path.exists():
            raise DataShapeError(f"Normalised expression set not written: {eset_path}")

        normalized = pd.read_csv(self.paths.rma_norm_csv, index_col="PROBEID")
        raw_log2 = pd.read_csv(working_dir / PM_LOG2_TABLE)

        return PreprocessingResult(
            eset_path=eset_path,
            normalized=normalized,
            raw_log2=raw_log2,
            image_dirs=self.paths.qc_image_dirs,
            rma_norm_file=self.paths.rma_norm_csv,
        )
