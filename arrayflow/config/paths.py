"""
Output layout for ArrayFlow runs

All artifact names live here so the pipelines and the tests agree on them.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

QC_IMAGE_DIRS = [
    "QC_Raw_Intensity",
    "QC_Chip_PseudoImage_weights",
    "QC_Chip_PseudoImage_residuals",
    "QC_Chip_PseudoImage_pos_residuals",
    "QC_Chip_PseudoImage_neg_residuals",
    "QC_Chip_PseudoImage_sign_residuals",
]

MA_PLOT_DIRS = ["QC_MAplots_rawData", "QC_MAplots_norm"]


def category_slug(category: str) -> str:
    """'GO:BP' -> 'GO_BP' so category names are safe in file names"""
    return category.replace(":", "_")


@dataclass
class PathConfig:
    """Locations of every file an ArrayFlow run reads or writes"""

    output_dir: Path
    input_dir: Optional[Path] = None
    temp_dir: Optional[Path] = None

    def __post_init__(self):
        """Convert string paths to Path objects"""
        for field_name, field_value in self.__dict__.items():
            if field_value is not None and isinstance(field_value, str):
                setattr(self, field_name, Path(field_value))

    def create_output_dirs(self) -> None:
        """Create output directories if they don't exist"""
        for dir_path in [self.output_dir, self.temp_dir]:
            if dir_path is not None:
                dir_path.mkdir(parents=True, exist_ok=True)
                logger.debug(f"Created directory: {dir_path}")

    def get_output_subdir(self, subdir_name: str) -> Path:
        """Get a subdirectory within the output directory"""
        subdir = self.output_dir / subdir_name
        subdir.mkdir(parents=True, exist_ok=True)
        return subdir

    def resolve_input(self, name: str) -> Path:
        """Resolve a configured input file against input_dir"""
        path = Path(name)
        if path.is_absolute() or self.input_dir is None:
            return path
        return self.input_dir / path

    # Pathway overlay outputs
    @property
    def pathway_dir(self) -> Path:
        return self.get_output_subdir("pathview")

    @property
    def dedup_table(self) -> Path:
        return self.output_dir / "expression_dedup.csv"

    # Expression pipeline outputs
    @property
    def qc_image_dirs(self) -> List[Path]:
        return [self.output_dir / name for name in QC_IMAGE_DIRS + MA_PLOT_DIRS]

    @property
    def qc_plots_pdf(self) -> Path:
        return self.output_dir / "quality_control_plots.pdf"

    @property
    def dendrogram_pdf(self) -> Path:
        return self.output_dir / "dendogram.pdf"

    @property
    def all_info_csv(self) -> Path:
        return self.output_dir / "all_info.csv"

    @property
    def rma_norm_csv(self) -> Path:
        return self.output_dir / "rma_norm.csv"

    @property
    def deg_duplicates_csv(self) -> Path:
        return self.output_dir / "deg_analysis_duplicates.csv"

    @property
    def deg_unique_csv(self) -> Path:
        return self.output_dir / "deg_unique_group.csv"

    @property
    def enrichment_csv(self) -> Path:
        return self.output_dir / "gProfiler_enrich.csv"

    def revigo_csv(self, category: str) -> Path:
        return self.output_dir / f"revigo_{category_slug(category)}.csv"

    def revigo_cluster_csv(self, category: str) -> Path:
        return self.output_dir / f"revigoCluster_{category_slug(category)}.csv"

    def revigo_heatmap_csv(self, category: str) -> Path:
        return self.output_dir / f"revigoClusterHeatmap_{category_slug(category)}.csv"

    @property
    def kegg_heatmap_csv(self) -> Path:
        return self.output_dir / "heatmapKEGG.csv"

    @property
    def heatmap_pdf(self) -> Path:
        return self.output_dir / "gProfiler_revigo_heatmap_plots.pdf"
