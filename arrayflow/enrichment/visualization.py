"""
Heatmap plots of enrichment p-values
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.colors import LinearSegmentedColormap

logger = logging.getLogger(__name__)

# firebrick1 for the lowest p-values, ghostwhite for the highest
PVALUE_CMAP = LinearSegmentedColormap.from_list("pvalue", ["#FF3030", "#F8F8FF"])
MISSING_COLOR = "#E5E5E5"  # gray90


def plot_title(organism: str, label: str) -> str:
    """'Homo sapiens', 'GO:BP' -> 'Homo_sapiens_GO:BP'"""
    return f"{organism} {label}".replace(" ", "_")


class HeatmapPlotter:
    """Annotated p-value heatmaps, one figure per matrix"""

    def __init__(self, row_height: float = 0.35, column_width: float = 1.6):
        self.row_height = row_height
        self.column_width = column_width

    def plot_heatmap(self, matrix: pd.DataFrame, title: str) -> Optional[plt.Figure]:
        """
        Heatmap of a rows x comparisons p-value matrix

        Missing cells are drawn in grey; every value is annotated in
        scientific notation. Returns None for a matrix without values.
        """
        if matrix.empty or matrix.isna().all().all():
            logger.warning(f"No values to plot for {title}")
            return None

        values = matrix.astype(float)
        annot = np.array(
            [
                [f"{v:.2e}" if pd.notna(v) else "" for v in row]
                for row in values.to_numpy()
            ]
        )

        width = max(6.0, self.column_width * values.shape[1] + 4)
        height = max(4.0, self.row_height * values.shape[0] + 2)
        fig, ax = plt.subplots(figsize=(width, height))
        ax.set_facecolor(MISSING_COLOR)

        sns.heatmap(
            values,
            cmap=PVALUE_CMAP,
            mask=values.isna(),
            annot=annot,
            fmt="",
            annot_kws={"size": 7},
            linewidths=0.5,
            cbar_kws={"label": "p-value"},
            ax=ax,
        )

        ax.set_title(title, fontsize=12, fontweight="bold")
        ax.set_xlabel("")
        ax.set_ylabel("")
        plt.setp(ax.get_xticklabels(), rotation=30, ha="right", fontweight="bold")
        plt.setp(ax.get_yticklabels(), rotation=0, fontsize=8, fontweight="bold")
        fig.tight_layout()
        return fig

    def create_heatmaps(
        self, matrices: Dict[str, pd.DataFrame]
    ) -> Dict[str, plt.Figure]:
        """Figures keyed by title, skipping matrices with nothing to show"""
        figures = {}
        for title, matrix in matrices.items():
            fig = self.plot_heatmap(matrix, title)
            if fig is not None:
                figures[title] = fig
        return figures

    @staticmethod
    def save_plots(
        figures: Dict[str, plt.Figure], output_file: Union[str, Path]
    ) -> Path:
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with PdfPages(output_file) as pdf:
            for fig in figures.values():
                pdf.savefig(fig)
                plt.close(fig)

        logger.info(f"Saved {len(figures)} heatmaps to {output_file}")
        return output_file
