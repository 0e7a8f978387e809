"""
Quality-control plots for normalised microarray data
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.patches import Ellipse
from scipy.stats import chi2
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from ..differential.design import FILENAME_COLUMN, GROUP_COLUMN, sort_by_group

logger = logging.getLogger(__name__)

DEFAULT_PALETTE = [
    "green",
    "blue",
    "red",
    "darkorange",
    "black",
    "purple",
    "aquamarine",
    "goldenrod",
]


def confidence_ellipse(
    points: np.ndarray, confidence: float = 0.95
) -> Optional[Tuple[Tuple[float, float], float, float, float]]:
    """
    Confidence ellipse of the mean of 2-D points

    Returns:
        (center, width, height, angle in degrees), or None for fewer than
        three points
    """
    if len(points) < 3:
        return None

    center = points.mean(axis=0)
    cov = np.cov(points, rowvar=False) / len(points)
    eigvals, eigvecs = np.linalg.eigh(cov)
    order = eigvals.argsort()[::-1]
    eigvals, eigvecs = eigvals[order], eigvecs[:, order]

    scale = np.sqrt(chi2.ppf(confidence, df=2))
    width, height = 2 * scale * np.sqrt(np.clip(eigvals, 0, None))
    angle = np.degrees(np.arctan2(eigvecs[1, 0], eigvecs[0, 0]))
    center = (float(center[0]), float(center[1]))
    return center, float(width), float(height), float(angle)


class QCPlotter:
    """Density, boxplot and PCA views of raw and normalised arrays"""

    def __init__(
        self,
        palette: Optional[List[str]] = None,
        figsize: Tuple[int, int] = (10, 7),
    ):
        self.palette = palette or DEFAULT_PALETTE
        self.figsize = figsize

    def _sample_order(
        self, data: pd.DataFrame, targets: Optional[pd.DataFrame]
    ) -> List[str]:
        if targets is None:
            return list(data.columns)
        ordered = sort_by_group(targets)[FILENAME_COLUMN]
        return [s for s in ordered if s in data.columns]

    def plot_density(
        self, raw_log2: pd.DataFrame, targets: Optional[pd.DataFrame] = None
    ) -> plt.Figure:
        """Density of raw log2 intensities, one curve per sample"""
        fig, ax = plt.subplots(figsize=self.figsize)
        for sample in self._sample_order(raw_log2, targets):
            values = raw_log2[sample].replace([np.inf, -np.inf], np.nan).dropna()
            sns.kdeplot(values, ax=ax, label=sample)

        ax.set_title("Histogram")
        ax.set_xlabel("log2 intensity")
        ax.legend(fontsize=7, title="Sample")
        fig.tight_layout()
        return fig

    def plot_boxplot(
        self,
        data: pd.DataFrame,
        title: str,
        targets: Optional[pd.DataFrame] = None,
        ylim: Tuple[float, float] = (2, 16),
    ) -> plt.Figure:
        """Per-sample intensity boxplots"""
        samples = self._sample_order(data, targets)
        values = [
            data[s].replace([np.inf, -np.inf], np.nan).dropna().to_numpy()
            for s in samples
        ]

        fig, ax = plt.subplots(figsize=self.figsize)
        ax.boxplot(values, flierprops={"markersize": 1, "alpha": 0.3})
        ax.set_xticks(range(1, len(samples) + 1))
        ax.set_xticklabels(
            samples, rotation=30, ha="right", fontsize=8, fontweight="bold"
        )
        ax.set_ylim(*ylim)
        ax.set_title(title)
        ax.set_ylabel("log2 intensity")
        fig.tight_layout()
        return fig

    def plot_pca(self, normalized: pd.DataFrame, targets: pd.DataFrame) -> plt.Figure:
        """
        PCA of samples on scaled and centred normalised data, coloured by
        group with 95% confidence ellipses of the group means
        """
        groups = targets.set_index(FILENAME_COLUMN)[GROUP_COLUMN]
        samples = [s for s in normalized.columns if s in groups.index]

        matrix = normalized[samples].T.to_numpy(dtype=float)
        scaled = StandardScaler().fit_transform(matrix)
        pca = PCA(n_components=2)
        coords = pca.fit_transform(scaled)
        explained = pca.explained_variance_ratio_ * 100

        fig, ax = plt.subplots(figsize=self.figsize)
        for i, group in enumerate(sorted(groups[samples].unique())):
            color = self.palette[i % len(self.palette)]
            mask = (groups[samples] == group).to_numpy()
            points = coords[mask]
            ax.scatter(points[:, 0], points[:, 1], color=color, label=group)

            ellipse = confidence_ellipse(points)
            if ellipse is not None:
                center, width, height, angle = ellipse
                ax.add_patch(
                    Ellipse(center, width, height, angle=angle, color=color, alpha=0.2)
                )

        ax.axhline(0, color="grey", linestyle="--", linewidth=0.5)
        ax.axvline(0, color="grey", linestyle="--", linewidth=0.5)
        ax.set_xlabel(f"Dim1 ({explained[0]:.1f}%)")
        ax.set_ylabel(f"Dim2 ({explained[1]:.1f}%)")
        ax.set_title("Individuals - PCA")
        ax.legend(title="Groups")
        fig.tight_layout()
        return fig

    def create_qc_plots(
        self,
        raw_log2: pd.DataFrame,
        normalized: pd.DataFrame,
        targets: pd.DataFrame,
    ) -> Dict[str, plt.Figure]:
        """All QC figures of one run, keyed by name in page order"""
        figures = {
            "Histogram_Raw": self.plot_density(raw_log2, targets),
            "Boxplot_After_Normalization": self.plot_boxplot(
                normalized, "after normalization", targets
            ),
            "Boxplot_Before_Normalization": self.plot_boxplot(
                raw_log2, "before normalization", targets
            ),
        }
        if normalized.shape[1] >= 2:
            figures["PCA"] = self.plot_pca(normalized, targets)
        else:
            logger.warning("PCA needs at least two samples; skipping")
        return figures

    @staticmethod
    def save_plots(
        figures: Dict[str, plt.Figure], output_file: Union[str, Path]
    ) -> Path:
        """Write figures as pages of one PDF and close them"""
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with PdfPages(output_file) as pdf:
            for fig in figures.values():
                pdf.savefig(fig)
                plt.close(fig)

        logger.info(f"Saved {len(figures)} plots to {output_file}")
        return output_file
