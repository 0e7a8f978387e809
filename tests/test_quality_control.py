"""Unit tests for arrayflow.quality_control: preprocessing script and QC plots."""

from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from arrayflow.exceptions import DataShapeError
from arrayflow.quality_control import (ArrayPreprocessor, QCPlotter,
                                       confidence_ellipse)
from arrayflow.quality_control.preprocessing import ESET_FILE, PM_LOG2_TABLE


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SAMPLES = ["a.CEL", "b.CEL", "c.CEL", "d.CEL"]


def _targets():
    return pd.DataFrame(
        {"Filename": SAMPLES, "Group": ["HGP", "Control", "HGP", "Control"]}
    )


def _intensities(n_probes=200, seed=0):
    rng = np.random.default_rng(seed)
    return pd.DataFrame(
        rng.normal(8, 2, size=(n_probes, len(SAMPLES))), columns=SAMPLES
    )


def _cel_files(directory):
    paths = []
    for name in ["b.CEL", "a.cel", "notes.txt"]:
        path = Path(directory) / name
        path.write_bytes(b"")
        paths.append(path)
    return paths


# ---------------------------------------------------------------------------
# Preprocessing
# ---------------------------------------------------------------------------

class TestArrayPreprocessor:

    def test_discover_sorted_case_insensitive(self, config, tmp_path):
        _cel_files(config.input_dir)
        found = ArrayPreprocessor(config, MagicMock()).discover_cel_files()
        assert [p.name for p in found] == ["a.cel", "b.CEL"]

    def test_discover_none(self, config, tmp_path):
        with pytest.raises(DataShapeError):
            ArrayPreprocessor(config, MagicMock()).discover_cel_files(tmp_path)

    def test_script_contents(self, config, tmp_path):
        config.microarray["qc"]["max_probes"] = 5000
        preprocessor = ArrayPreprocessor(config, MagicMock())
        script = preprocessor._create_preprocessing_script(
            [tmp_path / "a.CEL"], tmp_path / "out"
        )

        assert "read.celfiles(cel_files)" in script
        assert "fitProbeLevelModel(data)" in script
        assert 'type = "sign.residuals"' in script
        assert "set.seed(100)" in script
        assert "5000" in script
        assert "data.rma <- rma(data)" in script
        assert f'saveRDS(data.rma, "{ESET_FILE}")' in script

    def test_run_reads_r_outputs(self, config, tmp_path):
        def fake_run(script, working_dir, description):
            working_dir = Path(working_dir)
            (working_dir / ESET_FILE).write_bytes(b"rds")
            _intensities().to_csv(working_dir / PM_LOG2_TABLE, index=False)
            norm = _intensities(seed=1)
            norm.insert(0, "PROBEID", [f"p{i}" for i in range(len(norm))])
            norm.to_csv(Path(config.output_dir) / "rma_norm.csv", index=False)
            return "Normalised 200 probesets"

        r_interface = MagicMock()
        r_interface.run_or_raise.side_effect = fake_run
        work = tmp_path / "work"
        work.mkdir()

        result = ArrayPreprocessor(config, r_interface).run(
            [tmp_path / "a.CEL"], work
        )

        assert result.eset_path == work / ESET_FILE
        assert result.normalized.index.name == "PROBEID"
        assert list(result.normalized.columns) == SAMPLES
        assert list(result.raw_log2.columns) == SAMPLES
        assert len(result.image_dirs) == 8

    def test_run_without_expression_set(self, config, tmp_path):
        with pytest.raises(DataShapeError):
            ArrayPreprocessor(config, MagicMock()).run([tmp_path / "a.CEL"], tmp_path)


# ---------------------------------------------------------------------------
# Plots
# ---------------------------------------------------------------------------

class TestConfidenceEllipse:

    def test_needs_three_points(self):
        assert confidence_ellipse(np.array([[0.0, 0.0], [1.0, 1.0]])) is None

    def test_centered_on_mean(self):
        points = np.array([[0.0, 0.0], [2.0, 0.0], [0.0, 2.0], [2.0, 2.0]])
        center, width, height, _ = confidence_ellipse(points)
        assert center == pytest.approx((1.0, 1.0))
        assert width == pytest.approx(height)
        assert width > 0


class TestQCPlotter:

    def test_sample_order_by_group(self):
        order = QCPlotter()._sample_order(_intensities(), _targets())
        assert order == ["b.CEL", "d.CEL", "a.CEL", "c.CEL"]

    def test_create_qc_plots(self, tmp_path):
        plotter = QCPlotter()
        figures = plotter.create_qc_plots(
            _intensities(), _intensities(seed=1), _targets()
        )
        assert list(figures) == [
            "Histogram_Raw",
            "Boxplot_After_Normalization",
            "Boxplot_Before_Normalization",
            "PCA",
        ]

        out = QCPlotter.save_plots(figures, tmp_path / "qc.pdf")
        assert out.exists()

    def test_pca_skipped_for_single_sample(self):
        single = _intensities()[["a.CEL"]]
        figures = QCPlotter().create_qc_plots(single, single, _targets().iloc[[0]])
        assert "PCA" not in figures
