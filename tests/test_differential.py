"""Unit tests for arrayflow.differential: design, calls and DEG lists."""

from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from arrayflow.differential import (DesignSpec, LimmaAnalyzer,
                                    build_contrast_matrix, build_design_matrix,
                                    decide_tests, deg_presence_matrix,
                                    load_sample_targets, make_names,
                                    select_deg_rows, unique_deg_lists,
                                    validate_targets)
from arrayflow.differential.analyzer import FIT_TABLE
from arrayflow.differential.calling import (adjust_p_values,
                                            plot_contrast_dendrogram)
from arrayflow.exceptions import DataShapeError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _targets():
    return pd.DataFrame(
        {
            "Filename": ["b.CEL", "a.CEL", "c.CEL", "d.CEL"],
            "Group": ["Control", "HGP", "UV", "Control"],
        }
    )


def _fit_table():
    """Wide limma table for five probes over two contrasts."""
    return pd.DataFrame(
        {
            "genes.PROBEID": ["p5", "p1", "p2", "p3", "p4"],
            "genes.ENTREZID": ["595", "1017", "1017", None, "7157"],
            "genes.SYMBOL": ["CCND1", "CDK2", "CDK2", None, "TP53"],
            "coefficients.HGP.Control": [0.2, 2.0, 1.5, 3.0, 0.5],
            "coefficients.UV.Control": [-2.5, 0.1, 0.0, 3.0, 1.2],
            "p.value.HGP.Control": [0.4, 1e-12, 1e-11, 1e-12, 1e-12],
            "p.value.UV.Control": [1e-12, 0.7, 0.9, 1e-12, 1e-12],
            "t.HGP.Control": [0.5, 20.0, 18.0, 21.0, 4.0],
        }
    )


# ---------------------------------------------------------------------------
# Names and design
# ---------------------------------------------------------------------------

class TestMakeNames:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("HGP-Control", "HGP.Control"),
            ("HGPTERT-Control", "HGPTERT.Control"),
            ("1abc", "X1abc"),
            (".5x", "X.5x"),
            (".a", ".a"),
            ("a b", "a.b"),
        ],
    )
    def test_make_names(self, name, expected):
        assert make_names(name) == expected


class TestSampleTargets:

    def test_load_whitespace_file(self, tmp_path):
        path = tmp_path / "metadata.txt"
        path.write_text("Filename   Group\na.CEL HGP\nb.CEL\tControl\n")
        targets = load_sample_targets(path)
        assert list(targets["Group"]) == ["HGP", "Control"]

    def test_duplicate_filename(self, tmp_path):
        path = tmp_path / "metadata.txt"
        path.write_text("Filename Group\na.CEL HGP\na.CEL Control\n")
        with pytest.raises(DataShapeError):
            load_sample_targets(path)

    def test_missing_group_column(self, tmp_path):
        path = tmp_path / "metadata.txt"
        path.write_text("Filename Condition\na.CEL HGP\n")
        with pytest.raises(DataShapeError):
            load_sample_targets(path)

    def test_unassigned_array_file(self):
        with pytest.raises(DataShapeError) as exc:
            validate_targets(_targets(), ["a.CEL", "b.CEL", "z.CEL"])
        assert "z.CEL" in str(exc.value)

    def test_extra_targets_dropped_and_sorted(self):
        targets = validate_targets(_targets(), [Path("/data/b.CEL"), "a.CEL"])
        assert list(targets["Filename"]) == ["a.CEL", "b.CEL"]

    def test_no_array_files(self):
        with pytest.raises(DataShapeError):
            validate_targets(_targets(), [])


class TestDesignMatrix:

    def test_indicator_columns(self):
        design = build_design_matrix(_targets())

        assert list(design.index) == ["a.CEL", "b.CEL", "c.CEL", "d.CEL"]
        assert list(design.columns) == ["Control", "HGP", "UV"]
        assert design.loc["a.CEL"].tolist() == [0, 1, 0]
        assert design.loc["d.CEL"].tolist() == [1, 0, 0]
        assert (design.sum(axis=1) == 1).all()

    def test_contrast_matrix(self):
        matrix = build_contrast_matrix(
            ["HGP-Control", "UV-Control"], ["Control", "HGP", "UV"]
        )
        assert list(matrix.columns) == ["HGP.Control", "UV.Control"]
        assert matrix["HGP.Control"].tolist() == [-1, 1, 0]
        assert matrix["UV.Control"].tolist() == [-1, 0, 1]

    def test_contrast_unknown_group(self):
        with pytest.raises(DataShapeError):
            build_contrast_matrix(["TERT-Control"], ["Control", "HGP"])

    def test_contrast_malformed(self):
        with pytest.raises(DataShapeError):
            build_contrast_matrix(["HGP"], ["Control", "HGP"])

    def test_design_spec_labels(self):
        design = DesignSpec.from_targets(_targets(), ["HGP-Control", "UV-Control"])
        assert design.contrast_names == ["HGP.Control", "UV.Control"]
        assert design.contrast_labels["HGP.Control"] == "HGP-Control"


# ---------------------------------------------------------------------------
# Significance calls
# ---------------------------------------------------------------------------

class TestDecideTests:

    def _frames(self, coef, pvals):
        index = [f"g{i}" for i in range(len(coef))]
        columns = [f"c{j}" for j in range(len(coef[0]))]
        return (
            pd.DataFrame(coef, index=index, columns=columns),
            pd.DataFrame(pvals, index=index, columns=columns),
        )

    def test_significant_up_and_down(self):
        coef, pvals = self._frames(
            [[2.0, 0.1], [-3.0, 0.2]], [[1e-6, 0.5], [1e-9, 0.3]]
        )
        calls = decide_tests(coef, pvals)
        assert calls.loc["g0", "c0"] == 1
        assert calls.loc["g1", "c0"] == -1
        assert calls["c1"].tolist() == [0, 0]

    def test_small_effect_never_called(self):
        coef, pvals = self._frames([[0.5], [2.0]], [[1e-12], [1e-12]])
        calls = decide_tests(coef, pvals)
        assert calls["c0"].tolist() == [0, 1]

    def test_lfc_boundary_inclusive(self):
        coef, pvals = self._frames([[1.0]], [[1e-12]])
        assert decide_tests(coef, pvals).iloc[0, 0] == 1

    def test_global_adjustment_spans_contrasts(self):
        coef, pvals = self._frames(
            [[2.0, 0.0], [0.0, 0.0], [0.0, 0.0]],
            [[1.5e-6, 0.9], [0.9, 0.9], [0.9, 0.9]],
        )
        assert decide_tests(coef, pvals, method="global").iloc[0, 0] == 0
        assert decide_tests(coef, pvals, method="separate").iloc[0, 0] == 1

    def test_nan_p_value_not_called(self):
        coef, pvals = self._frames([[2.0], [2.0]], [[np.nan], [1e-12]])
        assert decide_tests(coef, pvals)["c0"].tolist() == [0, 1]

    def test_shape_mismatch(self):
        coef, _ = self._frames([[1.0, 1.0]], [[0.1, 0.1]])
        _, pvals = self._frames([[1.0]], [[0.1]])
        with pytest.raises(DataShapeError):
            decide_tests(coef, pvals)

    def test_unknown_methods(self):
        coef, pvals = self._frames([[1.0]], [[0.1]])
        with pytest.raises(ValueError):
            decide_tests(coef, pvals, method="nestedF")
        with pytest.raises(ValueError):
            decide_tests(coef, pvals, adjust_method="qvalue")

    def test_adjust_none_keeps_values(self):
        adjusted = adjust_p_values(np.array([0.01, np.nan]), "none")
        assert adjusted[0] == 0.01
        assert np.isnan(adjusted[1])


# ---------------------------------------------------------------------------
# DEG tables
# ---------------------------------------------------------------------------

class TestDegLists:

    def _all_info(self):
        fit = _fit_table()
        calls = pd.DataFrame(
            {"HGP.Control": [0, 1, 1, 1, 0], "UV.Control": [-1, 0, 0, 1, 1]}
        )
        return pd.concat([fit, calls], axis=1)

    def test_select_drops_unannotated_and_uncalled(self):
        deg = select_deg_rows(self._all_info(), ["HGP.Control", "UV.Control"])

        assert deg["genes.PROBEID"].tolist() == ["p5", "p1", "p2", "p4"]
        assert "t.HGP.Control" not in deg.columns
        assert "DEG" not in deg.columns
        assert deg.columns[-2:].tolist() == ["HGP.Control", "UV.Control"]

    def test_na_string_entrez_dropped(self):
        info = self._all_info()
        info.loc[0, "genes.ENTREZID"] = "NA"
        deg = select_deg_rows(info, ["HGP.Control", "UV.Control"])
        assert "p5" not in deg["genes.PROBEID"].tolist()

    def test_unique_lists_first_seen(self):
        deg = select_deg_rows(self._all_info(), ["HGP.Control", "UV.Control"])
        lists = unique_deg_lists(deg, ["HGP.Control", "UV.Control"])
        assert lists == {"HGP.Control": ["1017"], "UV.Control": ["595", "7157"]}

    def test_presence_matrix(self):
        presence = deg_presence_matrix({"A": ["1", "2"], "B": ["2"]})
        assert presence.loc["1"].tolist() == [1, 0]
        assert presence.loc["2"].tolist() == [1, 1]

    def test_dendrogram_needs_two_contrasts(self):
        assert plot_contrast_dendrogram(deg_presence_matrix({"A": ["1"]})) is None


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class TestLimmaAnalyzer:

    def _design(self, config):
        config.differential["comparisons"] = ["HGP-Control", "UV-Control"]
        return DesignSpec.from_targets(_targets(), config.differential["comparisons"])

    def test_analyze_writes_artifacts(self, config):
        design = self._design(config)
        analyzer = LimmaAnalyzer(config, MagicMock())

        result = analyzer.analyze(_fit_table(), design)

        assert result.success
        assert result.n_tested == 5
        assert result.unique_lists["HGP.Control"] == ["1017"]
        assert result.unique_lists["UV.Control"] == ["7157", "595"]
        assert result.n_down_regulated["UV.Control"] == 1
        for key in ("all_info", "deg_duplicates", "deg_unique", "dendrogram"):
            assert result.output_files[key].exists()

        all_info = pd.read_csv(result.output_files["all_info"], index_col=0)
        assert all_info["genes.PROBEID"].tolist() == ["p1", "p2", "p3", "p4", "p5"]

    def test_fit_runs_r_and_reads_table(self, config, tmp_path):
        design = self._design(config)
        r_interface = MagicMock()

        def fake_run(script, working_dir, description):
            assert "eBayes" in script
            assert (Path(working_dir) / "design.csv").exists()
            _fit_table().rename(
                columns={"coefficients.HGP.Control": "coefficients.HGP-Control"}
            ).to_csv(Path(working_dir) / FIT_TABLE, index=False)
            return ""

        r_interface.run_or_raise.side_effect = fake_run
        fit = LimmaAnalyzer(config, r_interface).fit(
            tmp_path / "data_rma.rds", design, tmp_path / "work"
        )

        assert "coefficients.HGP.Control" in fit.columns
        assert fit["genes.ENTREZID"].iloc[1] == "1017"

    def test_missing_fit_table(self, tmp_path):
        with pytest.raises(DataShapeError):
            LimmaAnalyzer.read_fit_table(tmp_path / "missing.csv")
