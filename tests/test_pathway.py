"""Unit tests for arrayflow.pathway: deduplication, colour scale, rendering."""

from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from arrayflow.exceptions import DataShapeError, RIntegrationError
from arrayflow.pathway import (ColorScale, PathviewRenderer,
                               PathwayOverlayPipeline, compute_color_scale,
                               deduplicate_expression, load_expression_table,
                               load_pathway_ids, parse_pathway_id)


# ---------------------------------------------------------------------------
# Expression table
# ---------------------------------------------------------------------------

class TestLoadExpressionTable:

    def test_decimal_comma_parsed(self, expression_file):
        df = load_expression_table(expression_file, id_column="GeneID")
        assert list(df.columns) == ["GeneID", "HGP", "UV"]
        assert df["HGP"].iloc[0] == pytest.approx(-7.2)

    def test_column_subset(self, expression_file):
        df = load_expression_table(expression_file, id_column="GeneID", columns=["UV"])
        assert list(df.columns) == ["GeneID", "UV"]

    def test_missing_id_column(self, expression_file):
        with pytest.raises(DataShapeError):
            load_expression_table(expression_file, id_column="Entrez")

    def test_non_numeric_column(self, tmp_path):
        path = tmp_path / "bad.txt"
        path.write_text("GeneID\tHGP\n1\tup\n2\tdown\n")
        with pytest.raises(DataShapeError) as exc:
            load_expression_table(path, id_column="GeneID")
        assert exc.value.field == "HGP"


class TestDeduplicateExpression:

    def test_duplicates_averaged(self, expression_file):
        df = load_expression_table(expression_file, id_column="GeneID")
        dedup = deduplicate_expression(df, "GeneID")

        assert len(dedup) == 3
        assert list(dedup.index) == [595, 1017, 7157]
        assert dedup.loc[1017, "HGP"] == pytest.approx(-7.0)
        assert dedup.loc[1017, "UV"] == pytest.approx(2.0)

    def test_non_numeric_ids_dropped(self):
        df = pd.DataFrame(
            {"GeneID": ["10", "abc", None, "10"], "A": [1.0, 5.0, 5.0, 3.0]}
        )
        dedup = deduplicate_expression(df, "GeneID")
        assert list(dedup.index) == [10]
        assert dedup.loc[10, "A"] == pytest.approx(2.0)

    def test_fractional_ids_not_merged_into_integer_gene(self):
        df = pd.DataFrame({"GeneID": ["1", "1.5", "2.0"], "A": [0.0, 4.0, 6.0]})
        dedup = deduplicate_expression(df, "GeneID")

        assert list(dedup.index) == [1, 2]
        assert dedup.loc[1, "A"] == pytest.approx(0.0)
        assert dedup.loc[2, "A"] == pytest.approx(6.0)

    def test_index_named_after_id_column(self):
        df = pd.DataFrame({"GeneID": [1, 2], "A": [0.1, 0.2]})
        assert deduplicate_expression(df, "GeneID").index.name == "GeneID"


class TestColorScale:

    def test_bound_rounded_from_max_abs(self):
        df = pd.DataFrame({"A": [-7.2, 1.0], "B": [5.0, 0.0]})
        scale = compute_color_scale(df)
        assert scale == ColorScale(bound=7, bins=14)
        assert scale.limits == (-7, 7)

    def test_all_zero_table_keeps_unit_bound(self):
        scale = compute_color_scale(pd.DataFrame({"A": [0.0, 0.0]}))
        assert scale.bound == 1
        assert scale.bins == 2

    def test_non_finite_values_ignored(self):
        df = pd.DataFrame({"A": [np.inf, 2.6, np.nan]})
        assert compute_color_scale(df).bound == 3

    def test_empty_table(self):
        with pytest.raises(DataShapeError):
            compute_color_scale(pd.DataFrame({"A": [np.nan]}))


# ---------------------------------------------------------------------------
# Pathway identifiers
# ---------------------------------------------------------------------------

class TestPathwayIds:

    def test_parse_split(self):
        ref = parse_pathway_id("hsa04110")
        assert ref.organism == "hsa"
        assert ref.code == "04110"
        assert str(ref) == "hsa04110"

    def test_parse_kegg_prefix(self):
        assert parse_pathway_id("path:mmu00010").pathway_id == "mmu00010"

    @pytest.mark.parametrize("text", ["04110", "hsa", "hsa-04110", ""])
    def test_parse_invalid(self, text):
        with pytest.raises(DataShapeError):
            parse_pathway_id(text)

    def test_load_skips_header(self, pathway_file):
        assert load_pathway_ids(pathway_file) == ["hsa04110", "hsa04115"]

    def test_load_without_header(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("hsa04110\n\nhsa04010\n")
        assert load_pathway_ids(path) == ["hsa04110", "hsa04010"]

    def test_load_empty(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("")
        with pytest.raises(DataShapeError):
            load_pathway_ids(path)


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class TestPathviewRenderer:

    def test_script_arguments(self, tmp_path):
        renderer = PathviewRenderer(MagicMock(), out_suffix="af")
        script = renderer.build_script(
            tmp_path / "genes.csv",
            parse_pathway_id("hsa04110"),
            ["HGP", "UV"],
            ColorScale(bound=7, bins=14),
        )
        assert 'pathway.id = "04110"' in script
        assert 'species = "hsa"' in script
        assert "multi.state = TRUE" in script
        assert "limit = list(gene = 7, cpd = 1)" in script
        assert "bins = list(gene = 14, cpd = 10)" in script

    def test_single_column_not_multi_state(self, tmp_path):
        renderer = PathviewRenderer(MagicMock())
        script = renderer.build_script(
            tmp_path / "genes.csv",
            parse_pathway_id("hsa04110"),
            ["HGP"],
            ColorScale(bound=2, bins=4),
        )
        assert "multi.state = FALSE" in script

    def test_render_returns_written_diagram(self, tmp_path):
        def fake_run(script, working_dir, description):
            (Path(working_dir) / "hsa04110.af.multi.png").write_bytes(b"png")
            return ""

        r_interface = MagicMock()
        r_interface.run_or_raise.side_effect = fake_run
        renderer = PathviewRenderer(r_interface, out_suffix="af")

        out = renderer.render(
            tmp_path / "genes.csv",
            parse_pathway_id("hsa04110"),
            ["HGP", "UV"],
            ColorScale(bound=7, bins=14),
            tmp_path,
        )
        assert out.name == "hsa04110.af.multi.png"

    def test_render_without_output_raises(self, tmp_path):
        renderer = PathviewRenderer(MagicMock())
        with pytest.raises(RIntegrationError):
            renderer.render(
                tmp_path / "genes.csv",
                parse_pathway_id("hsa04110"),
                ["HGP"],
                ColorScale(bound=1, bins=2),
                tmp_path,
            )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class TestPathwayOverlayPipeline:

    def _renderer(self, fail_on=None):
        renderer = MagicMock()

        def render(table_path, reference, columns, scale, output_dir):
            if reference.pathway_id == fail_on:
                raise RIntegrationError(f"pathview failed for {reference}")
            out = Path(output_dir) / f"{reference.pathway_id}.arrayflow.png"
            out.write_bytes(b"png")
            return out

        renderer.render.side_effect = render
        return renderer

    def test_end_to_end(self, config, expression_file, pathway_file):
        renderer = self._renderer()
        pipeline = PathwayOverlayPipeline(config, MagicMock(), renderer=renderer)

        result = pipeline.run()

        assert result.success
        assert sorted(result.rendered) == ["hsa04110", "hsa04115"]
        assert all(p.exists() for p in result.rendered.values())
        assert len(result.expression) == 3
        assert result.scale.limits == (-7, 7)
        assert result.columns == ["HGP", "UV"]

        saved = pd.read_csv(result.dedup_file, index_col=0)
        assert len(saved) == 3

    def test_shared_scale_for_every_pathway(
        self, config, expression_file, pathway_file
    ):
        renderer = self._renderer()
        PathwayOverlayPipeline(config, MagicMock(), renderer=renderer).run()

        scales = [c.args[3] for c in renderer.render.call_args_list]
        assert scales[0] == scales[1] == ColorScale(bound=7, bins=14)

    def test_failing_pathway_does_not_stop_others(
        self, config, expression_file, pathway_file
    ):
        renderer = self._renderer(fail_on="hsa04110")
        result = PathwayOverlayPipeline(config, MagicMock(), renderer=renderer).run()

        assert not result.success
        assert list(result.failures) == ["hsa04110"]
        assert list(result.rendered) == ["hsa04115"]
