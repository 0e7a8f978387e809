"""Unit tests for arrayflow.config: loading, saving, validation and paths."""

import json

import pytest
import yaml

from arrayflow.config import (Config, PathConfig, category_slug,
                              get_default_config, load_config, save_config,
                              validate_config)


class TestConfig:

    def test_defaults(self):
        config = get_default_config()
        assert config.differential["p_value"] == 0.000005
        assert config.differential["lfc"] == 1.0
        assert config.differential["method"] == "global"
        assert config.clustering["n_clusters"] == 40
        assert config.clustering["seed"] == 100
        assert config.revigo["cutoff"] == "0.40"
        assert config.enrichment["correction_method"] == "g_SCS"

    def test_partial_section_keeps_defaults(self):
        config = Config(differential={"p_value": 0.01})
        assert config.differential["p_value"] == 0.01
        assert config.differential["adjust_method"] == "BH"

    def test_yaml_round_trip(self, tmp_path):
        config = Config(project_name="arrays", clustering={"n_clusters": 12})
        path = tmp_path / "config.yaml"
        save_config(config, path)

        loaded = load_config(path)
        assert loaded.project_name == "arrays"
        assert loaded.clustering["n_clusters"] == 12

    def test_json_load(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"revigo": {"cutoff": "0.70"}}))
        assert load_config(path).revigo["cutoff"] == "0.70"

    def test_load_missing_or_unsupported(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")
        path = tmp_path / "config.toml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_config(path)

    def test_saved_yaml_is_plain(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(get_default_config(), path)
        data = yaml.safe_load(path.read_text())
        assert data["clustering"]["categories"] == ["GO:BP", "GO:CC", "GO:MF"]


class TestValidateConfig:

    def test_default_config_is_valid(self, tmp_path):
        assert validate_config(Config(output_dir=str(tmp_path / "out"))) == []

    @pytest.mark.parametrize(
        "section, values, fragment",
        [
            ("differential", {"comparisons": []}, "comparison"),
            ("differential", {"comparisons": ["HGP"]}, "GroupA-GroupB"),
            ("differential", {"p_value": 0}, "p_value"),
            ("enrichment", {"organism": "human"}, "organism"),
            ("enrichment", {"sources": ["REAC"]}, "sources"),
            ("revigo", {"cutoff": "0.33"}, "cutoff"),
            ("revigo", {"measure": "COSINE"}, "measure"),
            ("clustering", {"n_clusters": 0}, "clusters"),
        ],
    )
    def test_issues_reported(self, section, values, fragment):
        config = Config(**{section: values})
        issues = validate_config(config)
        assert any(fragment in issue for issue in issues)

    def test_missing_input_dir(self, tmp_path):
        issues = validate_config(Config(input_dir=str(tmp_path / "missing")))
        assert any("Input directory" in issue for issue in issues)


class TestPathConfig:

    def test_artifact_names(self, tmp_path):
        paths = PathConfig(output_dir=str(tmp_path))
        assert paths.enrichment_csv.name == "gProfiler_enrich.csv"
        assert paths.revigo_csv("GO:BP").name == "revigo_GO_BP.csv"
        heatmap = paths.revigo_heatmap_csv("GO:MF")
        assert heatmap.name == "revigoClusterHeatmap_GO_MF.csv"
        assert paths.kegg_heatmap_csv.name == "heatmapKEGG.csv"
        assert paths.pathway_dir.is_dir()

    def test_resolve_input(self, tmp_path):
        paths = PathConfig(output_dir=tmp_path, input_dir=str(tmp_path / "in"))
        assert paths.resolve_input("targets.txt") == tmp_path / "in" / "targets.txt"
        assert paths.resolve_input("/abs/targets.txt").is_absolute()

    def test_category_slug(self):
        assert category_slug("GO:CC") == "GO_CC"
