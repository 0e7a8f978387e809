"""Shared fixtures for the ArrayFlow test suite."""

import matplotlib
import pandas as pd
import pytest

from arrayflow.config import Config

matplotlib.use("Agg")


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temporary directory."""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    return Config(
        input_dir=str(input_dir),
        output_dir=str(tmp_path / "out"),
        temp_dir=str(tmp_path / "tmp"),
    )


@pytest.fixture
def expression_file(config):
    """Tab-delimited, decimal-comma table with one duplicated gene and bad ids."""
    path = config.pathway["expression_file"]
    text = (
        "GeneID\tHGP\tUV\n"
        "1017\t-7,2\t1,0\n"
        "7157\t2,0\t-1,5\n"
        "1017\t-6,8\t3,0\n"
        "595\t5,0\t0,5\n"
        "NA\t9,9\t9,9\n"
        "\t8,0\t8,0\n"
    )
    full = f"{config.input_dir}/{path}"
    with open(full, "w") as f:
        f.write(text)
    return full


@pytest.fixture
def pathway_file(config):
    full = f"{config.input_dir}/{config.pathway['pathway_file']}"
    with open(full, "w") as f:
        f.write("PathwayID\nhsa04110\nhsa04115\n")
    return full


@pytest.fixture
def enrichment_table():
    """Tidy g:Profiler-style result over two comparisons."""
    return pd.DataFrame(
        {
            "query": ["HGP", "HGP", "UV", "UV", "HGP", "UV"],
            "p_value": [1e-5, 2e-3, 4e-4, 1e-2, 3e-6, 5e-6],
            "term_id": [
                "GO:0000001",
                "GO:0000002",
                "GO:0000002",
                "GO:0000004",
                "KEGG:04110",
                "KEGG:04110",
            ],
            "source": ["GO:BP", "GO:BP", "GO:BP", "GO:BP", "KEGG", "KEGG"],
            "term_name": [
                "cell cycle",
                "DNA repair",
                "DNA repair",
                "mitotic spindle",
                "Cell cycle",
                "Cell cycle",
            ],
        }
    )


@pytest.fixture
def revigo_table():
    """Normalised REVIGO table: terms 1 and 4 embedded, 2-3 and 5 follow them."""
    return pd.DataFrame(
        {
            "term_id": [
                "GO:0000001",
                "GO:0000002",
                "GO:0000003",
                "GO:0000004",
                "GO:0000005",
            ],
            "description": [
                "cell cycle process",
                "DNA repair",
                "cell division",
                "mitotic spindle assembly",
                "spindle organization",
            ],
            "frequency": [1.0, 0.5, 0.4, 0.2, 0.1],
            "plot_x": [1.0, float("nan"), float("nan"), -2.0, float("nan")],
            "plot_y": [0.5, float("nan"), float("nan"), 3.0, float("nan")],
            "log_size": [3.0, 2.0, 2.0, 1.5, 1.0],
            "value": [-5.0, -2.7, -3.0, -2.0, -4.0],
            "uniqueness": [0.9, 0.8, 0.7, 0.95, 0.6],
            "dispensability": [0.0, 0.5, 0.6, 0.0, 0.7],
            "representative": [float("nan"), 1.0, 1.0, float("nan"), 4.0],
            "eliminated": [0, 1, 1, 0, 1],
        }
    )
