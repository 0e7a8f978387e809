"""
Pathway overlay pipeline: expression table -> one coloured KEGG diagram per pathway
"""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from ..config import Config, PathConfig
from ..exceptions import ArrayFlowError
from ..utils import LoggerMixin, RInterface, log_execution_time
from .expression import (ColorScale, compute_color_scale,
                         deduplicate_expression, load_expression_table,
                         selected_columns)
from .reference import PathwayReference, load_pathway_ids, parse_pathway_id
from .renderer import PathviewRenderer


@dataclass
class PathwayOverlayResult:
    """Result of one overlay run"""

    expression: pd.DataFrame
    scale: ColorScale
    columns: List[str]
    rendered: Dict[str, Path] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    dedup_file: Optional[Path] = None

    @property
    def success(self) -> bool:
        return not self.failures


class PathwayOverlayPipeline(LoggerMixin):
    """Deduplicate an expression table and render it onto KEGG pathways"""

    def __init__(
        self,
        config: Config,
        r_interface: Optional[RInterface] = None,
        renderer: Optional[PathviewRenderer] = None,
    ):
        self.config = config
        self.params = config.pathway
        self.paths = PathConfig(
            output_dir=config.output_dir or ".",
            input_dir=config.input_dir,
            temp_dir=config.temp_dir,
        )
        self.r_interface = r_interface or RInterface(config.r_config)
        self.renderer = renderer or PathviewRenderer(
            self.r_interface,
            out_suffix=self.params["out_suffix"],
            kegg_native=self.params["kegg_native"],
        )

    def load(self) -> pd.DataFrame:
        """Load and deduplicate the configured expression table"""
        table = load_expression_table(
            self.paths.resolve_input(self.params["expression_file"]),
            id_column=self.params["id_column"],
            columns=self.params.get("columns") or None,
            sep=self.params["sep"],
            decimal=self.params["decimal"],
        )
        return deduplicate_expression(table, self.params["id_column"])

    def load_references(self) -> List[PathwayReference]:
        ids = load_pathway_ids(self.paths.resolve_input(self.params["pathway_file"]))
        return [parse_pathway_id(pathway_id) for pathway_id in ids]

    @log_execution_time
    def run(
        self,
        expression: Optional[pd.DataFrame] = None,
        references: Optional[List[PathwayReference]] = None,
    ) -> PathwayOverlayResult:
        """
        Render every configured pathway

        A pathway that cannot be rendered is logged and recorded in
        ``failures``; the remaining pathways are still rendered.
        """
        self.paths.create_output_dirs()

        if expression is None:
            expression = self.load()
        if references is None:
            references = self.load_references()

        columns = selected_columns(expression, self.params.get("columns"))
        scale = compute_color_scale(expression)
        self.logger.info(
            f"Colour scale: limits {scale.limits}, {scale.bins} bins; "
            f"{len(references)} pathways to render"
        )

        expression.to_csv(self.paths.dedup_table)
        result = PathwayOverlayResult(
            expression=expression,
            scale=scale,
            columns=columns,
            dedup_file=self.paths.dedup_table,
        )

        output_dir = self.paths.pathway_dir
        with tempfile.TemporaryDirectory(prefix="arrayflow_pathview_") as tmp:
            table_path = Path(tmp) / "gene_data.csv"
            expression.to_csv(table_path)

            for reference in references:
                try:
                    result.rendered[reference.pathway_id] = self.renderer.render(
                        table_path, reference, columns, scale, output_dir
                    )
                except ArrayFlowError as e:
                    self.logger.error(f"Pathway {reference} failed: {e}")
                    result.failures[reference.pathway_id] = str(e)

        self.logger.info(
            f"Rendered {len(result.rendered)}/{len(references)} pathways"
            + (f"; failed: {', '.join(result.failures)}" if result.failures else "")
        )
        return result
