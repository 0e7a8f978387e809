"""
Core ArrayFlow analysis orchestrator
"""

import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

from .config import (Config, PathConfig, load_config, validate_config,
                     validate_revigo)
from .differential import (DesignSpec, LimmaAnalyzer, load_sample_targets,
                           validate_targets)
from .enrichment import (GProfilerClient, HeatmapPlotter, RevigoClient,
                         RevigoRequest, build_cluster_heatmap,
                         build_term_heatmap, cluster_revigo_result,
                         order_heatmap_rows, plot_title)
from .exceptions import DataShapeError, EnrichmentServiceError, ServiceError
from .pathway import PathwayOverlayPipeline, PathwayOverlayResult
from .quality_control import ArrayPreprocessor, QCPlotter
from .utils import RInterface, get_logger, setup_logging, validate_environment

logger = get_logger(__name__)


class ArrayFlowAnalysis:
    """
    Main orchestrator for the ArrayFlow pipelines

    Coordinates the pathway overlay pipeline and the microarray pipeline
    (preprocessing, QC, limma, g:Profiler, REVIGO clustering, heatmaps).
    """

    def __init__(
        self,
        config: Union[str, Path, Config, Dict[str, Any]],
        log_level: str = "INFO",
        log_file: Optional[Union[str, Path]] = None,
        r_interface: Optional[RInterface] = None,
        gprofiler: Optional[GProfilerClient] = None,
        revigo: Optional[RevigoClient] = None,
        check_environment: bool = True,
    ):
        """
        Initialize ArrayFlow analysis

        Args:
            config: Configuration file path, Config object, or config dict
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_file: Optional log file path
            r_interface: R runner shared by every R-backed stage
            gprofiler: Enrichment client; built from config when omitted
            revigo: REVIGO client; built from config when omitted
            check_environment: Check Python and R dependencies on start
        """
        setup_logging(level=log_level, log_file=log_file)
        logger.info("Initializing ArrayFlow analysis pipeline")

        if isinstance(config, (str, Path)):
            self.config = load_config(config)
        elif isinstance(config, dict):
            self.config = Config(**config)
        elif isinstance(config, Config):
            self.config = config
        else:
            raise ValueError(
                "Invalid config type. Expected str, Path, dict, or Config object"
            )

        self._validate_environment(check_environment)

        self.paths = PathConfig(
            output_dir=self.config.output_dir or ".",
            input_dir=self.config.input_dir,
            temp_dir=self.config.temp_dir,
        )
        self.r_interface = r_interface or RInterface(self.config.r_config)
        self.gprofiler = gprofiler or GProfilerClient.from_config(
            self.config.enrichment
        )
        self.revigo = revigo or RevigoClient.from_config(
            self.config.revigo, temp_dir=self.config.temp_dir
        )
        self._initialize_components()

        self.results: Dict[str, Any] = {}
        self.execution_times: Dict[str, float] = {}

        logger.info("ArrayFlow pipeline initialized successfully")

    def _validate_environment(self, check_environment: bool) -> None:
        """Log configuration and environment issues; create directories"""
        revigo_issues = validate_revigo(self.config.revigo)
        if revigo_issues:
            raise ValueError(f"Invalid REVIGO configuration: {revigo_issues}")

        issues = validate_config(self.config)
        if issues:
            logger.warning("Configuration issues found:")
            for issue in issues:
                logger.warning(f"  - {issue}")

        if check_environment:
            env_issues = validate_environment(self.config.r_config)
            if env_issues:
                logger.warning("Environment issues found:")
                for issue in env_issues:
                    logger.warning(f"  - {issue}")

        if self.config.output_dir:
            Path(self.config.output_dir).mkdir(parents=True, exist_ok=True)
        if self.config.temp_dir:
            Path(self.config.temp_dir).mkdir(parents=True, exist_ok=True)

    def _initialize_components(self) -> None:
        self.pathway_pipeline = PathwayOverlayPipeline(self.config, self.r_interface)
        self.preprocessor = ArrayPreprocessor(self.config, self.r_interface)
        self.limma = LimmaAnalyzer(self.config, self.r_interface)
        self.qc_plotter = QCPlotter(palette=self.config.microarray["qc"].get("palette"))
        self.heatmap_plotter = HeatmapPlotter()

    def _timed(self, step: str, start_time: float) -> None:
        self.execution_times[step] = time.time() - start_time
        elapsed = self.execution_times[step]
        logger.info(f"Step {step} completed in {elapsed:.2f} seconds")

    # Pathway overlay

    def run_pathway_overlay(self) -> PathwayOverlayResult:
        """Colour every configured KEGG pathway with the expression table"""
        logger.info("=" * 60)
        logger.info("Starting pathway overlay pipeline")
        logger.info("=" * 60)

        start_time = time.time()
        result = self.pathway_pipeline.run()
        self._timed("pathway_overlay", start_time)

        self.results["pathway_overlay"] = {
            "success": result.success,
            "rendered": len(result.rendered),
            "failed": sorted(result.failures),
            "result": result,
        }
        self._create_pipeline_summary()
        return result

    # Microarray pipeline

    def prepare_design(
        self, cel_dir: Optional[Union[str, Path]] = None
    ) -> Tuple[List[Path], DesignSpec]:
        """Discover array files and build design and contrast matrices"""
        cel_files = self.preprocessor.discover_cel_files(cel_dir)
        targets = load_sample_targets(
            self.paths.resolve_input(self.config.microarray["sample_targets"])
        )
        targets = validate_targets(targets, cel_files)
        design = DesignSpec.from_targets(
            targets, self.config.differential["comparisons"]
        )
        logger.info(
            f"Design: {design.design.shape[0]} samples, "
            f"groups {', '.join(design.design.columns)}; "
            f"contrasts {', '.join(design.contrast_names)}"
        )
        return cel_files, design

    def run_microarray_pipeline(
        self, cel_dir: Optional[Union[str, Path]] = None
    ) -> Dict[str, Any]:
        """
        Run preprocessing, QC, differential calling and enrichment

        A failing enrichment service skips the enrichment stage; the QC and
        DEG artifacts written before it are kept.
        """
        logger.info("=" * 60)
        logger.info("Starting microarray expression/enrichment pipeline")
        logger.info("=" * 60)
        total_start = time.time()
        self.paths.create_output_dirs()

        cel_files, design = self.prepare_design(cel_dir)

        with tempfile.TemporaryDirectory(
            prefix="arrayflow_", dir=self.config.temp_dir
        ) as workdir:
            start_time = time.time()
            preprocessing = self.preprocessor.run(cel_files, workdir)
            self._timed("preprocessing", start_time)
            self.results["preprocessing"] = {"success": True, "result": preprocessing}

            start_time = time.time()
            figures = self.qc_plotter.create_qc_plots(
                preprocessing.raw_log2, preprocessing.normalized, design.targets
            )
            qc_file = QCPlotter.save_plots(figures, self.paths.qc_plots_pdf)
            self._timed("quality_control", start_time)
            self.results["quality_control"] = {
                "success": True,
                "plots": list(figures),
                "file": qc_file,
            }

            start_time = time.time()
            differential = self.limma.run(preprocessing.eset_path, design, workdir)
            self._timed("differential_analysis", start_time)
            self.results["differential_analysis"] = {
                "success": differential.success,
                "result": differential,
            }

        start_time = time.time()
        self.results["enrichment_analysis"] = self.run_enrichment(
            differential.unique_lists
        )
        self._timed("enrichment_analysis", start_time)

        self.execution_times["total"] = time.time() - total_start
        self._create_pipeline_summary()
        return self.results

    def run_enrichment(self, gene_lists: Dict[str, List[str]]) -> Dict[str, Any]:
        """
        g:Profiler enrichment, REVIGO clustering per GO category and heatmaps

        Returns a result dict; ``skipped`` is set when the enrichment service
        failed, and ``failed_categories`` names GO categories that were
        skipped.
        """
        try:
            terms = self.gprofiler.query(gene_lists)
        except EnrichmentServiceError as e:
            logger.error(f"Enrichment service failed, skipping enrichment: {e}")
            return {"success": False, "skipped": True, "error": str(e)}

        terms.to_csv(self.paths.enrichment_csv)
        organism = self.config.enrichment["organism"]

        matrices: Dict[str, pd.DataFrame] = {}
        clusters: Dict[str, pd.DataFrame] = {}
        failures: Dict[str, str] = {}

        for category in self.config.clustering["categories"]:
            try:
                summary, heatmap = self.run_semantic_clustering(category, terms)
            except (ServiceError, DataShapeError) as e:
                logger.error(f"Skipping {category}: {e}")
                failures[category] = str(e)
                continue
            clusters[category] = summary
            matrices[plot_title(organism, category)] = heatmap

        kegg = order_heatmap_rows(build_term_heatmap(terms, source="KEGG"))
        kegg.to_csv(self.paths.kegg_heatmap_csv)
        matrices[plot_title(organism, "KEGG")] = kegg

        figures = self.heatmap_plotter.create_heatmaps(matrices)
        heatmap_file = None
        if figures:
            heatmap_file = HeatmapPlotter.save_plots(figures, self.paths.heatmap_pdf)

        return {
            "success": True,
            "skipped": False,
            "terms": terms,
            "clusters": clusters,
            "heatmaps": matrices,
            "failed_categories": failures,
            "file": heatmap_file,
        }

    def run_semantic_clustering(
        self, category: str, terms: pd.DataFrame
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        REVIGO reduction, k-means clustering and cluster heatmap for one
        GO category

        Returns:
            (cluster summary, ordered heatmap matrix)
        """
        subset = terms[terms["source"] == category]
        if subset.empty:
            raise DataShapeError(f"No enriched {category} terms", field="source")

        values = None
        if self.config.revigo["is_pvalue"] == "yes":
            values = subset.groupby("term_id")["p_value"].min().to_dict()
        request = RevigoRequest.from_config(
            list(subset["term_id"].unique()), self.config.revigo, values=values
        )
        result = self.revigo.reduce(request, category)
        if result.is_empty:
            raise DataShapeError(f"REVIGO returned no {category} terms")

        params = self.config.clustering
        annotated, summary = cluster_revigo_result(
            result,
            n_clusters=int(params["n_clusters"]),
            seed=int(params["seed"]),
            n_keywords=int(params["n_keywords"]),
        )
        annotated.to_csv(self.paths.revigo_csv(category))
        summary.to_csv(self.paths.revigo_cluster_csv(category))

        heatmap = order_heatmap_rows(build_cluster_heatmap(summary, subset))
        heatmap.to_csv(self.paths.revigo_heatmap_csv(category))
        return summary, heatmap

    def _create_pipeline_summary(self) -> None:
        """Log and save a summary of the steps run so far"""
        logger.info("=" * 50)
        logger.info("ARRAYFLOW PIPELINE SUMMARY")
        logger.info("=" * 50)

        logger.info("EXECUTION TIMES:")
        for step, exec_time in self.execution_times.items():
            if step != "total":
                logger.info(f"  {step}: {exec_time:.2f} seconds")
        if "total" in self.execution_times:
            logger.info(f"  TOTAL: {self.execution_times['total']:.2f} seconds")

        logger.info("RESULTS SUMMARY:")
        for step, result in self.results.items():
            status = "SUCCESS" if result.get("success") else "FAILED"
            if result.get("skipped"):
                status = "SKIPPED"
            logger.info(f"  {step}: {status}")
            if result.get("error"):
                logger.info(f"    Error: {result['error']}")

        summary_file = self.paths.output_dir / "pipeline_summary.txt"
        with open(summary_file, "w") as f:
            f.write("ArrayFlow Pipeline Summary\n")
            f.write("=" * 30 + "\n\n")

            f.write("Configuration:\n")
            f.write(f"  Project: {self.config.project_name}\n")
            f.write(f"  Output directory: {self.paths.output_dir}\n\n")

            f.write("Execution Times:\n")
            for step, exec_time in self.execution_times.items():
                f.write(f"  {step}: {exec_time:.2f} seconds\n")

            f.write("\nResults:\n")
            for step, result in self.results.items():
                status = "SUCCESS" if result.get("success") else "FAILED"
                if result.get("skipped"):
                    status = "SKIPPED"
                f.write(f"  {step}: {status}\n")

        logger.info(f"Pipeline summary saved to: {summary_file}")

    def get_results(self) -> Dict[str, Any]:
        """Get all pipeline results"""
        return self.results

    def get_execution_times(self) -> Dict[str, float]:
        """Get execution times for all steps"""
        return self.execution_times
