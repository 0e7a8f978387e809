"""
Core configuration management for ArrayFlow
"""

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

REVIGO_CUTOFFS = ["0.90", "0.70", "0.50", "0.40"]
REVIGO_MEASURES = ["SIMREL", "LIN", "RESNIK", "JIANG"]
REVIGO_VALUE_ORDERS = ["higher", "lower", "absolute", "abs_log"]
ENRICHMENT_SOURCES = ["GO:BP", "GO:CC", "GO:MF", "KEGG"]
GO_CATEGORIES = ["GO:BP", "GO:CC", "GO:MF"]

_CONTRAST_PATTERN = re.compile(r"^[^-\s]+-[^-\s]+$")


@dataclass
class Config:
    """Main configuration class for ArrayFlow analysis"""

    # General settings
    project_name: str = "ArrayFlow_Analysis"
    random_seed: int = 100

    # Input/Output paths
    input_dir: Optional[str] = None
    output_dir: Optional[str] = None
    temp_dir: Optional[str] = None

    # Analysis parameters
    pathway: Dict[str, Any] = field(default_factory=dict)
    microarray: Dict[str, Any] = field(default_factory=dict)
    differential: Dict[str, Any] = field(default_factory=dict)
    enrichment: Dict[str, Any] = field(default_factory=dict)
    revigo: Dict[str, Any] = field(default_factory=dict)
    clustering: Dict[str, Any] = field(default_factory=dict)

    # R configuration
    r_config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Fill every section with defaults, keeping user-supplied keys"""
        self.pathway = {**self._get_default_pathway(), **(self.pathway or {})}
        self.microarray = {**self._get_default_microarray(), **(self.microarray or {})}
        self.differential = {
            **self._get_default_differential(),
            **(self.differential or {}),
        }
        self.enrichment = {**self._get_default_enrichment(), **(self.enrichment or {})}
        self.revigo = {**self._get_default_revigo(), **(self.revigo or {})}
        self.clustering = {**self._get_default_clustering(), **(self.clustering or {})}
        self.r_config = {**self._get_default_r_config(), **(self.r_config or {})}

    def _get_default_pathway(self) -> Dict[str, Any]:
        """Default pathway overlay configuration"""
        return {
            "expression_file": "expression.txt",
            "pathway_file": "pathways.txt",
            "id_column": "GeneID",
            "columns": [],
            "sep": "\t",
            "decimal": ",",
            "kegg_native": True,
            "out_suffix": "arrayflow",
        }

    def _get_default_microarray(self) -> Dict[str, Any]:
        """Default microarray preprocessing configuration"""
        return {
            "sample_targets": "metadata.txt",
            "cel_dir": None,
            "cel_pattern": "*.[cC][eE][lL]",
            "annotation_package": "hgu133plus2.db",
            "qc": {
                "max_probes": 200000,
                "palette": [
                    "green",
                    "blue",
                    "red",
                    "darkorange",
                    "black",
                    "purple",
                    "aquamarine",
                    "goldenrod",
                ],
            },
        }

    def _get_default_differential(self) -> Dict[str, Any]:
        """Default differential expression configuration"""
        return {
            "comparisons": [
                "HGP-Control",
                "UV-Control",
                "HGPTERT-Control",
                "ControlTERT-Control",
            ],
            "method": "global",
            "adjust_method": "BH",
            "p_value": 0.000005,
            "lfc": 1.0,
        }

    def _get_default_enrichment(self) -> Dict[str, Any]:
        """Default g:Profiler configuration"""
        return {
            "organism": "Homo sapiens",
            "sources": list(ENRICHMENT_SOURCES),
            "user_threshold": 0.05,
            "correction_method": "g_SCS",
            "exclude_iea": True,
            "domain_scope": "annotated",
        }

    def _get_default_revigo(self) -> Dict[str, Any]:
        """Default REVIGO configuration"""
        return {
            "base_url": "http://revigo.irb.hr/",
            "cutoff": "0.40",
            "is_pvalue": "yes",
            "what_is_better": "higher",
            "size_basis": "0",
            "measure": "SIMREL",
            "timeout": 60,
            "poll_interval": 1.0,
            "max_polls": 300,
        }

    def _get_default_clustering(self) -> Dict[str, Any]:
        """Default semantic clustering configuration"""
        return {
            "categories": list(GO_CATEGORIES),
            "n_clusters": 40,
            "seed": 100,
            "n_keywords": 5,
        }

    def _get_default_r_config(self) -> Dict[str, Any]:
        """Default R configuration"""
        return {
            "r_home": None,  # Auto-detect
            "timeout": 3600,
            "required_packages": [
                "oligo",
                "affycoretools",
                "limma",
                "pathview",
            ],
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_file: Union[str, Path]) -> Config:
    """Load configuration from YAML or JSON file"""
    config_path = Path(config_file)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, "r") as f:
        if config_path.suffix.lower() in [".yaml", ".yml"]:
            config_dict = yaml.safe_load(f) or {}
        elif config_path.suffix.lower() == ".json":
            config_dict = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {config_path.suffix}")

    return Config(**config_dict)


def save_config(config: Config, output_file: Union[str, Path]) -> None:
    """Save configuration to YAML or JSON, chosen by file suffix"""
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        if output_path.suffix.lower() == ".json":
            json.dump(config.to_dict(), f, indent=2)
        else:
            yaml.dump(config.to_dict(), f, default_flow_style=False, indent=2)

    logger.info(f"Configuration saved to {output_path}")


def validate_revigo(revigo: Dict[str, Any]) -> List[str]:
    """Issues with the REVIGO submission parameters"""
    issues = []
    if str(revigo.get("cutoff")) not in REVIGO_CUTOFFS:
        issues.append(f"REVIGO cutoff must be one of {REVIGO_CUTOFFS}")
    if revigo.get("measure") not in REVIGO_MEASURES:
        issues.append(f"REVIGO measure must be one of {REVIGO_MEASURES}")
    if revigo.get("is_pvalue") not in ("yes", "no"):
        issues.append("REVIGO is_pvalue must be 'yes' or 'no'")
    if revigo.get("what_is_better") not in REVIGO_VALUE_ORDERS:
        issues.append(f"REVIGO what_is_better must be one of {REVIGO_VALUE_ORDERS}")
    return issues


def validate_config(config: Config) -> List[str]:
    """Validate configuration and return list of issues"""
    issues = []

    if config.input_dir and not Path(config.input_dir).exists():
        issues.append(f"Input directory does not exist: {config.input_dir}")

    if config.output_dir:
        try:
            Path(config.output_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            issues.append(f"Cannot create output directory {config.output_dir}: {e}")

    # Differential calling
    comparisons = config.differential.get("comparisons") or []
    if not comparisons:
        issues.append("At least one group comparison must be specified")
    for comparison in comparisons:
        if not _CONTRAST_PATTERN.match(str(comparison)):
            issues.append(
                f"Comparison '{comparison}' must be written as 'GroupA-GroupB'"
            )
    if config.differential.get("p_value", 0) <= 0:
        issues.append("Differential p_value threshold must be positive")
    if config.differential.get("lfc", 0) < 0:
        issues.append("Differential lfc threshold cannot be negative")

    # Enrichment
    if len(str(config.enrichment.get("organism", "")).split()) < 2:
        issues.append(
            "Enrichment organism must be a scientific name, e.g. 'Homo sapiens'"
        )
    unknown_sources = set(config.enrichment.get("sources", [])) - set(
        ENRICHMENT_SOURCES
    )
    if unknown_sources:
        issues.append(f"Unsupported enrichment sources: {sorted(unknown_sources)}")

    issues.extend(validate_revigo(config.revigo))

    # Clustering
    if int(config.clustering.get("n_clusters", 0)) < 1:
        issues.append("Number of clusters must be positive")

    return issues


def get_default_config() -> Config:
    """Get default configuration object"""
    return Config()
