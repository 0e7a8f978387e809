"""
Command-line interface for ArrayFlow
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
import pandas as pd

from . import __version__, check_dependencies, get_info
from .config import Config, get_default_config, load_config, save_config
from .core import ArrayFlowAnalysis
from .utils import setup_logging


# Global context for CLI
class CLIContext:
    def __init__(self):
        self.config_file: Optional[Path] = None
        self.config: Optional[Config] = None
        self.verbose: bool = False
        self.quiet: bool = False

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.verbose else "WARNING" if self.quiet else "INFO"


def _fail(cli_ctx: CLIContext, message: str, error: Exception) -> None:
    click.echo(f"{message}: {error}", err=True)
    if cli_ctx.verbose:
        import traceback

        traceback.print_exc()
    sys.exit(1)


@click.group()
@click.version_option(__version__)
@click.option(
    "--config", "-c", type=click.Path(exists=True), help="Configuration file path"
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--quiet", "-q", is_flag=True, help="Enable quiet mode (minimal output)")
@click.pass_context
def main(ctx, config, verbose, quiet):
    """
    ArrayFlow: microarray expression, enrichment and KEGG pathway overlays

    Preprocess Affymetrix arrays, call differentially expressed genes with
    limma, summarise their g:Profiler/REVIGO enrichment as heatmaps, and
    colour KEGG pathway diagrams with fold-change tables.
    """
    cli_ctx = CLIContext()
    cli_ctx.verbose = verbose
    cli_ctx.quiet = quiet

    setup_logging(level=cli_ctx.log_level)

    if config:
        cli_ctx.config_file = Path(config)
        cli_ctx.config = load_config(cli_ctx.config_file)

    ctx.obj = cli_ctx


@main.command()
def info():
    """Show ArrayFlow package information"""

    info_data = get_info()

    click.echo("=" * 50)
    click.echo(f"ArrayFlow v{info_data['version']}")
    click.echo("=" * 50)
    click.echo(f"Description: {info_data['description']}")
    click.echo(f"Python version: {info_data['python_version']}")
    click.echo()

    click.echo("Available modules:")
    for module in info_data["modules"]:
        click.echo(f"  - {module}")
    click.echo()

    deps = check_dependencies()
    click.echo("Dependency status:")
    for dep, available in deps.items():
        status = "✓" if available else "✗"
        click.echo(f"  {status} {dep}")


@main.command()
@click.argument("output_file", type=click.Path())
@click.option(
    "--format",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    help="Output format for configuration file",
)
def init_config(output_file, format):
    """Initialize a new ArrayFlow configuration file"""

    output_path = Path(output_file)

    if output_path.exists():
        if not click.confirm(f"File {output_path} already exists. Overwrite?"):
            click.echo("Configuration initialization cancelled.")
            return

    config = get_default_config()

    try:
        if format == "json":
            with open(output_path, "w") as f:
                json.dump(config.to_dict(), f, indent=2)
        else:
            save_config(config, output_path)

        click.echo(f"Configuration file created: {output_path}")
        click.echo("Edit this file to customize your analysis parameters.")

    except OSError as e:
        click.echo(f"Error creating configuration file: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate_config(config_file):
    """Validate an ArrayFlow configuration file"""

    from .config import validate_config as validate_config_func

    try:
        config = load_config(config_file)
    except Exception as e:
        click.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"Configuration loaded successfully: {config_file}")
    issues = validate_config_func(config)

    if not issues:
        click.echo("✓ Configuration is valid")
    else:
        click.echo("Configuration issues found:")
        for issue in issues:
            click.echo(f"  ✗ {issue}")
        sys.exit(1)


@main.command()
@click.pass_context
def check_env(ctx):
    """Check ArrayFlow environment and dependencies"""

    cli_ctx = ctx.obj
    config = cli_ctx.config or get_default_config()

    click.echo("Checking ArrayFlow environment...")
    click.echo()

    deps = check_dependencies()

    click.echo("Python dependencies:")
    all_good = True
    for dep, available in deps.items():
        status = "✓" if available else "✗"
        click.echo(f"  {status} {dep}")
        if not available:
            all_good = False

    click.echo()

    from .utils import RInterface

    r_interface = RInterface(config.r_config)
    click.echo("R environment:")

    if r_interface.check_r_available():
        click.echo("  ✓ R is available")

        r_packages = list(config.r_config["required_packages"])
        annotation = config.microarray.get("annotation_package")
        if annotation and annotation not in r_packages:
            r_packages.append(annotation)
        package_status = r_interface.check_packages(r_packages)

        for pkg in r_packages:
            status = "✓" if package_status.get(pkg, False) else "✗"
            click.echo(f"  {status} R package: {pkg}")
            if not package_status.get(pkg, False):
                all_good = False
    else:
        click.echo("  ✗ R is not available")
        all_good = False

    click.echo()

    if all_good:
        click.echo("✓ Environment check passed!")
    else:
        click.echo("✗ Environment check failed. Please install missing dependencies.")
        click.echo()
        click.echo("Installation suggestions:")
        click.echo("  - Python packages: pip install arrayflow")
        click.echo("  - R packages: BiocManager::install(c('oligo', 'limma', ...))")
        sys.exit(1)


@main.command()
@click.option(
    "--expression",
    type=click.Path(exists=True),
    help="Fold-change table (overrides pathway.expression_file)",
)
@click.option(
    "--pathways",
    "pathway_file",
    type=click.Path(exists=True),
    help="File of KEGG pathway ids (overrides pathway.pathway_file)",
)
@click.option("--output", "-o", type=click.Path(), help="Output directory")
@click.pass_context
def pathways(ctx, expression, pathway_file, output):
    """Colour KEGG pathway diagrams with a fold-change table"""

    cli_ctx = ctx.obj
    config = cli_ctx.config or get_default_config()

    if expression:
        config.pathway["expression_file"] = str(Path(expression).resolve())
    if pathway_file:
        config.pathway["pathway_file"] = str(Path(pathway_file).resolve())
    if output:
        config.output_dir = str(output)

    try:
        analysis = ArrayFlowAnalysis(config, log_level=cli_ctx.log_level)
        click.echo("Rendering KEGG pathways...")
        result = analysis.run_pathway_overlay()
    except Exception as e:
        _fail(cli_ctx, "Pathway overlay failed", e)

    low, high = result.scale.limits
    click.echo(
        f"Colour scale: [{low}, {high}] in {result.scale.bins} bins; "
        f"{len(result.expression)} genes after deduplication"
    )
    for pathway_id, path in result.rendered.items():
        click.echo(f"  ✓ {pathway_id}: {path}")
    for pathway_id, error in result.failures.items():
        click.echo(f"  ✗ {pathway_id}: {error}")

    if not result.success:
        sys.exit(1)


@main.command()
@click.option(
    "--cel-dir",
    type=click.Path(exists=True, file_okay=False),
    help="Directory of CEL files (overrides microarray.cel_dir)",
)
@click.option(
    "--targets",
    type=click.Path(exists=True),
    help="Sample targets file (overrides microarray.sample_targets)",
)
@click.option("--output", "-o", type=click.Path(), help="Output directory")
@click.pass_context
def microarray(ctx, cel_dir, targets, output):
    """Run preprocessing, DEG calling, enrichment and heatmaps"""

    cli_ctx = ctx.obj

    if cli_ctx.config is None:
        click.echo(
            "Error: No configuration file provided. "
            "Use --config option or 'arrayflow init-config'",
            err=True,
        )
        sys.exit(1)

    config = cli_ctx.config
    if targets:
        config.microarray["sample_targets"] = str(Path(targets).resolve())
    if output:
        config.output_dir = str(output)

    try:
        analysis = ArrayFlowAnalysis(config, log_level=cli_ctx.log_level)
        click.echo("Starting ArrayFlow microarray pipeline...")
        results = analysis.run_microarray_pipeline(cel_dir)
    except Exception as e:
        _fail(cli_ctx, "Pipeline execution failed", e)

    execution_times = analysis.get_execution_times()
    click.echo(f"Total execution time: {execution_times.get('total', 0):.2f} seconds")

    for step, result in results.items():
        if result.get("skipped"):
            status = "-"
        elif result.get("success"):
            status = "✓"
        else:
            status = "✗"
        click.echo(f"  {status} {step}")

    enrichment = results.get("enrichment_analysis", {})
    for category, error in enrichment.get("failed_categories", {}).items():
        click.echo(f"  ✗ {category} skipped: {error}")


@main.command()
@click.argument("deg_lists", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), help="Output directory")
@click.pass_context
def enrich(ctx, deg_lists, output):
    """Enrichment and heatmaps from a saved table of unique DEG lists"""

    cli_ctx = ctx.obj
    config = cli_ctx.config or get_default_config()
    if output:
        config.output_dir = str(output)

    table = pd.read_csv(deg_lists, dtype=str, index_col=0)
    gene_lists = {
        column: table[column].dropna().tolist() for column in table.columns
    }

    try:
        analysis = ArrayFlowAnalysis(
            config, log_level=cli_ctx.log_level, check_environment=False
        )
        result = analysis.run_enrichment(gene_lists)
    except Exception as e:
        _fail(cli_ctx, "Enrichment failed", e)

    if result.get("skipped"):
        click.echo(f"Enrichment skipped: {result['error']}", err=True)
        sys.exit(1)

    click.echo(f"{len(result['terms'])} enriched terms")
    for title in result["heatmaps"]:
        click.echo(f"  ✓ {title}")
    for category, error in result["failed_categories"].items():
        click.echo(f"  ✗ {category} skipped: {error}")


if __name__ == "__main__":
    main()
