"""
R integration utilities for ArrayFlow

Bioconductor work (oligo, limma, pathview) is done by generating an R script,
writing it to a temporary file and running it with ``R --slave``. Data is
exchanged through CSV files in the script's working directory.
"""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..exceptions import RIntegrationError

logger = logging.getLogger(__name__)


def r_string(value: Union[str, Path]) -> str:
    """Quote a Python string as an R string literal"""
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def r_vector(values: Iterable[Union[str, Path]]) -> str:
    """Format an iterable of strings as an R character vector"""
    return "c(" + ", ".join(r_string(v) for v in values) + ")"


def r_bool(value: bool) -> str:
    return "TRUE" if value else "FALSE"


class RInterface:
    """Interface for running R code from Python"""

    def __init__(self, r_config: Optional[Dict[str, Any]] = None):
        """
        Initialize R interface

        Args:
            r_config: R configuration dictionary
        """
        self.r_config = r_config or {}
        self.r_home = self.r_config.get("r_home")
        self.timeout = self.r_config.get("timeout", 3600)

        if self.r_home:
            os.environ["R_HOME"] = self.r_home

    def check_r_available(self) -> bool:
        """Check if R is available"""
        try:
            result = subprocess.run(
                ["R", "--version"], capture_output=True, text=True, timeout=10
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            logger.warning("R not found in PATH")
            return False

    def check_packages(self, packages: List[str]) -> Dict[str, bool]:
        """
        Check if R packages are installed

        Args:
            packages: List of package names to check

        Returns:
            Dictionary of package_name -> installed status
        """
        if not self.check_r_available():
            return {pkg: False for pkg in packages}

        check_script = f"""
        packages <- {r_vector(packages)}
        installed <- sapply(packages, function(pkg) {{
            suppressWarnings(requireNamespace(pkg, quietly = TRUE))
        }})
        cat(paste(packages, installed, sep=':', collapse='\\n'))
        """

        try:
            result = subprocess.run(
                ["R", "--slave", "-e", check_script],
                capture_output=True,
                text=True,
                timeout=60,
            )
        except subprocess.TimeoutExpired:
            logger.error("Timeout checking R packages")
            return {pkg: False for pkg in packages}

        if result.returncode != 0:
            logger.error(f"Error checking R packages: {result.stderr}")
            return {pkg: False for pkg in packages}

        package_status = {pkg: False for pkg in packages}
        for line in result.stdout.strip().split("\n"):
            if ":" in line:
                pkg, status = line.split(":", 1)
                package_status[pkg.strip()] = status.strip().upper() == "TRUE"
        return package_status

    def run_script(
        self, r_code: str, working_dir: Optional[Union[str, Path]] = None
    ) -> Dict[str, Any]:
        """
        Run R script

        Args:
            r_code: R code to execute
            working_dir: Working directory for R script

        Returns:
            Dictionary with execution results
        """
        if not self.check_r_available():
            return {"success": False, "error": "R not available", "output": None}

        with tempfile.NamedTemporaryFile(mode="w", suffix=".R", delete=False) as f:
            f.write(r_code)
            script_path = f.name

        try:
            if working_dir is None:
                working_dir = Path.cwd()
            working_dir = Path(working_dir)
            working_dir.mkdir(parents=True, exist_ok=True)

            logger.debug(f"Running R script {script_path} in {working_dir}")
            result = subprocess.run(
                ["R", "--slave", "--no-restore", "--no-save", "-f", script_path],
                cwd=str(working_dir),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )

            return {
                "success": result.returncode == 0,
                "output": result.stdout,
                "error": result.stderr if result.returncode != 0 else None,
                "working_dir": str(working_dir),
            }

        except subprocess.TimeoutExpired:
            return {
                "success": False,
                "error": "R script execution timed out",
                "output": None,
            }
        finally:
            try:
                os.unlink(script_path)
            except OSError:
                logger.debug(f"Could not remove temporary script {script_path}")

    def run_or_raise(
        self,
        r_code: str,
        working_dir: Optional[Union[str, Path]] = None,
        description: str = "R script",
    ) -> str:
        """Run R code and raise RIntegrationError on failure; returns stdout"""
        result = self.run_script(r_code, working_dir=working_dir)
        if not result["success"]:
            raise RIntegrationError(
                f"{description} failed: {result.get('error')}",
                stderr=result.get("error"),
            )
        return result["output"]


def check_r_packages(
    packages: List[str], r_config: Optional[Dict[str, Any]] = None
) -> Dict[str, bool]:
    """
    Check if R packages are available

    Args:
        packages: List of package names
        r_config: Optional R configuration

    Returns:
        Dictionary of package availability
    """
    return RInterface(r_config).check_packages(packages)
