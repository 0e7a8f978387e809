#!/usr/bin/env python3

import pathlib

from setuptools import find_packages, setup

# The directory containing this file
HERE = pathlib.Path(__file__).parent

# The text of the README file
README = (HERE / "README.md").read_text()

# Version
__version__ = "0.1.0"

setup(
    name="arrayflow",
    version=__version__,
    author="ArrayFlow Development Team",
    author_email="arrayflow@example.com",
    description="Microarray differential expression, enrichment and KEGG pathway overlay pipelines",
    long_description=README,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        # Core scientific computing
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",
        # Visualization
        "matplotlib>=3.4.0",
        "seaborn>=0.11.0",
        # Web services
        "requests>=2.25.0",
        "gprofiler-official>=1.0.0",
        # Configuration and utilities
        "pyyaml>=6.0",
        "click>=8.0.0",
        "colorlog>=6.6.0",
        # Statistical analysis
        "scikit-learn>=1.0.0",
        "statsmodels>=0.13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
        "dev": [
            "black>=22.0.0",
            "isort>=5.10.0",
            "flake8>=5.0.0",
            "mypy>=0.991",
            "pre-commit>=2.20.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "arrayflow=arrayflow.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        "microarray",
        "affymetrix",
        "limma",
        "differential-expression",
        "bioinformatics",
        "gene-ontology",
        "REVIGO",
        "g:Profiler",
        "KEGG",
        "pathview",
        "pathway-enrichment",
    ],
)
