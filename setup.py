"""Minimal setup.py for explore_statistics package."""

import os
from pathlib import Path

from setuptools import find_packages, setup

# Read the version from _version.py
__version__ = ""
exec(open(os.path.join("explore_statistics", "_version.py")).read())

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="explore_statistics",
    version=__version__,
    description="Weighted frequency, percentile and robust statistics for Explore analyses",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["explore_statistics", "explore_statistics.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "pandas>=2.0",
        "pydantic>=2.5",
        "pyyaml>=6.0",
        "scipy>=1.10",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0",
            "pytest-cov>=5.0",
            "black>=24.1",
            "mypy>=1.8",
            "types-PyYAML>=6.0.0",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
