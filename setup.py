"""
Setup script for SEM Graphene Analysis System
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README.md if it exists
readme_path = Path("README.md")
if readme_path.exists():
    with open(readme_path, "r", encoding="utf-8") as fh:
        long_description = fh.read()
else:
    long_description = "SEM Graphene Analysis System - Bacteria exclusion zones and flake orientation of graphene"

requirements = [
    "opencv-python>=4.5.0",
    "scikit-image>=0.19.0",
    "scipy>=1.7.0",
    "numpy>=1.20.0",
    "matplotlib>=3.3.0",
    "pandas>=1.3.0",
]

setup(
    name="sem-graphene-analysis",
    version="1.0.0",
    author="SEM Graphene Analysis Team",
    description="Analysis of SEM images of graphene for bacteria exclusion area and flake orientation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["graphene_analysis", "graphene_analysis.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Image Processing",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "ocr": ["pytesseract>=0.3.8"],
        "dev": ["pytest>=6.0"],
    },
    entry_points={
        "console_scripts": [
            "graphene-analysis=graphene_analysis.cli:main",
        ],
    },
)
