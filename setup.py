#!/usr/bin/env python
# -*- coding: utf-8 -*-
# @QK

"""Packaging for pomanip.

@QK
"""

from setuptools import setup, find_packages
from pathlib import Path

ROOT = Path(__file__).parent
requirements = [
    line.strip()
    for line in (ROOT / "requirements.txt").read_text(encoding="utf-8").splitlines()
    if line.strip() and not line.startswith("#")
]

long_description = ""
readme_md = ROOT / "README.md"
if readme_md.exists():
    long_description = readme_md.read_text(encoding="utf-8")

setup(
    name="pomanip",
    version="0.1.0",
    description="pomanip - POM manipulation for multi-module Maven builds",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="pomanip contributors",
    packages=find_packages(include=["pomanip", "pomanip.*"]),
    include_package_data=True,
    package_data={
        "pomanip": [
            "templates/*.j2",
        ]
    },
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7",
            "ruff>=0.4",
        ],
    },
    entry_points={
        "console_scripts": [
            "pomanip=pomanip.cli:main",
        ],
        "pomanip.manipulators": [
            # Example: "mymanip = mypkg.manip:MyManipulator"
        ],
    },
    python_requires=">=3.9",
)
