#!/usr/bin/env python3
"""
cachefs Setup Script
====================
Allows installation of the cachefs package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="cachefs",
    version="1.0.0",
    description="Filesystem adapter over a key-value cache, with an embedded store and TCP cache server",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "cachefs-server=cachefs.server:main",
        ],
    },
)
