#!/usr/bin/env python3
"""
katsubushi-exporter Setup Script
================================
Allows installation of the katsubushi-exporter package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="katsubushi-exporter",
    version="1.0.0",
    packages=find_packages(include=["katsubushi_exporter", "katsubushi_exporter.*"]),
    python_requires=">=3.10",
    install_requires=[
        "prometheus_client>=0.17",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "katsubushi-exporter=katsubushi_exporter.server:main",
        ],
    },
)
