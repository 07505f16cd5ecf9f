#!/usr/bin/env python3
"""
mcclient Setup Script
=====================
Allows installation of the mcclient package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="mcclient",
    version="1.0.0",
    description="Blocking Memcached text protocol client with typed values",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "msgspec>=0.18",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "mcclient=mcclient.cli:main",
        ],
    },
)
