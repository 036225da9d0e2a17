#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
from os import path

with open(path.join(path.dirname(__file__), "README.md"), "r") as README:
    long_description = README.read()

setup(
    name="invest_instruments",
    version="1.0.0",
    description="Invest API instruments example runner",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"invest_instruments.proto": ["*.proto"]},
    python_requires=">=3.9",
    install_requires=[
        "grpcio>=1.43.0",
        "grpcio-tools>=1.43.0",
        "protobuf>=4.21.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": ["black>=21.7b0"],
        "test": ["pytest>=7.0", "pytest-asyncio>=0.21"],
    },
)
