#!/usr/bin/python3
# Setup file for objectgraph
# Copyright (C) 2025 The objectgraph developers
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

tests_require = ["pytest"]

setup(
    name="objectgraph",
    version="0.1.0",
    description="Reference graph of the loose objects in a git repository",
    license="Apache-2.0 OR GPL-2.0-or-later",
    packages=["objectgraph"],
    package_data={"": ["py.typed"]},
    python_requires=">=3.9",
    install_requires=['typing_extensions >=4.6.0; python_version < "3.12"'],
    extras_require={"test": tests_require},
    entry_points={"console_scripts": ["objectgraph=objectgraph.cli:_main"]},
)
