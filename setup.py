#!/usr/bin/python3
# Setup file for plain
# Copyright (C) 2025 The plain authors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

tests_require = ["pytest"]


setup(
    name="plain",
    version="0.1.0",
    description="Decode loose git objects and rebuild branch history",
    license="Apache-2.0 OR GPL-2.0-or-later",
    packages=["plain"],
    package_data={"": ["py.typed"]},
    python_requires=">=3.10",
    install_requires=['typing_extensions >=4.0; python_version < "3.12"'],
    extras_require={"test": tests_require},
    entry_points={"console_scripts": ["plain=plain.cli:_main"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control :: Git",
    ],
)
