#!/usr/bin/python3
# Setup file for kerngit
# Copyright (C) 2026 The Kerngit Authors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

kerngit_version_string = "0.3.0"

setup(
    name="kerngit",
    version=kerngit_version_string,
    description="Clone and fetch Git repositories with SSH key negotiation",
    long_description="""
Kerngit drives clone and fetch operations through Dulwich. It answers the
remote's authentication challenges from locally discovered SSH keys, retries
across credential types and key pairs without looping, reports transfer
progress at a bounded rate and hands repositories out as owned handles.
""",
    license="Apache-2.0 OR GPL-2.0-or-later",
    python_requires=">=3.9",
    packages=["kerngit"],
    package_data={"": ["py.typed"]},
    install_requires=[
        "dulwich>=0.24.0,<0.25",
        "paramiko>=3.2.0",
        "urllib3>=1.25",
    ],
    entry_points={
        "console_scripts": ["kerngit=kerngit.cli:_main"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: Apache Software License",
        "License :: OSI Approved :: GNU General Public License v2 or later (GPLv2+)",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control",
    ],
)
