#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Setup script for CNPG Dynamic Storage."""

from setuptools import setup
from pathlib import Path

# Read requirements
requirements_file = Path(__file__).parent / 'requirements.txt'
with open(requirements_file) as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith('#')]

# Read README for long description
readme_file = Path(__file__).parent / 'README.md'
with open(readme_file, encoding='utf-8') as f:
    long_description = f.read()

setup(
    name="cnpg-dynamic-storage",
    version="1.0.0",
    description="Dynamic storage sizing control loop for CloudNativePG clusters",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="NVIDIA Corporation",
    url="https://github.com/NVIDIA/dgx-cloud-examples",
    packages=[
        'dynamic_storage',
        'dynamic_storage.core',
        'dynamic_storage.core.clients',
        'dynamic_storage.core.services',
        'dynamic_storage.core.analyzers',
        'dynamic_storage.core.models',
    ],
    install_requires=requirements,
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'cnpg-dynamic-storage=dynamic_storage.cli:cli',
        ],
    },
    python_requires='>=3.9',
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: System :: Systems Administration",
    ],
    zip_safe=False,
)
