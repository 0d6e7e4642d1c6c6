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

"""Capacity quantity helpers.

Parsing follows the Kubernetes quantity grammar (``5Gi``, ``500M``, ``1.5Ti``)
through the official client. Formatting produces the canonical binary form
used on claims: the largest binary suffix that divides the value exactly.
"""

import math
from typing import Optional, Union

from kubernetes.utils import parse_quantity as _k8s_parse_quantity

KI = 1024
MI = 1024 * KI
GI = 1024 * MI
TI = 1024 * GI
PI = 1024 * TI
EI = 1024 * PI

_BINARY_SUFFIXES = (
    ("Ei", EI),
    ("Pi", PI),
    ("Ti", TI),
    ("Gi", GI),
    ("Mi", MI),
    ("Ki", KI),
)


def parse_quantity(value: Union[str, int]) -> int:
    """Parse a quantity into whole bytes, rounding fractions up.

    Args:
        value: Quantity string (e.g., "10Gi") or integer byte count

    Returns:
        Number of bytes

    Raises:
        ValueError: If the value is empty or not a valid quantity
    """
    if isinstance(value, int):
        return value
    if value is None or not str(value).strip():
        raise ValueError("quantity is empty")
    try:
        parsed = _k8s_parse_quantity(str(value).strip())
    except (ValueError, TypeError) as e:
        raise ValueError(f"invalid quantity {value!r}: {e}") from e
    return int(math.ceil(parsed))


def try_parse_quantity(value: Optional[str]) -> Optional[int]:
    """Parse a quantity, returning None when it is missing or invalid."""
    if not value:
        return None
    try:
        return parse_quantity(value)
    except ValueError:
        return None


def format_quantity(num_bytes: int) -> str:
    """Format bytes in canonical binary-SI form (e.g., 134217728000 -> "125Gi")."""
    if num_bytes == 0:
        return "0"
    for suffix, factor in _BINARY_SUFFIXES:
        if num_bytes % factor == 0:
            return f"{num_bytes // factor}{suffix}"
    return str(num_bytes)


def ceil_to_gi(num_bytes: float) -> int:
    """Round a byte count up to the next whole GiB, never below 1Gi."""
    gib = int(num_bytes // GI)
    if num_bytes > gib * GI:
        gib += 1
    return max(gib, 1) * GI
