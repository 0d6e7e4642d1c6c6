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

"""Tests for capacity quantity helpers."""

import pytest

from dynamic_storage.core.quantity import (
    GI,
    MI,
    ceil_to_gi,
    format_quantity,
    parse_quantity,
    try_parse_quantity,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("5Gi", 5 * GI),
        ("1.5Gi", 1536 * MI),
        ("500M", 500_000_000),
        ("100Mi", 100 * MI),
        (" 2Ti ", 2 * 1024 * GI),
        (4096, 4096),
    ],
)
def test_parse_quantity(value, expected):
    assert parse_quantity(value) == expected


@pytest.mark.parametrize("value", ["", "   ", "lots", "5Gx"])
def test_parse_quantity_rejects_invalid_values(value):
    with pytest.raises(ValueError):
        parse_quantity(value)


def test_try_parse_quantity_returns_none_for_missing_or_invalid():
    assert try_parse_quantity(None) is None
    assert try_parse_quantity("") is None
    assert try_parse_quantity("lots") is None
    assert try_parse_quantity("6Gi") == 6 * GI


@pytest.mark.parametrize(
    "num_bytes,expected",
    [
        (0, "0"),
        (125 * GI, "125Gi"),
        (1536 * MI, "1536Mi"),
        (1024 * GI, "1Ti"),
        (1000, "1000"),
    ],
)
def test_format_quantity_uses_largest_exact_binary_suffix(num_bytes, expected):
    assert format_quantity(num_bytes) == expected


def test_ceil_to_gi():
    assert ceil_to_gi(5 * GI) == 5 * GI
    assert ceil_to_gi(5 * GI + 1) == 6 * GI
    assert ceil_to_gi(0) == GI
    assert ceil_to_gi(10 * MI) == GI
