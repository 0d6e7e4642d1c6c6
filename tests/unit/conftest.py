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

"""Shared fixtures for unit tests."""

from datetime import datetime, timezone

import pytest

from dynamic_storage.core import logging_manager
from dynamic_storage.core.logging_manager import StructuredLogger


@pytest.fixture(autouse=True)
def _in_memory_operation_log(monkeypatch):
    """Keep the global operation log off the filesystem."""
    monkeypatch.setattr(logging_manager, "_logger_instance", StructuredLogger(persist=False))


@pytest.fixture
def now():
    return datetime(2025, 6, 10, 12, 0, 0, tzinfo=timezone.utc)
