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

"""Sizing arithmetic: target size, emergency growth, clamping and thresholds."""

from typing import Optional

from ..config import SizingDefaults, StoragePolicy
from ..models.storage_models import DiskSample
from ..quantity import ceil_to_gi


def calculate_target_size(
    used_bytes: int,
    target_buffer_percent: int,
    defaults: Optional[SizingDefaults] = None,
) -> int:
    """Size that leaves ``target_buffer_percent`` free at the current usage.

    Formula: used / (1 - buffer%), rounded up to a whole GiB. A buffer outside
    the 5-50% range is replaced by the default.
    """
    defaults = defaults or SizingDefaults()
    if not defaults.min_target_buffer_percent <= target_buffer_percent <= defaults.max_target_buffer_percent:
        target_buffer_percent = defaults.target_buffer_percent
    multiplier = (100 - target_buffer_percent) / 100.0
    return ceil_to_gi(used_bytes / multiplier)


def calculate_emergency_growth_size(current_bytes: int, limit_bytes: int, policy: StoragePolicy) -> int:
    """Grow by the configured step (25% by default, at least 1Gi), capped at the limit."""
    defaults = policy.defaults
    growth = current_bytes * defaults.emergency_growth_step_percent // 100
    growth = max(growth, defaults.emergency_min_growth_bytes)
    return min(current_bytes + growth, limit_bytes)


def clamp_size(target_bytes: int, request_bytes: int, limit_bytes: int) -> int:
    """Clamp a target between request and limit."""
    if target_bytes < request_bytes:
        return request_bytes
    if target_bytes > limit_bytes:
        return limit_bytes
    return target_bytes


def is_emergency_condition(policy: StoragePolicy, sample: DiskSample, critical_minimum_free: int) -> bool:
    """Check the critical usage percentage and the minimum free space floor."""
    if not policy.emergency_enabled:
        return False

    if sample.total_bytes > 0:
        percent_used = sample.used_bytes / sample.total_bytes * 100
        if percent_used >= policy.critical_threshold_percent:
            return True

    return sample.available_bytes <= critical_minimum_free


def needs_growth(policy: StoragePolicy, sample: DiskSample) -> bool:
    """Free space on the filesystem is below the target buffer."""
    if sample.total_bytes == 0:
        return False
    free_percent = (sample.total_bytes - sample.used_bytes) / sample.total_bytes * 100
    return free_percent < policy.target_buffer_percent
