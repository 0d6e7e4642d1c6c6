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

"""Default sizing policy and per-volume policy resolution."""

from datetime import timedelta
from typing import Optional
from pydantic import BaseModel

from .models.storage_models import StorageConfiguration
from .quantity import parse_quantity, GI


class SizingDefaults(BaseModel):
    """Default values applied when a storage configuration leaves a field unset."""

    target_buffer_percent: int = 20
    min_target_buffer_percent: int = 5
    max_target_buffer_percent: int = 50

    critical_threshold_percent: int = 95
    critical_minimum_free: str = "1Gi"
    emergency_growth_step_percent: int = 25
    emergency_min_growth_bytes: int = GI

    max_actions_per_day: int = 4
    reserved_actions_for_emergency: int = 1
    budget_window: timedelta = timedelta(hours=24)

    # Six fields: second minute hour day-of-month month day-of-week
    maintenance_schedule: str = "0 0 3 * * *"
    maintenance_duration: timedelta = timedelta(hours=2)
    maintenance_timezone: str = "UTC"
    window_lookback: timedelta = timedelta(hours=24)
    window_lookback_max_iterations: int = 1000
    next_window_search_years: int = 5

    disk_status_requeue_after: timedelta = timedelta(seconds=30)

    class Config:
        frozen = True


class StoragePolicy:
    """A storage configuration resolved against the sizing defaults."""

    def __init__(self, config: Optional[StorageConfiguration], defaults: Optional[SizingDefaults] = None):
        """Initialize policy.

        Args:
            config: Storage configuration of one volume (may be None)
            defaults: Default values for unset fields
        """
        self.config = config
        self.defaults = defaults or SizingDefaults()

    @property
    def dynamic_sizing_enabled(self) -> bool:
        return self.config is not None and self.config.dynamic_sizing_enabled

    @property
    def target_buffer_percent(self) -> int:
        """Configured target buffer, or the default when unset or out of range."""
        value = self.config.target_buffer if self.config else None
        if value is None:
            return self.defaults.target_buffer_percent
        if value < self.defaults.min_target_buffer_percent or value > self.defaults.max_target_buffer_percent:
            return self.defaults.target_buffer_percent
        return value

    @property
    def emergency_enabled(self) -> bool:
        grow = self.config.emergency_grow if self.config else None
        if grow is None or grow.enabled is None:
            return True
        return grow.enabled

    @property
    def critical_threshold_percent(self) -> int:
        # 0 is treated as unset so that emergency growth never fires at every usage level
        grow = self.config.emergency_grow if self.config else None
        if grow is None or not grow.critical_threshold:
            return self.defaults.critical_threshold_percent
        return grow.critical_threshold

    def critical_minimum_free_bytes(self) -> int:
        """Minimum free bytes before emergency growth.

        Raises:
            ValueError: If the configured quantity cannot be parsed
        """
        grow = self.config.emergency_grow if self.config else None
        if grow is None or not grow.critical_minimum_free:
            return parse_quantity(self.defaults.critical_minimum_free)
        return parse_quantity(grow.critical_minimum_free)

    @property
    def max_actions_per_day(self) -> int:
        grow = self.config.emergency_grow if self.config else None
        if grow is None or grow.max_actions_per_day is None:
            return self.defaults.max_actions_per_day
        return grow.max_actions_per_day

    @property
    def reserved_actions_for_emergency(self) -> int:
        grow = self.config.emergency_grow if self.config else None
        if grow is None or grow.reserved_actions_for_emergency is None:
            return self.defaults.reserved_actions_for_emergency
        return grow.reserved_actions_for_emergency
