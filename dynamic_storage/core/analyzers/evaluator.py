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

"""Sizing evaluator - decides what to do with one volume in one pass."""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Tuple

from ..config import SizingDefaults, StoragePolicy
from ..models.storage_models import StorageConfiguration, DiskSample
from ..models.sizing_models import (
    ActionType,
    DecisionReason,
    ReconcileDecision,
    VolumeIdentity,
    VolumeSizingStatus,
)
from ..quantity import parse_quantity, try_parse_quantity
from .budget import has_budget_for_emergency, has_budget_for_scheduled
from .disk_status import find_worst_instance
from .maintenance import MaintenanceWindowClock
from .sizing import (
    calculate_emergency_growth_size,
    calculate_target_size,
    clamp_size,
    is_emergency_condition,
    needs_growth,
)

logger = logging.getLogger(__name__)


def max_claim_size(actual_sizes: Optional[Dict[str, str]]) -> int:
    """Largest parsable claim capacity in bytes, 0 when none is known."""
    sizes = [try_parse_quantity(size) for size in (actual_sizes or {}).values()]
    return max((size for size in sizes if size), default=0)


class SizingEvaluator:
    """Produce exactly one decision per volume from usage, policy, budget and window."""

    def __init__(
        self,
        defaults: Optional[SizingDefaults] = None,
        clock: Optional[MaintenanceWindowClock] = None,
    ):
        """Initialize evaluator.

        Args:
            defaults: Default policy values
            clock: Maintenance window clock (built from defaults when omitted)
        """
        self.defaults = defaults or SizingDefaults()
        self.clock = clock or MaintenanceWindowClock(self.defaults)

    def evaluate(
        self,
        volume: VolumeIdentity,
        config: StorageConfiguration,
        status: Optional[VolumeSizingStatus],
        samples: Dict[str, DiskSample],
        actual_sizes: Optional[Dict[str, str]] = None,
        now: Optional[datetime] = None,
    ) -> ReconcileDecision:
        """Evaluate the sizing needs of one volume.

        Claim capacity is the authoritative current size: the filesystem total
        reported by the instances is smaller because of filesystem metadata,
        and using it would produce growth that changes nothing.

        Args:
            volume: Volume being evaluated
            config: Storage configuration of the volume
            status: Persisted sizing status of the volume (may be None)
            samples: Disk samples keyed by instance name
            actual_sizes: Claim capacity keyed by instance name
            now: Evaluation time

        Returns:
            The decision for this pass
        """
        now = now or datetime.now(timezone.utc)
        policy = StoragePolicy(config, self.defaults)

        worst = find_worst_instance(samples)
        if worst is None:
            return ReconcileDecision(action=ActionType.NOOP, volume=volume, reason=DecisionReason.NO_DISK_USAGE)
        instance_name, sample = worst

        try:
            request, limit, critical_minimum_free = self._parse_bounds(policy)
        except ValueError as e:
            logger.warning("Invalid storage configuration for volume %s, skipping this pass: %s", volume, e)
            return ReconcileDecision(action=ActionType.NOOP, volume=volume, reason=str(e))

        current = max_claim_size(actual_sizes)
        claim_sizes_available = current > 0
        if not claim_sizes_available:
            current = sample.total_bytes

        if current >= limit:
            return ReconcileDecision(
                action=ActionType.NOOP,
                volume=volume,
                current_size=current,
                target_size=limit,
                reason=DecisionReason.AT_LIMIT,
            )

        if is_emergency_condition(policy, sample, critical_minimum_free):
            if has_budget_for_emergency(policy, status, now):
                return ReconcileDecision(
                    action=ActionType.EMERGENCY_GROW,
                    volume=volume,
                    current_size=current,
                    target_size=clamp_size(calculate_emergency_growth_size(current, limit, policy), request, limit),
                    reason=DecisionReason.CRITICAL_USAGE,
                    instance_name=instance_name,
                )
            # Still report the scheduled target for observability
            return ReconcileDecision(
                action=ActionType.NOOP,
                volume=volume,
                current_size=current,
                target_size=self._scheduled_target(policy, sample, request, limit),
                reason=DecisionReason.EMERGENCY_BUDGET_EXHAUSTED,
            )

        return self._evaluate_growth(
            policy, status, volume, sample, instance_name,
            current, request, limit, claim_sizes_available, now,
        )

    def _parse_bounds(self, policy: StoragePolicy) -> Tuple[int, int, int]:
        try:
            request = parse_quantity(policy.config.request)
        except ValueError as e:
            raise ValueError(f"parsing request: {e}") from e
        try:
            limit = parse_quantity(policy.config.limit)
        except ValueError as e:
            raise ValueError(f"parsing limit: {e}") from e
        try:
            critical_minimum_free = policy.critical_minimum_free_bytes()
        except ValueError as e:
            raise ValueError(f"parsing criticalMinimumFree: {e}") from e
        return request, limit, critical_minimum_free

    def _scheduled_target(self, policy: StoragePolicy, sample: DiskSample, request: int, limit: int) -> int:
        target = calculate_target_size(sample.used_bytes, policy.target_buffer_percent, self.defaults)
        return clamp_size(target, request, limit)

    def _evaluate_growth(
        self,
        policy: StoragePolicy,
        status: Optional[VolumeSizingStatus],
        volume: VolumeIdentity,
        sample: DiskSample,
        instance_name: str,
        current: int,
        request: int,
        limit: int,
        claim_sizes_available: bool,
        now: datetime,
    ) -> ReconcileDecision:
        target = self._scheduled_target(policy, sample, request, limit)

        def decide(action: ActionType, reason: str, instance: Optional[str] = None) -> ReconcileDecision:
            return ReconcileDecision(
                action=action,
                volume=volume,
                current_size=current,
                target_size=target,
                reason=reason,
                instance_name=instance,
            )

        if not needs_growth(policy, sample):
            return decide(ActionType.NOOP, DecisionReason.BALANCED)

        # The filesystem total under-reports the claim, so never grow from it
        if not claim_sizes_available:
            return decide(ActionType.NOOP, DecisionReason.WAITING_FOR_PVC_SIZES)

        if target <= current:
            return decide(ActionType.NOOP, DecisionReason.TARGET_NOT_LARGER)

        if not self.clock.is_open(policy.config, now):
            return decide(ActionType.PENDING_GROWTH, DecisionReason.WAITING_FOR_WINDOW, instance_name)

        if not has_budget_for_scheduled(policy, status, now):
            return decide(ActionType.PENDING_GROWTH, DecisionReason.PLANNED_BUDGET_EXHAUSTED, instance_name)

        return decide(ActionType.SCHEDULED_GROW, DecisionReason.BELOW_TARGET_BUFFER, instance_name)
