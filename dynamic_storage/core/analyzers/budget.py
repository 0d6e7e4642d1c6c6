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

"""Rolling daily budget for resize actions.

The remaining allowance of a 24h window is split into a pool reserved for
emergency growth and a pool available to planned growth.
"""

from datetime import datetime, timezone
from typing import Optional

from ..config import StoragePolicy
from ..models.sizing_models import BudgetStatus, VolumeSizingStatus


def _split_allowance(policy: StoragePolicy, actions_last24h: int):
    available_total = max(policy.max_actions_per_day - actions_last24h, 0)
    available_for_emergency = max(min(policy.reserved_actions_for_emergency, available_total), 0)
    available_for_planned = max(available_total - available_for_emergency, 0)
    return available_for_planned, available_for_emergency


def calculate_budget(
    policy: StoragePolicy,
    status: Optional[VolumeSizingStatus],
    now: Optional[datetime] = None,
) -> BudgetStatus:
    """Calculate the current budget from the persisted status.

    The counter carries over while the last recorded action is younger than
    the budget window and resets to zero afterwards.

    Args:
        policy: Resolved storage policy
        status: Persisted sizing status of the volume (may be None)
        now: Evaluation time

    Returns:
        Fresh budget status
    """
    now = now or datetime.now(timezone.utc)
    window = policy.defaults.budget_window

    actions_last24h = 0
    resets_at = now + window
    last_action = status.last_action if status else None
    if last_action is not None and now - last_action.timestamp < window:
        if status.budget is not None:
            actions_last24h = status.budget.actions_last24h
        resets_at = last_action.timestamp + window

    available_for_planned, available_for_emergency = _split_allowance(policy, actions_last24h)
    return BudgetStatus(
        actions_last24h=actions_last24h,
        available_for_planned=available_for_planned,
        available_for_emergency=available_for_emergency,
        budget_resets_at=resets_at,
    )


def increment_budget_usage(
    policy: StoragePolicy,
    status: Optional[VolumeSizingStatus],
    now: Optional[datetime] = None,
) -> BudgetStatus:
    """Record one more action and recompute both pools."""
    budget = calculate_budget(policy, status, now)
    actions_last24h = budget.actions_last24h + 1
    available_for_planned, available_for_emergency = _split_allowance(policy, actions_last24h)
    return budget.model_copy(update={
        "actions_last24h": actions_last24h,
        "available_for_planned": available_for_planned,
        "available_for_emergency": available_for_emergency,
    })


def has_budget_for_emergency(
    policy: StoragePolicy,
    status: Optional[VolumeSizingStatus],
    now: Optional[datetime] = None,
) -> bool:
    """Emergency growth may draw on the whole remaining allowance.

    Missing status or budget counts as unlimited.
    """
    if status is None or status.budget is None:
        return True
    budget = calculate_budget(policy, status, now)
    return budget.available_for_emergency + budget.available_for_planned > 0


def has_budget_for_scheduled(
    policy: StoragePolicy,
    status: Optional[VolumeSizingStatus],
    now: Optional[datetime] = None,
) -> bool:
    """Scheduled growth may only use the planned pool.

    Missing status or budget counts as unlimited.
    """
    if status is None or status.budget is None:
        return True
    return calculate_budget(policy, status, now).available_for_planned > 0
