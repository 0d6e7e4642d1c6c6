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

"""Tests for the action executor."""

from unittest.mock import MagicMock

import pytest

from dynamic_storage.core.config import StoragePolicy
from dynamic_storage.core.models.sizing_models import (
    ActionType,
    ExecutionOutcome,
    ExecutionResult,
    ReconcileDecision,
    VolumeIdentity,
    VolumeSizingStatus,
)
from dynamic_storage.core.quantity import GI
from dynamic_storage.core.services.action_executor import ActionExecutor, ClaimPatchError
from tests.common.factories import dynamic_config, make_pvc


@pytest.fixture
def pvc_service():
    return MagicMock()


@pytest.fixture
def executor(pvc_service):
    return ActionExecutor(pvc_service)


@pytest.fixture
def claims():
    return [
        make_pvc("pg-1", "PG_DATA", "pg-1", requested="5Gi"),
        make_pvc("pg-2", "PG_DATA", "pg-2", requested="6Gi"),
        make_pvc("pg-1-wal", "PG_WAL", "pg-1", requested="5Gi"),
        make_pvc("pg-1-tbs-idx", "PG_TABLESPACE", "pg-1", requested="5Gi", tablespace="idx"),
        make_pvc("pg-1-tbs-logs", "PG_TABLESPACE", "pg-1", requested="5Gi", tablespace="logs"),
    ]


def grow(volume, target=6 * GI, action=ActionType.SCHEDULED_GROW):
    return ReconcileDecision(
        action=action,
        volume=volume,
        current_size=5 * GI,
        target_size=target,
        reason="test",
        instance_name="pg-1",
    )


def patched_names(pvc_service):
    return [call.args[0].name for call in pvc_service.expand_pvc.call_args_list]


def test_patches_only_claims_below_target(executor, pvc_service, claims):
    result = executor.execute(grow(VolumeIdentity.data()), claims)

    assert result.outcome == ExecutionOutcome.APPLIED
    assert result.patched_claims == ["pg-1"]
    assert result.skipped_claims == ["pg-2"]
    pvc_service.expand_pvc.assert_called_once()
    assert pvc_service.expand_pvc.call_args.args[1] == "6Gi"


def test_tablespace_growth_touches_only_that_tablespace(executor, pvc_service, claims):
    executor.execute(grow(VolumeIdentity.tablespace("idx")), claims)

    assert patched_names(pvc_service) == ["pg-1-tbs-idx"]


def test_wal_growth_touches_only_wal_claims(executor, pvc_service, claims):
    executor.execute(grow(VolumeIdentity.wal()), claims)

    assert patched_names(pvc_service) == ["pg-1-wal"]


def test_claims_already_at_target_are_satisfied(executor, pvc_service):
    claims = [
        make_pvc("pg-1", "PG_DATA", "pg-1", requested="6Gi", capacity="5Gi"),
        make_pvc("pg-2", "PG_DATA", "pg-2", requested="8Gi"),
    ]

    result = executor.execute(grow(VolumeIdentity.data()), claims)

    assert result.outcome == ExecutionOutcome.ALREADY_SATISFIED
    assert result.patched_claims == []
    pvc_service.expand_pvc.assert_not_called()


def test_repeating_with_stale_input_is_safe(executor, pvc_service, claims):
    decision = grow(VolumeIdentity.data())
    executor.execute(decision, claims)
    updated = [pvc.model_copy(update={"requested": "6Gi"}) if pvc.name == "pg-1" else pvc for pvc in claims]

    result = executor.execute(decision, updated)

    assert result.outcome == ExecutionOutcome.ALREADY_SATISFIED
    assert pvc_service.expand_pvc.call_count == 1


def test_patch_failure_names_the_claim(executor, pvc_service, claims):
    pvc_service.expand_pvc.side_effect = RuntimeError("conflict")

    with pytest.raises(ClaimPatchError) as exc_info:
        executor.execute(grow(VolumeIdentity.data()), claims)

    assert exc_info.value.pvc_name == "pg-1"
    assert "error patching PVC pg-1" in str(exc_info.value)


def test_record_applied_action(executor, now):
    policy = StoragePolicy(dynamic_config())
    decision = grow(VolumeIdentity.data(), action=ActionType.EMERGENCY_GROW)
    result = ExecutionResult(outcome=ExecutionOutcome.APPLIED, patched_claims=["pg-1"])

    status = executor.record(VolumeSizingStatus(target_size="6Gi"), policy, decision, result, now)

    assert status.effective_size == "6Gi"
    assert status.target_size == "6Gi"
    assert status.last_action.kind == ActionType.EMERGENCY_GROW
    assert status.last_action.from_size == "5Gi"
    assert status.last_action.to_size == "6Gi"
    assert status.last_action.instance == "pg-1"
    assert status.last_action.result == "Success"
    assert status.last_action.timestamp == now
    assert status.budget.actions_last24h == 1
    assert status.budget.available_for_planned == 2


def test_record_consecutive_actions_accumulate(executor, now):
    policy = StoragePolicy(dynamic_config())
    decision = grow(VolumeIdentity.data())
    result = ExecutionResult(outcome=ExecutionOutcome.APPLIED, patched_claims=["pg-1"])

    status = executor.record(VolumeSizingStatus(), policy, decision, result, now)
    status = executor.record(status, policy, decision, result, now)

    assert status.budget.actions_last24h == 2
    assert status.budget.available_for_planned == 1
    assert status.budget.available_for_emergency == 1


def test_record_nothing_when_already_satisfied(executor, now):
    policy = StoragePolicy(dynamic_config())
    original = VolumeSizingStatus(target_size="6Gi")
    result = ExecutionResult(outcome=ExecutionOutcome.ALREADY_SATISFIED)

    status = executor.record(original, policy, grow(VolumeIdentity.data()), result, now)

    assert status is original
    assert status.last_action is None
    assert status.effective_size is None
    assert status.budget is None
