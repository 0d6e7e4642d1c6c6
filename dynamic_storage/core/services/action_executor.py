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

"""Action executor - applies growth decisions to volume claims."""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..analyzers.budget import increment_budget_usage
from ..config import StoragePolicy
from ..models.storage_models import PVC
from ..models.sizing_models import (
    ExecutionOutcome,
    ExecutionResult,
    ReconcileDecision,
    SizingAction,
    VolumeSizingStatus,
)
from ..quantity import format_quantity, try_parse_quantity
from .pvc_service import PVCService

logger = logging.getLogger(__name__)


class ClaimPatchError(RuntimeError):
    """Submitting a capacity increase for a claim failed."""

    def __init__(self, pvc_name: str, cause: Exception):
        super().__init__(f"error patching PVC {pvc_name}: {cause}")
        self.pvc_name = pvc_name


class ActionExecutor:
    """Raise the capacity of every claim of a volume that is below target."""
    
    def __init__(self, pvc_service: PVCService):
        """Initialize executor.
        
        Args:
            pvc_service: Service used to patch claims
        """
        self.pvc_service = pvc_service
    
    def execute(self, decision: ReconcileDecision, pvcs: Iterable[PVC]) -> ExecutionResult:
        """Patch the claims matching the decision's volume.
        
        Claims already at or above the target are left alone, so running
        twice with the same input is safe.
        
        Args:
            decision: Growth decision to apply
            pvcs: All claims of the cluster
            
        Returns:
            APPLIED when at least one claim was patched, ALREADY_SATISFIED otherwise
            
        Raises:
            ClaimPatchError: On the first claim that fails to patch
        """
        target = format_quantity(decision.target_size)
        patched = []
        skipped = []
        
        for pvc in pvcs:
            if not decision.volume.matches_labels(pvc.labels):
                continue
            
            requested = try_parse_quantity(pvc.requested) or 0
            if requested >= decision.target_size:
                logger.debug(
                    "Skipping PVC %s of volume %s: requested %s already at target %s",
                    pvc.name, decision.volume, pvc.requested, target,
                )
                skipped.append(pvc.name)
                continue
            
            logger.info(
                "Patching PVC %s of volume %s from %s to %s",
                pvc.name, decision.volume, pvc.requested, target,
            )
            try:
                self.pvc_service.expand_pvc(pvc, target)
            except RuntimeError as e:
                raise ClaimPatchError(pvc.name, e) from e
            patched.append(pvc.name)
        
        if not patched:
            logger.info(
                "No PVCs of volume %s needed patching for %s to %s, all already at or above target",
                decision.volume, decision.action.value, target,
            )
            return ExecutionResult(outcome=ExecutionOutcome.ALREADY_SATISFIED, skipped_claims=skipped)
        
        return ExecutionResult(outcome=ExecutionOutcome.APPLIED, patched_claims=patched, skipped_claims=skipped)
    
    def record(
        self,
        status: VolumeSizingStatus,
        policy: StoragePolicy,
        decision: ReconcileDecision,
        result: ExecutionResult,
        now: Optional[datetime] = None,
    ) -> VolumeSizingStatus:
        """Record an applied action: audit entry, effective size and budget use.
        
        Nothing is recorded unless at least one claim actually changed.
        
        Args:
            status: Volume status computed for this pass
            policy: Resolved storage policy of the volume
            decision: The decision that was executed
            result: What the executor did
            now: Time of the action
            
        Returns:
            The updated volume status
        """
        if result.outcome != ExecutionOutcome.APPLIED:
            return status
        
        now = now or datetime.now(timezone.utc)
        action = SizingAction(
            kind=decision.action,
            from_size=format_quantity(decision.current_size),
            to_size=format_quantity(decision.target_size),
            timestamp=now,
            instance=decision.instance_name,
            result="Success",
        )
        updated = status.model_copy(update={
            "last_action": action,
            "effective_size": format_quantity(decision.target_size),
        })
        return updated.model_copy(update={"budget": increment_budget_usage(policy, updated, now)})
