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

"""Storage reconciler - runs one sizing pass over every managed volume of a cluster."""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Iterable

from ..services.pvc_service import PVCService
from ..services.cluster_service import ClusterService
from ..services.action_executor import ActionExecutor, ClaimPatchError
from ..clients.k8s_client import K8sClient
from ..config import SizingDefaults, StoragePolicy
from ..logging_manager import StructuredLogger, get_logger
from ..models.storage_models import (
    Cluster,
    InstanceStatus,
    PVC,
    StorageConfiguration,
)
from ..models.sizing_models import (
    ActionType,
    DecisionReason,
    ReconcileDecision,
    ReconcileOutcome,
    StorageSizingStatus,
    VolumeIdentity,
    VolumeReconcileResult,
    VolumeSizingStatus,
    VolumeState,
)
from ..quantity import format_quantity
from .budget import calculate_budget
from .disk_status import collect_disk_status, collect_actual_sizes
from .evaluator import SizingEvaluator
from .maintenance import MaintenanceWindowClock

logger = logging.getLogger(__name__)


def volume_state_for(decision: ReconcileDecision) -> VolumeState:
    """Map a decision to the state reported in the volume status."""
    if decision.action == ActionType.EMERGENCY_GROW:
        return VolumeState.EMERGENCY
    if decision.action == ActionType.SCHEDULED_GROW:
        return VolumeState.RESIZING
    if decision.action == ActionType.PENDING_GROWTH:
        return VolumeState.PENDING_GROWTH
    if decision.reason == DecisionReason.AT_LIMIT:
        return VolumeState.AT_LIMIT
    return VolumeState.BALANCED


def managed_volumes(cluster: Cluster) -> List[VolumeIdentity]:
    """List the volumes of a cluster that have dynamic sizing enabled.

    Args:
        cluster: Cluster resource

    Returns:
        Data volume first, then the WAL volume, then tablespaces in spec order
    """
    volumes = []
    spec = cluster.spec
    if spec.storage.dynamic_sizing_enabled:
        volumes.append(VolumeIdentity.data())
    if spec.wal_storage is not None and spec.wal_storage.dynamic_sizing_enabled:
        volumes.append(VolumeIdentity.wal())
    for tablespace in spec.tablespaces:
        if tablespace.storage.dynamic_sizing_enabled:
            volumes.append(VolumeIdentity.tablespace(tablespace.name))
    return volumes


def get_effective_size_for_new_pvc(cluster: Cluster, volume: VolumeIdentity) -> str:
    """Return the size a newly created claim of a volume should request.

    Static mode uses ``size``. Dynamic mode uses the effective size recorded
    after the last growth, falling back to ``request`` before any growth.

    Args:
        cluster: Cluster resource
        volume: Volume the new claim belongs to

    Returns:
        Quantity string, empty when the volume has no storage configuration
    """
    config = cluster.spec.storage_for(volume)
    if config is None:
        return ""

    if not config.dynamic_sizing_enabled:
        return config.size or ""

    sizing = cluster.status.storage_sizing
    status = sizing.get(volume) if sizing else None
    if status is not None and status.effective_size:
        return status.effective_size

    return config.request


class DynamicStorageReconciler:
    """Evaluate, act on and record the sizing of every managed volume."""
    
    def __init__(
        self,
        pvc_service: PVCService,
        cluster_service: ClusterService,
        evaluator: Optional[SizingEvaluator] = None,
        executor: Optional[ActionExecutor] = None,
        defaults: Optional[SizingDefaults] = None,
        structured_log: Optional[StructuredLogger] = None,
    ):
        """Initialize storage reconciler.
        
        Args:
            pvc_service: Claim operations service
            cluster_service: Cluster resource service
            evaluator: Sizing evaluator (built from defaults when omitted)
            executor: Action executor (built from pvc_service when omitted)
            defaults: Default policy values
            structured_log: Operation log (global instance when omitted)
        """
        self.pvc_service = pvc_service
        self.cluster_service = cluster_service
        self.defaults = defaults or SizingDefaults()
        self.clock = MaintenanceWindowClock(self.defaults)
        self.evaluator = evaluator or SizingEvaluator(self.defaults, self.clock)
        self.executor = executor or ActionExecutor(pvc_service)
        self.structured_log = structured_log or get_logger()
    
    @classmethod
    def from_k8s_client(
        cls,
        k8s_client: K8sClient,
        defaults: Optional[SizingDefaults] = None,
        structured_log: Optional[StructuredLogger] = None,
    ) -> "DynamicStorageReconciler":
        """Create reconciler from K8s client (convenience factory).
        
        Args:
            k8s_client: Kubernetes API client
            defaults: Default policy values
            structured_log: Operation log
            
        Returns:
            Configured DynamicStorageReconciler instance
        """
        return cls(
            pvc_service=PVCService(k8s_client),
            cluster_service=ClusterService(k8s_client),
            defaults=defaults,
            structured_log=structured_log,
        )
    
    def reconcile(
        self,
        cluster: Cluster,
        instance_statuses: Optional[Iterable[InstanceStatus]],
        pvcs: Optional[List[PVC]] = None,
        now: Optional[datetime] = None,
        dry_run: bool = False,
    ) -> ReconcileOutcome:
        """Run one sizing pass over a cluster.
        
        Every volume is processed independently. A claim patch failure on
        one volume leaves that volume's persisted status untouched while the
        others complete; the combined status is written once and the first
        patch error is raised afterwards.
        
        Args:
            cluster: Cluster resource
            instance_statuses: Status reported by each instance
            pvcs: Claims of the cluster (listed from the API when omitted)
            now: Evaluation time
            dry_run: Evaluate without patching claims or writing status
            
        Returns:
            Combined outcome of the pass
            
        Raises:
            ClaimPatchError: If patching a claim failed
            RuntimeError: If writing the cluster status failed
        """
        now = now or datetime.now(timezone.utc)
        outcome = ReconcileOutcome(cluster=cluster.name, namespace=cluster.namespace)
        
        volumes = managed_volumes(cluster)
        if not volumes:
            logger.debug("Dynamic sizing not enabled for any volume of cluster %s/%s", cluster.namespace, cluster.name)
            return outcome
        
        instance_statuses = list(instance_statuses or [])
        if pvcs is None:
            pvcs = self.pvc_service.list_cluster_pvcs(cluster.namespace, cluster.name)
        
        storage_sizing = cluster.status.storage_sizing or StorageSizingStatus()
        first_error: Optional[ClaimPatchError] = None
        
        for volume in volumes:
            config = cluster.spec.storage_for(volume)
            try:
                result = self.reconcile_volume(
                    cluster, volume, config, storage_sizing.get(volume),
                    instance_statuses, pvcs, now, dry_run,
                )
            except ClaimPatchError as e:
                logger.error("Failed to resize volume %s of cluster %s/%s: %s", volume, cluster.namespace, cluster.name, e)
                first_error = first_error or e
                outcome.volumes.append(VolumeReconcileResult(
                    volume=volume,
                    status=storage_sizing.get(volume) or VolumeSizingStatus(),
                    error=str(e),
                ))
                continue
            
            if result is None:
                continue
            
            outcome.volumes.append(result)
            storage_sizing = storage_sizing.with_volume(volume, result.status)
            if result.requeue_after is not None:
                outcome.requeue_after = min(outcome.requeue_after or result.requeue_after, result.requeue_after)
        
        outcome.storage_sizing = storage_sizing
        if outcome.volumes and not dry_run:
            self.cluster_service.update_storage_sizing(cluster, storage_sizing)
            outcome.status_updated = True
        
        if first_error is not None:
            raise first_error
        
        return outcome
    
    def reconcile_volume(
        self,
        cluster: Cluster,
        volume: VolumeIdentity,
        config: StorageConfiguration,
        status: Optional[VolumeSizingStatus],
        instance_statuses: List[InstanceStatus],
        pvcs: List[PVC],
        now: datetime,
        dry_run: bool = False,
    ) -> Optional[VolumeReconcileResult]:
        """Run collector, evaluator and executor for one volume.
        
        Args:
            cluster: Cluster resource
            volume: Volume to process
            config: Storage configuration of the volume
            status: Persisted sizing status of the volume (may be None)
            instance_statuses: Status reported by each instance
            pvcs: Claims of the cluster
            now: Evaluation time
            dry_run: Skip claim patching
            
        Returns:
            Result for the volume, None when there are no instances yet
            
        Raises:
            ClaimPatchError: If patching a claim failed
        """
        status = status or VolumeSizingStatus()
        samples = collect_disk_status(instance_statuses, volume)
        
        if not samples:
            if not instance_statuses:
                logger.debug("No instances available for disk status collection of volume %s", volume)
                return None
            for instance in instance_statuses:
                logger.info(
                    "Instance %s has no disk status for volume %s (phase=%s, error=%s)",
                    instance.pod_name or "unknown", volume, instance.pod_phase, instance.error_message or "",
                )
            return VolumeReconcileResult(
                volume=volume,
                status=status.model_copy(update={"state": VolumeState.WAITING_FOR_DISK_STATUS}),
                requeue_after=self.defaults.disk_status_requeue_after,
            )
        
        actual_sizes = collect_actual_sizes(pvcs, volume)
        decision = self.evaluator.evaluate(volume, config, status, samples, actual_sizes, now)
        self.structured_log.log_sizing_decision(cluster.name, cluster.namespace, decision)
        logger.info(
            "Sizing decision for volume %s of cluster %s/%s: %s (%s)",
            volume, cluster.namespace, cluster.name, decision.action.value, decision.reason,
        )
        
        policy = StoragePolicy(config, self.defaults)
        new_status = self._build_status(policy, status, decision, actual_sizes, now)
        
        if not decision.action.mutates_claims or dry_run:
            return VolumeReconcileResult(volume=volume, status=new_status, decision=decision)
        
        try:
            execution = self.executor.execute(decision, pvcs)
        except ClaimPatchError as e:
            self.structured_log.log_resize_action(cluster.name, cluster.namespace, decision, error=str(e))
            raise
        
        self.structured_log.log_resize_action(cluster.name, cluster.namespace, decision, result=execution)
        new_status = self.executor.record(new_status, policy, decision, execution, now)
        logger.info(
            "Dynamic storage action %s on volume %s: %s -> %s (%s)",
            decision.action.value, volume,
            format_quantity(decision.current_size), format_quantity(decision.target_size),
            execution.outcome.value,
        )
        return VolumeReconcileResult(volume=volume, status=new_status, decision=decision, execution=execution)
    
    def _build_status(
        self,
        policy: StoragePolicy,
        status: VolumeSizingStatus,
        decision: ReconcileDecision,
        actual_sizes: dict,
        now: datetime,
    ) -> VolumeSizingStatus:
        update = {
            "state": volume_state_for(decision),
            "budget": calculate_budget(policy, status, now),
        }
        if decision.target_size:
            update["target_size"] = format_quantity(decision.target_size)
        if decision.action == ActionType.PENDING_GROWTH:
            update["next_maintenance_window"] = self.clock.next_window_start(policy.config, now)
        if actual_sizes:
            update["actual_sizes"] = dict(actual_sizes)
        return status.model_copy(update=update)
