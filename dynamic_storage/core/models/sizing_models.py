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

"""Data models for sizing decisions and the persisted sizing status."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, List, Dict
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

# Labels set on every claim owned by a cluster
CLUSTER_LABEL = "cnpg.io/cluster"
PVC_ROLE_LABEL = "cnpg.io/pvcRole"
INSTANCE_NAME_LABEL = "cnpg.io/instanceName"
TABLESPACE_NAME_LABEL = "cnpg.io/tablespaceName"


class CamelModel(BaseModel):
    """Base model serialized with the camelCase keys used by the Cluster resource."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ActionType(str, Enum):
    """Sizing decision for one volume in one pass."""

    NOOP = "NoOp"
    EMERGENCY_GROW = "EmergencyGrow"
    SCHEDULED_GROW = "ScheduledGrow"
    PENDING_GROWTH = "PendingGrowth"

    @property
    def mutates_claims(self) -> bool:
        return self in (ActionType.EMERGENCY_GROW, ActionType.SCHEDULED_GROW)


class VolumeState(str, Enum):
    """State reported in a volume's sizing status."""

    BALANCED = "Balanced"
    EMERGENCY = "Emergency"
    RESIZING = "Resizing"
    PENDING_GROWTH = "PendingGrowth"
    AT_LIMIT = "AtLimit"
    WAITING_FOR_DISK_STATUS = "WaitingForDiskStatus"


class VolumeType(str, Enum):
    """Independently sized volume categories."""

    DATA = "data"
    WAL = "wal"
    TABLESPACE = "tablespace"


class PVCRole(str, Enum):
    """Values of the claim role label."""

    PG_DATA = "PG_DATA"
    PG_WAL = "PG_WAL"
    PG_TABLESPACE = "PG_TABLESPACE"


_ROLE_BY_VOLUME_TYPE = {
    VolumeType.DATA: PVCRole.PG_DATA,
    VolumeType.WAL: PVCRole.PG_WAL,
    VolumeType.TABLESPACE: PVCRole.PG_TABLESPACE,
}


class ExecutionOutcome(str, Enum):
    """What the action executor actually did."""

    APPLIED = "Applied"
    ALREADY_SATISFIED = "AlreadySatisfied"


class DecisionReason:
    """Reason strings attached to decisions."""

    NO_DISK_USAGE = "no disk usage reported yet"
    AT_LIMIT = "at limit"
    CRITICAL_USAGE = "critical disk usage"
    EMERGENCY_BUDGET_EXHAUSTED = "emergency budget exhausted"
    BALANCED = "balanced"
    WAITING_FOR_PVC_SIZES = "waiting for PVC size data"
    TARGET_NOT_LARGER = "target not larger than current"
    BELOW_TARGET_BUFFER = "free space below target buffer"
    WAITING_FOR_WINDOW = "waiting for maintenance window"
    PLANNED_BUDGET_EXHAUSTED = "planned budget exhausted"


class VolumeIdentity(BaseModel):
    """Identifies one logical volume: data, wal, or a named tablespace."""

    volume_type: VolumeType
    tablespace_name: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def data(cls) -> "VolumeIdentity":
        return cls(volume_type=VolumeType.DATA)

    @classmethod
    def wal(cls) -> "VolumeIdentity":
        return cls(volume_type=VolumeType.WAL)

    @classmethod
    def tablespace(cls, name: str) -> "VolumeIdentity":
        return cls(volume_type=VolumeType.TABLESPACE, tablespace_name=name)

    @property
    def pvc_role(self) -> PVCRole:
        return _ROLE_BY_VOLUME_TYPE[self.volume_type]

    def matches_labels(self, labels: Dict[str, str]) -> bool:
        """Check whether a claim with these labels backs this volume."""
        if labels.get(PVC_ROLE_LABEL) != self.pvc_role.value:
            return False
        if self.volume_type == VolumeType.TABLESPACE:
            return labels.get(TABLESPACE_NAME_LABEL) == self.tablespace_name
        return True

    def __str__(self) -> str:
        if self.volume_type == VolumeType.TABLESPACE:
            return f"tablespace/{self.tablespace_name}"
        return self.volume_type.value


class ReconcileDecision(BaseModel):
    """Outcome of evaluating one volume. Sizes are in bytes."""

    action: ActionType
    volume: VolumeIdentity
    current_size: int = 0
    target_size: int = 0
    reason: str = ""
    instance_name: Optional[str] = None


class BudgetStatus(CamelModel):
    """Rolling daily action budget."""

    actions_last24h: int = 0
    available_for_planned: int = 0
    available_for_emergency: int = 0
    budget_resets_at: Optional[datetime] = None


class SizingAction(CamelModel):
    """Audit record of the most recent real claim mutation."""

    kind: ActionType
    from_size: str = Field(alias="from")
    to_size: str = Field(alias="to")
    timestamp: datetime
    instance: Optional[str] = None
    result: str = "Success"


class VolumeSizingStatus(CamelModel):
    """Persisted sizing status of one logical volume."""

    state: Optional[VolumeState] = None
    target_size: Optional[str] = None
    effective_size: Optional[str] = None
    actual_sizes: Dict[str, str] = Field(default_factory=dict)
    next_maintenance_window: Optional[datetime] = None
    budget: Optional[BudgetStatus] = None
    last_action: Optional[SizingAction] = None


class StorageSizingStatus(CamelModel):
    """Sizing status of every managed volume of a cluster."""

    data: Optional[VolumeSizingStatus] = None
    wal: Optional[VolumeSizingStatus] = None
    tablespaces: Dict[str, VolumeSizingStatus] = Field(default_factory=dict)

    def get(self, volume: VolumeIdentity) -> Optional[VolumeSizingStatus]:
        """Return the status slot for a volume, if any."""
        if volume.volume_type == VolumeType.DATA:
            return self.data
        if volume.volume_type == VolumeType.WAL:
            return self.wal
        return self.tablespaces.get(volume.tablespace_name)

    def with_volume(self, volume: VolumeIdentity, status: VolumeSizingStatus) -> "StorageSizingStatus":
        """Return a copy with one volume's slot replaced."""
        if volume.volume_type == VolumeType.DATA:
            return self.model_copy(update={"data": status})
        if volume.volume_type == VolumeType.WAL:
            return self.model_copy(update={"wal": status})
        tablespaces = dict(self.tablespaces)
        tablespaces[volume.tablespace_name] = status
        return self.model_copy(update={"tablespaces": tablespaces})


class ExecutionResult(BaseModel):
    """Result of applying a growth decision to the volume's claims."""

    outcome: ExecutionOutcome
    patched_claims: List[str] = Field(default_factory=list)
    skipped_claims: List[str] = Field(default_factory=list)


class VolumeReconcileResult(BaseModel):
    """Everything one volume produced during a pass."""

    volume: VolumeIdentity
    status: VolumeSizingStatus
    decision: Optional[ReconcileDecision] = None
    execution: Optional[ExecutionResult] = None
    requeue_after: Optional[timedelta] = None
    error: Optional[str] = None


class ReconcileOutcome(BaseModel):
    """Combined result of one reconciliation pass over a cluster."""

    cluster: str
    namespace: str
    volumes: List[VolumeReconcileResult] = Field(default_factory=list)
    storage_sizing: Optional[StorageSizingStatus] = None
    status_updated: bool = False
    requeue_after: Optional[timedelta] = None
