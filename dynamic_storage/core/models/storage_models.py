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

"""Data models for cluster storage configuration, claims and instance disk status."""

from datetime import datetime
from typing import Optional, List, Dict
from pydantic import Field

from .sizing_models import (
    CamelModel,
    StorageSizingStatus,
    VolumeIdentity,
    VolumeType,
    PVC_ROLE_LABEL,
    INSTANCE_NAME_LABEL,
    TABLESPACE_NAME_LABEL,
)


class EmergencyGrowConfig(CamelModel):
    """Emergency growth policy. Unset fields fall back to defaults."""

    enabled: Optional[bool] = None
    critical_threshold: Optional[int] = None  # percent used
    critical_minimum_free: Optional[str] = None  # e.g., "1Gi"
    max_actions_per_day: Optional[int] = None
    reserved_actions_for_emergency: Optional[int] = None


class MaintenanceWindowConfig(CamelModel):
    """Recurring window during which scheduled growth may run."""

    schedule: Optional[str] = None  # 6-field cron: sec min hour dom month dow
    duration: Optional[str] = None  # e.g., "2h", "90m"
    timezone: Optional[str] = None  # IANA name


class StorageConfiguration(CamelModel):
    """Storage section of a cluster spec.

    Static mode sets ``size``; dynamic mode sets both ``request`` and ``limit``.
    """

    size: Optional[str] = None
    request: Optional[str] = None
    limit: Optional[str] = None
    target_buffer: Optional[int] = None  # percent free to maintain
    storage_class: Optional[str] = None
    emergency_grow: Optional[EmergencyGrowConfig] = None
    maintenance_window: Optional[MaintenanceWindowConfig] = None

    @property
    def dynamic_sizing_enabled(self) -> bool:
        return bool(self.request) and bool(self.limit)


class TablespaceConfiguration(CamelModel):
    """A tablespace declared in the cluster spec."""

    name: str
    storage: StorageConfiguration = Field(default_factory=StorageConfiguration)


class ClusterSpec(CamelModel):
    """The parts of the cluster spec this tool reads."""

    storage: StorageConfiguration = Field(default_factory=StorageConfiguration)
    wal_storage: Optional[StorageConfiguration] = None
    tablespaces: List[TablespaceConfiguration] = Field(default_factory=list)

    def storage_for(self, volume: VolumeIdentity) -> Optional[StorageConfiguration]:
        """Return the storage configuration backing a volume, if declared."""
        if volume.volume_type == VolumeType.DATA:
            return self.storage
        if volume.volume_type == VolumeType.WAL:
            return self.wal_storage
        for tablespace in self.tablespaces:
            if tablespace.name == volume.tablespace_name:
                return tablespace.storage
        return None


class ClusterStatus(CamelModel):
    """The parts of the cluster status this tool reads and writes."""

    storage_sizing: Optional[StorageSizingStatus] = None


class Cluster(CamelModel):
    """PostgreSQL cluster resource."""

    name: str
    namespace: str
    spec: ClusterSpec = Field(default_factory=ClusterSpec)
    status: ClusterStatus = Field(default_factory=ClusterStatus)


class PVC(CamelModel):
    """Persistent Volume Claim model."""

    name: str
    namespace: str
    status: Optional[str] = None  # Bound, Pending, Lost
    requested: Optional[str] = None  # spec.resources.requests.storage
    capacity: Optional[str] = None  # status.capacity.storage
    storage_class: Optional[str] = None
    creation_timestamp: Optional[datetime] = None
    labels: Dict[str, str] = Field(default_factory=dict)

    @property
    def role(self) -> Optional[str]:
        return self.labels.get(PVC_ROLE_LABEL)

    @property
    def instance_name(self) -> Optional[str]:
        return self.labels.get(INSTANCE_NAME_LABEL)

    @property
    def tablespace_name(self) -> Optional[str]:
        return self.labels.get(TABLESPACE_NAME_LABEL)


class DiskSample(CamelModel):
    """Filesystem usage reported by one instance for one volume."""

    total_bytes: int = 0
    used_bytes: int = 0
    available_bytes: int = 0
    percent_used: float = 0.0


class InstanceStatus(CamelModel):
    """Status reported by one database instance."""

    pod_name: Optional[str] = None
    pod_phase: Optional[str] = "Running"
    disk_status: Optional[DiskSample] = None
    wal_disk_status: Optional[DiskSample] = None
    tablespace_disk_status: Dict[str, DiskSample] = Field(default_factory=dict)
    error_message: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return bool(self.pod_name) and self.pod_phase == "Running"

    def sample_for(self, volume: VolumeIdentity) -> Optional[DiskSample]:
        """Return the disk sample this instance reported for a volume."""
        if volume.volume_type == VolumeType.DATA:
            return self.disk_status
        if volume.volume_type == VolumeType.WAL:
            return self.wal_disk_status
        return self.tablespace_disk_status.get(volume.tablespace_name)
