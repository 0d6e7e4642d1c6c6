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

"""Builders for models used across tests."""

from dynamic_storage.core.models.storage_models import (
    Cluster,
    ClusterStatus,
    ClusterSpec,
    DiskSample,
    EmergencyGrowConfig,
    InstanceStatus,
    PVC,
    StorageConfiguration,
)
from dynamic_storage.core.models.sizing_models import (
    INSTANCE_NAME_LABEL,
    PVC_ROLE_LABEL,
    TABLESPACE_NAME_LABEL,
)
from dynamic_storage.core.quantity import KI

# statfs reports about 4.84Gi for a 5Gi claim because of filesystem metadata
FILESYSTEM_TOTAL_5GI = 5074592 * KI


def make_sample(total_bytes: int, used_bytes: int) -> DiskSample:
    return DiskSample(
        total_bytes=total_bytes,
        used_bytes=used_bytes,
        available_bytes=total_bytes - used_bytes,
        percent_used=used_bytes / total_bytes * 100 if total_bytes else 0.0,
    )


def make_instance(name: str, data=None, wal=None, tablespaces=None, phase="Running") -> InstanceStatus:
    return InstanceStatus(
        pod_name=name,
        pod_phase=phase,
        disk_status=data,
        wal_disk_status=wal,
        tablespace_disk_status=tablespaces or {},
    )


def make_pvc(name: str, role: str, instance: str, requested: str, capacity=None, tablespace=None) -> PVC:
    labels = {
        "cnpg.io/cluster": "pg",
        PVC_ROLE_LABEL: role,
        INSTANCE_NAME_LABEL: instance,
    }
    if tablespace:
        labels[TABLESPACE_NAME_LABEL] = tablespace
    return PVC(
        name=name,
        namespace="db",
        status="Bound",
        requested=requested,
        capacity=capacity if capacity is not None else requested,
        labels=labels,
    )


def dynamic_config(request="5Gi", limit="200Gi", target_buffer=20, **kwargs) -> StorageConfiguration:
    return StorageConfiguration(request=request, limit=limit, target_buffer=target_buffer, **kwargs)


def relaxed_emergency() -> EmergencyGrowConfig:
    """Emergency thresholds that small test volumes do not trip."""
    return EmergencyGrowConfig(critical_threshold=99, critical_minimum_free="100Mi")


def make_cluster(storage=None, wal_storage=None, tablespaces=None, status=None) -> Cluster:
    spec = ClusterSpec(
        storage=storage or StorageConfiguration(size="10Gi"),
        wal_storage=wal_storage,
        tablespaces=tablespaces or [],
    )
    return Cluster(name="pg", namespace="db", spec=spec, status=ClusterStatus(storage_sizing=status))


