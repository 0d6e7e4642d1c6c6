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

"""Cluster resource operations service."""

from ..clients.k8s_client import K8sClient
from ..models.storage_models import Cluster, ClusterSpec, ClusterStatus
from ..models.sizing_models import StorageSizingStatus


class ClusterService:
    """Read cluster resources and persist their storage sizing status."""
    
    def __init__(self, k8s_client: K8sClient):
        """Initialize cluster service.
        
        Args:
            k8s_client: Kubernetes API client
        """
        self.k8s = k8s_client
    
    def get_cluster(self, namespace: str, name: str) -> Cluster:
        """Get a cluster with its storage spec and sizing status.
        
        Args:
            namespace: Kubernetes namespace
            name: Cluster name
            
        Returns:
            Cluster model
        """
        obj = self.k8s.get_cluster(namespace, name)
        return self.cluster_from_dict(obj)
    
    @staticmethod
    def cluster_from_dict(obj: dict) -> Cluster:
        """Build a Cluster model from a raw cluster object."""
        metadata = obj.get("metadata") or {}
        return Cluster(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            spec=ClusterSpec.model_validate(obj.get("spec") or {}),
            status=ClusterStatus.model_validate(obj.get("status") or {}),
        )
    
    def update_storage_sizing(self, cluster: Cluster, storage_sizing: StorageSizingStatus) -> None:
        """Write the storage sizing status of a cluster.
        
        Args:
            cluster: Cluster to update
            storage_sizing: Combined status of every managed volume
        """
        payload = storage_sizing.model_dump(by_alias=True, exclude_none=True, mode="json")
        self.k8s.patch_cluster_status(cluster.namespace, cluster.name, {"storageSizing": payload})
