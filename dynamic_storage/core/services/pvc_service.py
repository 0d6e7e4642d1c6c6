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

"""PVC operations service using K8s API."""

from typing import List
from ..clients.k8s_client import K8sClient
from ..models.storage_models import PVC
from ..models.sizing_models import CLUSTER_LABEL


class PVCService:
    """Service for PVC-related operations."""
    
    def __init__(self, k8s_client: K8sClient):
        """Initialize PVC service.
        
        Args:
            k8s_client: Kubernetes API client
        """
        self.k8s = k8s_client
    
    def list_cluster_pvcs(self, namespace: str, cluster_name: str) -> List[PVC]:
        """Get all PVCs owned by a cluster.
        
        Args:
            namespace: Kubernetes namespace
            cluster_name: Cluster whose claims to list
            
        Returns:
            List of PVC models
        """
        pvc_dicts = self.k8s.list_pvcs(namespace, label_selector=f"{CLUSTER_LABEL}={cluster_name}")
        
        return [
            PVC(
                name=pvc_dict["name"],
                namespace=pvc_dict["namespace"],
                status=pvc_dict.get("status"),
                requested=pvc_dict.get("requested"),
                capacity=pvc_dict.get("capacity"),
                storage_class=pvc_dict.get("storage_class"),
                creation_timestamp=pvc_dict.get("creation_timestamp"),
                labels=pvc_dict.get("labels") or {},
            )
            for pvc_dict in pvc_dicts
        ]
    
    def expand_pvc(self, pvc: PVC, size: str) -> PVC:
        """Raise the storage request of a PVC.
        
        Args:
            pvc: Claim to expand
            size: New storage request (e.g., "6Gi")
            
        Returns:
            The claim with its new requested size
        """
        self.k8s.patch_pvc_storage_request(pvc.namespace, pvc.name, size)
        return pvc.model_copy(update={"requested": size})
