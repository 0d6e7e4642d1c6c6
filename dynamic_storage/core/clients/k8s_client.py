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

"""Kubernetes API client for dynamic storage operations."""

from typing import Optional, List
from kubernetes import client, config
from kubernetes.client.rest import ApiException

CLUSTER_GROUP = "postgresql.cnpg.io"
CLUSTER_VERSION = "v1"
CLUSTER_PLURAL = "clusters"


class K8sClient:
    """Kubernetes API client for storage operations.
    
    Reads claims and cluster resources, patches claim capacity requests and
    the cluster status subresource. Automatically handles kubeconfig loading
    and in-cluster configuration.
    """
    
    def __init__(self, kubeconfig_path: Optional[str] = None, context: Optional[str] = None):
        """Initialize Kubernetes client.
        
        Args:
            kubeconfig_path: Path to kubeconfig file (default: ~/.kube/config)
            context: Kubernetes context to use (default: current context)
        """
        self.kubeconfig_path = kubeconfig_path
        self.context = context
        self._core_v1 = None
        self._custom_objects = None
        self._initialized = False
    
    def _ensure_initialized(self):
        """Lazy initialization of K8s API clients."""
        if self._initialized:
            return
        
        try:
            if self.kubeconfig_path:
                config.load_kube_config(config_file=self.kubeconfig_path, context=self.context)
            else:
                try:
                    config.load_incluster_config()
                except config.ConfigException:
                    config.load_kube_config(context=self.context)
            
            self._core_v1 = client.CoreV1Api()
            self._custom_objects = client.CustomObjectsApi()
            self._initialized = True
            
        except Exception as e:
            raise ConnectionError(f"Failed to initialize Kubernetes client: {e}")
    
    @property
    def core_v1(self) -> client.CoreV1Api:
        """Get CoreV1Api client."""
        self._ensure_initialized()
        return self._core_v1
    
    @property
    def custom_objects(self) -> client.CustomObjectsApi:
        """Get CustomObjectsApi client."""
        self._ensure_initialized()
        return self._custom_objects
    
    def list_pvcs(self, namespace: str, label_selector: Optional[str] = None) -> List[dict]:
        """List PVCs in a namespace.
        
        Args:
            namespace: Kubernetes namespace
            label_selector: Kubernetes label selector (e.g., "cnpg.io/cluster=pg")
            
        Returns:
            List of PVC dictionaries with requested and provisioned sizes
        """
        try:
            if label_selector:
                pvcs = self.core_v1.list_namespaced_persistent_volume_claim(namespace, label_selector=label_selector)
            else:
                pvcs = self.core_v1.list_namespaced_persistent_volume_claim(namespace)
            
            result = []
            for pvc in pvcs.items:
                requests = pvc.spec.resources.requests if pvc.spec.resources else None
                result.append({
                    "name": pvc.metadata.name,
                    "namespace": pvc.metadata.namespace,
                    "status": pvc.status.phase if pvc.status else None,
                    "requested": (requests or {}).get("storage"),
                    "capacity": pvc.status.capacity.get("storage") if pvc.status and pvc.status.capacity else None,
                    "storage_class": pvc.spec.storage_class_name,
                    "creation_timestamp": pvc.metadata.creation_timestamp,
                    "labels": pvc.metadata.labels or {},
                })
            return result
        except ApiException as e:
            raise RuntimeError(f"Failed to list PVCs in namespace {namespace}: {e}")
    
    def patch_pvc_storage_request(self, namespace: str, name: str, size: str) -> None:
        """Raise the storage request of a PVC.
        
        Only ``spec.resources.requests.storage`` is touched.
        
        Args:
            namespace: Kubernetes namespace
            name: PVC name
            size: New storage request (e.g., "125Gi")
        """
        body = {"spec": {"resources": {"requests": {"storage": size}}}}
        try:
            self.core_v1.patch_namespaced_persistent_volume_claim(name, namespace, body)
        except ApiException as e:
            raise RuntimeError(f"Failed to patch PVC {namespace}/{name}: {e}")
    
    def get_cluster(self, namespace: str, name: str) -> dict:
        """Get a PostgreSQL cluster resource.
        
        Args:
            namespace: Kubernetes namespace
            name: Cluster name
            
        Returns:
            The cluster object as a dictionary
        """
        try:
            return self.custom_objects.get_namespaced_custom_object(
                CLUSTER_GROUP, CLUSTER_VERSION, namespace, CLUSTER_PLURAL, name
            )
        except ApiException as e:
            raise RuntimeError(f"Failed to get cluster {namespace}/{name}: {e}")
    
    def patch_cluster_status(self, namespace: str, name: str, status: dict) -> dict:
        """Merge-patch the status subresource of a cluster.
        
        Args:
            namespace: Kubernetes namespace
            name: Cluster name
            status: Partial status to merge
            
        Returns:
            The updated cluster object
        """
        try:
            return self.custom_objects.patch_namespaced_custom_object_status(
                CLUSTER_GROUP, CLUSTER_VERSION, namespace, CLUSTER_PLURAL, name, {"status": status}
            )
        except ApiException as e:
            raise RuntimeError(f"Failed to update status of cluster {namespace}/{name}: {e}")
