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

"""Disk status collection across cluster instances."""

from typing import Optional, Iterable, Dict, Tuple
from ..models.storage_models import InstanceStatus, DiskSample, PVC
from ..models.sizing_models import VolumeIdentity


def collect_disk_status(
    instance_statuses: Optional[Iterable[InstanceStatus]],
    volume: VolumeIdentity,
) -> Dict[str, DiskSample]:
    """Map running instances to the disk sample they reported for a volume.

    Instances without a pod, not running, or without a sample for the
    volume are left out.

    Args:
        instance_statuses: Status reported by each instance (may be None)
        volume: Volume to collect samples for

    Returns:
        Dictionary of instance name to disk sample
    """
    samples: Dict[str, DiskSample] = {}
    for status in instance_statuses or []:
        if not status.is_running:
            continue
        sample = status.sample_for(volume)
        if sample is None:
            continue
        samples[status.pod_name] = sample
    return samples


def collect_actual_sizes(pvcs: Optional[Iterable[PVC]], volume: VolumeIdentity) -> Dict[str, str]:
    """Map instance names to the capacity of their claim for a volume.

    The provisioned capacity is preferred; the requested size is used when
    the claim has not reported a capacity yet.
    """
    sizes: Dict[str, str] = {}
    for pvc in pvcs or []:
        if not volume.matches_labels(pvc.labels):
            continue
        instance_name = pvc.instance_name
        if not instance_name:
            continue
        size = pvc.capacity or pvc.requested
        if size:
            sizes[instance_name] = size
    return sizes


def find_worst_instance(samples: Dict[str, DiskSample]) -> Optional[Tuple[str, DiskSample]]:
    """Pick the instance with the highest used bytes.

    Only samples with a nonzero total are considered. Ties go to the
    lexicographically smallest instance name.
    """
    candidates = [(name, sample) for name, sample in samples.items() if sample.total_bytes > 0]
    if not candidates:
        return None
    return min(candidates, key=lambda item: (-item[1].used_bytes, item[0]))
