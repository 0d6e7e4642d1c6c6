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

"""Tests for disk status and claim capacity collection."""

from dynamic_storage.core.analyzers.disk_status import (
    collect_actual_sizes,
    collect_disk_status,
    find_worst_instance,
)
from dynamic_storage.core.models.storage_models import InstanceStatus
from dynamic_storage.core.models.sizing_models import VolumeIdentity
from dynamic_storage.core.quantity import GI
from tests.common.factories import make_instance, make_pvc, make_sample


def test_collect_disk_status_keeps_running_instances_with_samples():
    statuses = [
        make_instance("pg-1", data=make_sample(10 * GI, 5 * GI)),
        make_instance("pg-2", data=make_sample(10 * GI, 6 * GI), phase="Pending"),
        make_instance("pg-3"),
        InstanceStatus(pod_name=None, disk_status=make_sample(10 * GI, 7 * GI)),
    ]

    samples = collect_disk_status(statuses, VolumeIdentity.data())

    assert list(samples) == ["pg-1"]
    assert samples["pg-1"].used_bytes == 5 * GI


def test_collect_disk_status_per_volume():
    statuses = [
        make_instance(
            "pg-1",
            data=make_sample(10 * GI, 1 * GI),
            wal=make_sample(4 * GI, 2 * GI),
            tablespaces={"idx": make_sample(8 * GI, 3 * GI)},
        ),
    ]

    assert collect_disk_status(statuses, VolumeIdentity.wal())["pg-1"].used_bytes == 2 * GI
    assert collect_disk_status(statuses, VolumeIdentity.tablespace("idx"))["pg-1"].used_bytes == 3 * GI
    assert collect_disk_status(statuses, VolumeIdentity.tablespace("other")) == {}
    assert collect_disk_status(None, VolumeIdentity.data()) == {}


def test_collect_actual_sizes_prefers_capacity_and_matches_volume():
    pvcs = [
        make_pvc("pg-1", "PG_DATA", "pg-1", requested="6Gi", capacity="5Gi"),
        make_pvc("pg-2", "PG_DATA", "pg-2", requested="5Gi", capacity=""),
        make_pvc("pg-1-wal", "PG_WAL", "pg-1", requested="2Gi"),
        make_pvc("pg-1-tbs-idx", "PG_TABLESPACE", "pg-1", requested="3Gi", tablespace="idx"),
    ]

    assert collect_actual_sizes(pvcs, VolumeIdentity.data()) == {"pg-1": "5Gi", "pg-2": "5Gi"}
    assert collect_actual_sizes(pvcs, VolumeIdentity.wal()) == {"pg-1": "2Gi"}
    assert collect_actual_sizes(pvcs, VolumeIdentity.tablespace("idx")) == {"pg-1": "3Gi"}


def test_collect_actual_sizes_ignores_claims_without_instance_label():
    pvc = make_pvc("orphan", "PG_DATA", "pg-1", requested="5Gi")
    pvc.labels.pop("cnpg.io/instanceName")

    assert collect_actual_sizes([pvc], VolumeIdentity.data()) == {}


def test_find_worst_instance_picks_most_used_bytes():
    samples = {
        "pg-1": make_sample(100 * GI, 40 * GI),
        "pg-2": make_sample(50 * GI, 45 * GI),
        "pg-3": make_sample(200 * GI, 60 * GI),
    }

    name, sample = find_worst_instance(samples)

    assert name == "pg-3"
    assert sample.used_bytes == 60 * GI


def test_find_worst_instance_breaks_ties_by_name():
    samples = {
        "pg-b": make_sample(100 * GI, 40 * GI),
        "pg-a": make_sample(80 * GI, 40 * GI),
        "pg-c": make_sample(100 * GI, 40 * GI),
    }

    assert find_worst_instance(samples)[0] == "pg-a"


def test_find_worst_instance_skips_empty_samples():
    assert find_worst_instance({}) is None
    assert find_worst_instance({"pg-1": make_sample(0, 0)}) is None
