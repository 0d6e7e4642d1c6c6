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

"""Tests for the command line interface."""

import json
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from dynamic_storage import cli as cli_module
from dynamic_storage.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def k8s(monkeypatch):
    client = MagicMock()
    client.get_cluster.return_value = {
        "metadata": {"name": "pg", "namespace": "db"},
        "spec": {
            "storage": {"request": "5Gi", "limit": "50Gi"},
            "walStorage": {"size": "2Gi"},
        },
        "status": {"storageSizing": {"data": {"state": "Balanced", "effectiveSize": "7Gi"}}},
    }
    client.list_pvcs.return_value = [{
        "name": "pg-1",
        "namespace": "db",
        "status": "Bound",
        "requested": "7Gi",
        "capacity": "7Gi",
        "labels": {"cnpg.io/pvcRole": "PG_DATA", "cnpg.io/instanceName": "pg-1"},
    }]
    monkeypatch.setattr(cli_module, "K8sClient", lambda **kwargs: client)
    return client


def test_effective_size(runner, k8s):
    result = runner.invoke(cli, ["effective-size", "pg", "-n", "db"])

    assert result.exit_code == 0
    assert result.output.strip() == "7Gi"


def test_effective_size_for_static_wal(runner, k8s):
    result = runner.invoke(cli, ["effective-size", "pg", "-n", "db", "--volume", "wal"])

    assert result.output.strip() == "2Gi"


def test_effective_size_requires_tablespace_name(runner, k8s):
    result = runner.invoke(cli, ["effective-size", "pg", "--volume", "tablespace"])

    assert result.exit_code == 1
    assert "--tablespace is required" in result.output


def test_status_text(runner, k8s):
    result = runner.invoke(cli, ["status", "pg", "-n", "db"])

    assert result.exit_code == 0
    assert "Storage Sizing: db/pg" in result.output
    assert "dynamic (request 5Gi, limit 50Gi)" in result.output
    assert "static (2Gi)" in result.output
    assert "pg-1" in result.output


def test_status_json(runner, k8s):
    result = runner.invoke(cli, ["status", "pg", "-n", "db", "--format", "json"])

    payload = json.loads(result.output)
    assert payload["cluster"]["status"]["storageSizing"]["data"]["effectiveSize"] == "7Gi"
    assert payload["pvcs"][0]["name"] == "pg-1"


def test_reconcile_dry_run(runner, k8s, tmp_path):
    statuses = tmp_path / "status.json"
    statuses.write_text(json.dumps({"items": [{
        "podName": "pg-1",
        "podPhase": "Running",
        "diskStatus": {
            "totalBytes": 10 * 1024 ** 3,
            "usedBytes": 9 * 1024 ** 3,
            "availableBytes": 1 * 1024 ** 3,
            "percentUsed": 90.0,
        },
    }]}))

    result = runner.invoke(cli, ["reconcile", "pg", "-n", "db", "--instance-status", str(statuses), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "Dry run: db/pg" in result.output
    assert "EmergencyGrow" in result.output
    k8s.patch_pvc_storage_request.assert_not_called()
    k8s.patch_cluster_status.assert_not_called()


def test_reconcile_rejects_malformed_status_file(runner, k8s, tmp_path):
    statuses = tmp_path / "status.json"
    statuses.write_text('"not a list"')

    result = runner.invoke(cli, ["reconcile", "pg", "--instance-status", str(statuses)])

    assert result.exit_code == 1
    assert "expected a JSON list" in result.output


def test_logs_command_shows_cli_entries(runner, k8s):
    runner.invoke(cli, ["status", "pg", "-n", "db"])

    result = runner.invoke(cli, ["logs", "--tier", "CLI"])

    assert "status" in result.output
    assert "success" in result.output
