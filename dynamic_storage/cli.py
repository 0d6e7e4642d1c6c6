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

"""CLI interface for CNPG dynamic storage sizing."""

import sys
import json
import click
from typing import Optional, List
from tabulate import tabulate

from .core.clients.k8s_client import K8sClient
from .core.analyzers.storage_reconciler import (
    DynamicStorageReconciler,
    get_effective_size_for_new_pvc,
    managed_volumes,
)
from .core.logging_manager import get_logger
from .core.models.storage_models import Cluster, InstanceStatus, StorageConfiguration
from .core.models.sizing_models import VolumeIdentity, VolumeSizingStatus, ReconcileOutcome


def _common_options(func):
    func = click.option("--namespace", "-n", default="default", show_default=True, help="Cluster namespace")(func)
    func = click.option("--context", help="Kubernetes context to use")(func)
    func = click.option("--kubeconfig", type=click.Path(exists=True), help="Path to kubeconfig file")(func)
    return func


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """CNPG Dynamic Storage - automatic volume sizing for PostgreSQL clusters.
    
    Inspects and drives the storage sizing control loop of a cluster.
    """
    pass


@cli.command()
@click.argument("cluster_name")
@_common_options
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
def status(cluster_name: str, namespace: str, kubeconfig: Optional[str], context: Optional[str], output_format: str):
    """Show the sizing status of every volume of a cluster."""
    try:
        k8s_client = K8sClient(kubeconfig_path=kubeconfig, context=context)
        reconciler = DynamicStorageReconciler.from_k8s_client(k8s_client)
        
        cluster = reconciler.cluster_service.get_cluster(namespace, cluster_name)
        pvcs = reconciler.pvc_service.list_cluster_pvcs(namespace, cluster_name)
        
        if output_format == "json":
            payload = {
                "cluster": cluster.model_dump(by_alias=True, exclude_none=True, mode="json"),
                "pvcs": [pvc.model_dump(by_alias=True, exclude_none=True, mode="json") for pvc in pvcs],
            }
            click.echo(json.dumps(payload, indent=2))
        else:
            _print_text_status(cluster, pvcs)
        
        get_logger().log_cli_command("status", {"cluster": cluster_name, "namespace": namespace}, "success")
    
    except Exception as e:
        get_logger().log_cli_command("status", {"cluster": cluster_name, "namespace": namespace}, "failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("cluster_name")
@_common_options
@click.option(
    "--instance-status", "instance_status_file", type=click.Path(exists=True), required=True,
    help="JSON file with the status list reported by the instances",
)
@click.option("--dry-run", is_flag=True, help="Evaluate without patching claims or writing status")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
def reconcile(
    cluster_name: str,
    namespace: str,
    kubeconfig: Optional[str],
    context: Optional[str],
    instance_status_file: str,
    dry_run: bool,
    output_format: str,
):
    """Run one sizing pass over a cluster."""
    args = {"cluster": cluster_name, "namespace": namespace, "dry_run": dry_run}
    try:
        instance_statuses = _load_instance_statuses(instance_status_file)
        
        k8s_client = K8sClient(kubeconfig_path=kubeconfig, context=context)
        reconciler = DynamicStorageReconciler.from_k8s_client(k8s_client)
        
        cluster = reconciler.cluster_service.get_cluster(namespace, cluster_name)
        if not managed_volumes(cluster):
            click.echo(f"Dynamic sizing is not enabled for any volume of {namespace}/{cluster_name}")
            return
        
        outcome = reconciler.reconcile(cluster, instance_statuses, dry_run=dry_run)
        
        if output_format == "json":
            click.echo(outcome.model_dump_json(indent=2))
        else:
            _print_text_outcome(outcome, dry_run)
        
        get_logger().log_cli_command("reconcile", args, "success")
    
    except Exception as e:
        get_logger().log_cli_command("reconcile", args, "failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command("effective-size")
@click.argument("cluster_name")
@_common_options
@click.option("--volume", "volume_type", type=click.Choice(["data", "wal", "tablespace"]), default="data")
@click.option("--tablespace", help="Tablespace name (with --volume tablespace)")
def effective_size(
    cluster_name: str,
    namespace: str,
    kubeconfig: Optional[str],
    context: Optional[str],
    volume_type: str,
    tablespace: Optional[str],
):
    """Show the size a new replica's claim would be created with."""
    try:
        volume = _volume_from_options(volume_type, tablespace)
        
        k8s_client = K8sClient(kubeconfig_path=kubeconfig, context=context)
        reconciler = DynamicStorageReconciler.from_k8s_client(k8s_client)
        cluster = reconciler.cluster_service.get_cluster(namespace, cluster_name)
        
        size = get_effective_size_for_new_pvc(cluster, volume)
        if not size:
            click.echo(f"Volume {volume} is not configured for {namespace}/{cluster_name}")
            return
        
        click.echo(size)
    
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--count", default=20, show_default=True, help="Number of entries to show")
@click.option("--tier", type=click.Choice(["CORE", "CLI"]), help="Only show entries of one tier")
def logs(count: int, tier: Optional[str]):
    """Show recent operations recorded in this process."""
    entries = get_logger().get_recent_logs(count=count, tier=tier)
    if not entries:
        click.echo("No operations recorded")
        return
    
    rows = [
        [e["timestamp"], e["tier"], e["operation"], e["status"], e.get("error") or ""]
        for e in entries
    ]
    click.echo(tabulate(rows, headers=["Timestamp", "Tier", "Operation", "Status", "Error"], tablefmt="simple"))


def _load_instance_statuses(path: str) -> List[InstanceStatus]:
    """Load instance statuses from a JSON list (or an object with an ``items`` list)."""
    with open(path) as f:
        data = json.load(f)
    
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of instance statuses")
    
    return [InstanceStatus.model_validate(item) for item in data]


def _volume_from_options(volume_type: str, tablespace: Optional[str]) -> VolumeIdentity:
    if volume_type == "tablespace":
        if not tablespace:
            raise click.UsageError("--tablespace is required with --volume tablespace")
        return VolumeIdentity.tablespace(tablespace)
    if volume_type == "wal":
        return VolumeIdentity.wal()
    return VolumeIdentity.data()


def _describe_config(config: Optional[StorageConfiguration]) -> str:
    if config is None:
        return "not configured"
    if config.dynamic_sizing_enabled:
        return f"dynamic (request {config.request}, limit {config.limit})"
    return f"static ({config.size or 'unset'})"


def _print_volume_status(volume: VolumeIdentity, config: Optional[StorageConfiguration], status: Optional[VolumeSizingStatus]):
    click.echo(f"\nVolume: {volume}")
    click.echo(f"  Configuration:    {_describe_config(config)}")
    if status is None:
        click.echo("  Status:           none recorded")
        return
    
    click.echo(f"  State:            {status.state.value if status.state else 'Unknown'}")
    click.echo(f"  Target Size:      {status.target_size or '-'}")
    click.echo(f"  Effective Size:   {status.effective_size or '-'}")
    if status.next_maintenance_window:
        click.echo(f"  Next Window:      {status.next_maintenance_window.isoformat()}")
    if status.budget:
        budget = status.budget
        click.echo(
            f"  Budget:           {budget.actions_last24h} used in 24h, "
            f"{budget.available_for_planned} planned / {budget.available_for_emergency} emergency available"
        )
    if status.last_action:
        action = status.last_action
        click.echo(
            f"  Last Action:      {action.kind.value} {action.from_size} -> {action.to_size} "
            f"at {action.timestamp.isoformat()} ({action.result})"
        )
    if status.actual_sizes:
        sizes = ", ".join(f"{name}={size}" for name, size in sorted(status.actual_sizes.items()))
        click.echo(f"  Actual Sizes:     {sizes}")


def _print_text_status(cluster: Cluster, pvcs):
    """Print cluster sizing status in human-readable text format."""
    click.echo("\n" + "=" * 60)
    click.echo(f"Storage Sizing: {cluster.namespace}/{cluster.name}")
    click.echo("=" * 60)
    
    sizing = cluster.status.storage_sizing
    volumes = [VolumeIdentity.data()]
    if cluster.spec.wal_storage is not None:
        volumes.append(VolumeIdentity.wal())
    volumes.extend(VolumeIdentity.tablespace(t.name) for t in cluster.spec.tablespaces)
    
    for volume in volumes:
        _print_volume_status(volume, cluster.spec.storage_for(volume), sizing.get(volume) if sizing else None)
    
    if pvcs:
        rows = [
            [
                pvc.name,
                pvc.role or "-",
                pvc.tablespace_name or pvc.instance_name or "-",
                pvc.requested or "-",
                pvc.capacity or "-",
                pvc.status or "-",
            ]
            for pvc in pvcs
        ]
        click.echo("\n" + tabulate(
            rows,
            headers=["PVC Name", "Role", "Instance/Tablespace", "Requested", "Capacity", "Status"],
            tablefmt="simple"
        ))


def _print_text_outcome(outcome: ReconcileOutcome, dry_run: bool):
    """Print a reconciliation outcome in human-readable text format."""
    title = "Dry run" if dry_run else "Reconciled"
    click.echo(f"{title}: {outcome.namespace}/{outcome.cluster}\n")
    
    rows = []
    for result in outcome.volumes:
        decision = result.decision
        rows.append([
            str(result.volume),
            decision.action.value if decision else "-",
            result.status.state.value if result.status.state else "-",
            result.status.target_size or "-",
            decision.reason if decision else (result.error or "-"),
            ", ".join(result.execution.patched_claims) if result.execution else "",
        ])
    click.echo(tabulate(rows, headers=["Volume", "Action", "State", "Target", "Reason", "Patched"], tablefmt="simple"))
    
    if outcome.requeue_after is not None:
        click.echo(f"\nRequeue after {int(outcome.requeue_after.total_seconds())}s")
    if not outcome.status_updated:
        click.echo("\nCluster status not written")


if __name__ == "__main__":
    cli()
