"""
ECS task metadata endpoint (v4) payloads for tests.

Shapes follow the agent's ``/task`` and ``/task/stats`` responses. Builders
return fresh dicts so tests can mutate them freely.

Usage:
    >>> from tests.fixtures.ecs_payloads import task_metadata, container_stats
    >>> metadata = task_metadata(containers=[container("abc", "app")])
"""

from typing import Any, Dict, List, Optional

TASK_ARN = "arn:aws:ecs:us-east-1:123456789012:task/prom-ecs-exporter-example/4e7e0ef3fa4a4a2bb2b1a5ca2bc6cb3e"


def container(docker_id: str, name: str, memory_mib: Optional[int] = None) -> Dict[str, Any]:
    """Container entry of a ``/task`` response."""
    entry = {
        "DockerId": docker_id,
        "Name": name,
        "DockerName": f"ecs-{name}",
        "Image": "public.ecr.aws/example/app:latest",
        "KnownStatus": "RUNNING",
        "Type": "NORMAL",
    }
    if memory_mib is not None:
        entry["Limits"] = {"CPU": 0, "Memory": memory_mib}
    return entry


def task_metadata(
    containers: List[Dict[str, Any]],
    cpu: Optional[float] = 0.5,
    memory_mib: Optional[int] = 512,
    ephemeral: bool = False,
    pull_started_at: Optional[str] = None,
    pull_stopped_at: Optional[str] = None,
    launch_type: str = "FARGATE",
) -> Dict[str, Any]:
    """A ``/task`` response."""
    payload = {
        "Cluster": "arn:aws:ecs:us-east-1:123456789012:cluster/prom-ecs-exporter-example",
        "TaskARN": TASK_ARN,
        "Family": "prom-ecs-exporter-example",
        "Revision": "7",
        "DesiredStatus": "RUNNING",
        "KnownStatus": "RUNNING",
        "AvailabilityZone": "us-east-1a",
        "LaunchType": launch_type,
        "Containers": containers,
    }
    limits = {}
    if cpu is not None:
        limits["CPU"] = cpu
    if memory_mib is not None:
        limits["Memory"] = memory_mib
    if limits:
        payload["Limits"] = limits
    if ephemeral:
        payload["EphemeralStorageMetrics"] = {"Utilized": 261, "Reserved": 20496}
    if pull_started_at is not None:
        payload["PullStartedAt"] = pull_started_at
    if pull_stopped_at is not None:
        payload["PullStoppedAt"] = pull_stopped_at
    return payload


def interface(rx_bytes: int = 1000, tx_bytes: int = 2000) -> Dict[str, int]:
    """Per-interface counters of a ``/task/stats`` record."""
    return {
        "rx_bytes": rx_bytes,
        "rx_packets": 10,
        "rx_errors": 0,
        "rx_dropped": 1,
        "tx_bytes": tx_bytes,
        "tx_packets": 20,
        "tx_errors": 2,
        "tx_dropped": 0,
    }


def container_stats(
    percpu_usage: Optional[List[int]] = None,
    total_usage: Optional[int] = None,
    usage: int = 52183040,
    cache: Optional[int] = 4096,
    networks: Optional[Dict[str, Dict[str, int]]] = None,
) -> Dict[str, Any]:
    """One value of a ``/task/stats`` response."""
    cpu_usage: Dict[str, Any] = {"usage_in_kernelmode": 0, "usage_in_usermode": 0}
    if percpu_usage is not None:
        cpu_usage["percpu_usage"] = percpu_usage
    if total_usage is not None:
        cpu_usage["total_usage"] = total_usage

    memory_stats: Dict[str, Any] = {"usage": usage, "max_usage": usage, "limit": 9223372036854771712}
    if cache is not None:
        memory_stats["stats"] = {"cache": cache, "rss": usage}

    record: Dict[str, Any] = {
        "read": "2023-11-14T22:13:20.5Z",
        "cpu_stats": {"cpu_usage": cpu_usage, "online_cpus": 2},
        "memory_stats": memory_stats,
    }
    if networks is not None:
        record["networks"] = networks
    return record


def two_container_task() -> Dict[str, Any]:
    """Metadata for two containers, the first without its own memory limit."""
    return task_metadata(containers=[
        container("c1", "app"),
        container("c2", "sidecar", memory_mib=128),
    ])


def two_container_stats() -> Dict[str, Any]:
    """2 cores and 1 interface for c1; 4 cores and 2 interfaces for c2."""
    return {
        "c1": container_stats(percpu_usage=[100, 200], networks={"eth0": interface()}),
        "c2": container_stats(
            percpu_usage=[100, 200, 300, 400],
            networks={"eth0": interface(), "eth1": interface(rx_bytes=5, tx_bytes=6)},
        ),
    }
