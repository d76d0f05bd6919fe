"""
Prometheus metric definitions for ECS task and container statistics.

Every metric the exporter can emit is declared here exactly once, with a
fixed label ordering. Observations are only built through
``MetricSpec.observe`` so label values always line up with label names.
"""
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Tuple

GAUGE = 'gauge'
COUNTER = 'counter'


@dataclass(frozen=True)
class MetricSpec:
    """Identity of one exported metric."""
    name: str
    documentation: str
    kind: str
    labels: Tuple[str, ...] = ()

    def observe(self, value: float, *label_values: str) -> 'Observation':
        """
        Build an observation for this metric.

        Raises:
            ValueError: If the number of label values does not match.
        """
        if len(label_values) != len(self.labels):
            raise ValueError(
                f"{self.name} expects labels {self.labels}, got {len(label_values)} values"
            )
        return Observation(self, tuple(str(v) for v in label_values), float(value))


class Observation(NamedTuple):
    """One sample: metric identity, label values (positional) and value."""
    metric: MetricSpec
    labels: Tuple[str, ...]
    value: float

    @property
    def key(self) -> Tuple[MetricSpec, Tuple[str, ...]]:
        return self.metric, self.labels


TASK_METADATA_LABELS = (
    'cluster',
    'task_arn',
    'family',
    'revision',
    'desired_status',
    'known_status',
    'availability_zone',
    'launch_type',
)
CONTAINER_LABELS = ('container_name',)
CPU_LABELS = CONTAINER_LABELS + ('cpu',)
NETWORK_LABELS = ('interface',)


# Task metadata, exposed as an info-style gauge that is always 1
task_metadata_info = MetricSpec(
    'ecs_task_metadata_info',
    'ECS task metadata, sourced from the task metadata endpoint version 4.',
    GAUGE,
    TASK_METADATA_LABELS,
)

# Task limits
task_cpu_limit_vcpus = MetricSpec(
    'ecs_task_cpu_limit_vcpus',
    'Configured task CPU limit in vCPUs (1 vCPU = 1024 CPU units).',
    GAUGE,
)

task_memory_limit_bytes = MetricSpec(
    'ecs_task_memory_limit_bytes',
    'Configured task memory limit in bytes.',
    GAUGE,
)

# Ephemeral storage (Fargate only)
task_ephemeral_storage_used_bytes = MetricSpec(
    'ecs_task_ephemeral_storage_used_bytes',
    'Current Fargate task ephemeral storage usage in bytes.',
    GAUGE,
)

task_ephemeral_storage_allocated_bytes = MetricSpec(
    'ecs_task_ephemeral_storage_allocated_bytes',
    'Configured Fargate task ephemeral storage allocated size in bytes.',
    GAUGE,
)

# Image pull timestamps
task_image_pull_start_timestamp_seconds = MetricSpec(
    'ecs_task_image_pull_start_timestamp_seconds',
    'The time at which the task started pulling docker images for its containers.',
    GAUGE,
)

task_image_pull_stop_timestamp_seconds = MetricSpec(
    'ecs_task_image_pull_stop_timestamp_seconds',
    'The time at which the task stopped (i.e. completed) pulling docker images for its containers.',
    GAUGE,
)

# CPU: one series per container, or one per container and core
container_cpu_usage_seconds_total = MetricSpec(
    'ecs_container_cpu_usage_seconds_total',
    'Cumulative total container CPU usage in seconds.',
    COUNTER,
    CONTAINER_LABELS,
)

container_cpu_usage_seconds_total_per_core = MetricSpec(
    'ecs_container_cpu_usage_seconds_total',
    'Cumulative total container CPU usage in seconds.',
    COUNTER,
    CPU_LABELS,
)

# Memory
container_memory_usage_bytes = MetricSpec(
    'ecs_container_memory_usage_bytes',
    'Current container memory usage in bytes.',
    GAUGE,
    CONTAINER_LABELS,
)

container_memory_limit_bytes = MetricSpec(
    'ecs_container_memory_limit_bytes',
    'Configured container memory limit in bytes, set from the container-level '
    'limit in the task definition if any, otherwise the task-level limit.',
    GAUGE,
    CONTAINER_LABELS,
)

container_memory_page_cache_size_bytes = MetricSpec(
    'ecs_container_memory_page_cache_size_bytes',
    'Current container memory page cache size in bytes.',
    GAUGE,
    CONTAINER_LABELS,
)

# Network, labeled by interface only: every container in the task shares
# the task's network namespace
network_receive_bytes_total = MetricSpec(
    'ecs_network_receive_bytes_total',
    'Cumulative total size of network packets received in bytes.',
    COUNTER,
    NETWORK_LABELS,
)

network_receive_packets_total = MetricSpec(
    'ecs_network_receive_packets_total',
    'Cumulative total count of network packets received.',
    COUNTER,
    NETWORK_LABELS,
)

network_receive_dropped_total = MetricSpec(
    'ecs_network_receive_dropped_total',
    'Cumulative total count of network packets dropped in receiving.',
    COUNTER,
    NETWORK_LABELS,
)

network_receive_errors_total = MetricSpec(
    'ecs_network_receive_errors_total',
    'Cumulative total count of network errors in receiving.',
    COUNTER,
    NETWORK_LABELS,
)

network_transmit_bytes_total = MetricSpec(
    'ecs_network_transmit_bytes_total',
    'Cumulative total size of network packets transmitted in bytes.',
    COUNTER,
    NETWORK_LABELS,
)

network_transmit_packets_total = MetricSpec(
    'ecs_network_transmit_packets_total',
    'Cumulative total count of network packets transmitted.',
    COUNTER,
    NETWORK_LABELS,
)

network_transmit_dropped_total = MetricSpec(
    'ecs_network_transmit_dropped_total',
    'Cumulative total count of network packets dropped in transmit.',
    COUNTER,
    NETWORK_LABELS,
)

network_transmit_errors_total = MetricSpec(
    'ecs_network_transmit_errors_total',
    'Cumulative total count of network errors in transmit.',
    COUNTER,
    NETWORK_LABELS,
)


# Exposition order
CATALOG: Tuple[MetricSpec, ...] = (
    task_metadata_info,
    task_cpu_limit_vcpus,
    task_memory_limit_bytes,
    task_ephemeral_storage_used_bytes,
    task_ephemeral_storage_allocated_bytes,
    task_image_pull_start_timestamp_seconds,
    task_image_pull_stop_timestamp_seconds,
    container_cpu_usage_seconds_total,
    container_cpu_usage_seconds_total_per_core,
    container_memory_usage_bytes,
    container_memory_limit_bytes,
    container_memory_page_cache_size_bytes,
    network_receive_bytes_total,
    network_receive_packets_total,
    network_receive_dropped_total,
    network_receive_errors_total,
    network_transmit_bytes_total,
    network_transmit_packets_total,
    network_transmit_dropped_total,
    network_transmit_errors_total,
)

_BY_NAME: Dict[Tuple[str, Tuple[str, ...]], MetricSpec] = {
    (spec.name, spec.labels): spec for spec in CATALOG
}


def lookup(name: str, labels: Optional[Tuple[str, ...]] = None) -> MetricSpec:
    """
    Find a catalog entry by metric name.

    Args:
        name: Metric name.
        labels: Label names, needed only to pick between entries that
            share a name (the two CPU usage variants).

    Raises:
        KeyError: If no entry matches, or the name is ambiguous.
    """
    if labels is not None:
        return _BY_NAME[(name, tuple(labels))]
    matches = [spec for spec in CATALOG if spec.name == name]
    if len(matches) != 1:
        raise KeyError(name)
    return matches[0]
