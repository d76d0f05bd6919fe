"""
Projection of ECS task metadata and container stats into observations.

``ProjectionEngine.project`` is a pure function of the two documents fetched
in one scrape cycle. Rules run in a fixed order so output is deterministic:

1. task metadata info
2. task CPU limit
3. task memory limit
4. ephemeral storage used / allocated
5. image pull start / stop timestamps
6. container CPU usage (cumulative or per core)
7. container memory usage, limit and page cache
8. network interface counters (labeled by interface only)
"""
import logging
from typing import Dict, List, Optional

from ecs_exporter import metrics
from ecs_exporter.metrics import Observation
from ecs_exporter.models import (
    ContainerMetadata,
    ContainerStats,
    CumulativeNanoseconds,
    PerCoreTicks,
    TaskMetadata,
)

logger = logging.getLogger(__name__)

BYTES_PER_MIB = 1024 * 1024
NANOSECONDS = 1e9


class ProjectionEngine:
    """Turns one (metadata, stats) pair into a flat list of observations."""

    def __init__(self, clock_tick: int):
        """
        Args:
            clock_tick: Host clock ticks per second, used for per-core CPU
                counters reported in ticks.
        """
        if clock_tick <= 0:
            raise ValueError(f"clock_tick must be positive, got {clock_tick}")
        self.clock_tick = clock_tick

    def project(
        self,
        metadata: TaskMetadata,
        stats: Dict[str, Optional[ContainerStats]],
    ) -> List[Observation]:
        observations: List[Observation] = []
        observations.extend(self._task_observations(metadata))

        for container in metadata.containers:
            container_stats = stats.get(container.docker_id)
            if container_stats is None:
                logger.warning(f"Couldn't find container with ID {container.docker_id!r} in stats")
                continue
            observations.extend(self._cpu_observations(container, container_stats))
            observations.extend(self._memory_observations(metadata, container, container_stats))
            observations.extend(self._network_observations(container_stats))

        return observations

    def _task_observations(self, metadata: TaskMetadata) -> List[Observation]:
        observations = [
            metrics.task_metadata_info.observe(
                1.0,
                metadata.cluster,
                metadata.task_arn,
                metadata.family,
                metadata.revision,
                metadata.desired_status,
                metadata.known_status,
                metadata.availability_zone,
                metadata.launch_type,
            )
        ]

        # Task-level limits are optional on EC2, where limits may only be
        # set per container
        if metadata.cpu_limit is not None:
            observations.append(metrics.task_cpu_limit_vcpus.observe(metadata.cpu_limit))
        if metadata.memory_limit_mib is not None:
            observations.append(
                metrics.task_memory_limit_bytes.observe(metadata.memory_limit_mib * BYTES_PER_MIB)
            )

        storage = metadata.ephemeral_storage
        if storage is not None:
            observations.append(
                metrics.task_ephemeral_storage_used_bytes.observe(storage.utilized * BYTES_PER_MIB)
            )
            observations.append(
                metrics.task_ephemeral_storage_allocated_bytes.observe(storage.reserved * BYTES_PER_MIB)
            )

        if metadata.pull_started_at_ns is not None:
            observations.append(
                metrics.task_image_pull_start_timestamp_seconds.observe(
                    metadata.pull_started_at_ns / NANOSECONDS
                )
            )
        if metadata.pull_stopped_at_ns is not None:
            observations.append(
                metrics.task_image_pull_stop_timestamp_seconds.observe(
                    metadata.pull_stopped_at_ns / NANOSECONDS
                )
            )

        return observations

    def _cpu_observations(
        self,
        container: ContainerMetadata,
        stats: ContainerStats,
    ) -> List[Observation]:
        cpu = stats.cpu
        if isinstance(cpu, PerCoreTicks):
            return [
                metrics.container_cpu_usage_seconds_total_per_core.observe(
                    ticks / self.clock_tick, container.name, str(core)
                )
                for core, ticks in enumerate(cpu.cores)
            ]
        if isinstance(cpu, CumulativeNanoseconds):
            return [
                metrics.container_cpu_usage_seconds_total.observe(cpu.total * 1e-9, container.name)
            ]
        return []

    def _memory_observations(
        self,
        metadata: TaskMetadata,
        container: ContainerMetadata,
        stats: ContainerStats,
    ) -> List[Observation]:
        observations = [
            metrics.container_memory_usage_bytes.observe(stats.memory_usage, container.name),
            metrics.container_memory_page_cache_size_bytes.observe(
                stats.memory_page_cache, container.name
            ),
        ]

        limit_mib = container.memory_limit_mib
        if limit_mib is None:
            limit_mib = metadata.memory_limit_mib
        if limit_mib is None:
            logger.warning(
                f"No memory limit for container {container.docker_id!r} ({container.name}) "
                f"or its task; skipping {metrics.container_memory_limit_bytes.name}"
            )
        else:
            observations.append(
                metrics.container_memory_limit_bytes.observe(limit_mib * BYTES_PER_MIB, container.name)
            )

        return observations

    def _network_observations(self, stats: ContainerStats) -> List[Observation]:
        # Interfaces are shared across the task, so containers reporting the
        # same interface produce identical repeats
        observations = []
        for interface in sorted(stats.networks):
            net = stats.networks[interface]
            observations.extend([
                metrics.network_receive_bytes_total.observe(net.rx_bytes, interface),
                metrics.network_receive_packets_total.observe(net.rx_packets, interface),
                metrics.network_receive_dropped_total.observe(net.rx_dropped, interface),
                metrics.network_receive_errors_total.observe(net.rx_errors, interface),
                metrics.network_transmit_bytes_total.observe(net.tx_bytes, interface),
                metrics.network_transmit_packets_total.observe(net.tx_packets, interface),
                metrics.network_transmit_dropped_total.observe(net.tx_dropped, interface),
                metrics.network_transmit_errors_total.observe(net.tx_errors, interface),
            ])
        return observations
