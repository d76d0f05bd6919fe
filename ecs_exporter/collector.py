"""
Prometheus custom collector for ECS task metrics.

Each scrape fetches task metadata and stats, projects them into
observations and renders those as metric families. Nothing is kept between
scrapes.
"""
import logging
from typing import Dict, Iterable, Iterator, List

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from ecs_exporter import metrics
from ecs_exporter.errors import ExpositionError, MetadataFetchError
from ecs_exporter.metadata_client import MetadataClient
from ecs_exporter.metrics import Observation
from ecs_exporter.projection import ProjectionEngine

logger = logging.getLogger(__name__)


def collapse_observations(observations: Iterable[Observation]) -> List[Observation]:
    """
    Drop exact repeats, keeping first-seen order.

    Raises:
        ExpositionError: If the same metric and label values repeat with a
            different value.
    """
    seen: Dict[tuple, float] = {}
    collapsed = []
    for observation in observations:
        previous = seen.get(observation.key)
        if previous is None:
            seen[observation.key] = observation.value
            collapsed.append(observation)
        elif previous != observation.value:
            raise ExpositionError(
                f"conflicting values for {observation.metric.name}"
                f"{dict(zip(observation.metric.labels, observation.labels))}: "
                f"{previous} != {observation.value}"
            )
    return collapsed


def _new_family(spec: metrics.MetricSpec) -> Metric:
    if spec.kind == metrics.COUNTER:
        return CounterMetricFamily(spec.name, spec.documentation, labels=spec.labels)
    return GaugeMetricFamily(spec.name, spec.documentation, labels=spec.labels)


def render_families(observations: Iterable[Observation]) -> List[Metric]:
    """
    Group observations into metric families, in catalog order.

    Metrics that share a name (the CPU usage variants) share one family.
    """
    by_name: Dict[str, Metric] = {}
    for spec in metrics.CATALOG:
        if spec.name not in by_name:
            by_name[spec.name] = _new_family(spec)

    for observation in collapse_observations(observations):
        spec = observation.metric
        family = by_name[spec.name]
        sample_name = f"{family.name}_total" if spec.kind == metrics.COUNTER else family.name
        family.add_sample(sample_name, dict(zip(spec.labels, observation.labels)), observation.value)

    return [family for family in by_name.values() if family.samples]


class EcsCollector:
    """Collects ECS task and container metrics on every scrape."""

    def __init__(self, client: MetadataClient, engine: ProjectionEngine):
        self.client = client
        self.engine = engine

    def describe(self) -> List[Metric]:
        # No descriptors, so registering the collector never hits the endpoint
        return []

    def collect(self) -> Iterator[Metric]:
        try:
            metadata = self.client.retrieve_task_metadata()
            stats = self.client.retrieve_task_stats()
        except MetadataFetchError as e:
            logger.error(f"Failed to retrieve metadata: {e}")
            return

        observations = self.engine.project(metadata, stats)
        try:
            families = render_families(observations)
        except ExpositionError as e:
            logger.error(f"Dropping scrape for task {metadata.task_arn}: {e}")
            return

        logger.debug(
            f"Collected {len(observations)} observations for "
            f"{len(metadata.containers)} containers"
        )
        yield from families
