"""
Pydantic models for ECS task metadata endpoint (v4) documents.

Two documents are decoded per scrape:
- ``GET /task``: task identity, limits and the container list (TaskMetadata)
- ``GET /task/stats``: Docker-style runtime stats keyed by container id

The CPU section of a stats record comes in two mutually exclusive shapes,
decoded into either ``PerCoreTicks`` or ``CumulativeNanoseconds`` so the
projection rules can dispatch on the type instead of probing fields.
"""
import calendar
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

_RFC3339_PATTERN = re.compile(
    r'^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d{1,9})\d*)?([Zz]|[+-]\d{2}:\d{2})$'
)


def parse_timestamp_ns(value: Any) -> Optional[int]:
    """
    Convert an RFC 3339 timestamp into integer nanoseconds since the epoch.

    ``datetime`` only keeps microseconds, so the fractional part is taken
    straight from the string. Integers are taken as nanoseconds already.
    Empty values and the Go zero time (year 1) map to None.
    """
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid timestamp: {value!r}")
    if isinstance(value, int):
        return value if value > 0 else None
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")

    match = _RFC3339_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"invalid RFC 3339 timestamp: {value!r}")
    date_part, time_part, fraction, offset = match.groups()

    base = datetime.strptime(f"{date_part}T{time_part}", '%Y-%m-%dT%H:%M:%S')
    if base.year == 1:
        return None

    offset_seconds = 0
    if offset not in ('Z', 'z'):
        sign = 1 if offset[0] == '+' else -1
        hours, minutes = offset[1:].split(':')
        offset_seconds = sign * (int(hours) * 3600 + int(minutes) * 60)

    seconds = calendar.timegm(base.timetuple()) - offset_seconds
    nanos = int((fraction or '').ljust(9, '0'))
    return seconds * 1_000_000_000 + nanos


class Limits(BaseModel):
    """Resource limits; CPU in vCPU, memory in MiB."""
    cpu: Optional[float] = Field(None, alias='CPU')
    memory: Optional[int] = Field(None, alias='Memory')

    class Config:
        populate_by_name = True
        extra = "ignore"


class EphemeralStorage(BaseModel):
    """Fargate ephemeral storage usage, in MiB."""
    utilized: int = Field(..., alias='Utilized')
    reserved: int = Field(..., alias='Reserved')

    class Config:
        populate_by_name = True
        extra = "ignore"


class ContainerMetadata(BaseModel):
    """One container of the task as reported by ``GET /task``."""
    docker_id: str = Field(..., alias='DockerId')
    name: str = Field(..., alias='Name')
    limits: Optional[Limits] = Field(None, alias='Limits')

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def memory_limit_mib(self) -> Optional[int]:
        if self.limits is None:
            return None
        return self.limits.memory


class TaskMetadata(BaseModel):
    """Task identity and configuration as reported by ``GET /task``."""
    cluster: str = Field('', alias='Cluster')
    task_arn: str = Field('', alias='TaskARN')
    family: str = Field('', alias='Family')
    revision: str = Field('', alias='Revision')
    desired_status: str = Field('', alias='DesiredStatus')
    known_status: str = Field('', alias='KnownStatus')
    availability_zone: str = Field('', alias='AvailabilityZone')
    launch_type: str = Field('', alias='LaunchType')
    limits: Optional[Limits] = Field(None, alias='Limits')
    ephemeral_storage: Optional[EphemeralStorage] = Field(None, alias='EphemeralStorageMetrics')
    pull_started_at_ns: Optional[int] = Field(None, alias='PullStartedAt')
    pull_stopped_at_ns: Optional[int] = Field(None, alias='PullStoppedAt')
    containers: List[ContainerMetadata] = Field(default_factory=list, alias='Containers')

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator('pull_started_at_ns', 'pull_stopped_at_ns', mode='before')
    @classmethod
    def parse_pull_timestamps(cls, v: Any) -> Optional[int]:
        return parse_timestamp_ns(v)

    @field_validator('revision', mode='before')
    @classmethod
    def revision_as_string(cls, v: Any) -> Any:
        """Some agent versions report the revision as a number."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('containers', mode='before')
    @classmethod
    def null_containers(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def cpu_limit(self) -> Optional[float]:
        return self.limits.cpu if self.limits else None

    @property
    def memory_limit_mib(self) -> Optional[int]:
        return self.limits.memory if self.limits else None


class PerCoreTicks(BaseModel):
    """Per-core cumulative CPU time in clock ticks, indexed by core."""
    cores: List[int]


class CumulativeNanoseconds(BaseModel):
    """Single cumulative CPU time counter in nanoseconds."""
    total: int


CpuUsage = Union[PerCoreTicks, CumulativeNanoseconds]


class NetworkInterfaceStats(BaseModel):
    """Cumulative counters for one network interface."""
    rx_bytes: int = 0
    rx_packets: int = 0
    rx_dropped: int = 0
    rx_errors: int = 0
    tx_bytes: int = 0
    tx_packets: int = 0
    tx_dropped: int = 0
    tx_errors: int = 0

    class Config:
        extra = "ignore"


class ContainerStats(BaseModel):
    """Runtime stats for one container, already reduced to what is exported."""
    cpu: Optional[CpuUsage] = None
    memory_usage: int = 0
    memory_page_cache: int = 0
    networks: Dict[str, NetworkInterfaceStats] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, raw: Dict[str, Any]) -> 'ContainerStats':
        """
        Build from a Docker-style stats record.

        Args:
            raw: One value of the ``GET /task/stats`` mapping.

        Returns:
            ContainerStats with the CPU section decoded into its variant.
        """
        cpu_usage = (raw.get('cpu_stats') or {}).get('cpu_usage') or {}
        memory_stats = raw.get('memory_stats') or {}
        memory_breakdown = memory_stats.get('stats') or {}

        # cgroup v1 reports page cache as "cache", cgroup v2 as "file"
        page_cache = memory_breakdown.get('cache')
        if page_cache is None:
            page_cache = memory_breakdown.get('file', 0)

        return cls(
            cpu=decode_cpu_usage(cpu_usage),
            memory_usage=memory_stats.get('usage') or 0,
            memory_page_cache=page_cache or 0,
            networks=raw.get('networks') or {},
        )


def decode_cpu_usage(cpu_usage: Dict[str, Any]) -> Optional[CpuUsage]:
    """Pick the CPU variant from whichever fields the record populates."""
    per_core = cpu_usage.get('percpu_usage')
    if per_core:
        return PerCoreTicks(cores=per_core)
    total = cpu_usage.get('total_usage')
    if total is not None:
        return CumulativeNanoseconds(total=total)
    return None


def parse_task_metadata(raw: Any) -> TaskMetadata:
    """Decode a ``GET /task`` response body."""
    return TaskMetadata.model_validate(raw)


def parse_task_stats(raw: Any) -> Dict[str, Optional[ContainerStats]]:
    """
    Decode a ``GET /task/stats`` response body.

    The agent reports ``null`` for containers it has no stats for; those
    keys are kept with a None value.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"task stats must be a JSON object, got {type(raw).__name__}")
    stats: Dict[str, Optional[ContainerStats]] = {}
    for container_id, record in raw.items():
        if record is None:
            stats[container_id] = None
        elif isinstance(record, dict):
            stats[container_id] = ContainerStats.from_document(record)
        else:
            raise ValueError(f"stats for container {container_id!r} must be an object")
    return stats
