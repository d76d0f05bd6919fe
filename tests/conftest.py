"""
Pytest configuration and shared fixtures
"""
import pytest

from ecs_exporter.models import parse_task_metadata, parse_task_stats
from ecs_exporter.projection import ProjectionEngine
from tests.fixtures import ecs_payloads


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring running services"
    )


@pytest.fixture
def engine():
    """Projection engine with a 100 Hz clock tick"""
    return ProjectionEngine(clock_tick=100)


@pytest.fixture
def metadata_uri(monkeypatch):
    """Point the exporter at a fake metadata endpoint"""
    uri = "http://169.254.170.2/v4/4e7e0ef3-ecs"
    monkeypatch.setenv("ECS_CONTAINER_METADATA_URI_V4", uri)
    return uri


@pytest.fixture
def two_container_documents():
    """Decoded metadata and stats for the two-container fixture task"""
    return (
        parse_task_metadata(ecs_payloads.two_container_task()),
        parse_task_stats(ecs_payloads.two_container_stats()),
    )
