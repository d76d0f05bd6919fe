"""
Shared test fixtures for the ECS exporter tests.

This package provides:
- ecs_payloads: Builders for ECS task metadata endpoint responses
"""

from tests.fixtures import ecs_payloads

__all__ = ['ecs_payloads']
