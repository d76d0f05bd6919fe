"""
ECS Task Metrics Exporter for Prometheus

Reads task metadata and container statistics from the Amazon ECS task
metadata endpoint (v4) and exposes them as Prometheus metrics.
"""

__version__ = "1.0.0"
