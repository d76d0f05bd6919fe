"""
ECS task metadata endpoint (v4) client.

Fetches the task metadata (``GET /task``) and task stats
(``GET /task/stats``) documents and decodes them into models.

Example:
    client = MetadataClient.from_environment()
    metadata = client.retrieve_task_metadata()
    stats = client.retrieve_task_stats()
"""
import logging
import os
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests
from pydantic import ValidationError

from ecs_exporter.errors import ConfigurationError, MetadataFetchError
from ecs_exporter.models import (
    ContainerStats,
    TaskMetadata,
    parse_task_metadata,
    parse_task_stats,
)

logger = logging.getLogger(__name__)

METADATA_URI_ENV = 'ECS_CONTAINER_METADATA_URI_V4'
DEFAULT_TIMEOUT = 5.0


def validate_endpoint(endpoint: str) -> str:
    """
    Check that the endpoint is an absolute http(s) URL.

    Returns:
        The endpoint without a trailing slash.
    """
    parsed = urlparse(endpoint)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ConfigurationError(f"can't parse {endpoint!r} as an http(s) URL")
    return endpoint.rstrip('/')


class MetadataClient:
    """Synchronous client for the ECS task metadata endpoint."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            endpoint: Metadata endpoint base URL.
            timeout: Deadline in seconds for connecting and reading each request.
            session: Optional requests session to reuse.
        """
        self.endpoint = validate_endpoint(endpoint)
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_environment(cls, timeout: float = DEFAULT_TIMEOUT) -> 'MetadataClient':
        """Build a client from ``ECS_CONTAINER_METADATA_URI_V4``."""
        endpoint = os.environ.get(METADATA_URI_ENV, '')
        if not endpoint:
            raise ConfigurationError(f"{METADATA_URI_ENV} is not set; not running on ECS?")
        return cls(endpoint, timeout=timeout)

    def retrieve_task_metadata(self) -> TaskMetadata:
        """
        Fetch task metadata.

        EC2 and Fargate return slightly different documents (only Fargate
        reports ephemeral storage); the model covers both.
        """
        uri = f"{self.endpoint}/task"
        document = self._request(uri)
        try:
            return parse_task_metadata(document)
        except ValidationError as e:
            raise MetadataFetchError(uri, f"malformed task metadata: {e}") from e

    def retrieve_task_stats(self) -> Dict[str, Optional[ContainerStats]]:
        """Fetch container stats keyed by container id."""
        uri = f"{self.endpoint}/task/stats"
        document = self._request(uri)
        try:
            return parse_task_stats(document)
        except ValueError as e:
            raise MetadataFetchError(uri, f"malformed task stats: {e}") from e

    def _request(self, uri: str) -> Any:
        try:
            response = self.session.get(uri, timeout=self.timeout)
        except requests.RequestException as e:
            raise MetadataFetchError(uri, f"request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise MetadataFetchError(
                uri,
                f"HTTP {response.status_code} {response.reason}: {response.text[:100]!r}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise MetadataFetchError(uri, f"invalid JSON: {e}") from e

    def close(self):
        """Close the underlying HTTP session."""
        self.session.close()
