"""Exception types raised by the ECS exporter."""

from typing import Optional


class EcsExporterError(Exception):
    """Base class for all exporter errors."""
    pass


class ConfigurationError(EcsExporterError):
    """Raised when the exporter configuration is missing or invalid."""
    pass


class MetadataFetchError(EcsExporterError):
    """
    Raised when a metadata endpoint request fails.

    Covers transport errors, non-2xx responses and documents that cannot be
    decoded. Fatal to the current scrape cycle only.
    """

    def __init__(self, uri: str, message: str, status_code: Optional[int] = None):
        self.uri = uri
        self.status_code = status_code
        super().__init__(f"{uri!r}: {message}")


class ExpositionError(EcsExporterError):
    """Raised when one cycle produces conflicting values for the same series."""
    pass
