"""
Main ECS exporter application.

This module wires the metadata client, projection engine and collector into
a Prometheus registry and serves it over HTTP.
"""

import argparse
import logging
import signal
import sys
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, Response, redirect
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest

from ecs_exporter import __version__
from ecs_exporter.clock_tick import CLOCK_TICK
from ecs_exporter.collector import EcsCollector
from ecs_exporter.config import ExporterConfig, load_config, parse_addr
from ecs_exporter.errors import ConfigurationError
from ecs_exporter.metadata_client import MetadataClient
from ecs_exporter.projection import ProjectionEngine

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = 'INFO'):
    """Configure root logging to stdout."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )


def create_app(registry: CollectorRegistry = REGISTRY) -> Flask:
    """
    Create the Flask app exposing ``registry``.

    Routes:
        /metrics: Prometheus text exposition
        /health: liveness check
        /: redirect to /metrics
    """
    app = Flask(__name__)

    @app.route('/metrics')
    def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)

    @app.route('/health')
    def health():
        return Response('ok', mimetype='text/plain')

    @app.route('/')
    def root():
        return redirect('/metrics', code=301)

    return app


class EcsMetricsExporter:
    """Exporter process: registers the ECS collector and serves scrapes."""

    def __init__(
        self,
        config: ExporterConfig,
        registry: CollectorRegistry = REGISTRY,
        clock_tick: int = CLOCK_TICK,
    ):
        """
        Initialize the exporter.

        Args:
            config: Validated exporter configuration
            registry: Registry the ECS collector is added to
            clock_tick: Host clock ticks per second
        """
        self.config = config
        self.registry = registry
        self.client = MetadataClient(config.metadata_uri, timeout=config.request_timeout)
        self.collector = EcsCollector(self.client, ProjectionEngine(clock_tick))
        self.registry.register(self.collector)
        self.app = create_app(self.registry)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.stop()
        sys.exit(0)

    def start(self):
        """Serve metrics until interrupted."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        logger.info(f"Starting server at {self.config.listen_host}:{self.config.listen_port}")
        self.app.run(host=self.config.listen_host, port=self.config.listen_port, threaded=True)

    def stop(self):
        """Release the metadata client and unregister the collector."""
        logger.info("Stopping ECS exporter...")
        try:
            self.registry.unregister(self.collector)
        except KeyError:
            pass
        self.client.close()
        logger.info("Exporter stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for Amazon ECS task metadata and stats',
    )
    parser.add_argument(
        '--addr',
        help='The address to listen on for HTTP requests (default :9779)',
    )
    parser.add_argument('--config-file', help='Optional YAML configuration file')
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or 'INFO')

    try:
        host, port = parse_addr(args.addr) if args.addr else (None, None)
        config = load_config(
            config_file=args.config_file,
            listen_host=host,
            listen_port=port,
            log_level=args.log_level,
        )
    except ConfigurationError as e:
        logger.error(f"Error creating client: {e}")
        return 1

    configure_logging(config.log_level)
    logger.info(f"ECS exporter v{__version__}")
    logger.info(
        f"Configuration: metadata_uri={config.metadata_uri}, "
        f"timeout={config.request_timeout}s, clock_tick={CLOCK_TICK}"
    )

    exporter = EcsMetricsExporter(config)
    try:
        exporter.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        exporter.stop()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        exporter.stop()
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
