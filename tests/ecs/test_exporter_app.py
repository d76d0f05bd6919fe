"""
Tests for the exporter HTTP app and entry point
"""
from unittest.mock import Mock, patch

import pytest
from prometheus_client import CollectorRegistry

from ecs_exporter.config import ExporterConfig
from ecs_exporter.exporter import EcsMetricsExporter, build_parser, create_app, main
from ecs_exporter.models import parse_task_metadata, parse_task_stats
from tests.fixtures import ecs_payloads


@pytest.fixture
def config():
    return ExporterConfig(metadata_uri="http://169.254.170.2/v4/abc", request_timeout=1.0)


@pytest.fixture
def exporter(config):
    exporter = EcsMetricsExporter(config, registry=CollectorRegistry(), clock_tick=100)
    exporter.client = Mock()
    exporter.collector.client = exporter.client
    exporter.client.retrieve_task_metadata.return_value = parse_task_metadata(
        ecs_payloads.task_metadata(containers=[ecs_payloads.container("c1", "app")])
    )
    exporter.client.retrieve_task_stats.return_value = parse_task_stats({
        "c1": ecs_payloads.container_stats(percpu_usage=[1000, 2000]),
    })
    return exporter


class TestCreateApp:
    """Test HTTP routes"""

    def test_health(self):
        client = create_app(CollectorRegistry()).test_client()
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_data(as_text=True) == "ok"

    def test_root_redirects_to_metrics(self):
        client = create_app(CollectorRegistry()).test_client()
        response = client.get("/")

        assert response.status_code == 301
        assert response.headers["Location"].endswith("/metrics")

    def test_metrics(self, exporter):
        response = exporter.app.test_client().get("/metrics")
        body = response.get_data(as_text=True)

        assert response.status_code == 200
        assert response.content_type.startswith("text/plain")
        assert 'ecs_container_cpu_usage_seconds_total{container_name="app",cpu="1"} 20.0' in body
        assert "ecs_task_cpu_limit_vcpus 0.5" in body


class TestEcsMetricsExporter:
    """Test exporter wiring"""

    def test_client_configuration(self, config):
        exporter = EcsMetricsExporter(config, registry=CollectorRegistry(), clock_tick=100)

        assert exporter.client.endpoint == "http://169.254.170.2/v4/abc"
        assert exporter.client.timeout == 1.0
        assert exporter.collector.engine.clock_tick == 100

    def test_stop_unregisters_collector(self, exporter):
        exporter.stop()

        assert "ecs_task_cpu_limit_vcpus" not in exporter.app.test_client().get("/metrics").get_data(as_text=True)
        exporter.client.close.assert_called_once()

    def test_stop_twice(self, exporter):
        exporter.stop()
        exporter.stop()


class TestMain:
    """Test the command line entry point"""

    @pytest.fixture(autouse=True)
    def keep_logging(self):
        with patch("ecs_exporter.exporter.configure_logging"):
            yield

    def test_parser(self):
        args = build_parser().parse_args(["--addr", ":9100", "--log-level", "DEBUG"])
        assert args.addr == ":9100"
        assert args.log_level == "DEBUG"

    def test_missing_endpoint_exits_with_error(self, monkeypatch):
        monkeypatch.delenv("ECS_CONTAINER_METADATA_URI_V4", raising=False)
        monkeypatch.delenv("ECS_EXPORTER_CONFIG_FILE", raising=False)

        with patch("ecs_exporter.exporter.load_dotenv"):
            assert main([]) == 1

    def test_invalid_addr_exits_with_error(self, metadata_uri):
        with patch("ecs_exporter.exporter.load_dotenv"):
            assert main(["--addr", "nonsense"]) == 1

    @patch("ecs_exporter.exporter.load_dotenv")
    @patch("ecs_exporter.exporter.EcsMetricsExporter")
    def test_starts_exporter(self, mock_exporter, mock_dotenv, metadata_uri, monkeypatch):
        monkeypatch.delenv("ECS_EXPORTER_PORT", raising=False)
        monkeypatch.delenv("ECS_EXPORTER_CONFIG_FILE", raising=False)

        assert main(["--addr", "127.0.0.1:9100"]) == 0

        config = mock_exporter.call_args[0][0]
        assert config.listen_host == "127.0.0.1"
        assert config.listen_port == 9100
        assert config.metadata_uri == metadata_uri
        mock_exporter.return_value.start.assert_called_once()

    @patch("ecs_exporter.exporter.load_dotenv")
    @patch("ecs_exporter.exporter.EcsMetricsExporter")
    def test_fatal_error_stops_exporter(self, mock_exporter, mock_dotenv, metadata_uri):
        mock_exporter.return_value.start.side_effect = OSError("address in use")

        assert main([]) == 1
        mock_exporter.return_value.stop.assert_called_once()
