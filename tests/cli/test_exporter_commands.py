#!/usr/bin/env python3

"""Tests for exporter CLI commands."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List

import pytest
from click.testing import CliRunner
from prometheus_client import generate_latest

from metadata_exporter.cli.exporter import commands
from metadata_exporter.cli.main import main
from metadata_exporter.collector.collector import MetadataCollector
from metadata_exporter.schemas.metrics import DEFAULT_DESCRIPTORS as D


class _FakeServer:
    """Fake metrics server for CLI tests."""

    instances: List["_FakeServer"] = []

    def __init__(self, registry: Any, bind_addr: str, metrics_path: str) -> None:
        """Record constructor args.

        Args:
            registry: Collector registry.
            bind_addr: Listen address.
            metrics_path: Metrics path.
        """
        self.registry = registry
        self.bind_addr = bind_addr
        self.metrics_path = metrics_path
        self.served = False
        _FakeServer.instances.append(self)

    def serve_until_signal(self) -> int:
        """Pretend to serve until SIGTERM."""
        self.served = True
        return 15


class _FakeCollector:
    """Collector returning canned samples."""

    def __init__(self, samples: List[Any]) -> None:
        self._samples = samples

    def samples(self) -> List[Any]:
        return self._samples

    def describe(self) -> List[Any]:
        return []

    def collect(self) -> List[Any]:
        return []


@pytest.fixture
def captured_levels(monkeypatch: pytest.MonkeyPatch) -> List[str]:
    levels: List[str] = []
    monkeypatch.setattr(
        "metadata_exporter.cli.exporter.commands.setup_logging",
        lambda level: levels.append(level),
    )
    return levels


@pytest.fixture
def fake_server(monkeypatch: pytest.MonkeyPatch) -> type:
    _FakeServer.instances = []
    monkeypatch.setattr("metadata_exporter.cli.exporter.commands.MetricsServer", _FakeServer)
    return _FakeServer


def test_serve_defaults(fake_server: type, captured_levels: List[str]) -> None:
    result = CliRunner().invoke(main, ["serve"])

    assert result.exit_code == 0, result.output
    server = fake_server.instances[0]
    assert server.bind_addr == ":9189"
    assert server.metrics_path == "/metrics"
    assert server.served is True
    assert captured_levels == ["info"]


def test_serve_flags_override_config_file(
    tmp_path: Path,
    fake_server: type,
    captured_levels: List[str],
) -> None:
    config_path = tmp_path / "exporter.toml"
    config_path.write_text(
        '[exporter]\nbind_addr = "127.0.0.1:9100"\nmetrics_path = "/instance-metrics"\nlog_level = "warn"\n',
        encoding="utf-8",
    )

    result = CliRunner().invoke(
        main,
        ["serve", "--config", str(config_path), "--metrics-path", "/m", "--log-level", "DEBUG"],
    )

    assert result.exit_code == 0, result.output
    server = fake_server.instances[0]
    assert server.bind_addr == "127.0.0.1:9100"
    assert server.metrics_path == "/m"
    assert captured_levels == ["debug"]


def test_serve_registers_collector(
    monkeypatch: pytest.MonkeyPatch,
    fake_server: type,
    captured_levels: List[str],
) -> None:
    built: List[Any] = []
    real_build = commands.build_collector

    def recording_build(config: Any) -> Any:
        collector = real_build(config)
        built.append(collector)
        return collector

    monkeypatch.setattr("metadata_exporter.cli.exporter.commands.build_collector", recording_build)

    result = CliRunner().invoke(main, ["serve"])

    assert result.exit_code == 0, result.output
    collector = built[0]
    assert isinstance(collector, MetadataCollector)
    assert [family.name for family in collector.describe()] == [descriptor.name for descriptor in D]
    fake_server.instances[0].registry.unregister(collector)


def test_serve_exposes_process_metrics(
    monkeypatch: pytest.MonkeyPatch,
    fake_server: type,
    captured_levels: List[str],
) -> None:
    monkeypatch.setattr(
        "metadata_exporter.cli.exporter.commands.build_collector",
        lambda _config: _FakeCollector([]),
    )

    result = CliRunner().invoke(main, ["serve"])

    assert result.exit_code == 0, result.output
    exposition = generate_latest(fake_server.instances[0].registry)
    assert b"python_info" in exposition
    if os.path.exists("/proc/self/stat"):
        assert b"process_cpu_seconds_total" in exposition


@pytest.mark.parametrize("raw, expected", [("trace", "trace"), ("PANIC", "panic")])
def test_serve_accepts_logrus_levels(
    fake_server: type,
    captured_levels: List[str],
    raw: str,
    expected: str,
) -> None:
    result = CliRunner().invoke(main, ["serve", "--log-level", raw])

    assert result.exit_code == 0, result.output
    assert captured_levels == [expected]


def test_serve_rejects_invalid_log_level(fake_server: type, captured_levels: List[str]) -> None:
    result = CliRunner().invoke(main, ["serve", "--log-level", "verbose"])

    assert result.exit_code == 2
    assert fake_server.instances == []


def test_serve_rejects_invalid_level_in_config(
    tmp_path: Path,
    fake_server: type,
    captured_levels: List[str],
) -> None:
    config_path = tmp_path / "exporter.json"
    config_path.write_text('{"log_level": "loud"}', encoding="utf-8")

    result = CliRunner().invoke(main, ["serve", "--config", str(config_path)])

    assert result.exit_code == 2
    assert "not a valid log level" in result.output


def test_scrape_prints_samples(monkeypatch: pytest.MonkeyPatch, captured_levels: List[str]) -> None:
    samples = [
        D.spot_scrape_successful.sample(1, "i-123"),
        D.spot_termination_indicator.sample(1, "terminate", "i-123"),
    ]
    captured_configs: List[Dict[str, Any]] = []

    def fake_build(config: Any) -> _FakeCollector:
        captured_configs.append({"metadata_endpoint": config.metadata_endpoint})
        return _FakeCollector(samples)

    monkeypatch.setattr("metadata_exporter.cli.exporter.commands.build_collector", fake_build)

    result = CliRunner().invoke(main, ["scrape"], env={"COLUMNS": "200"})

    assert result.exit_code == 0, result.output
    assert "aws_instance_spot_termination_imminent" in result.output
    assert "terminate" in result.output
    assert captured_configs[0]["metadata_endpoint"] == "http://169.254.169.254/latest/meta-data/"


def test_scrape_exits_non_zero_without_samples(
    monkeypatch: pytest.MonkeyPatch,
    captured_levels: List[str],
) -> None:
    monkeypatch.setattr(
        "metadata_exporter.cli.exporter.commands.build_collector",
        lambda _config: _FakeCollector([]),
    )

    result = CliRunner().invoke(main, ["scrape"])

    assert result.exit_code == 1


def test_version() -> None:
    result = CliRunner().invoke(main, ["--version"])

    assert result.exit_code == 0
    assert "metadata-exporter" in result.output
