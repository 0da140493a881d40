"""Exporter CLI commands."""

from __future__ import annotations

import logging

import click
from prometheus_client import CollectorRegistry, GCCollector, PlatformCollector, ProcessCollector
from rich.console import Console
from rich.table import Table

from metadata_exporter.collector.collector import MetadataCollector
from metadata_exporter.imds.token import TokenProvider
from metadata_exporter.log.logger import parse_level, setup_logging
from metadata_exporter.server.http import MetricsServer
from metadata_exporter.utils.load_config import ConfigError, ExporterConfig, load_exporter_config

logger = logging.getLogger(__name__)

_LEVEL_CHOICE = click.Choice(
    ["trace", "debug", "info", "warn", "warning", "error", "critical", "fatal", "panic"],
    case_sensitive=False,
)


def _resolve_config(config_path: str | None, **overrides: str | None) -> ExporterConfig:
    """Load the config file and apply CLI overrides.

    Args:
        config_path: Optional config file path.
        **overrides: CLI values; ``None`` keeps the file/default value.

    Returns:
        ExporterConfig: Effective config.
    """
    try:
        config = load_exporter_config(config_path).merged(**overrides)
        parse_level(config.log_level)
    except (ConfigError, ValueError) as exc:
        raise click.UsageError(str(exc)) from exc
    return config


def build_collector(config: ExporterConfig) -> MetadataCollector:
    """Build a collector wired to the configured endpoints.

    Args:
        config: Effective config.

    Returns:
        MetadataCollector: Collector ready to register.
    """
    token_provider = TokenProvider(
        token_endpoint=config.token_endpoint,
        ttl_seconds=config.token_ttl_seconds,
        timeout_s=config.token_timeout_s,
    )
    return MetadataCollector(
        token_provider=token_provider,
        metadata_endpoint=config.metadata_endpoint,
    )


@click.command("serve")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="配置文件路径 (toml/json)")
@click.option("--bind-addr", "bind_addr", type=str, default=None, help="bind address for the metrics server [:9189]")
@click.option("--metrics-path", "metrics_path", type=str, default=None, help="path to metrics endpoint [/metrics]")
@click.option("--log-level", "log_level", type=_LEVEL_CHOICE, default=None, help="log level [info]")
def serve_command(
    config_path: str | None,
    bind_addr: str | None,
    metrics_path: str | None,
    log_level: str | None,
) -> None:
    """Serve instance metadata gauges until interrupted.

    Args:
        config_path: Config file path.
        bind_addr: Listen address override.
        metrics_path: Metrics path override.
        log_level: Log level override.
    """
    config = _resolve_config(
        config_path,
        bind_addr=bind_addr,
        metrics_path=metrics_path,
        log_level=log_level,
    )
    setup_logging(config.log_level)
    logger.info("Starting aws-instance-metadata-exporter")

    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    GCCollector(registry=registry)
    logger.debug("registering metadata collector")
    registry.register(build_collector(config))

    try:
        server = MetricsServer(registry, bind_addr=config.bind_addr, metrics_path=config.metrics_path)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"cannot listen on {config.bind_addr}: {exc}") from exc
    server.serve_until_signal()


@click.command("scrape")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="配置文件路径 (toml/json)")
@click.option("--log-level", "log_level", type=_LEVEL_CHOICE, default=None, help="log level [info]")
def scrape_command(config_path: str | None, log_level: str | None) -> None:
    """Run one scrape cycle and print the samples.

    Args:
        config_path: Config file path.
        log_level: Log level override.
    """
    config = _resolve_config(config_path, log_level=log_level)
    setup_logging(config.log_level)

    samples = build_collector(config).samples()

    table = Table(title="instance metadata samples")
    table.add_column("metric", style="cyan")
    table.add_column("labels")
    table.add_column("value", justify="right", style="bold")
    for sample in samples:
        labels = ", ".join(f'{name}="{value}"' for name, value in sample.labels)
        table.add_row(sample.name, labels, f"{sample.value:g}")
    Console().print(table)

    if not samples:
        raise SystemExit(1)
