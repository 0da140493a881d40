"""metadata-exporter command line entry."""

from __future__ import annotations

import click

from metadata_exporter import __version__
from metadata_exporter.cli.exporter.commands import scrape_command, serve_command


@click.group()
@click.version_option(__version__, prog_name="metadata-exporter")
def main() -> None:
    """AWS instance metadata exporter for Prometheus."""


main.add_command(serve_command)
main.add_command(scrape_command)


if __name__ == "__main__":
    main()
