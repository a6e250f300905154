"""
udplat - UDP round-trip latency probe
Command line entry point for the probe client and the echo responder.
"""

import dataclasses
import logging
import re
import signal
import sys
import time
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .core.config import Config, load_config
from .core.errors import ConfigurationError, ProbeRunError
from .core.logger import level_from_name, setup_logging
from .dashboard.console import ConsoleView, format_latency
from .echo.responder import EchoResponder
from .export.csv_export import write_csv
from .export.influx import InfluxExporter
from .probe.events import NotificationChannel
from .probe.latency import LatencyProbe
from .probe.state import LatencyResult
from .probe.summary import summarize


class DurationType(click.ParamType):
    """Durations such as ``20ms``, ``1.5s`` or ``500us``; bare numbers are seconds."""
    name = "duration"

    _pattern = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*(ns|us|µs|ms|s|m|min|h)?\s*$")
    _units = {
        "ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3,
        "s": 1.0, "m": 60.0, "min": 60.0, "h": 3600.0,
    }

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)

        match = self._pattern.match(value)
        if not match:
            self.fail(f"{value!r} is not a valid duration", param, ctx)

        number, unit = match.groups()
        return float(number) * self._units[unit or "s"]


DURATION = DurationType()


def _override(section, **values):
    """Replace the config fields that were given on the command line."""
    return dataclasses.replace(section, **{k: v for k, v in values.items() if v is not None})


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.version_option(__version__, prog_name='udplat')
@click.pass_context
def main(ctx: click.Context, config: Optional[Path], verbose: bool):
    """udplat - UDP round-trip latency probe"""
    try:
        cfg = load_config(config)
        log_level = level_from_name(cfg.logging.level, verbose)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    setup_logging(cfg.logging, log_level)

    if config is not None:
        logging.info(f"Configuration loaded from {config}")

    ctx.obj = cfg


@main.command()
@click.argument('address', required=False)
@click.argument('port', type=int, required=False)
@click.option('--client-port', type=int, default=None,
              help='Local UDP port to send from (0 picks an ephemeral port)')
@click.option('--interval', '-i', type=DURATION, default=None, help='Time between probes, e.g. 20ms')
@click.option('--packet-size', '-z', type=int, default=None, help='Probe size in bytes')
@click.option('--count', '-c', type=int, default=None,
              help='Number of probes; 0 runs until interrupted with Ctrl-C')
@click.option('--grace', type=DURATION, default=None,
              help='How long to wait for late echoes after the last probe')
@click.option('--csv', 'csv_path', type=click.Path(dir_okay=False, path_type=Path), default=None,
              help='Write per-probe timings to a CSV file')
@click.option('--influx/--no-influx', default=None, help='Export results to InfluxDB')
@click.option('--quiet', '-q', is_flag=True, help='Do not render live progress')
@click.pass_obj
def client(cfg: Config, address, port, client_port, interval, packet_size, count, grace,
           csv_path, influx, quiet):
    """Probe an echo responder at ADDRESS:PORT."""
    cfg.probe = _override(
        cfg.probe,
        address=address,
        port=port,
        client_port=client_port,
        interval=interval,
        packet_size=packet_size,
        count=count,
        grace_period=grace,
        csv=str(csv_path) if csv_path is not None else None,
    )
    cfg.influxdb = _override(cfg.influxdb, enabled=influx)

    sys.exit(run_client(cfg, quiet=quiet))


@main.command()
@click.option('--port', '-p', type=int, default=None, help='UDP port to listen on')
@click.option('--bind', 'bind_address', default=None, help='Address to listen on')
@click.pass_obj
def server(cfg: Config, port, bind_address):
    """Run the echo responder."""
    cfg.echo = _override(cfg.echo, port=port, bind_address=bind_address)
    sys.exit(run_server(cfg))


def run_client(config: Config, quiet: bool = False) -> int:
    """Run one latency measurement and report it. Returns the exit status."""
    channel = NotificationChannel()
    probe = LatencyProbe(config.probe, channel)
    view = None if quiet else ConsoleView(channel)

    def cancel_handler(signum, frame):
        logging.info(f"Received signal {signum}, stopping probe...")
        probe.cancel()

    previous = {sig: signal.signal(sig, cancel_handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    if view:
        view.start()

    failed = False
    try:
        result = probe.run()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        return 1
    except ProbeRunError as e:
        logging.error(f"Measurement aborted: {e}")
        result = e.result
        failed = True
    finally:
        if view:
            view.stop()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    report(result)

    if config.probe.csv:
        try:
            write_csv(result, Path(config.probe.csv))
        except OSError as e:
            logging.error(f"Failed to write CSV: {e}")
            failed = True

    if config.influxdb.enabled:
        failed = not export_influx(config, result) or failed

    return 1 if failed else 0


def export_influx(config: Config, result: LatencyResult) -> bool:
    """Send the run to InfluxDB; failures are reported, not raised."""
    target = f"{config.probe.address}:{config.probe.port}"
    try:
        with InfluxExporter(config.influxdb, target) as exporter:
            exporter.export(result)
    except Exception as e:
        logging.error(f"Failed to export results to InfluxDB: {e}")
        return False
    return True


def report(result: LatencyResult) -> None:
    """Print the final statistics of a run."""
    summary = summarize(result)

    click.echo(f"Min latency: {format_latency(result.min_latency)}")
    click.echo(f"Average latency: {format_latency(result.average_latency)}")
    click.echo(f"Max latency: {format_latency(result.max_latency)}")
    click.echo(
        f"Packet loss: {result.loss_percent:.2f}% "
        f"({result.lost_count}/{result.sent_count})"
    )
    if summary.received:
        click.echo(
            f"p50 {format_latency(summary.p50)}  p90 {format_latency(summary.p90)}  "
            f"p99 {format_latency(summary.p99)}  stddev {format_latency(summary.stddev)}  "
            f"jitter {format_latency(summary.jitter)}"
        )
    if result.anomalies:
        click.echo(f"Discarded {result.anomalies} unexpected echoes")


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    logging.info(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def run_server(config: Config) -> int:
    """Run the echo responder until interrupted."""
    signal.signal(signal.SIGTERM, signal_handler)

    responder = EchoResponder(config.echo)
    try:
        responder.start()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        return 1

    try:
        # Keep running until interrupted
        while True:
            time.sleep(1)

    except KeyboardInterrupt:
        logging.info("Stopping echo responder...")
    finally:
        status = responder.get_status()
        responder.stop()
        logging.info(
            f"Echoed {status['packets_echoed']} packets from {status['sources']} sources"
        )

    return 0


if __name__ == '__main__':
    main()
