#!/usr/bin/env python3
"""
katsubushi-exporter Entry Point

Starts the HTTP server and the background poller.

Usage:
    python -m katsubushi_exporter.server                          # Defaults (:9298, localhost:11212)
    python -m katsubushi_exporter.server --listen-address :9100   # Custom listen address
    python -m katsubushi_exporter.server --katsubushiHost kb1     # Custom target host
    python -m katsubushi_exporter.server --metricsInterval 10     # Poll every 10 seconds
    python -m katsubushi_exporter.server --debug                  # Enable debug logging

Environment Variables:
    KATSUBUSHI_EXPORTER_LISTEN_ADDRESS   - HTTP listen address
    KATSUBUSHI_EXPORTER_METRICS_INTERVAL - Poll interval in seconds
    KATSUBUSHI_HOST                      - Target katsubushi host
    KATSUBUSHI_PORT                      - Target katsubushi port
    KATSUBUSHI_EXPORTER_TIMEOUT          - Deadline for one STATS exchange
    KATSUBUSHI_EXPORTER_PROCESS_METRICS  - Export process_* metrics (true/false)
    KATSUBUSHI_EXPORTER_DEBUG            - Enable debug mode (true/false)
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from .client.stats_client import StatsClient
from .config.settings import parse_listen_address, settings
from .metrics.gauges import GaugeRegistry
from .network.http_server import MetricsHTTPServer
from .poller import StatsPoller

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def _port(value: str) -> int:
    number = int(value)
    if not 1 <= number <= 65535:
        raise argparse.ArgumentTypeError(f"must be a port number (1-65535): {value}")
    return number


def _listen_address(value: str) -> str:
    try:
        parse_listen_address(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None
    return value


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Prometheus exporter for katsubushi",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--listen-address",
        dest="listen_address",
        type=_listen_address,
        default=settings.LISTEN_ADDRESS,
        help="The address to listen on for HTTP requests.",
    )

    parser.add_argument(
        "--metricsInterval",
        dest="metrics_interval",
        type=_positive_int,
        default=settings.METRICS_INTERVAL,
        help="Interval to scrape katsubushi stats.",
    )

    parser.add_argument(
        "--katsubushiHost",
        dest="katsubushi_host",
        type=str,
        default=settings.KATSUBUSHI_HOST,
        help="target katsubushi host.",
    )

    parser.add_argument(
        "--katsubushiPort",
        dest="katsubushi_port",
        type=_port,
        default=settings.KATSUBUSHI_PORT,
        help="target katsubushi port.",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.CONNECTION_TIMEOUT,
        help="Deadline in seconds for one STATS exchange.",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def build_exporter(args: argparse.Namespace) -> tuple:
    """
    Wire the gauges, client, poller and HTTP server together.

    Returns:
        (MetricsHTTPServer, StatsPoller)
    """
    host, port = parse_listen_address(args.listen_address)

    gauges = GaugeRegistry(process_metrics=settings.PROCESS_METRICS)
    client = StatsClient(
        host=args.katsubushi_host,
        port=args.katsubushi_port,
        timeout=args.timeout,
    )
    poller = StatsPoller(client, gauges, interval=args.metrics_interval)
    http_server = MetricsHTTPServer(gauges, host=host, port=port)

    return http_server, poller


async def run(http_server: MetricsHTTPServer, poller: StatsPoller) -> None:
    """
    Bind the HTTP server, start polling and serve until cancelled.

    The HTTP server runs in its own thread; this coroutine only waits.
    If the poller dies the endpoint keeps serving the last snapshot.

    Raises:
        OSError: if the HTTP address cannot be bound; nothing else is started
    """
    http_server.bind()
    http_server.start()
    poller.start()
    try:
        await asyncio.Event().wait()
    finally:
        await poller.stop()
        await asyncio.to_thread(http_server.stop)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the exporter."""
    args = parse_args(argv)

    setup_logging(debug=args.debug)

    http_server, poller = build_exporter(args)

    logger.info("start katsubushi exporter")
    logger.info(f"  Listen address: {args.listen_address}")
    logger.info(f"  Target: {args.katsubushi_host}:{args.katsubushi_port}")
    logger.info(f"  Metrics interval: {args.metrics_interval}s")
    logger.info(f"  Timeout: {args.timeout}s")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    main_task = loop.create_task(run(http_server, poller))

    # Register signal handlers (Unix only)
    if sys.platform != 'win32':
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, main_task.cancel)

    exit_code = 0
    try:
        loop.run_until_complete(main_task)
    except asyncio.CancelledError:
        logger.info("Shutdown requested")
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except OSError as exc:
        logger.error(f"Failed to listen on {args.listen_address}: {exc}")
        exit_code = 1
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.run_until_complete(loop.shutdown_default_executor())
        loop.close()
        asyncio.set_event_loop(None)
        logger.info("Exporter shutdown complete")

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
