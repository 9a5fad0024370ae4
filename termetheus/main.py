"""Main entry point for the terminal Prometheus chart."""
import argparse
import logging
import sys

from termetheus.config import load_config
from termetheus.errors import EmptyDataError, FetchError, ParseError, TerminalIOError
from termetheus.prometheus import PrometheusClient
from termetheus.self_metrics import SelfMetrics, start_metrics_server
from termetheus import ui


def setup_logging(log_level: str, log_format: str, log_file: str = None):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    # No JSON formatter in the stack; both formats share the structured text layout
    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        filename=log_file,
    )

    # Reduce noise from some libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="termetheus",
        description="Chart the last hour of a Prometheus query in the terminal. Press q to quit."
    )
    parser.add_argument("base_url", help="Prometheus base URL, e.g. http://localhost:9090")
    parser.add_argument("query", help="PromQL expression to chart")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to an optional configuration YAML file"
    )
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    parser.add_argument("--tick-ms", type=int, help="Redraw interval in milliseconds")
    parser.add_argument("--title", help="Chart title (defaults to the query)")
    return parser


def main(argv=None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.base_url, args.query, args.config)
        if args.log_level:
            config.global_.log_level = args.log_level
        if args.log_file:
            config.global_.log_file = args.log_file
        if args.tick_ms is not None:
            if args.tick_ms <= 0:
                raise ValueError("--tick-ms must be positive")
            config.ui.tick_interval_ms = args.tick_ms
        if args.title:
            config.ui.title = args.title
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    # Setup logging
    setup_logging(config.global_.log_level, config.global_.log_format, config.global_.log_file)
    logger = logging.getLogger(__name__)

    logger.info(f"Backend: {config.prometheus.base_url}")
    logger.info(f"Query: {config.prometheus.query}")
    logger.info(f"Tick interval: {config.ui.tick_interval_ms}ms")

    metrics = SelfMetrics()
    if config.global_.metrics_port:
        try:
            start_metrics_server(config.global_.metrics_port, metrics)
        except OSError as e:
            print(f"Error starting self-metrics server: {e}", file=sys.stderr)
            return 1

    client = PrometheusClient(config.prometheus, metrics=metrics)
    try:
        result = client.fetch_last_hour()
    except FetchError as e:
        print(f"Error fetching metrics: {e}", file=sys.stderr)
        return 1

    try:
        ui.run(result, config, metrics=metrics)
    except (ParseError, EmptyDataError) as e:
        logger.error(f"Cannot chart query result: {e}")
        print(f"Error rendering chart: {e}", file=sys.stderr)
        return 1
    except TerminalIOError as e:
        logger.error(f"Terminal error: {e}", exc_info=True)
        print(f"Terminal error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
        return 130

    logger.info("Exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
