"""Command-line entry point: ``python -m netobservpy --config config.yaml``."""

import argparse
import logging
import sys

from netobservpy.adapters.frameworks.asgi import create_app
from netobservpy.adapters.storage.in_memory import InMemoryMetricsStorage
from netobservpy.config import load_config
from netobservpy.core.errors import ConfigurationError

logger = logging.getLogger("netobservpy")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="netobservpy",
        description="Query proxy between the network observability console and Loki/Prometheus.",
    )
    parser.add_argument("--config", help="YAML configuration file (default: $CONFIG_FILE)")
    parser.add_argument("--host", help="Listen address (overrides config)")
    parser.add_argument("--port", type=int, help="Listen port (overrides config)")
    parser.add_argument(
        "--log-level",
        choices=["trace", "debug", "info", "warning", "error"],
        help="Log level (overrides config)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error while loading configuration: {e}", file=sys.stderr)
        return 1

    level_name = (args.log_level or config.server.log_level).upper()
    logging.basicConfig(
        level=logging.DEBUG if level_name == "TRACE" else level_name,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # uvicorn ships in the "server" extra; the ASGI app runs without it
    import uvicorn

    host = args.host or config.server.host
    port = args.port or config.server.port
    logger.info(
        "Starting proxy on %s:%s (loki=%s, prometheus=%s)",
        host,
        port,
        config.loki.url,
        config.prometheus.url,
    )
    app = create_app(config, InMemoryMetricsStorage())
    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
