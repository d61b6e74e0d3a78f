#!/usr/bin/env python3
"""Command line entry point: configure logging and serve the dashboard."""

import argparse
import dataclasses
import logging
import sys

from poddash.config import Config, normalize_base_path, split_listen_addr
from poddash.server import create_app

log = logging.getLogger("poddash")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=getattr(logging, level, logging.INFO),
    )
    # poddash writes its own access log line
    if level != "DEBUG":
        logging.getLogger("werkzeug").setLevel(logging.ERROR)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Web dashboard for rootless Podman")
    parser.add_argument(
        "--listen",
        default=None,
        help="Address to listen on, host:port (default: LISTEN_ADDR env or 127.0.0.1:8080)"
    )
    parser.add_argument(
        "--socket",
        default=None,
        help="Podman API socket (default: PODMAN_SOCKET env or $XDG_RUNTIME_DIR/podman/podman.sock)"
    )
    parser.add_argument(
        "--base-path",
        default=None,
        help="URL prefix to serve under (default: BASE_PATH env)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, environ=None) -> Config:
    """Read configuration from the environment, then apply command line overrides."""
    config = Config.from_env(environ)
    overrides = {}
    if args.listen:
        overrides["listen_addr"] = args.listen
    if args.socket:
        overrides["socket"] = args.socket
    if args.base_path is not None:
        overrides["base_path"] = normalize_base_path(args.base_path)
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return dataclasses.replace(config, **overrides)


def main(argv=None):
    """Main entry point for the dashboard."""
    args = parse_args(argv)
    config = build_config(args)
    setup_logging(config.log_level)

    try:
        host, port = split_listen_addr(config.listen_addr)
    except ValueError as e:
        log.error("%s", e)
        sys.exit(2)

    log.info("Found %d external apps", len(config.external_apps))
    for app in config.external_apps:
        log.debug("  - %s (category: %s)", app.name, app.category or "-")
    if config.enable_auto_update:
        log.info("Auto-update button enabled (%s auto-update)", config.podman_bin)

    app = create_app(config)
    shown_host = "localhost" if config.listen_addr.startswith(":") else host
    log.info("poddash listening on http://%s:%d%s (socket: %s)", shown_host, port, config.base_path, config.socket)
    app.run(host=host, port=port, debug=False)


if __name__ == "__main__":
    main()
