"""Process configuration, read once at startup."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from poddash.apps import App, parse_external_apps
from poddash.podman import socket_path

DEFAULT_LISTEN_ADDR = "127.0.0.1:8080"


@dataclass(frozen=True)
class Config:
    socket: str
    listen_addr: str = DEFAULT_LISTEN_ADDR
    base_path: str = ""
    enable_auto_update: bool = False
    podman_bin: str = "podman"
    log_level: str = "INFO"
    external_apps: Tuple[App, ...] = field(default_factory=tuple)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Get configuration from environment variables.

        Args:
            environ: Environment mapping (default: os.environ)

        Returns:
            Config instance
        """
        if environ is None:
            environ = os.environ
        return cls(
            socket=socket_path(environ),
            listen_addr=environ.get("LISTEN_ADDR") or DEFAULT_LISTEN_ADDR,
            base_path=normalize_base_path(environ.get("BASE_PATH", "")),
            enable_auto_update=environ.get("ENABLE_AUTOUPDATE_BUTTON", "") == "true",
            podman_bin=environ.get("PODMAN_BIN") or "podman",
            log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
            external_apps=tuple(parse_external_apps(environ)),
        )


def normalize_base_path(value: str) -> str:
    value = (value or "").rstrip("/")
    if value and not value.startswith("/"):
        value = "/" + value
    return value


def split_listen_addr(addr: str) -> Tuple[str, int]:
    """
    Split "host:port" into its parts. ":port" listens on all interfaces.

    Raises:
        ValueError: if the port is missing or not a number
    """
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"invalid listen address {addr!r}: expected host:port")
    host = host.strip("[]") or "0.0.0.0"
    try:
        return host, int(port)
    except ValueError:
        raise ValueError(f"invalid listen address {addr!r}: bad port") from None
