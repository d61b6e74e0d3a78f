"""Web dashboard for a rootless Podman host."""

__version__ = "0.1.0"
