"""Read-only access to the Podman API socket."""

import logging
import os
from typing import Any, Callable, List, Mapping, Optional, TypeVar

import docker
import requests

from poddash.models import Container, ContainerInspect, ImageInspect, ImageSummary

log = logging.getLogger(__name__)

# Podman's Docker-compatible API version
API_VERSION = "1.41"
DEFAULT_TIMEOUT = 30

T = TypeVar("T")


class PodmanError(Exception):
    """The Podman API could not be reached or returned an error."""


class NotFoundError(PodmanError):
    """The requested container or image does not exist."""


def socket_path(environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Locate the Podman API socket.

    PODMAN_SOCKET wins; otherwise the rootless socket under XDG_RUNTIME_DIR
    (or /run/user/<uid> when that is unset) is used.
    """
    if environ is None:
        environ = os.environ
    sock = environ.get("PODMAN_SOCKET")
    if sock:
        return sock
    xdg = environ.get("XDG_RUNTIME_DIR") or f"/run/user/{os.getuid()}"
    return f"{xdg}/podman/podman.sock"


class PodmanClient:
    """Thin wrapper around docker.APIClient that returns poddash records."""

    def __init__(self, sock: str, timeout: int = DEFAULT_TIMEOUT, api: Any = None):
        self.socket = sock
        if api is None:
            # A fixed version avoids a round-trip to the socket at startup.
            api = docker.APIClient(base_url=f"unix://{sock}", version=API_VERSION, timeout=timeout)
        self.api = api

    def _call(self, what: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except docker.errors.NotFound as e:
            raise NotFoundError(f"{what}: not found") from e
        except docker.errors.DockerException as e:
            raise PodmanError(f"podman API {what}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise PodmanError(f"podman API {what}: {e}") from e

    def list_containers(self) -> List[Container]:
        data = self._call("list containers", lambda: self.api.containers(all=True))
        return [Container.from_api(item) for item in data or []]

    def inspect_container(self, container_id: str) -> ContainerInspect:
        data = self._call(f"container {container_id}", lambda: self.api.inspect_container(container_id))
        return ContainerInspect.from_api(data)

    def list_images(self) -> List[ImageSummary]:
        data = self._call("list images", lambda: self.api.images())
        return [ImageSummary.from_api(item) for item in data or []]

    def inspect_image(self, image_id: str) -> ImageInspect:
        data = self._call(f"image {image_id}", lambda: self.api.inspect_image(image_id))
        return ImageInspect.from_api(data)
