#!/usr/bin/env python3
"""Tests for the Podman API client"""

from unittest.mock import Mock

import docker
import pytest
import requests

from conftest import load_json
from poddash.podman import NotFoundError, PodmanClient, PodmanError, socket_path


class TestSocketPath:
    """Tests for socket_path function"""

    def test_explicit_socket(self):
        assert socket_path({"PODMAN_SOCKET": "/tmp/podman.sock"}) == "/tmp/podman.sock"

    def test_xdg_runtime_dir(self):
        assert socket_path({"XDG_RUNTIME_DIR": "/run/user/1000"}) == "/run/user/1000/podman/podman.sock"

    def test_uid_fallback(self, monkeypatch):
        monkeypatch.setattr("os.getuid", lambda: 4242)
        assert socket_path({}) == "/run/user/4242/podman/podman.sock"


class TestPodmanClient:
    """Tests for PodmanClient with a mocked docker APIClient"""

    def make_client(self):
        api = Mock()
        return PodmanClient("/tmp/podman.sock", api=api), api

    def test_list_containers(self):
        client, api = self.make_client()
        api.containers.return_value = load_json("containers.json")

        containers = client.list_containers()

        api.containers.assert_called_once_with(all=True)
        assert len(containers) == 11
        assert containers[0].name == "traefik"

    def test_list_containers_none(self):
        client, api = self.make_client()
        api.containers.return_value = None
        assert client.list_containers() == []

    def test_inspect_container(self):
        client, api = self.make_client()
        api.inspect_container.return_value = load_json("container_inspect.json")

        info = client.inspect_container("jellyfin")

        api.inspect_container.assert_called_once_with("jellyfin")
        assert info.name == "jellyfin"

    def test_list_images(self):
        client, api = self.make_client()
        api.images.return_value = load_json("images.json")
        assert [i.size for i in client.list_images()] == [138000000, 43200000, 7340032]

    def test_inspect_image(self):
        client, api = self.make_client()
        api.inspect_image.return_value = load_json("image_inspect.json")
        assert client.inspect_image("b76de378d572").os == "linux"

    def test_not_found(self):
        """Test that a 404 from the API becomes NotFoundError"""
        client, api = self.make_client()
        api.inspect_container.side_effect = docker.errors.NotFound("no such container")

        with pytest.raises(NotFoundError):
            client.inspect_container("nonexistent")

    def test_api_error(self):
        client, api = self.make_client()
        api.images.side_effect = docker.errors.APIError("server error")

        with pytest.raises(PodmanError) as exc:
            client.list_images()
        assert not isinstance(exc.value, NotFoundError)

    def test_connection_error(self):
        """Test that a missing socket surfaces as PodmanError"""
        client, api = self.make_client()
        api.containers.side_effect = requests.exceptions.ConnectionError("socket missing")

        with pytest.raises(PodmanError, match="socket missing"):
            client.list_containers()

    def test_default_api_client(self):
        """Test that the default client points at the unix socket without connecting"""
        client = PodmanClient("/tmp/does-not-exist.sock")
        assert isinstance(client.api, docker.APIClient)
        assert client.socket == "/tmp/does-not-exist.sock"
