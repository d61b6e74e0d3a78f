"""Shared fixtures: recorded Podman API responses."""

import json
from pathlib import Path

import pytest

from poddash.models import Container, ContainerInspect, ImageInspect, ImageSummary

TESTDATA = Path(__file__).parent / "testdata"


def load_json(name):
    with open(TESTDATA / name, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def containers():
    return [Container.from_api(c) for c in load_json("containers.json")]


@pytest.fixture
def images():
    return [ImageSummary.from_api(i) for i in load_json("images.json")]


@pytest.fixture
def container_inspect():
    return ContainerInspect.from_api(load_json("container_inspect.json"))


@pytest.fixture
def image_inspect():
    return ImageInspect.from_api(load_json("image_inspect.json"))
