"""Records decoded from the Podman API.

Podman answers on the Docker-compatible endpoints with a few shapes that differ
from its native libpod API (names with a leading slash, commands as a string,
unix timestamps vs RFC 3339 strings, exposed ports as maps). Everything is
normalized here so templates and the app grouping never see the raw JSON.

Environment variables are never decoded.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator

log = logging.getLogger(__name__)

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an API timestamp into an aware datetime.

    Args:
        value: Unix seconds (int/float) or an RFC 3339 string, possibly with
            nanosecond precision

    Returns:
        UTC-aware datetime, or None for missing/zero/garbled values
    """
    if isinstance(value, datetime):
        return value
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if value <= 0:
            return None
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # datetime only understands microseconds
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    # Go's zero time
    if parsed.year <= 1:
        return None
    return parsed


def parse_exposed_ports(value: Any) -> List[str]:
    """
    Normalize exposed ports to a sorted list of "port/proto" strings.

    Handles the compat shape ({"80/tcp": {}}) and the libpod shape
    ({"80": ["tcp", "udp"]}).
    """
    if isinstance(value, list):
        return sorted(value)
    if not isinstance(value, dict):
        return []
    ports = []
    for key, protos in value.items():
        if isinstance(protos, list) and protos:
            ports.extend(f"{key}/{p}" for p in protos)
        elif "/" in key:
            ports.append(key)
        else:
            ports.append(f"{key}/tcp")
    return sorted(ports)


def _one_or_many(value: Any) -> Any:
    """The API sends some lists (commands, tags) as a bare string."""
    if isinstance(value, str):
        return [value] if value else []
    return value


class APIModel(BaseModel):
    """Base for API records: camel-case aliases, nulls read as the field default."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value

    @classmethod
    def from_api(cls, data: Any):
        """
        Decode one API object.

        Fields with an unexpected type fall back to their default instead of
        failing the whole record.
        """
        if not isinstance(data, dict):
            data = {}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err["loc"]}
            log.debug("%s: ignoring malformed fields %s", cls.__name__, sorted(map(str, bad)))
            return cls.model_validate({**data, **{key: None for key in bad}})


class Port(APIModel):
    host_ip: str = Field("", alias="IP")
    host_port: int = Field(0, alias="PublicPort")
    container_port: int = Field(0, alias="PrivatePort")
    protocol: str = Field("tcp", alias="Type")

    @field_validator("protocol", mode="before")
    @classmethod
    def _default_protocol(cls, value: Any) -> Any:
        return value or "tcp"


class Container(APIModel):
    """One entry of the container list."""

    id: str = Field("", alias="Id")
    names: List[str] = Field(default_factory=list, alias="Names")
    image: str = Field("", alias="Image")
    command: List[str] = Field(default_factory=list, alias="Command")
    created: Optional[datetime] = Field(None, alias="Created")
    state: str = Field("", alias="State")
    status: str = Field("", alias="Status")
    ports: List[Port] = Field(default_factory=list, alias="Ports")
    labels: Dict[str, str] = Field(default_factory=dict, alias="Labels")

    @property
    def name(self) -> str:
        return self.names[0] if self.names else ""

    @field_validator("names", mode="before")
    @classmethod
    def _strip_slash(cls, value: Any) -> Any:
        names = _one_or_many(value)
        if not isinstance(names, list):
            return names
        return [n.lstrip("/") if isinstance(n, str) else n for n in names]

    @field_validator("command", mode="before")
    @classmethod
    def _command_list(cls, value: Any) -> Any:
        return _one_or_many(value)

    @field_validator("created", mode="before")
    @classmethod
    def _created(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


class Health(APIModel):
    status: str = Field("", alias="Status")


class ContainerState(APIModel):
    status: str = Field("", alias="Status")
    running: bool = Field(False, alias="Running")
    started_at: Optional[datetime] = Field(None, alias="StartedAt")
    finished_at: Optional[datetime] = Field(None, alias="FinishedAt")
    exit_code: int = Field(0, alias="ExitCode")
    health: Optional[Health] = Field(None, alias="Health")

    @field_validator("started_at", "finished_at", mode="before")
    @classmethod
    def _timestamps(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("health", mode="before")
    @classmethod
    def _health(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, Health)) else None


class ContainerConfig(APIModel):
    hostname: str = Field("", alias="Hostname")
    image: str = Field("", alias="Image")
    cmd: List[str] = Field(default_factory=list, alias="Cmd")
    labels: Dict[str, str] = Field(default_factory=dict, alias="Labels")
    exposed_ports: List[str] = Field(default_factory=list, alias="ExposedPorts")

    @field_validator("cmd", mode="before")
    @classmethod
    def _cmd_list(cls, value: Any) -> Any:
        return _one_or_many(value)

    @field_validator("exposed_ports", mode="before")
    @classmethod
    def _exposed(cls, value: Any) -> List[str]:
        return parse_exposed_ports(value)


class Mount(APIModel):
    type: str = Field("", alias="Type")
    source: str = Field("", alias="Source")
    destination: str = Field("", alias="Destination")
    rw: bool = Field(False, alias="RW")


class HostPort(APIModel):
    host_ip: str = Field("", alias="HostIp")
    host_port: str = Field("", alias="HostPort")


class RestartPolicy(APIModel):
    name: str = Field("", alias="Name")
    maximum_retry_count: int = Field(0, alias="MaximumRetryCount")


class ContainerInspect(APIModel):
    """Detailed view of a single container."""

    id: str = Field("", alias="Id")
    name: str = Field("", alias="Name")
    created: Optional[datetime] = Field(None, alias="Created")
    image_name: str = Field("", alias="ImageName")
    state: ContainerState = Field(default_factory=ContainerState, alias="State")
    config: ContainerConfig = Field(default_factory=ContainerConfig, alias="Config")
    mounts: List[Mount] = Field(default_factory=list, alias="Mounts")
    # from NetworkSettings.Ports
    ports: Dict[str, List[HostPort]] = Field(default_factory=dict)
    restart_count: int = Field(0, alias="RestartCount")
    # from HostConfig.RestartPolicy
    restart_policy: RestartPolicy = Field(default_factory=RestartPolicy)

    @model_validator(mode="before")
    @classmethod
    def _lift_nested(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        network = data.get("NetworkSettings")
        host_config = data.get("HostConfig")
        data.setdefault("ports", network.get("Ports") if isinstance(network, dict) else None)
        data.setdefault("restart_policy", host_config.get("RestartPolicy") if isinstance(host_config, dict) else None)
        return data

    @model_validator(mode="after")
    def _image_from_config(self) -> "ContainerInspect":
        if not self.image_name:
            self.image_name = self.config.image
        return self

    @field_validator("name", mode="before")
    @classmethod
    def _strip_slash(cls, value: Any) -> Any:
        return value.lstrip("/") if isinstance(value, str) else value

    @field_validator("created", mode="before")
    @classmethod
    def _created(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("ports", mode="before")
    @classmethod
    def _sorted_ports(cls, value: Any) -> Any:
        # unpublished ports map to null
        if not isinstance(value, dict):
            return value
        return {port: value[port] or [] for port in sorted(value)}


class ImageSummary(APIModel):
    id: str = Field("", alias="Id")
    repo_tags: List[str] = Field(default_factory=list, alias="RepoTags")
    created: int = Field(0, alias="Created")
    size: int = Field(0, alias="Size")

    @property
    def first_tag(self) -> str:
        return self.repo_tags[0] if self.repo_tags else ""

    @field_validator("repo_tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> Any:
        return _one_or_many(value)


class ImageInspect(APIModel):
    """Detailed view of a single image; the image config is flattened in."""

    id: str = Field("", alias="Id")
    repo_tags: List[str] = Field(default_factory=list, alias="RepoTags")
    created: Optional[datetime] = Field(None, alias="Created")
    size: int = Field(0, alias="Size")
    architecture: str = Field("", alias="Architecture")
    os: str = Field("", alias="Os")
    author: str = Field("", alias="Author")
    labels: Dict[str, str] = Field(default_factory=dict)
    exposed_ports: List[str] = Field(default_factory=list)
    entrypoint: List[str] = Field(default_factory=list)
    cmd: List[str] = Field(default_factory=list)
    working_dir: str = ""
    user: str = ""

    @property
    def first_tag(self) -> str:
        return self.repo_tags[0] if self.repo_tags else ""

    @model_validator(mode="before")
    @classmethod
    def _lift_config(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        config = data.get("Config")
        if not isinstance(config, dict):
            config = {}
        data.setdefault("labels", config.get("Labels") or data.get("Labels"))
        for key, name in (
            ("ExposedPorts", "exposed_ports"),
            ("Entrypoint", "entrypoint"),
            ("Cmd", "cmd"),
            ("WorkingDir", "working_dir"),
            ("User", "user"),
        ):
            data.setdefault(name, config.get(key))
        return data

    @field_validator("repo_tags", "entrypoint", "cmd", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> Any:
        return _one_or_many(value)

    @field_validator("created", mode="before")
    @classmethod
    def _created(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("exposed_ports", mode="before")
    @classmethod
    def _exposed(cls, value: Any) -> List[str]:
        return parse_exposed_ports(value)
