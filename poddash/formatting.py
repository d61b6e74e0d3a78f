"""Jinja filters used by the page templates."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from markupsafe import Markup

from poddash.apps import app_state
from poddash.models import Port

KB = 1024
MB = KB * 1024
GB = MB * 1024

TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def short_id(value: str) -> str:
    """Strip a sha256: prefix and shorten to 12 characters."""
    value = (value or "").removeprefix("sha256:")
    return value[:12]


def human_size(size: int) -> str:
    if size >= GB:
        return f"{size / GB:.1f} GB"
    if size >= MB:
        return f"{size / MB:.1f} MB"
    if size >= KB:
        return f"{size / KB:.1f} KB"
    return f"{size} B"


def time_ago(when: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = int((now - when).total_seconds())
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_time(when: Optional[datetime]) -> Markup:
    """Relative time with the absolute timestamp as a tooltip, "-" when unknown."""
    if when is None:
        return Markup("-")
    return Markup('<span title="{}">{}</span>').format(when.strftime(TIME_FORMAT), time_ago(when))


def format_unix(ts: int) -> Markup:
    if not ts:
        return Markup("-")
    return format_time(datetime.fromtimestamp(ts, tz=timezone.utc))


def format_ports(ports: Iterable[Port]) -> str:
    """
    Render published ports like "0.0.0.0:8096->80/tcp".

    Ports that are not published on the host are shown as "80/tcp".
    """
    parts = []
    for p in ports or ():
        text = f"{p.container_port}/{p.protocol}"
        if p.host_port > 0:
            host = p.host_ip or "0.0.0.0"
            text = f"{host}:{p.host_port}->{text}"
        parts.append(text)
    return ", ".join(parts)


def format_exposed_ports(ports: Iterable[str]) -> str:
    return ", ".join(sorted(ports or ()))


def first_name(names: List[str]) -> str:
    return names[0] if names else ""


def join(values: Iterable[str], sep: str = " ") -> str:
    if isinstance(values, str):
        return values
    return sep.join(values or ())


def register_filters(app) -> None:
    """Install all filters on a Flask app."""
    app.jinja_env.filters.update({
        "short_id": short_id,
        "human_size": human_size,
        "format_unix": format_unix,
        "format_time": format_time,
        "format_ports": format_ports,
        "format_exposed_ports": format_exposed_ports,
        "first_name": first_name,
        "join_list": join,
        "app_state": app_state,
    })
