"""Group containers into apps and categories from io.poddash.app.* labels."""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from poddash.models import Container

log = logging.getLogger(__name__)

APP_LABEL_PREFIX = "io.poddash.app."
EXTERNAL_APP_PREFIX = "PODDASH_APP_"
UNCATEGORIZED = "Uncategorized"
UNKNOWN_STATE = "unknown"

NAME_LABEL = APP_LABEL_PREFIX + "name"

# Plain base-10 integer: ASCII digits, optional sign, no spaces or underscores
SORT_INDEX_RE = re.compile(r"[+-]?[0-9]+")

# Longest suffix first so e.g. "_SORT_INDEX" is never read as a key ending in "_INDEX".
EXTERNAL_APP_SUFFIXES = sorted(
    [
        ("_NAME", "name"),
        ("_ICON", "icon"),
        ("_CATEGORY", "category"),
        ("_SORT_INDEX", "sort-index"),
        ("_SUBTITLE", "subtitle"),
        ("_DESCRIPTION", "description"),
        ("_URL", "url"),
    ],
    key=lambda item: len(item[0]),
    reverse=True,
)


@dataclass
class App:
    """A logical app: one or more containers, or an externally declared link."""

    name: str
    icon: str = ""
    category: str = ""
    sort_index: int = 0
    subtitle: str = ""
    description: str = ""
    url: str = ""
    containers: List[Container] = field(default_factory=list)


@dataclass
class AppCategory:
    """A named group of apps, in display order."""

    name: str
    apps: List[App] = field(default_factory=list)


def parse_sort_index(value: Any) -> int:
    """Parse a sort index, falling back to 0 for anything that is not an integer."""
    if value is None or isinstance(value, bool):
        return 0
    text = str(value)
    if not SORT_INDEX_RE.fullmatch(text):
        return 0
    return int(text)


def _app_from_fields(name: str, fields: Mapping[str, str]) -> App:
    return App(
        name=name,
        icon=fields.get("icon", ""),
        category=fields.get("category", ""),
        sort_index=parse_sort_index(fields.get("sort-index")),
        subtitle=fields.get("subtitle", ""),
        description=fields.get("description", ""),
        url=fields.get("url", ""),
    )


def parse_external_apps(environ: Mapping[str, str]) -> List[App]:
    """
    Read apps that have no container from PODDASH_APP_<KEY>_<FIELD> variables.

    <KEY> may itself contain underscores; the field suffix is matched from the
    end of the variable name. Entries without a NAME, and variables with an
    empty <KEY>, are ignored.

    Args:
        environ: Environment-style mapping (usually os.environ)

    Returns:
        List of apps with no containers, in no particular order
    """
    fields: Dict[str, Dict[str, str]] = {}

    for var, value in environ.items():
        if not var.startswith(EXTERNAL_APP_PREFIX):
            continue
        rest = var[len(EXTERNAL_APP_PREFIX):]

        for suffix, field_name in EXTERNAL_APP_SUFFIXES:
            if not rest.endswith(suffix):
                continue
            key = rest[:-len(suffix)]
            if not key:
                log.debug("Ignoring %s: empty app key", var)
                break
            fields.setdefault(key, {})[field_name] = value
            break

    apps = []
    for key, app_fields in fields.items():
        name = app_fields.get("name", "")
        if not name:
            log.debug("Ignoring external app %s: no %s%s_NAME set", key, EXTERNAL_APP_PREFIX, key)
            continue
        apps.append(_app_from_fields(name, app_fields))
    return apps


def group_containers(containers: Iterable[Container]) -> Dict[str, App]:
    """
    Group containers sharing an app name label into apps.

    The first container seen for a name supplies the app's metadata; later
    containers with the same name are only appended to its container list.
    Containers without a name label are not part of any app.

    Args:
        containers: Containers in API order

    Returns:
        Dictionary mapping app name to app
    """
    app_map: Dict[str, App] = {}

    for container in containers or ():
        labels = container.labels or {}
        name = labels.get(NAME_LABEL, "")
        if not name:
            continue

        app = app_map.get(name)
        if app is None:
            app = _app_from_fields(name, {
                key[len(APP_LABEL_PREFIX):]: value
                for key, value in labels.items()
                if key.startswith(APP_LABEL_PREFIX)
            })
            app_map[name] = app
        app.containers.append(container)

    return app_map


def merge_external_apps(app_map: Mapping[str, App], external_apps: Iterable[App]) -> Dict[str, App]:
    """
    Add external apps to container apps. A container app always wins on a name clash.

    Args:
        app_map: Apps built from containers
        external_apps: Statically declared apps

    Returns:
        New dictionary; neither input is modified
    """
    merged = dict(app_map)
    for ext in external_apps or ():
        if ext.name in merged:
            log.debug("External app %r shadowed by container app of the same name", ext.name)
            continue
        merged[ext.name] = replace(ext, containers=list(ext.containers))
    return merged


def _category_sort_key(category: AppCategory):
    return (category.name == UNCATEGORIZED, category.name)


def assemble_categories(app_map: Mapping[str, App]) -> List[AppCategory]:
    """
    Bucket apps by category and sort everything for display.

    Apps are ordered by (sort_index, name) within a category. Categories are
    alphabetical with "Uncategorized" always last.
    """
    buckets: Dict[str, List[App]] = {}
    for app in app_map.values():
        buckets.setdefault(app.category or UNCATEGORIZED, []).append(app)

    categories = [
        AppCategory(name=name, apps=sorted(apps, key=lambda a: (a.sort_index, a.name)))
        for name, apps in buckets.items()
    ]
    categories.sort(key=_category_sort_key)
    return categories


def build_app_categories(
    containers: Iterable[Container],
    external_apps: Iterable[App] = (),
) -> List[AppCategory]:
    """
    Build the ordered category list shown on the apps page.

    Args:
        containers: Current container snapshot
        external_apps: Apps declared outside of containers

    Returns:
        Categories ready for rendering; empty when there is nothing to show
    """
    app_map = group_containers(containers)
    merged = merge_external_apps(app_map, external_apps)
    return assemble_categories(merged)


def app_state(containers: Sequence[Container]) -> str:
    """Display state for an app: "running" if any container runs, else the first container's state."""
    for container in containers or ():
        if container.state == "running":
            return "running"
    if containers:
        return containers[0].state
    return UNKNOWN_STATE


def has_app_labels(containers: Iterable[Container]) -> bool:
    return any((c.labels or {}).get(NAME_LABEL) for c in containers or ())
