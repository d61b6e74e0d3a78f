"""Flask web application: apps, containers and images pages."""

import hmac
import logging
import re
import secrets
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from flask import Flask, Response, g, redirect, render_template, request, url_for
from werkzeug.exceptions import NotFound
from werkzeug.middleware.dispatcher import DispatcherMiddleware

from poddash.apps import build_app_categories, has_app_labels
from poddash.autoupdate import run_auto_update
from poddash.config import Config
from poddash.formatting import register_filters, short_id
from poddash.podman import NotFoundError, PodmanClient, PodmanError

log = logging.getLogger(__name__)

CSRF_COOKIE = "_csrf"
CSRF_FIELD = "_csrf"
CSRF_TOKEN_LENGTH = 64

# Container and image IDs: hex, sha256: prefix, or name-like identifiers.
VALID_ID = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9_.:-]*")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": (
        "default-src 'none'; style-src 'unsafe-inline'; img-src data:; form-action 'self'"
    ),
}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def plain_error(message: str, status: int) -> Response:
    return Response(message + "\n", status=status, mimetype="text/plain")


def create_app(
    config: Config,
    client: Optional[PodmanClient] = None,
    runner: Optional[Callable[[str], Tuple[str, str]]] = None,
) -> Flask:
    """
    Build the web application.

    Args:
        config: Startup configuration, including the external apps
        client: Podman client (default: one connected to config.socket)
        runner: Callable running auto-update for a podman binary

    Returns:
        Flask app, mounted under config.base_path when one is set
    """
    app = Flask(__name__)
    register_filters(app)

    if client is None:
        client = PodmanClient(config.socket)
    if runner is None:
        runner = run_auto_update

    def render_page(template: str, **context) -> Response:
        html = render_template(
            template,
            csrf_token=g.csrf_token,
            enable_auto_update=config.enable_auto_update,
            **context,
        )
        resp = Response(html, mimetype="text/html")
        resp.headers["Cache-Control"] = "no-store"
        return resp

    @app.before_request
    def start_request():
        g.request_id = secrets.token_hex(4)
        g.started = time.monotonic()

        token = request.cookies.get(CSRF_COOKIE, "")
        g.set_csrf_cookie = len(token) != CSRF_TOKEN_LENGTH
        if g.set_csrf_cookie:
            token = secrets.token_hex(CSRF_TOKEN_LENGTH // 2)
        g.csrf_token = token

        if request.method == "POST":
            submitted = request.form.get(CSRF_FIELD, "")
            if not hmac.compare_digest(submitted.encode(), token.encode()):
                log.warning("[%s] CSRF token mismatch on %s", g.request_id, request.path)
                return plain_error("Forbidden", 403)
        return None

    @app.after_request
    def finish_request(resp: Response) -> Response:
        for name, value in SECURITY_HEADERS.items():
            resp.headers[name] = value

        if g.get("set_csrf_cookie"):
            resp.set_cookie(
                CSRF_COOKIE,
                g.csrf_token,
                path=request.script_root + "/",
                httponly=True,
                samesite="Strict",
            )

        started = g.get("started")
        elapsed = round((time.monotonic() - started) * 1000) if started else 0
        log.info("[%s] %s %s %d %dms", g.get("request_id", "-"), request.method,
                 request.path, resp.status_code, elapsed)
        return resp

    @app.errorhandler(PodmanError)
    def podman_error(exc: PodmanError):
        log.error("[%s] podman API error: %s", g.get("request_id", "-"), exc)
        return plain_error("Internal Server Error", 500)

    @app.route("/")
    def root():
        if config.external_apps or has_app_labels(client.list_containers()):
            return redirect(url_for("apps"), code=307)
        return redirect(url_for("containers"), code=307)

    @app.route("/apps")
    def apps():
        categories = build_app_categories(client.list_containers(), config.external_apps)
        return render_page("apps.html", title="Apps", categories=categories)

    @app.route("/containers")
    def containers():
        containers = client.list_containers()
        containers.sort(key=lambda c: c.created or _EPOCH, reverse=True)
        return render_page("containers.html", title="Containers", containers=containers)

    @app.route("/container/<container_id>")
    def container(container_id: str):
        if not VALID_ID.fullmatch(container_id):
            return plain_error("Invalid container ID", 400)
        try:
            info = client.inspect_container(container_id)
        except NotFoundError:
            log.info("[%s] container %s not found", g.request_id, container_id)
            return plain_error("Container Not Found", 404)
        name = info.name or short_id(info.id)
        return render_page("container.html", title=f"Container: {name}", container=info)

    @app.route("/images")
    def images():
        images = client.list_images()
        images.sort(key=lambda i: i.first_tag)
        return render_page("images.html", title="Images", images=images)

    @app.route("/image/<image_id>")
    def image(image_id: str):
        if not VALID_ID.fullmatch(image_id):
            return plain_error("Invalid image ID", 400)
        try:
            info = client.inspect_image(image_id)
        except NotFoundError:
            log.info("[%s] image %s not found", g.request_id, image_id)
            return plain_error("Image Not Found", 404)
        name = info.first_tag or short_id(info.id)
        return render_page("image.html", title=f"Image: {name}", image=info)

    @app.route("/auto-update", methods=["POST"])
    def auto_update():
        if not config.enable_auto_update:
            return plain_error("Not Found", 404)
        output, error = runner(config.podman_bin)
        return render_page("autoupdate.html", title="Auto Update", output=output, error=error)

    if config.base_path:
        app.wsgi_app = DispatcherMiddleware(NotFound(), {config.base_path: app.wsgi_app})

    return app
