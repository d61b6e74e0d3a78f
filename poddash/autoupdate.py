"""Run `podman auto-update` on request."""

import logging
import subprocess
from typing import Tuple

log = logging.getLogger(__name__)

AUTO_UPDATE_TIMEOUT = 300


def _text(output) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def run_auto_update(podman_bin: str = "podman", timeout: float = AUTO_UPDATE_TIMEOUT) -> Tuple[str, str]:
    """
    Run the auto-update command and collect its combined output.

    Args:
        podman_bin: Podman executable
        timeout: Seconds before the command is killed

    Returns:
        Tuple of (output, error message); the error is empty on success
    """
    log.info("Running %s auto-update", podman_bin)
    try:
        result = subprocess.run(
            [podman_bin, "auto-update"],
            stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        log.error("auto-update timed out after %ss", timeout)
        return _text(exc.output), f"timed out after {timeout}s"
    except OSError as exc:
        log.error("auto-update could not be started: %s", exc)
        return "", str(exc)

    if result.returncode != 0:
        log.warning("auto-update exited with status %d", result.returncode)
        return result.stdout, f"exit status {result.returncode}"
    return result.stdout, ""
