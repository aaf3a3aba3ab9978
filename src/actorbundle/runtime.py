from __future__ import annotations

import logging
import threading

BUILD_LOG = "actorbundle.buildlog"

_runtime_lock = threading.Lock()
_runtime_initialized = False


def configure_logging(level: int = logging.INFO) -> None:
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_log() -> logging.Logger:
    """Channel for compiler output and non-fatal per-unit failures."""
    return logging.getLogger(BUILD_LOG)


def initialize_runtime(
    *,
    verbose: bool = False,
    logger: logging.Logger | None = None,
) -> None:
    global _runtime_initialized
    configure_logging(logging.DEBUG if verbose else logging.INFO)
    logger = logger or logging.getLogger("actorbundle.runtime")
    with _runtime_lock:
        if _runtime_initialized:
            return
        _runtime_initialized = True
    logger.debug("runtime initialized verbose=%s", verbose)
