"""
Process entry point (``toxguard`` console script).

uvicorn installs the SIGTERM/SIGINT handlers: on a signal it stops accepting
connections, waits for in-flight requests and runs the lifespan shutdown
(which closes the database). It then restores the previous handlers and
re-raises the signal, so SIGTERM must already map to a clean exit here.
"""

from __future__ import annotations

import logging
import signal
import sys

import uvicorn

from toxguard.core.config import settings
from toxguard.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _exit_cleanly(signum, frame) -> None:
    logger.info("Received %s, exiting.", signal.Signals(signum).name)
    sys.exit(0)


def run() -> None:
    configure_logging()
    signal.signal(signal.SIGTERM, _exit_cleanly)
    uvicorn.run(
        "toxguard.main:app",
        host=settings.api_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=settings.graceful_shutdown_timeout,
    )


if __name__ == "__main__":
    run()
