"""Entrypoint for the college notice tracker API."""

from __future__ import annotations

import logging
import signal
import sys
from functools import partial

from .app import create_app
from .config import Settings, get_settings
from .crawler import get_latest_notices
from .store import NoticeStore

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOGGER = logging.getLogger(__name__)


def install_shutdown_hook(store: NoticeStore, timeout: float) -> None:
    """Flush the store once more on SIGINT/SIGTERM, then exit."""

    def _handle_signal(signum, frame):
        LOGGER.info("Received signal %s, saving data before shutdown", signum)
        store.flush(timeout)
        sys.exit(0)

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)


def build_store(settings: Settings) -> NoticeStore:
    return NoticeStore(settings.data_file, backup_dir=settings.backup_dir)


def main() -> int:
    """Load settings, wire the store into the API and serve it."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    try:
        settings = get_settings()
    except ValueError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 1

    logging.getLogger().setLevel(settings.log_level)

    store = build_store(settings)
    fetch_notices = partial(
        get_latest_notices, settings.notice_source_url, timeout=settings.fetch_timeout
    )
    app = create_app(store, fetch_notices)
    install_shutdown_hook(store, settings.shutdown_flush_timeout)

    LOGGER.info("Server running at http://%s:%d", settings.host, settings.port)
    LOGGER.info("Notice source: %s", settings.notice_source_url)
    LOGGER.info("Storage: %s", store.path)
    app.run(host=settings.host, port=settings.port, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
