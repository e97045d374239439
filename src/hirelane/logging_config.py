from __future__ import annotations

import logging

from hirelane.config import get_settings

# Google client internals log every discovery/cache lookup at INFO.
_QUIET_LOGGERS = ("googleapiclient.discovery", "googleapiclient.discovery_cache", "google_auth_httplib2")

_LOG_CONFIGURED = False


def configure_logging() -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
