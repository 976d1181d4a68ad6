from __future__ import annotations

import logging

from salerecords.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    resolved = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("salerecords").setLevel(resolved)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
