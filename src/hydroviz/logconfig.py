from __future__ import annotations

import logging
import os

LOG_ENV_VAR = "HYDROVIZ_LOG"


def configure_logging(level: str | None = None) -> None:
    """Set up root logging from ``level`` or ``$HYDROVIZ_LOG`` (default WARNING)."""
    level_name = (level or os.environ.get(LOG_ENV_VAR, "WARNING")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
