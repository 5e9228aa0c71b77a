"""Process-wide logging setup."""

import logging

from guide_api.core.config import Settings
from guide_api.observability import RequestIdFilter

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure the root logger once for the running process."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logging.getLogger("guide_api").setLevel(level)

    # Model download progress is noisy at INFO
    logging.getLogger("sentence_transformers").setLevel(max(level, logging.WARNING))
