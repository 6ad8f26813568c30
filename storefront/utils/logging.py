# storefront/utils/logging.py
import logging

from storefront.utils.settings import LOG_LEVEL

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_root = logging.getLogger("storefront")
if not _root.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(_FORMAT))
    _root.addHandler(_handler)
    _root.setLevel(LOG_LEVEL.upper())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def token_preview(token: str | None) -> str:
    # never the full token in logs
    if not token:
        return "Missing"
    return token[:10] + "..."
