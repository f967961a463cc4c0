import logging
import os

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

# Client libraries that log request details at INFO/DEBUG; kept at WARNING.
_NOISY_LOGGERS = ("botocore", "aiobotocore", "aioboto3", "psycopg")


def _level_from_env() -> int:
    name = os.getenv("LOG_LEVEL", "").strip().upper() or "INFO"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def ensure_logging() -> None:
    """Configure root logging for both triggers (Lambda handler and FastAPI app).

    Lambda installs its own handler on the root logger before our code runs, so
    existing handlers are re-formatted instead of adding a second one.
    """

    level = _level_from_env()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in root.handlers:
            handler.setFormatter(formatter)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
