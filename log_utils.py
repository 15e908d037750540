import json
import logging
import os
import sys
import time

from settings import settings

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers in front of the API server."""

    def format(self, record: logging.LogRecord) -> str:
        return json_log(record)


def configure(json_output: bool = False) -> None:
    level = os.getenv("LOG_LEVEL", settings.LOG_LEVEL).upper()
    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_DEFAULT_FMT, datefmt="%Y-%m-%dT%H:%M:%S"))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def json_log(record: logging.LogRecord) -> str:
    payload = {
        "ts": time.time(),
        "level": record.levelname,
        "name": record.name,
        "msg": record.getMessage(),
    }
    if record.exc_info:
        payload["exc"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(payload)


__all__ = ["configure", "json_log", "JsonFormatter"]
