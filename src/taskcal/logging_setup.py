from __future__ import annotations
import io
import json
import os
from logging import Filter
from logging.config import dictConfig

import yaml

DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

PROBE_PATHS = ("/health", "/readyz", "/metrics")


class ProbeAccessFilter(Filter):
    """
    Drop uvicorn access-log lines for liveness/readiness/metrics probes.

    Orchestrators hit these endpoints every few seconds; logging each hit
    buries the request log of the actual task API.
    """

    def filter(self, record):
        args = record.args
        # uvicorn.access records carry (client, method, path, http_version, status)
        if isinstance(args, tuple) and len(args) >= 3:
            path = str(args[2]).split("?", 1)[0]
            if path in PROBE_PATHS:
                return False
        return True


def _stdout_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "std": {"format": DEFAULT_FORMAT}
        },
        "filters": {
            "probe_access_filter": {
                "()": "taskcal.logging_setup.ProbeAccessFilter",
            }
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "std",
                "level": level,
            }
        },
        "loggers": {
            # let uvicorn records reach the root handler instead of its own
            "uvicorn": {"handlers": [], "propagate": True},
            "uvicorn.error": {"handlers": [], "propagate": True},
            "uvicorn.access": {
                "handlers": [],
                "propagate": True,
                "filters": ["probe_access_filter"],
            },
        },
        "root": {"level": level, "handlers": ["stdout"]},
    }


def setup_logging(level: str | None = None, config_path_env: str = "TASKCAL_LOGCFG") -> None:
    """
    Configure process-wide logging. Call once, first thing in the entrypoint.

    - If TASKCAL_LOGCFG points to a JSON or YAML dictConfig file, load it.
    - Otherwise log everything to stdout at LOG_LEVEL.
    """
    cfg_path = os.getenv(config_path_env, "").strip()
    if cfg_path and os.path.exists(cfg_path):
        with open(cfg_path, "r", encoding="utf-8") as fh:
            text = fh.read()
        try:
            dictConfig(json.loads(text))
        except json.JSONDecodeError:
            dictConfig(yaml.safe_load(io.StringIO(text)))
        return

    dictConfig(_stdout_config((level or DEFAULT_LEVEL).upper()))
