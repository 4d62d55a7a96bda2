"""
Component loggers.

Every logger lives under the `wms` namespace and shares one console
handler, installed the first time any component asks for a logger.
`WMS_LOG_LEVEL` sets the level (default INFO).
"""

import logging
import os
import sys

ROOT_NAME = "wms"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _root() -> logging.Logger:
    root = logging.getLogger(ROOT_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        root.setLevel(os.getenv("WMS_LOG_LEVEL", "INFO").upper())
    return root


class Logger:
    def __init__(self, name: str = ROOT_NAME):
        root = _root()
        if name != ROOT_NAME and not name.startswith(f"{ROOT_NAME}."):
            name = f"{ROOT_NAME}.{name}"
        self._logger = root if name == ROOT_NAME else logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def info(self, msg: str, *args, **kwargs):
        self._logger.info(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._logger.error(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._logger.warning(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._logger.debug(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        self._logger.exception(msg, *args, **kwargs)
