#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from typing import Dict, Any, Optional
from functools import wraps
import logging
import logging.config

from invest_instruments.common.errors import InvestError
from invest_instruments.utils import DATE_FORMAT


logger = logging.getLogger("__main__")


class CustomFormatter(logging.Formatter):
    BLUE = "\x1b[36;20m"
    GRAY = "\x1b[38;20m"
    PURPLE = "\x1b[35;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"

    def __init__(self, _format: str, datefmt: str = DATE_FORMAT):
        super().__init__(_format, datefmt=datefmt)
        self.formatters = {
            level: logging.Formatter(color + _format + self.RESET, datefmt=datefmt)
            for level, color in (
                (logging.DEBUG, self.PURPLE),
                (logging.INFO, self.BLUE),
                (logging.WARNING, self.YELLOW),
                (logging.ERROR, self.RED),
                (logging.CRITICAL, self.BOLD_RED),
            )
        }

    def format(self, record):
        _formatter = self.formatters.get(record.levelno)
        if _formatter is None:
            return super().format(record)

        return _formatter.format(record)


def proc_logger(logger_config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Shared logger for the runner and the client"""
    if logger_config is not None:
        logging.config.dictConfig(logger_config)

    return logging.getLogger("__main__")


def flush_logger(_logger: logging.Logger) -> None:
    for handler in _logger.handlers:
        handler.flush()


def step_logger(step: str, header: bool = False):
    """Runs a query step, failures are logged and reported as 'False' instead of raised.

    With 'header' set the 'message' field of a failed call's response header is logged as well,
    the field is not guaranteed to be present.
    """

    def wrapper(func):
        @wraps(func)
        async def _logger(_self, *args, **kwargs) -> bool:
            try:
                logger.debug(f"{_self.__name__}: <{step}> Issuing query ...")
                await func(_self, *args, **kwargs)
                return True
            except Exception as exc:
                getattr(
                    logger,
                    "exception" if logger.level == logging.DEBUG else "error",
                )(
                    f"{_self.__name__}: <{step}> {exc}",
                )

                if header and isinstance(exc, InvestError):
                    logger.error(
                        f"{_self.__name__}: <{step}> Header message: '{exc.message}'"
                    )

                return False

        return _logger

    return wrapper
