#!/usr/bin/env python3
# -*- coding: utf-8 -*-

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOGGER_CONFIG = {
    "version": 1,
    "formatters": {
        "INFO": {
            "format": "%(asctime)s :: %(levelname)s :: %(message)s",
            "datefmt": DATE_FORMAT,
        },
        "DEBUG": {
            "format": "[%(processName)s : %(threadName)s] :: %(asctime)s :: %(levelname)s :: %(filename)s :: %(message)s",
            "datefmt": DATE_FORMAT,
        },
    },
    "handlers": {
        "INFO": {
            "level": "INFO",
            "formatter": "INFO",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "DEBUG": {
            "level": "DEBUG",
            "formatter": "DEBUG",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "__main__": {"handlers": ["INFO"], "level": "INFO", "propagate": False}
    },
}
