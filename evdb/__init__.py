#!/usr/bin/env python
import logging

__version__ = "0.8.0"

from .client import EVDBClient
from .response import CallResult

# Silence notification of no default logging handler
log = logging.getLogger("evdb")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = ["__version__", "EVDBClient", "CallResult"]
