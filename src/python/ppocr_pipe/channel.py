from __future__ import annotations

import threading
from typing import Optional

from . import logging_utils
from .process import EngineProcess

logger = logging_utils.get_logger(__name__)


class LineChannel:
    """Half-duplex request/response over an :class:`EngineProcess`.

    Every write is followed by exactly one read before the next caller may
    write, so responses can never drift out of step with their requests.
    """

    def __init__(self, process: EngineProcess) -> None:
        self.process = process
        self._lock = threading.Lock()

    def send_and_receive(self, line: str, timeout: Optional[float] = None) -> str:
        with self._lock:
            self.process.raw_write_line(line)
            response = self.process.raw_read_line(timeout=timeout)
        logger.debug("<- %s", response[:200])
        return response.rstrip()

    def send(self, line: str) -> None:
        """Write a line whose reply is consumed by the next :meth:`read_line`."""
        with self._lock:
            self.process.raw_write_line(line)

    def read_line(self, timeout: Optional[float] = None) -> str:
        with self._lock:
            return self.process.raw_read_line(timeout=timeout).rstrip()
