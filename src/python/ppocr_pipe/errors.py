"""Exceptions raised by the engine supervisor.

Engine-reported status codes are not exceptions; they come back as
:class:`ppocr_pipe.dto.EngineStatus` values.
"""

from __future__ import annotations

from typing import List, Optional


class OcrPipeError(Exception):
    """Base class for every error raised by ppocr_pipe."""


class UnsupportedPlatformError(OcrPipeError):
    pass


class EngineNotFoundError(OcrPipeError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Engine executable not found: {path}")
        self.path = path


class SpawnError(OcrPipeError):
    pass


class EngineIOError(OcrPipeError):
    """A pipe write or read failed."""


class PipeClosedError(EngineIOError):
    """The engine closed its end of the pipe (usually: it exited)."""


class EngineTimeoutError(EngineIOError):
    def __init__(self, timeout: float) -> None:
        super().__init__(f"Engine did not answer within {timeout:.1f}s")
        self.timeout = timeout


class HandshakeError(OcrPipeError):
    def __init__(self, attempts: int, lines: Optional[List[str]] = None) -> None:
        super().__init__(f"Engine not ready after {attempts} read attempts")
        self.attempts = attempts
        self.lines = list(lines or [])


class ResponseMalformedError(OcrPipeError):
    """The engine answered with something that is not a valid envelope."""

    def __init__(self, line: str, detail: str) -> None:
        super().__init__(f"Malformed engine response ({detail}): {line[:200]!r}")
        self.line = line
        self.detail = detail


class SessionStateError(OcrPipeError):
    pass


__all__ = [
    "OcrPipeError",
    "UnsupportedPlatformError",
    "EngineNotFoundError",
    "SpawnError",
    "EngineIOError",
    "PipeClosedError",
    "EngineTimeoutError",
    "HandshakeError",
    "ResponseMalformedError",
    "SessionStateError",
]
