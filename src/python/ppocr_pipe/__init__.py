"""Supervisor and line protocol client for a resident PaddleOCR-json engine."""

from .config import EngineConfig, load_engine_config
from .dto import EngineStatus, Request, ResponseEnvelope, StatusCode, TextRecord, parse_response
from .errors import (
    EngineIOError,
    EngineNotFoundError,
    EngineTimeoutError,
    HandshakeError,
    OcrPipeError,
    PipeClosedError,
    ResponseMalformedError,
    SessionStateError,
    SpawnError,
    UnsupportedPlatformError,
)
from .process import EngineProcess
from .channel import LineChannel
from .session import OcrSession, SessionState

__all__ = [
    "EngineConfig",
    "load_engine_config",
    "EngineStatus",
    "Request",
    "ResponseEnvelope",
    "StatusCode",
    "TextRecord",
    "parse_response",
    "EngineIOError",
    "EngineNotFoundError",
    "EngineTimeoutError",
    "HandshakeError",
    "OcrPipeError",
    "PipeClosedError",
    "ResponseMalformedError",
    "SessionStateError",
    "SpawnError",
    "UnsupportedPlatformError",
    "EngineProcess",
    "LineChannel",
    "OcrSession",
    "SessionState",
]
