"""High level OCR session over a resident engine process.

Typical use::

    with OcrSession("C:/PaddleOCR-json/PaddleOCR_json.exe") as ocr:
        result = ocr.recognize_and_parse(Request.by_path("C:/img.png"))
"""

from __future__ import annotations

import os
import time
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from . import logging_utils
from .channel import LineChannel
from .config import EngineConfig, is_ready_line, load_engine_config, NOT_EXIST_MARKERS
from .dto import EngineStatus, Request, StatusCode, TextRecord, parse_response
from .errors import (
    EngineIOError,
    HandshakeError,
    ResponseMalformedError,
    SessionStateError,
)
from .process import EngineProcess
from .utils import image_to_base64

logger = logging_utils.get_logger(__name__)

RequestLike = Union[Request, str, os.PathLike]


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


def _as_request(request: RequestLike) -> Request:
    if isinstance(request, Request):
        return request
    return Request.by_path(os.fspath(request))


class OcrSession:
    """Owns one engine process; construction blocks until the engine is ready.

    Not safe for concurrent use from several threads beyond the request
    serialization done by :class:`LineChannel`.
    """

    def __init__(
        self,
        executable: Optional[Union[str, Path]] = None,
        config: Optional[EngineConfig] = None,
        **overrides,
    ) -> None:
        config = config if config is not None else load_engine_config()
        config = config.with_overrides(executable=executable, **overrides)
        if config.executable is None:
            raise ValueError("No engine executable given (argument or PPOCR_EXE)")
        self.config = config
        self.state = SessionState.INITIALIZING
        self._process: Optional[EngineProcess] = None
        self._channel: Optional[LineChannel] = None

        try:
            self._process = EngineProcess.start(
                config.executable,
                config.engine_args(),
                working_directory=config.working_directory,
            )
            self._channel = LineChannel(self._process)
            self._handshake(self._channel)
        except BaseException:
            self.state = SessionState.FAILED
            if self._process is not None:
                self._process.terminate()
            raise
        self.state = SessionState.READY

    def _handshake(self, channel: LineChannel) -> None:
        cfg = self.config
        if cfg.flush_banner:
            # the reply to this empty request is the "not exist" diagnostic
            channel.send("")
        seen: List[str] = []
        t0 = time.perf_counter()
        for attempt in range(1, cfg.init_attempts + 1):
            line = channel.read_line(timeout=cfg.init_timeout)
            logger.debug("[INIT %d/%d] %s", attempt, cfg.init_attempts, line)
            seen.append(line)
            if cfg.flush_banner:
                ready = any(m in line.lower() for m in NOT_EXIST_MARKERS)
            else:
                ready = is_ready_line(line)
            if ready:
                logger.info(
                    "Engine ready in %.2fs (%d line(s) read)",
                    time.perf_counter() - t0,
                    attempt,
                )
                return
        logger.error("Engine handshake failed, last lines: %s", seen[-3:])
        raise HandshakeError(cfg.init_attempts, seen)

    @property
    def process(self) -> Optional[EngineProcess]:
        return self._process

    @property
    def ready(self) -> bool:
        return self.state is SessionState.READY

    def _ensure_ready(self) -> LineChannel:
        if self.state is not SessionState.READY or self._channel is None:
            raise SessionStateError(f"Session is {self.state.value}, not ready")
        return self._channel

    def recognize(self, request: RequestLike) -> str:
        """Send one request and return the engine's raw response line."""
        channel = self._ensure_ready()
        line = _as_request(request).to_line()
        logger.debug("-> %s", line[:200])
        start = time.perf_counter()
        try:
            response = channel.send_and_receive(line, timeout=self.config.request_timeout)
        except EngineIOError:
            if self._process is not None and not self._process.alive:
                self.state = SessionState.FAILED
            raise
        logger.info("[PERF] engine request completed in %.3fs", time.perf_counter() - start)
        return response

    def recognize_path(self, path: Union[str, os.PathLike]) -> str:
        return self.recognize(Request.by_path(os.fspath(path)))

    def recognize_base64(self, data: str) -> str:
        return self.recognize(Request.by_base64(data))

    def recognize_image(self, image, image_format: str = "PNG") -> str:
        """OCR an in-memory image (Pillow image or encoded bytes)."""
        return self.recognize(Request.by_base64(image_to_base64(image, image_format)))

    def recognize_clipboard(self) -> str:
        return self.recognize(Request.clipboard())

    def recognize_and_parse(self, request: RequestLike) -> Union[List[TextRecord], EngineStatus]:
        """Recognize and decode the reply.

        Returns the text records for code 100 and an :class:`EngineStatus`
        for every other code, 101 (no text) included. Raises
        :class:`ResponseMalformedError` when the reply is not an envelope.
        """
        line = self.recognize(request)
        envelope = parse_response(line)
        if isinstance(envelope.data, str):
            if envelope.code == StatusCode.TEXT_FOUND:
                raise ResponseMalformedError(line, "code 100 carried a message")
            status = EngineStatus(code=envelope.code, message=envelope.data)
            if status.is_no_text:
                logger.info("[OCR] no text found")
            else:
                logger.warning("[OCR] engine reported %s", status)
            return status
        if envelope.code != StatusCode.TEXT_FOUND:
            raise ResponseMalformedError(line, f"code {envelope.code} carried text records")
        logger.info("[OCR] n_records=%d", len(envelope.data))
        return envelope.data

    def close(self) -> None:
        """Terminate the engine. Idempotent."""
        if self._process is not None:
            self._process.terminate()
        if self.state is not SessionState.CLOSED:
            logger.debug("Session closed (was %s)", self.state.value)
        self.state = SessionState.CLOSED

    def __enter__(self) -> "OcrSession":
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        return f"<OcrSession {self.state.value} {self._process!r}>"
