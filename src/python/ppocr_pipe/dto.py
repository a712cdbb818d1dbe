from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, List, Optional, Tuple, Union

from .errors import ResponseMalformedError

CLIPBOARD_PATH = "clipboard"

Point = Tuple[int, int]
Quad = Tuple[Point, Point, Point, Point]


class StatusCode(IntEnum):
    TEXT_FOUND = 100
    NO_TEXT = 101
    PATH_NOT_EXIST = 200
    PATH_CONVERT_FAILED = 201
    PATH_OPEN_FAILED = 202
    IMAGE_DECODE_FAILED = 203
    CLIPBOARD_OPEN_FAILED = 210
    CLIPBOARD_EMPTY = 211
    CLIPBOARD_FORMAT_INVALID = 212
    CLIPBOARD_HANDLE_FAILED = 213
    CLIPBOARD_FILE_COUNT = 214
    CLIPBOARD_BITMAP_INFO = 215
    CLIPBOARD_BITMAP_BITS = 216
    CLIPBOARD_CHANNELS = 217
    UNKNOWN = 299
    BASE64_DECODE_FAILED = 300
    BASE64_IMAGE_DECODE_FAILED = 301
    JSON_DUMP_FAILED = 400
    JSON_PARSE_FAILED = 401
    JSON_KEY_FAILED = 402
    NO_TASK = 403

    @classmethod
    def lookup(cls, code: int) -> Optional["StatusCode"]:
        try:
            return cls(code)
        except ValueError:
            return None

    @property
    def family(self) -> str:
        if self is StatusCode.TEXT_FOUND:
            return "text"
        if self is StatusCode.NO_TEXT:
            return "no_text"
        if self is StatusCode.UNKNOWN:
            return "unknown"
        if 210 <= self <= 217:
            return "clipboard"
        if 200 <= self <= 203:
            return "path"
        if 300 <= self <= 301:
            return "base64"
        return "json"


@dataclass(frozen=True)
class Request:
    """One unit of work: exactly one of ``image_path`` / ``image_base64``."""

    image_path: Optional[str] = None
    image_base64: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.image_path is None) == (self.image_base64 is None):
            raise ValueError("Request needs exactly one of image_path or image_base64")

    @classmethod
    def by_path(cls, path: Any) -> "Request":
        return cls(image_path=str(path))

    @classmethod
    def by_base64(cls, data: str) -> "Request":
        # the engine expects bare base64, not a data URI
        if data.startswith("data:") and "," in data:
            data = data.split(",", 1)[1]
        return cls(image_base64=data)

    @classmethod
    def clipboard(cls) -> "Request":
        return cls(image_path=CLIPBOARD_PATH)

    @property
    def is_clipboard(self) -> bool:
        return self.image_path == CLIPBOARD_PATH

    def to_payload(self) -> dict:
        if self.image_path is not None:
            return {"image_path": self.image_path}
        return {"image_base64": self.image_base64}

    def to_line(self) -> str:
        """Serialize to a single JSON line without the trailing newline."""
        line = json.dumps(self.to_payload(), ensure_ascii=True)
        return line.replace("\r", "").replace("\n", "")

    @classmethod
    def from_line(cls, line: str) -> "Request":
        payload = json.loads(line)
        if not isinstance(payload, dict):
            raise ValueError("Request line must hold a JSON object")
        keys = {"image_path", "image_base64"} & set(payload)
        if len(keys) != 1:
            raise ValueError("Request line must hold exactly one of image_path/image_base64")
        return cls(**{k: payload[k] for k in keys})


@dataclass(frozen=True)
class TextRecord:
    """One recognized region. ``box`` corners run TL, TR, BR, BL."""

    box: Quad
    score: float
    text: str

    @property
    def bbox(self) -> Tuple[int, int, int, int]:
        xs = [p[0] for p in self.box]
        ys = [p[1] for p in self.box]
        return (min(xs), min(ys), max(xs), max(ys))

    def to_dict(self) -> dict:
        return {"box": [list(p) for p in self.box], "score": self.score, "text": self.text}

    @classmethod
    def from_dict(cls, raw: Any) -> "TextRecord":
        if not isinstance(raw, dict):
            raise TypeError(f"record must be an object, got {type(raw).__name__}")
        box = raw["box"]
        if not isinstance(box, list) or len(box) != 4:
            raise ValueError("box must hold exactly 4 points")
        points = []
        for point in box:
            if not isinstance(point, list) or len(point) != 2:
                raise ValueError("box point must be an [x, y] pair")
            points.append((_as_int(point[0]), _as_int(point[1])))
        score = raw["score"]
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise TypeError("score must be a number")
        if not 0.0 <= score <= 1.0:
            raise ValueError("score must be within [0, 1]")
        text = raw["text"]
        if not isinstance(text, str):
            raise TypeError("text must be a string")
        return cls(box=tuple(points), score=float(score), text=text)  # type: ignore[arg-type]


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("coordinate must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise TypeError(f"coordinate must be an integer, got {value!r}")


@dataclass(frozen=True)
class EngineStatus:
    """A non-success answer from the engine, returned rather than raised."""

    code: int
    message: str

    @property
    def status(self) -> Optional[StatusCode]:
        return StatusCode.lookup(self.code)

    @property
    def is_no_text(self) -> bool:
        return self.code == StatusCode.NO_TEXT

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass
class ResponseEnvelope:
    code: int
    data: Union[List[TextRecord], str] = field(default_factory=list)

    @property
    def has_records(self) -> bool:
        return isinstance(self.data, list)


def parse_response(line: str) -> ResponseEnvelope:
    """Parse one engine reply line.

    The ``data`` shape is not tagged on the wire, so the record-sequence shape
    is tried first and the plain message shape second. Anything else raises
    :class:`ResponseMalformedError`.
    """
    try:
        raw = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ResponseMalformedError(line, f"invalid JSON: {exc}") from exc

    if not isinstance(raw, dict) or "code" not in raw or "data" not in raw:
        raise ResponseMalformedError(line, "expected an object with 'code' and 'data'")
    code = raw["code"]
    if isinstance(code, bool) or not isinstance(code, int):
        raise ResponseMalformedError(line, f"code must be an integer, got {code!r}")

    data = raw["data"]
    if isinstance(data, list):
        try:
            records = [TextRecord.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            records_error = f"record shape mismatch: {exc!r}"
        else:
            return ResponseEnvelope(code=code, data=records)
    else:
        records_error = "data is not an array"

    if isinstance(data, str):
        return ResponseEnvelope(code=code, data=data)

    raise ResponseMalformedError(line, f"{records_error}; data is not a message string")


__all__ = [
    "CLIPBOARD_PATH",
    "StatusCode",
    "Request",
    "TextRecord",
    "EngineStatus",
    "ResponseEnvelope",
    "parse_response",
]
