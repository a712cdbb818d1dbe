"""
Utility functions over recognized text records and image payloads.
Pure functions; nothing here talks to the engine.
"""

from __future__ import annotations

import base64
import io
from typing import Iterable, List, Optional, Sequence, Union

from PIL import Image

from .dto import TextRecord


def image_to_base64(image: Union[Image.Image, bytes, bytearray], image_format: str = "PNG") -> str:
    """
    Encode a Pillow image (or already-encoded image bytes) as bare base64.
    """
    if isinstance(image, (bytes, bytearray)):
        data = bytes(image)
    elif isinstance(image, Image.Image):
        buf = io.BytesIO()
        image.save(buf, format=image_format)
        data = buf.getvalue()
    else:
        raise TypeError(f"Unsupported image type: {type(image).__name__}")
    return base64.b64encode(data).decode("ascii")


def combined_text(records: Iterable[TextRecord], separator: str = "\n") -> str:
    return separator.join(r.text for r in records)


def mean_confidence(records: Sequence[TextRecord]) -> Optional[float]:
    if not records:
        return None
    return float(sum(r.score for r in records) / len(records))


def min_confidence(records: Sequence[TextRecord]) -> Optional[float]:
    if not records:
        return None
    return float(min(r.score for r in records))


def filter_by_score(records: Iterable[TextRecord], min_score: float) -> List[TextRecord]:
    """
    Drop records whose score is below ``min_score``.
    """
    return [r for r in records if r.score >= min_score]


def sort_reading_order(records: Iterable[TextRecord], line_tolerance: int = 10) -> List[TextRecord]:
    """
    Sort top-to-bottom, then left-to-right within a line.
    Records whose top edges differ by at most ``line_tolerance`` pixels share a line.
    """
    ordered = sorted(records, key=lambda r: (r.bbox[1], r.bbox[0]))
    lines: List[List[TextRecord]] = []
    for record in ordered:
        if lines and abs(record.bbox[1] - lines[-1][0].bbox[1]) <= line_tolerance:
            lines[-1].append(record)
        else:
            lines.append([record])
    return [r for line in lines for r in sorted(line, key=lambda r: r.bbox[0])]
