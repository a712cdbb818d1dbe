"""Command line front end: OCR image files or the clipboard via the engine."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import clipboard, logging_utils
from .config import load_engine_config
from .dto import EngineStatus, Request, StatusCode
from .errors import EngineIOError, OcrPipeError, ResponseMalformedError
from .session import OcrSession
from .utils import (
    combined_text,
    filter_by_score,
    mean_confidence,
    min_confidence,
    sort_reading_order,
)

logger = logging_utils.get_logger(__name__)


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False), flush=True)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ppocr_pipe",
        description="Run a resident PaddleOCR-json engine on images or the clipboard.",
    )
    parser.add_argument("images", nargs="*", type=Path, help="Image files to OCR.")
    parser.add_argument("--exe", type=Path, help="Engine executable (default: $PPOCR_EXE).")
    parser.add_argument(
        "--clipboard", action="store_true", help="Also OCR the image on the clipboard."
    )
    parser.add_argument(
        "--copy", action="store_true", help="Copy the recognized text to the clipboard."
    )
    parser.add_argument(
        "--raw", action="store_true", help="Print the engine's response lines unparsed."
    )
    parser.add_argument("--config-path", help="Engine config file passed as --config_path.")
    parser.add_argument("--init-attempts", type=int, help="Handshake read attempts.")
    parser.add_argument(
        "--timeout", type=float, help="Seconds to wait for each response before giving up."
    )
    parser.add_argument(
        "--flush-banner",
        action="store_true",
        help="Send an empty line at startup (engines with an unterminated banner).",
    )
    parser.add_argument(
        "--min-score",
        type=float,
        default=0.0,
        help="Drop recognized regions scoring below this value.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.images and not args.clipboard:
        parser.error("give at least one image or --clipboard")
    logging_utils.set_verbose(args.verbose)

    requests = [Request.by_path(p) for p in args.images]
    if args.clipboard:
        requests.append(Request.clipboard())

    try:
        config = load_engine_config(
            executable=args.exe,
            config_path=args.config_path,
            init_attempts=args.init_attempts,
            request_timeout=args.timeout,
            flush_banner=True if args.flush_banner else None,
        )
        session = OcrSession(config=config)
    except (OcrPipeError, ValueError) as exc:
        logger.error("Engine startup failed: %s", exc)
        return 2

    all_ok = True
    texts: List[str] = []
    with session:
        for request in requests:
            label = request.image_path
            try:
                if args.raw:
                    print(session.recognize(request), flush=True)
                    continue
                result = session.recognize_and_parse(request)
            except ResponseMalformedError as exc:
                logger.error("%s: %s", label, exc)
                _emit({"image": label, "error": exc.detail, "raw": exc.line})
                all_ok = False
                continue
            except EngineIOError as exc:
                logger.error("%s: engine I/O failed: %s", label, exc)
                return 1

            if isinstance(result, EngineStatus):
                _emit({"image": label, "code": result.code, "data": result.message})
                all_ok = all_ok and result.is_no_text
            else:
                records = sort_reading_order(filter_by_score(result, args.min_score))
                _emit(
                    {
                        "image": label,
                        "code": int(StatusCode.TEXT_FOUND),
                        "data": [r.to_dict() for r in records],
                        "mean_confidence": mean_confidence(records),
                        "min_confidence": min_confidence(records),
                    }
                )
                texts.append(combined_text(records))

    if args.copy:
        clipboard.copy_results(texts)
    return 0 if all_ok else 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
