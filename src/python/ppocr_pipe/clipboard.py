"""Copy recognized text to the host clipboard."""

from __future__ import annotations

from typing import Iterable, Optional

import pyperclip

from . import logging_utils

logger = logging_utils.get_logger(__name__)


def copy_results(texts: Iterable[str], separator: str = "\n") -> Optional[str]:
    """Join the non-empty texts and put them on the clipboard.

    Returns the copied text, or ``None`` when there was nothing to copy or
    the host has no usable clipboard (headless Linux without xclip/xsel).
    """
    joined = separator.join(t for t in texts if t)
    if not joined:
        return None
    try:
        pyperclip.copy(joined)
    except pyperclip.PyperclipException as exc:
        logger.warning("Clipboard unavailable, text not copied: %s", exc)
        return None
    logger.info("Copied %d characters to clipboard", len(joined))
    return joined
