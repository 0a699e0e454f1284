"""Normalize legacy-encoded result cells to canonical Unicode."""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Sequence
from typing import Any

logger = logging.getLogger(__name__)

# Legacy single-byte codecs such as cp1252 accept nearly any byte string;
# add them through config only when no binary columns are read
DEFAULT_DETECT_ORDER = ("ascii", "utf-8")


def detect_encoding(data: bytes, detect_order: Sequence[str] = DEFAULT_DETECT_ORDER) -> str | None:
    """Return the first encoding in ``detect_order`` that strictly decodes ``data``.

    Detection is deterministic: bytes valid in several encodings are
    attributed to the earliest one listed. Returns None when none fits.
    """
    for encoding in detect_order:
        try:
            data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            continue
        return encoding
    return None


def normalize_text(value: Any, detect_order: Sequence[str] = DEFAULT_DETECT_ORDER) -> Any:
    """Normalize one scalar cell.

    ``str`` is brought to NFC. ``bytes`` are decoded with the detected
    encoding and left otherwise untouched, so re-encoding gives back the
    original bytes when the match is ascii or utf-8. Bytes that match no
    encoding are returned unchanged. Other values pass through.
    """
    if isinstance(value, str):
        return unicodedata.normalize("NFC", value)
    if isinstance(value, (bytes, bytearray)):
        data = bytes(value)
        encoding = detect_encoding(data, detect_order)
        if encoding is None:
            logger.debug("Leaving %d-byte cell undecoded: no encoding matched", len(data))
            return value
        return data.decode(encoding)
    return value


def normalize_result(result: Any, detect_order: Sequence[str] = DEFAULT_DETECT_ORDER) -> Any:
    """Apply :func:`normalize_text` to every scalar in a row or row set."""
    if isinstance(result, dict):
        return {key: normalize_result(cell, detect_order) for key, cell in result.items()}
    if isinstance(result, (list, tuple)):
        return [normalize_result(item, detect_order) for item in result]
    return normalize_text(result, detect_order)
