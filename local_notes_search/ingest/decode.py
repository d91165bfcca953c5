from __future__ import annotations

import gzip
import logging
import zlib
from typing import Optional

from ..errors import DecodeError
from .extract import TextRecovery, decode_utf8, extract_readable_text

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


def gunzip(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"corrupt or truncated gzip stream ({len(data)} bytes): {e}") from e


def decode_note_content(
    data: Optional[bytes], recovery: Optional[TextRecovery] = None
) -> str:
    """Turn a raw note body into text. Best effort: failures yield "".

    Gzip payloads go through text recovery; anything else is decoded as
    (lossy) UTF-8 directly.
    """
    if not data:
        return ""
    try:
        if bytes(data[:2]) == GZIP_MAGIC:
            return extract_readable_text(gunzip(bytes(data)), recovery)
        return decode_utf8(bytes(data))
    except DecodeError as e:
        logger.warning("Skipping note content: %s", e)
        return ""
    except Exception as e:
        # one unreadable note must never stop the rest from indexing
        logger.warning("Unexpected error decoding note content: %s", e, exc_info=True)
        return ""
