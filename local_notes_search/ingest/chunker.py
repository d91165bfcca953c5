from __future__ import annotations

import re
from typing import List

from ..errors import ConfigurationError
from ..index.schema import TextChunk

SENTENCE_END = re.compile(r"[.!?]\s")
BOUNDARY_SEARCH_CHARS = 200


def chunk_text(text: str, max_chunk_size: int = 1000, overlap: int = 100) -> List[str]:
    """Split text into overlapping windows of at most max_chunk_size chars.

    Windows are pulled back to the first sentence end found in their last
    BOUNDARY_SEARCH_CHARS characters when possible. The cursor always moves
    forward, even when overlap >= the window that was just emitted.
    """
    if max_chunk_size <= 0 or overlap < 0:
        raise ConfigurationError(
            f"invalid chunking parameters: max_chunk_size={max_chunk_size}, overlap={overlap}"
        )
    if not text or not text.strip():
        return []
    if len(text) <= max_chunk_size:
        return [text.strip()]

    chunks: List[str] = []
    start = 0
    while start < len(text):
        end = min(start + max_chunk_size, len(text))

        if end < len(text):
            search_start = max(end - BOUNDARY_SEARCH_CHARS, start)
            m = SENTENCE_END.search(text, search_start, end)
            if m:
                end = m.end()

        piece = text[start:end].strip()
        if piece:
            chunks.append(piece)

        if end >= len(text):
            break

        next_start = end - overlap
        start = next_start if next_start > start else end

    return chunks


def chunk_note(title: str, text: str, max_chunk_size: int = 1000, overlap: int = 100) -> List[TextChunk]:
    return [
        TextChunk(source_title=title, index=i, text=piece)
        for i, piece in enumerate(chunk_text(text, max_chunk_size, overlap))
    ]
