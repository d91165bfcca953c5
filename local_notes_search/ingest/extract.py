"""Recover note prose from decompressed note-content bytes.

The note body format has no published schema. Prose comes first, followed by
structural/metadata fields; some of those fields decode as short text that
looks plausible. The heuristic below classifies each line and stops at the
first run of consecutive garbage lines, which is taken as the start of the
metadata region.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from typing import List, Optional, Protocol

from ..config import ExtractionConfig
from ..errors import EncodingError, ExtractionFallback

logger = logging.getLogger(__name__)

# Hard control characters that delimit structural fields (keeps \t, \n, \r).
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")
LINE_BREAK = re.compile(r"\r\n|\r|\n")
REPLACEMENT_CHAR = "\ufffd"

GARBAGE_RUN_LIMIT = 3
MIN_LINE_LENGTH = 3
SHORT_LINE_LENGTH = 10
SHORT_LINE_PRINTABLE_RATIO = 0.98
LONG_LINE_PRINTABLE_RATIO = 0.90
# Latin letters the format uses as one-character field tags ("*J", "R$", "(Z").
MARKER_LETTERS = "JRZbjxz"

# Common symbol / emoji blocks counted as printable on top of letters, digits,
# punctuation and spaces.
_SYMBOL_RANGES = (
    (0x2000, 0x2BFF),  # punctuation, arrows, math, dingbats, misc symbols
    (0x1F000, 0x1FAFF),  # emoji and pictographs
)
_EMOJI_JOINERS = {"\u200d", "\ufe0e", "\ufe0f"}


def decode_utf8(data: bytes) -> str:
    """Decode bytes as UTF-8, substituting replacement markers on bad input."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.debug("%s", EncodingError(f"invalid UTF-8 at byte {e.start}; decoding lossily"))
        return data.decode("utf-8", errors="replace")


def is_printable(ch: str) -> bool:
    code = ord(ch)
    if 0x20 <= code <= 0x7E or ch == "\t":
        return True
    if ch in _EMOJI_JOINERS:
        return True
    if any(lo <= code <= hi for lo, hi in _SYMBOL_RANGES):
        return True
    # Letters, marks, numbers, punctuation, symbols, space separators.
    category = unicodedata.category(ch)
    return category[0] in "LMNPS" or category == "Zs"


def fallback_text(data: bytes) -> str:
    """Strip hard control characters and collapse whitespace. Never raises."""
    text = data.decode("utf-8", errors="replace").replace(REPLACEMENT_CHAR, "")
    text = CONTROL_CHARS.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()


class TextRecovery(Protocol):
    """Anything that turns decompressed note bytes into readable text."""

    def recover(self, data: bytes) -> str: ...


class HeuristicTextRecovery:
    """Line-classifying text recovery with tunable thresholds."""

    def __init__(
        self,
        garbage_run_limit: int = GARBAGE_RUN_LIMIT,
        min_line_length: int = MIN_LINE_LENGTH,
        short_line_length: int = SHORT_LINE_LENGTH,
        short_line_ratio: float = SHORT_LINE_PRINTABLE_RATIO,
        long_line_ratio: float = LONG_LINE_PRINTABLE_RATIO,
        marker_letters: str = MARKER_LETTERS,
    ):
        self.garbage_run_limit = garbage_run_limit
        self.min_line_length = min_line_length
        self.short_line_length = short_line_length
        self.short_line_ratio = short_line_ratio
        self.long_line_ratio = long_line_ratio
        self._marker_line = re.compile(
            r"^[\s\d*" + re.escape(marker_letters) + r"!-/:-@\[-`{-~]+$"
        )

    @classmethod
    def from_config(cls, cfg: ExtractionConfig) -> "HeuristicTextRecovery":
        return cls(
            garbage_run_limit=cfg.garbage_run_limit,
            min_line_length=cfg.min_line_length,
            short_line_length=cfg.short_line_length,
            short_line_ratio=cfg.short_line_printable_ratio,
            long_line_ratio=cfg.long_line_printable_ratio,
            marker_letters=cfg.marker_letters,
        )

    def is_garbage(self, line: str) -> bool:
        if len(line) < self.min_line_length:
            return True
        if self._marker_line.match(line):
            return True
        printable = sum(1 for ch in line if is_printable(ch))
        ratio = printable / len(line)
        if len(line) < self.short_line_length:
            return ratio < self.short_line_ratio
        return ratio < self.long_line_ratio

    def split_lines(self, text: str) -> List[str]:
        text = CONTROL_CHARS.sub("\n", text.replace(REPLACEMENT_CHAR, ""))
        lines = (ln.strip() for ln in LINE_BREAK.split(text))
        return [ln for ln in lines if ln]

    def scan(self, lines: List[str]) -> List[str]:
        kept: List[str] = []
        run = 0
        for line in lines:
            if self.is_garbage(line):
                run += 1
                if run >= self.garbage_run_limit:
                    break
                continue
            run = 0
            kept.append(line)
        return kept

    def recover(self, data: bytes) -> str:
        try:
            kept = self.scan(self.split_lines(decode_utf8(data)))
        except Exception as e:
            logger.warning("%s", ExtractionFallback(f"line classification failed: {e}"))
            return fallback_text(data)
        return "\n".join(kept).strip()


DEFAULT_RECOVERY = HeuristicTextRecovery()


def extract_readable_text(data: bytes, recovery: Optional[TextRecovery] = None) -> str:
    """Single entry point for text recovery; defaults to the line heuristic."""
    return (recovery or DEFAULT_RECOVERY).recover(data)
