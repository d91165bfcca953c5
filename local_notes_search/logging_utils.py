from __future__ import annotations

import json
import logging
import os
import sys

# Chatty while the embedding model loads.
NOISY_LOGGERS = ("sentence_transformers", "transformers", "huggingface_hub", "filelock", "urllib3", "faiss")

PLAIN_FORMAT = "%(levelname)s %(name)s - %(message)s"
DEBUG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(filename)s:%(lineno)d - %(message)s"


class JsonLinesFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def resolve_level(level: str | None) -> int:
    """Level name from the CLI, else LOG_LEVEL, else INFO. Unknown names mean INFO."""
    name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str | None = None, json_logs: bool = False) -> None:
    """Send all logs to stderr; stdout is reserved for command output."""
    final_level = resolve_level(level)

    handler = logging.StreamHandler(stream=sys.stderr)
    if json_logs:
        handler.setFormatter(JsonLinesFormatter())
    else:
        fmt = DEBUG_FORMAT if final_level <= logging.DEBUG else PLAIN_FORMAT
        handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(final_level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(final_level, logging.WARNING))
