import hashlib
import re
import sqlite3
import sys
from pathlib import Path

import numpy as np
import pytest

# Repo root = one level above tests/
REPO_ROOT = Path(__file__).resolve().parents[1]

# Ensure repo root is on sys.path so `import cli` (root module) works.
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


class FakeEmbedder:
    """Deterministic bag-of-words hashing embedder (no model download)."""

    ndims = 32

    def __init__(self):
        self.calls = 0

    def __call__(self, texts):
        self.calls += 1
        out = np.zeros((len(texts), self.ndims), dtype="float32")
        for row, text in enumerate(texts):
            for tok in re.findall(r"\w+", text.lower()):
                h = int(hashlib.md5(tok.encode("utf-8")).hexdigest(), 16)
                out[row, h % self.ndims] += 1.0
            norm = np.linalg.norm(out[row])
            if norm > 0:
                out[row] /= norm
        return out


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


NOTE_STORE_SCHEMA = """
CREATE TABLE ZICCLOUDSYNCINGOBJECT (
    Z_PK INTEGER PRIMARY KEY,
    ZTITLE1 TEXT,
    ZSNIPPET TEXT,
    ZCREATIONDATE1 REAL,
    ZMODIFICATIONDATE1 REAL,
    ZFOLDER INTEGER,
    ZMARKEDFORDELETION INTEGER
);
CREATE TABLE ZICNOTEDATA (
    Z_PK INTEGER PRIMARY KEY,
    ZNOTE INTEGER,
    ZDATA BLOB
);
"""


def make_note_store(path: Path, notes) -> Path:
    """notes: dicts with title, snippet, body (bytes|None), created, modified, deleted."""
    conn = sqlite3.connect(path)
    conn.executescript(NOTE_STORE_SCHEMA)
    for pk, n in enumerate(notes, start=1):
        conn.execute(
            "INSERT INTO ZICCLOUDSYNCINGOBJECT VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                pk,
                n.get("title"),
                n.get("snippet", ""),
                n.get("created"),
                n.get("modified", pk * 1000),
                n.get("folder"),
                1 if n.get("deleted") else None,
            ),
        )
        if n.get("body") is not None:
            conn.execute(
                "INSERT INTO ZICNOTEDATA (ZNOTE, ZDATA) VALUES (?, ?)", (pk, n["body"])
            )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def note_store(tmp_path):
    def _make(notes):
        return make_note_store(tmp_path / "NoteStore.sqlite", notes)

    return _make
