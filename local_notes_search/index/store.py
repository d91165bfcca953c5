from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List

from .dense import DenseIndexer, EmbeddingFunction
from .lexical import LexicalIndexer
from .schema import Hit, NoteRecord

logger = logging.getLogger(__name__)


class NotesIndex:
    """Vector + lexical index over note chunks, persisted under one directory.

    The embedding function is injected so a single model instance can be
    shared for the lifetime of the process.
    """

    def __init__(self, index_dir: str | Path, embed: EmbeddingFunction):
        self.index_dir = Path(index_dir).expanduser()
        self.lexical = LexicalIndexer(self.index_dir)
        self.dense = DenseIndexer(self.index_dir, embed)
        self._loaded = False

    def build(self, records: List[NoteRecord]) -> None:
        self.lexical.build(records)
        self.dense.build(records)
        self._loaded = True
        logger.info("Index built: %d chunks in %s", len(records), self.index_dir)

    def load(self) -> "NotesIndex":
        if not self._loaded:
            self.lexical.load()
            self.dense.load()
            self._loaded = True
        return self

    def exists(self) -> bool:
        return self.lexical.exists()

    def count(self) -> int:
        if not self.exists():
            return 0
        return len(self.load().lexical.records)

    def is_ready(self) -> bool:
        try:
            return self.count() > 0
        except (OSError, RuntimeError) as e:
            logger.warning("Index at %s is unreadable: %s", self.index_dir, e)
            return False

    def purge(self) -> bool:
        """Delete the index directory. Returns False if there was nothing to purge."""
        self._loaded = False
        self.lexical.records = []
        self.lexical.bm25 = None
        if not self.index_dir.exists():
            return False
        shutil.rmtree(self.index_dir)
        logger.info("Purged index at %s", self.index_dir)
        return True

    def _records(self, hits: List[Hit]) -> List[NoteRecord]:
        return self.lexical.load_records_by_ids([h.chunk_id for h in hits])

    def vector_search(self, query: str, limit: int = 20) -> List[NoteRecord]:
        return self._records(self.load().dense.search(query, top_k=limit))

    def text_search(self, query: str, limit: int = 20) -> List[NoteRecord]:
        return self._records(self.load().lexical.search(query, top_k=limit))
