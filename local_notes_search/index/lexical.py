from __future__ import annotations

import json
import pickle
import re
from pathlib import Path
from typing import List, Optional

from rank_bm25 import BM25Okapi

from .schema import Hit, NoteRecord

RECORDS_FILE = "records.jsonl"
BM25_FILE = "bm25.pkl"


def _tok(s: str) -> list[str]:
    return re.findall(r"\w+", s.lower())


class LexicalIndexer:
    """BM25 over record content; also owns the on-disk record list."""

    def __init__(self, index_dir: Path):
        self.index_dir = Path(index_dir)
        self.bm25: Optional[BM25Okapi] = None
        self.records: list[NoteRecord] = []
        self._by_id: dict[str, NoteRecord] = {}
        self._terms: list[set[str]] = []

    def _index_terms(self) -> list[list[str]]:
        docs = [_tok(r.content) for r in self.records]
        self._by_id = {r.id: r for r in self.records}
        self._terms = [set(d) for d in docs]
        return docs

    def build(self, records: List[NoteRecord]):
        self.index_dir.mkdir(parents=True, exist_ok=True)
        self.records = list(records)
        docs = self._index_terms()
        # BM25Okapi cannot be built from an empty corpus
        self.bm25 = BM25Okapi(docs) if docs else None
        with open(self.index_dir / BM25_FILE, "wb") as f:
            pickle.dump(self.bm25, f)
        with open(self.index_dir / RECORDS_FILE, "w", encoding="utf-8") as out:
            for r in self.records:
                out.write(r.model_dump_json() + "\n")

    def load(self) -> "LexicalIndexer":
        with open(self.index_dir / BM25_FILE, "rb") as f:
            self.bm25 = pickle.load(f)
        records = []
        with open(self.index_dir / RECORDS_FILE, "r", encoding="utf-8") as f:
            for i, ln in enumerate(f, start=1):
                s = ln.strip()
                if not s:
                    continue
                try:
                    records.append(NoteRecord(**json.loads(s)))
                except (json.JSONDecodeError, ValueError) as e:
                    raise RuntimeError(
                        f"Failed to parse record line {i} in {self.index_dir / RECORDS_FILE}: {e}"
                    ) from e
        self.records = records
        self._index_terms()
        return self

    def exists(self) -> bool:
        return (self.index_dir / RECORDS_FILE).exists() and (self.index_dir / BM25_FILE).exists()

    def search(self, query: str, top_k: int = 20) -> List[Hit]:
        """Records sharing at least one term with the query, best BM25 score first.

        Okapi IDF drops to zero or below for terms in half the corpus or more,
        so the score alone cannot tell a match from a miss in small stores.
        """
        terms = _tok(query)
        if self.bm25 is None or not terms or top_k <= 0:
            return []
        wanted = set(terms)
        scores = self.bm25.get_scores(terms)
        pairs = [(i, float(s)) for i, s in enumerate(scores) if wanted & self._terms[i]]
        pairs.sort(key=lambda x: x[1], reverse=True)
        return [Hit(chunk_id=self.records[i].id, score=s) for i, s in pairs[:top_k]]

    def load_records_by_ids(self, ids: List[str]) -> List[NoteRecord]:
        return [self._by_id[i] for i in ids if i in self._by_id]
