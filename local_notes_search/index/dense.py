from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
from sentence_transformers import SentenceTransformer

from .schema import Hit, NoteRecord

try:
    import faiss  # type: ignore
except Exception:
    faiss = None  # noqa: F401

# text batch -> [N, D] float32 matrix of L2-normalized vectors
EmbeddingFunction = Callable[[List[str]], np.ndarray]


class SentenceTransformerEmbedder:
    """On-device embedding model, loaded lazily on first use."""

    def __init__(self, model_name: str, ndims: int = 384):
        self.model_name = model_name
        self.ndims = ndims
        self.model: Optional[SentenceTransformer] = None

    def __call__(self, texts: List[str]) -> np.ndarray:
        if self.model is None:
            self.model = SentenceTransformer(self.model_name)
        embs = self.model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return np.asarray(embs, dtype="float32").reshape(len(texts), -1)


class DenseIndexer:
    def __init__(self, index_dir: Path, embed: EmbeddingFunction):
        self.index_dir = Path(index_dir)
        self.embed = embed
        self.faiss = None
        self.chunk_id_order: list[str] = []
        self._emb_matrix: Optional[np.ndarray] = None

    def build(self, records: List[NoteRecord]):
        self.index_dir.mkdir(parents=True, exist_ok=True)
        self.chunk_id_order = [r.id for r in records]
        if records:
            X = self.embed([r.content for r in records])  # [N, D]
        else:
            X = np.zeros((0, 0), dtype="float32")
        np.save(self.index_dir / "embeddings.npy", X)
        (self.index_dir / "chunk_ids.json").write_text(json.dumps(self.chunk_id_order), encoding="utf-8")

        index_path = self.index_dir / "faiss.index"
        if faiss is not None and len(records):
            index = faiss.IndexFlatIP(X.shape[1])
            index.add(X)
            faiss.write_index(index, str(index_path))
            self.faiss = index
        else:
            index_path.unlink(missing_ok=True)
            self.faiss = None
        self._emb_matrix = X

    def load(self) -> "DenseIndexer":
        self.chunk_id_order = json.loads((self.index_dir / "chunk_ids.json").read_text(encoding="utf-8"))
        if faiss is not None and (self.index_dir / "faiss.index").exists():
            self.faiss = faiss.read_index(str(self.index_dir / "faiss.index"))
            self._emb_matrix = None
        else:
            self.faiss = None
            self._emb_matrix = np.load(self.index_dir / "embeddings.npy")
        return self

    def search(self, query: str, top_k: int = 20) -> List[Hit]:
        if not self.chunk_id_order or top_k <= 0:
            return []
        q = np.asarray(self.embed([query]), dtype="float32")
        if self.faiss is not None:
            scores, idxs = self.faiss.search(q, min(top_k, len(self.chunk_id_order)))
            idxs = idxs[0].tolist()
            scores = scores[0].tolist()
        else:
            M = self._emb_matrix
            assert M is not None, "Embeddings matrix not loaded"
            sims = (q @ M.T)[0]
            if top_k >= sims.shape[0]:
                top_idx = np.argsort(-sims, kind="stable")
            else:
                part = np.argpartition(-sims, top_k)[:top_k]
                top_idx = part[np.argsort(-sims[part], kind="stable")]
            idxs = top_idx.tolist()
            scores = sims[idxs].tolist()

        hits = []
        for i, s in zip(idxs, scores):
            if i == -1:
                continue
            hits.append(Hit(chunk_id=self.chunk_id_order[i], score=float(s)))
        return hits
