from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List

from .config import AppConfig, ChunkingConfig, RetrievalConfig
from .errors import IndexNotReadyError
from .index.schema import FusedResult, IndexReport, IndexStats, Note, NoteListItem, NoteRecord
from .index.store import NotesIndex
from .ingest.chunker import chunk_note
from .ingest.notes_db import NotesDB
from .retrieve.fuse import rrf_merge

logger = logging.getLogger(__name__)


def build_note_records(notes: Iterable[Note], chunking: ChunkingConfig) -> List[NoteRecord]:
    """Chunk every titled note into index records.

    A note whose body yields no chunks is indexed once with its title as
    content, so it stays findable. A note that fails to chunk is skipped.
    """
    records: List[NoteRecord] = []
    for note in notes:
        if not note.title:
            continue
        try:
            chunks = chunk_note(note.title, note.content, chunking.max_chunk_size, chunking.overlap)
        except Exception as e:
            logger.warning("Skipping note %r (id=%s): %s", note.title, note.id, e)
            continue
        texts = [c.text for c in chunks] or [note.title]
        created = note.creation_date.isoformat()
        modified = note.modification_date.isoformat()
        for text in texts:
            records.append(
                NoteRecord(
                    id=str(len(records)),
                    title=note.title,
                    content=text,
                    creation_date=created,
                    modification_date=modified,
                )
            )
    return records


def index_notes(notes_db: NotesDB, index: NotesIndex, cfg: AppConfig) -> IndexReport:
    """Rebuild the search index from every note in the store."""
    t0 = time.perf_counter()
    notes = notes_db.get_all_notes_with_content()
    records = build_note_records(notes, cfg.chunking)
    index.build(records)
    report = IndexReport(
        chunks=len(records),
        notes=len(notes),
        time_ms=int((time.perf_counter() - t0) * 1000),
    )
    logger.info("Indexed %d chunks from %d notes in %d ms", report.chunks, report.notes, report.time_ms)
    return report


def ensure_indexed(notes_db: NotesDB, index: NotesIndex, cfg: AppConfig) -> bool:
    """Build the index if it is missing or empty. Returns True if it was built."""
    if index.is_ready():
        return False
    logger.info("Index missing or empty; indexing notes now")
    index_notes(notes_db, index, cfg)
    return True


def search_notes(index: NotesIndex, query: str, retrieval: RetrievalConfig) -> List[FusedResult]:
    """Vector + full-text search, fused with RRF."""
    if not index.is_ready():
        raise IndexNotReadyError(f"no index at {index.index_dir}; run 'index' first")
    index.load()
    t0 = time.perf_counter()
    with ThreadPoolExecutor(max_workers=2) as pool:
        vec_future = pool.submit(index.vector_search, query, retrieval.limit)
        fts_future = pool.submit(index.text_search, query, retrieval.limit)
        vector_hits = vec_future.result()
        lexical_hits = fts_future.result()
    fused = rrf_merge(vector_hits, lexical_hits, k=retrieval.rrf_k, limit=retrieval.limit)
    logger.debug(
        "search %r: vector=%d lexical=%d fused=%d (%d ms)",
        query,
        len(vector_hits),
        len(lexical_hits),
        len(fused),
        int((time.perf_counter() - t0) * 1000),
    )
    return fused


def find_notes(notes_db: NotesDB, query: str, limit: int = 50) -> List[NoteListItem]:
    """Title/snippet substring lookup straight against the note store (no index)."""
    return notes_db.search_notes(query, limit=limit)


def get_note_details(notes_db: NotesDB, title: str) -> dict:
    note = notes_db.get_note_by_title(title)
    if note is None:
        return {"title": "", "content": "", "creation_date": "", "modification_date": ""}
    return {
        "title": note.title,
        "content": note.content,
        "creation_date": note.creation_date.isoformat(),
        "modification_date": note.modification_date.isoformat(),
    }


def list_note_titles(notes_db: NotesDB) -> List[str]:
    return [n.title for n in notes_db.list_notes()]


def index_stats(notes_db: NotesDB, index: NotesIndex, cfg: AppConfig) -> IndexStats:
    return IndexStats(
        indexed_chunks=index.count(),
        total_notes=len(notes_db.list_notes()),
        embedding_model=cfg.index.embedding_model,
        chunk_size=cfg.chunking.max_chunk_size,
        chunk_overlap=cfg.chunking.overlap,
    )


def purge_index(index: NotesIndex) -> bool:
    return index.purge()
