import gzip
from datetime import datetime, timezone

import pytest

from local_notes_search import app
from local_notes_search.config import AppConfig, ChunkingConfig, RetrievalConfig
from local_notes_search.errors import IndexNotReadyError
from local_notes_search.index.schema import Note
from local_notes_search.index.store import NotesIndex
from local_notes_search.ingest.notes_db import NotesDB

LONG_BODY = " ".join(f"Paragraph {i} covers the lighthouse restoration budget." for i in range(60))

NOTES = [
    {"title": "Lighthouse", "snippet": "restoration", "body": gzip.compress(LONG_BODY.encode()), "modified": 300},
    {"title": "Bike repair", "snippet": "chain", "body": b"Replace the chain and pump the tyres.", "modified": 200},
    {"title": "Shopping", "snippet": "", "body": None, "modified": 100},
]


def _note(title, content):
    when = datetime(2023, 1, 1, tzinfo=timezone.utc)
    return Note(id=1, title=title, snippet="", content=content, creation_date=when, modification_date=when)


@pytest.fixture
def cfg(tmp_path):
    return AppConfig.model_validate(
        {
            "chunking": {"max_chunk_size": 200, "overlap": 20},
            "index": {"index_dir": str(tmp_path / "index")},
            "retrieval": {"limit": 5},
        }
    )


@pytest.fixture
def notes_db(note_store):
    with NotesDB(note_store(NOTES)) as db:
        yield db


@pytest.fixture
def index(cfg, fake_embedder):
    return NotesIndex(cfg.index.index_dir, fake_embedder)


def test_note_without_body_is_indexed_by_title():
    records = app.build_note_records([_note("Shopping", "")], ChunkingConfig())
    assert len(records) == 1
    assert records[0].content == "Shopping"
    assert records[0].creation_date == "2023-01-01T00:00:00+00:00"


def test_untitled_notes_are_skipped():
    assert app.build_note_records([_note("", "body text")], ChunkingConfig()) == []


def test_long_note_becomes_several_records_with_unique_ids():
    records = app.build_note_records(
        [_note("Long", "x. " * 500), _note("Short", "hi")],
        ChunkingConfig(max_chunk_size=100, overlap=10),
    )
    assert len(records) > 2
    assert len({r.id for r in records}) == len(records)
    assert records[-1].title == "Short"


def test_note_that_fails_to_chunk_is_skipped(monkeypatch, caplog):
    def boom(*a, **k):
        raise ValueError("bad note")

    monkeypatch.setattr(app, "chunk_note", boom)
    with caplog.at_level("WARNING"):
        assert app.build_note_records([_note("Broken", "text")], ChunkingConfig()) == []
    assert "Broken" in caplog.text


def test_index_notes_reports_counts(notes_db, index, cfg):
    report = app.index_notes(notes_db, index, cfg)
    assert report.notes == 3
    assert report.chunks > 3
    assert report.time_ms >= 0
    assert index.count() == report.chunks


def test_search_requires_index(index, cfg):
    with pytest.raises(IndexNotReadyError):
        app.search_notes(index, "anything", cfg.retrieval)


def test_ensure_indexed_builds_once(notes_db, index, cfg):
    assert app.ensure_indexed(notes_db, index, cfg) is True
    assert app.ensure_indexed(notes_db, index, cfg) is False


def test_search_fuses_vector_and_lexical(notes_db, index, cfg):
    app.index_notes(notes_db, index, cfg)
    results = app.search_notes(index, "chain tyres", cfg.retrieval)
    assert results[0].title == "Bike repair"
    assert len(results) <= cfg.retrieval.limit
    keys = [(r.title, r.content) for r in results]
    assert len(keys) == len(set(keys))
    assert all(a.score >= b.score for a, b in zip(results, results[1:]))


def test_search_finds_note_indexed_by_title(notes_db, index, cfg):
    app.index_notes(notes_db, index, cfg)
    results = app.search_notes(index, "shopping", RetrievalConfig(limit=3))
    assert results[0].title == "Shopping"
    assert results[0].content == "Shopping"


def test_get_note_details(notes_db):
    details = app.get_note_details(notes_db, "Bike repair")
    assert details["content"] == "Replace the chain and pump the tyres."
    assert details["modification_date"] == "2001-01-01T00:03:20+00:00"


def test_get_note_details_not_found(notes_db):
    assert app.get_note_details(notes_db, "Nope") == {
        "title": "",
        "content": "",
        "creation_date": "",
        "modification_date": "",
    }


def test_list_stats_and_purge(notes_db, index, cfg):
    assert app.list_note_titles(notes_db) == ["Lighthouse", "Bike repair", "Shopping"]
    app.index_notes(notes_db, index, cfg)
    stats = app.index_stats(notes_db, index, cfg)
    assert stats.total_notes == 3
    assert stats.indexed_chunks == index.count()
    assert stats.chunk_size == 200
    assert stats.chunk_overlap == 20
    assert app.purge_index(index) is True
    assert app.index_stats(notes_db, index, cfg).indexed_chunks == 0


def test_find_notes_uses_title_and_snippet(notes_db):
    assert [n.title for n in app.find_notes(notes_db, "chain")] == ["Bike repair"]
    assert [n.title for n in app.find_notes(notes_db, "", limit=1)] == ["Lighthouse"]
