import gzip
import sqlite3
from datetime import datetime, timezone

import pytest

from local_notes_search.errors import NoteStoreError
from local_notes_search.ingest.notes_db import NotesDB
from local_notes_search.ingest.timestamps import UNKNOWN


NOTES = [
    {"title": "Groceries", "snippet": "milk, eggs", "body": gzip.compress(b"Milk\nEggs\nBread"), "created": 694224000, "modified": 694224100},
    {"title": "Trip plan", "snippet": "Lisbon in May", "body": b"Flights booked for Lisbon.", "modified": 694300000},
    {"title": "Empty one", "snippet": "", "body": None, "modified": 5},
    {"title": "Old draft", "snippet": "gone", "body": b"deleted text", "deleted": True},
    {"title": None, "snippet": "no title here", "body": b"orphan"},
]


@pytest.fixture
def db(note_store):
    with NotesDB(note_store(NOTES)) as notes_db:
        yield notes_db


def test_missing_store_raises(tmp_path):
    with pytest.raises(NoteStoreError):
        NotesDB(tmp_path / "absent.sqlite")


def test_list_notes_skips_deleted_and_untitled(db):
    titles = [n.title for n in db.list_notes()]
    assert titles == ["Trip plan", "Groceries", "Empty one"]


def test_list_item_dates_use_reference_epoch(db):
    groceries = next(n for n in db.list_notes() if n.title == "Groceries")
    assert groceries.modification_date == datetime(2023, 1, 1, 0, 1, 40, tzinfo=timezone.utc)
    assert groceries.snippet == "milk, eggs"


def test_get_note_by_title_decodes_gzip_body(db):
    note = db.get_note_by_title("Groceries")
    assert note is not None
    assert note.content == "Milk\nEggs\nBread"
    assert note.creation_date == datetime(2023, 1, 1, tzinfo=timezone.utc)


def test_get_note_by_title_plain_body(db):
    assert db.get_note_by_title("Trip plan").content == "Flights booked for Lisbon."


def test_missing_dates_and_body(db):
    note = db.get_note_by_title("Empty one")
    assert note.content == ""
    assert note.creation_date == UNKNOWN


def test_unknown_or_deleted_title_returns_none(db):
    assert db.get_note_by_title("Nope") is None
    assert db.get_note_by_title("Old draft") is None


def test_get_all_notes_with_content(db):
    notes = db.get_all_notes_with_content()
    assert [n.title for n in notes] == ["Trip plan", "Groceries", "Empty one"]
    assert notes[1].content.startswith("Milk")


def test_search_notes_matches_title_or_snippet(db):
    assert [n.title for n in db.search_notes("lisbon")] == ["Trip plan"]
    assert [n.title for n in db.search_notes("milk")] == ["Groceries"]
    assert db.search_notes("gone") == []


def test_search_notes_limit(db):
    assert len(db.search_notes("", limit=2)) == 2


def test_store_is_opened_read_only(db):
    with pytest.raises(sqlite3.OperationalError):
        db._conn.execute("DELETE FROM ZICCLOUDSYNCINGOBJECT")
