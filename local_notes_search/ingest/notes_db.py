"""Read-only access to the NoteStore SQLite database."""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, List, Optional

from ..errors import NoteStoreError
from ..index.schema import Note, NoteListItem
from .decode import decode_note_content
from .extract import TextRecovery
from .timestamps import to_datetime

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = (
    Path.home() / "Library" / "Group Containers" / "group.com.apple.notes" / "NoteStore.sqlite"
)

_NOT_DELETED = "(n.ZMARKEDFORDELETION IS NULL OR n.ZMARKEDFORDELETION != 1)"

_LIST_SQL = f"""
    SELECT n.Z_PK AS id, n.ZTITLE1 AS title, n.ZSNIPPET AS snippet,
           n.ZMODIFICATIONDATE1 AS modification_date
    FROM ZICCLOUDSYNCINGOBJECT n
    WHERE n.ZTITLE1 IS NOT NULL AND {_NOT_DELETED}
"""

_FULL_SQL = f"""
    SELECT n.Z_PK AS id, n.ZTITLE1 AS title, n.ZSNIPPET AS snippet,
           n.ZCREATIONDATE1 AS creation_date, n.ZMODIFICATIONDATE1 AS modification_date,
           n.ZFOLDER AS folder_id, d.ZDATA AS content
    FROM ZICCLOUDSYNCINGOBJECT n
    LEFT JOIN ZICNOTEDATA d ON d.ZNOTE = n.Z_PK
"""


class NotesDB:
    """Read-only wrapper around the note store.

    Content blobs are decoded on read; a bad blob yields an empty body rather
    than an error.
    """

    def __init__(self, db_path: Optional[str | Path] = None, recovery: Optional[TextRecovery] = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._recovery = recovery
        if not self.db_path.exists():
            raise NoteStoreError(f"note store not found: {self.db_path}")
        try:
            self._conn = sqlite3.connect(
                f"file:{self.db_path}?mode=ro", uri=True, check_same_thread=False
            )
        except sqlite3.Error as e:
            raise NoteStoreError(f"cannot open note store {self.db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row

    def __enter__(self) -> "NotesDB":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise NoteStoreError(f"note store query failed: {e}") from e

    def _list_item(self, row: sqlite3.Row) -> NoteListItem:
        return NoteListItem(
            id=row["id"],
            title=row["title"] or "Untitled",
            snippet=row["snippet"] or "",
            modification_date=to_datetime(row["modification_date"]),
        )

    def _note(self, row: sqlite3.Row) -> Note:
        return Note(
            id=row["id"],
            title=row["title"] or "Untitled",
            snippet=row["snippet"] or "",
            content=decode_note_content(row["content"], self._recovery),
            creation_date=to_datetime(row["creation_date"]),
            modification_date=to_datetime(row["modification_date"]),
            folder_id=row["folder_id"],
        )

    def list_notes(self) -> List[NoteListItem]:
        rows = self._query(_LIST_SQL + " ORDER BY n.ZMODIFICATIONDATE1 DESC")
        return [self._list_item(r) for r in rows]

    def get_note_by_title(self, title: str) -> Optional[Note]:
        rows = self._query(
            _FULL_SQL + f" WHERE n.ZTITLE1 = ? AND {_NOT_DELETED} LIMIT 1", (title,)
        )
        return self._note(rows[0]) if rows else None

    def get_all_notes_with_content(self) -> List[Note]:
        rows = self._query(
            _FULL_SQL
            + f" WHERE n.ZTITLE1 IS NOT NULL AND {_NOT_DELETED}"
            + " ORDER BY n.ZMODIFICATIONDATE1 DESC"
        )
        notes = [self._note(r) for r in rows]
        logger.debug("Loaded %d notes from %s", len(notes), self.db_path)
        return notes

    def search_notes(self, query: str, limit: int = 50) -> List[NoteListItem]:
        pattern = f"%{query}%"
        rows = self._query(
            _LIST_SQL
            + " AND (n.ZTITLE1 LIKE ? OR n.ZSNIPPET LIKE ?)"
            + " ORDER BY n.ZMODIFICATIONDATE1 DESC LIMIT ?",
            (pattern, pattern, limit),
        )
        return [self._list_item(r) for r in rows]

    def close(self) -> None:
        self._conn.close()
