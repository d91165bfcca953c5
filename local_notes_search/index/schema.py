from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class NoteListItem(BaseModel):
    id: int
    title: str
    snippet: str
    modification_date: datetime


class Note(BaseModel):
    id: int
    title: str
    snippet: str
    content: str               # extracted text, already decoded
    creation_date: datetime
    modification_date: datetime
    folder_id: Optional[int] = None


class TextChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_title: str
    index: int = Field(ge=0)
    text: str


class NoteRecord(BaseModel):
    """One row of the search index: a chunk annotated with its note's dates."""

    id: str
    title: str
    content: str
    creation_date: str
    modification_date: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.title, self.content)


class Hit(BaseModel):
    chunk_id: str
    score: float


class RankedItem(BaseModel):
    key: Tuple[str, str]       # (title, content)
    rank: int = Field(ge=0)    # 0 = best


class FusedResult(BaseModel):
    title: str
    content: str
    score: float


class IndexReport(BaseModel):
    chunks: int
    notes: int
    time_ms: int


class IndexStats(BaseModel):
    indexed_chunks: int
    total_notes: int
    embedding_model: str
    chunk_size: int
    chunk_overlap: int
