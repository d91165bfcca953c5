from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import ConfigurationError

DEFAULT_INDEX_DIR = Path.home() / ".local-notes-search" / "data"

# env var -> (section, key, type)
ENV_OVERRIDES = {
    "EMBEDDINGS_MODEL": ("index", "embedding_model", str),
    "NOTES_INDEX_DIR": ("index", "index_dir", str),
    "CHUNK_SIZE": ("chunking", "max_chunk_size", int),
    "CHUNK_OVERLAP": ("chunking", "overlap", int),
    "NOTES_DB_PATH": ("notes", "db_path", str),
}


class ChunkingConfig(BaseModel):
    max_chunk_size: int = Field(1000, gt=0)
    overlap: int = Field(100, ge=0)

    @model_validator(mode="after")
    def _overlap_below_size(self) -> "ChunkingConfig":
        if self.overlap >= self.max_chunk_size:
            raise ValueError(
                f"overlap ({self.overlap}) must be smaller than max_chunk_size ({self.max_chunk_size})"
            )
        return self


class ExtractionConfig(BaseModel):
    """Tuning knobs for the garbage-line heuristic."""

    garbage_run_limit: int = Field(3, gt=0)
    min_line_length: int = Field(3, ge=0)
    short_line_length: int = Field(10, ge=0)
    short_line_printable_ratio: float = Field(0.98, ge=0.0, le=1.0)
    long_line_printable_ratio: float = Field(0.90, ge=0.0, le=1.0)
    marker_letters: str = "JRZbjxz"


class IndexConfig(BaseModel):
    index_dir: str = str(DEFAULT_INDEX_DIR)
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dims: int = Field(384, gt=0)


class RetrievalConfig(BaseModel):
    rrf_k: int = Field(60, gt=0)
    limit: int = Field(20, gt=0)


class NotesConfig(BaseModel):
    db_path: str = ""  # empty -> platform default NoteStore location


class AppConfig(BaseModel):
    chunking: ChunkingConfig = ChunkingConfig()
    extraction: ExtractionConfig = ExtractionConfig()
    index: IndexConfig = IndexConfig()
    retrieval: RetrievalConfig = RetrievalConfig()
    notes: NotesConfig = NotesConfig()


def _apply_env(raw: dict) -> dict:
    for var, (section, key, cast) in ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value is None or value == "":
            continue
        try:
            converted = cast(value)
        except ValueError as e:
            raise ConfigurationError(f"{var}={value!r} is not a valid {cast.__name__}") from e
        raw.setdefault(section, {})
        raw[section][key] = converted
    return raw


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """Load YAML config (missing file -> defaults), apply env overrides, validate.

    Raises ConfigurationError on any invalid value, before anything is chunked.
    """
    raw: dict = {}
    if path is not None and Path(path).exists():
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{path}: top level must be a mapping")
    raw = _apply_env(raw)
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
