from __future__ import annotations


class NotesSearchError(Exception):
    """Base class for errors raised by local_notes_search."""


class DecodeError(NotesSearchError):
    """Compressed note content is corrupt or truncated."""


class EncodingError(NotesSearchError):
    """Note bytes are not valid UTF-8 (recovered by lossy decoding)."""


class ExtractionFallback(NotesSearchError):
    """Line classification failed; the plain control-character strip was used."""


class ConfigurationError(NotesSearchError):
    """Invalid configuration, e.g. chunk overlap not smaller than chunk size."""


class NoteStoreError(NotesSearchError):
    """The note store database could not be opened or read."""


class IndexNotReadyError(NotesSearchError):
    """The search index has not been built yet."""
