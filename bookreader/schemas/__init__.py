from .book import Book, Chapter, FileType, InlineChapter, LinkedChapter
from .progress import Location, ProgressSample, TrackerState, Viewport
from .result import IngestFailure, IngestResult, IngestSuccess
from .settings import ReaderSettings, Theme
from .source import ExtractedBook, SourceFile

__all__ = [
    "Book",
    "Chapter",
    "ExtractedBook",
    "FileType",
    "IngestFailure",
    "IngestResult",
    "IngestSuccess",
    "InlineChapter",
    "LinkedChapter",
    "Location",
    "ProgressSample",
    "ReaderSettings",
    "SourceFile",
    "Theme",
    "TrackerState",
    "Viewport",
]
