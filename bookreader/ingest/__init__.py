from .detector import detect_format
from .epub import EbooklibEngine, EngineBook, EpubAdapter, RenderingEngine
from .fb2 import FB2Extractor, recover_markup
from .normalizer import Normalizer, first_non_empty
from .txt import TextSegmenter, is_title_line

__all__ = [
    "EbooklibEngine",
    "EngineBook",
    "EpubAdapter",
    "FB2Extractor",
    "Normalizer",
    "RenderingEngine",
    "TextSegmenter",
    "detect_format",
    "first_non_empty",
    "is_title_line",
    "recover_markup",
]
