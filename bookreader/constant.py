from typing import Dict

# 各语言的回退文案
LABELS: Dict[str, Dict[str, str]] = {
    "uk": {"unknown_author": "Невідомий автор", "book": "Книга", "chapter": "Розділ"},
    "ru": {"unknown_author": "Неизвестный автор", "book": "Книга", "chapter": "Глава"},
    "en": {"unknown_author": "Unknown author", "book": "Book", "chapter": "Chapter"},
}
DEFAULT_LOCALE = "uk"

# 精确匹配的 content-type 表；通用类型显式映射为 None（未知）
CONTENT_TYPES: Dict[str, str | None] = {
    "application/x-fictionbook+xml": "fb2",
    "application/x-fictionbook": "fb2",
    "text/fb2+xml": "fb2",
    "text/plain": "txt",
    "application/epub+zip": "epub",
    "application/octet-stream": None,
    "application/xml": None,
    "text/xml": None,
    "application/zip": None,
    "": None,
}
EXTENSIONS = {".fb2": "fb2", ".txt": "txt", ".epub": "epub"}

FB2_SIGNATURE = "<FictionBook"
FB2_NAMESPACE = "http://www.gribuser.ru/xml/fictionbook/2.0"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"
DEFAULT_COVER_TYPE = "image/jpeg"

EPUB_MIMETYPE = b"application/epub+zip"
ZIP_SIGNATURE = b"PK\x03\x04"
SNIFF_BYTES = 4096

# 持久化键名
BOOKS_KEY = "bookReader_books"
SETTINGS_KEY = "bookReader_settings"
LAST_BOOK_KEY = "lastBookId"
PAYLOAD_KEY_PREFIX = "bookReader_payload_"
