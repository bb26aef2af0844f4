import json
from typing import List, Optional

from pydantic import ValidationError

from bookreader.constant import BOOKS_KEY, LAST_BOOK_KEY, PAYLOAD_KEY_PREFIX, SETTINGS_KEY
from bookreader.core.config import settings
from bookreader.core.exceptions import StorageFailure
from bookreader.core.logger import get_logger
from bookreader.schemas import Book, ReaderSettings

from .store import KeyValueStore

logger = get_logger(__name__)


def _normalize(value: str) -> str:
    return " ".join(value.split()).casefold()


class Library:
    """
    书库：在键值存储上读写书籍列表、阅读设置、最近打开的书以及 EPUB 二进制数据。
    """

    def __init__(self, store: KeyValueStore, max_payload_bytes: Optional[int] = None):
        self.store = store
        self.max_payload_bytes = max_payload_bytes or settings.MAX_PAYLOAD_BYTES
        self.books: List[Book] = []

    # ---- 书籍记录 ----

    def load(self) -> List[Book]:
        """
        读取书籍列表。

        逐条校验记录：损坏的记录被跳过并记录日志，其余书籍照常加载；
        整个列表无法解析时以空书库继续。
        """
        self.books = []
        raw = self.store.get(BOOKS_KEY)
        if not raw:
            return self.books
        try:
            records = json.loads(raw)
        except ValueError as e:
            logger.error(f"书库记录损坏，无法加载: {e}")
            return self.books
        if not isinstance(records, list):
            logger.error(f"书库记录格式错误，期望列表，实际为 {type(records).__name__}")
            return self.books

        for position, record in enumerate(records):
            try:
                self.books.append(Book.model_validate(record))
            except ValidationError as e:
                logger.error(f"跳过第 {position + 1} 条损坏的书籍记录: {e}")
        return self.books

    def dumps(self) -> str:
        return json.dumps([book.to_record() for book in self.books], ensure_ascii=False)

    def save(self) -> None:
        """
        Raises:
            StorageFailure: 底层存储写入失败。
        """
        try:
            self.store.set(BOOKS_KEY, self.dumps())
        except OSError as e:
            raise StorageFailure(f"Failed to save library: {e}") from e

    def get(self, book_id: str) -> Optional[Book]:
        return next((book for book in self.books if book.id == book_id), None)

    def contains(self, book_id: str) -> bool:
        return self.get(book_id) is not None

    def add(self, book: Book) -> None:
        self.books.append(book)

    def remove(self, book_id: str) -> bool:
        """删除书籍及其二进制数据；书不存在时返回 False。"""
        book = self.get(book_id)
        if book is None:
            return False
        self.books = [b for b in self.books if b.id != book_id]
        self.delete_payload(book_id)
        if self.last_book_id == book_id:
            self.store.delete(LAST_BOOK_KEY)
        self.save()
        logger.info(f"已删除书籍: {book.title}")
        return True

    def find_duplicate(self, title: str, author: str) -> Optional[Book]:
        """按规范化后的标题和作者查找已存在的书。"""
        key = (_normalize(title), _normalize(author))
        return next((b for b in self.books if (_normalize(b.title), _normalize(b.author)) == key), None)

    # ---- 阅读设置 ----

    def load_settings(self) -> ReaderSettings:
        raw = self.store.get(SETTINGS_KEY)
        if not raw:
            return ReaderSettings()
        try:
            return ReaderSettings.model_validate({**ReaderSettings().model_dump(by_alias=True), **json.loads(raw)})
        except (ValueError, TypeError) as e:
            logger.error(f"阅读设置损坏，使用默认值: {e}")
            return ReaderSettings()

    def save_settings(self, reader_settings: ReaderSettings) -> None:
        self.store.set(SETTINGS_KEY, reader_settings.model_dump_json(by_alias=True))

    # ---- 最近打开的书 ----

    @property
    def last_book_id(self) -> Optional[str]:
        return self.store.get(LAST_BOOK_KEY)

    def set_last_book(self, book_id: str) -> None:
        self.store.set(LAST_BOOK_KEY, book_id)

    def last_book(self) -> Optional[Book]:
        book_id = self.last_book_id
        return self.get(book_id) if book_id else None

    # ---- EPUB 二进制数据 ----

    def store_payload(self, book_id: str, data: bytes) -> None:
        """
        Raises:
            StorageFailure: 超出容量或底层存储写入失败。
        """
        if len(data) > self.max_payload_bytes:
            raise StorageFailure(
                "Payload exceeds storage capacity", {"size": len(data), "limit": self.max_payload_bytes}
            )
        try:
            self.store.set_bytes(PAYLOAD_KEY_PREFIX + book_id, data)
        except OSError as e:
            raise StorageFailure(f"Failed to store payload: {e}", {"book_id": book_id}) from e

    def load_payload(self, book_id: str) -> Optional[bytes]:
        return self.store.get_bytes(PAYLOAD_KEY_PREFIX + book_id)

    def delete_payload(self, book_id: str) -> None:
        self.store.delete(PAYLOAD_KEY_PREFIX + book_id)
