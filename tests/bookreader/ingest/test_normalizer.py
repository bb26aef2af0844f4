from unittest.mock import MagicMock

import pytest

from bookreader.core.exceptions import ContentMissing
from bookreader.ingest.normalizer import Normalizer, first_non_empty
from bookreader.schemas import ExtractedBook, FileType, InlineChapter, LinkedChapter, SourceFile


@pytest.fixture
def normalizer():
    return Normalizer(locale="en")


@pytest.fixture
def source():
    return SourceFile(name="/tmp/war_and_peace.txt", content_type="text/plain")


class TestFirstNonEmpty:
    """
    测试回退链。
    """

    def test_returns_first_non_blank(self):
        assert first_non_empty(lambda: None, lambda: "  ", lambda: " value ") == "value"

    def test_is_lazy(self):
        """命中后不再调用后面的取值函数。"""
        later = MagicMock(return_value="later")
        assert first_non_empty(lambda: "first", later) == "first"
        later.assert_not_called()

    def test_all_empty(self):
        assert first_non_empty(lambda: "", lambda: None) is None


class TestNormalizer:
    """
    测试 Book 归一化。
    """

    def test_inline_book(self, normalizer, source):
        """fb2 / txt 产出内嵌章节，空标题被合成为 Chapter N。"""
        extracted = ExtractedBook(title="War", author="Tolstoy", chapters=[("One", "a"), ("  ", "b")])
        book = normalizer.normalize(extracted, FileType.TXT, source)

        assert book.title == "War"
        assert book.author == "Tolstoy"
        assert book.file_type == FileType.TXT
        assert book.file_name == "/tmp/war_and_peace.txt"
        assert book.chapters == [InlineChapter(title="One", content="a"), InlineChapter(title="Chapter 2", content="b")]
        assert book.reading_progress == 0
        assert book.current_chapter_index == 0
        assert book.id

    def test_epub_book_uses_linked_chapters(self, normalizer, source):
        extracted = ExtractedBook(title="P", author="A", chapters=[("Start", "text/start.xhtml")])
        book = normalizer.normalize(extracted, FileType.EPUB, source)
        assert book.chapters == [LinkedChapter(title="Start", href="text/start.xhtml")]
        assert isinstance(book.current_position, float)

    def test_metadata_fallbacks(self, normalizer, source):
        """缺少书名时用文件名，缺少作者时用占位文案。"""
        extracted = ExtractedBook(title="  ", author=None, chapters=[("One", "a")])
        book = normalizer.normalize(extracted, FileType.TXT, source)
        assert book.title == "war_and_peace"
        assert book.author == "Unknown author"

    def test_ids_are_unique(self, normalizer, source):
        extracted = ExtractedBook(title="T", chapters=[("One", "a")])
        first = normalizer.normalize(extracted, FileType.TXT, source)
        second = normalizer.normalize(extracted, FileType.TXT, source)
        assert first.id != second.id

    def test_no_chapters(self, normalizer, source):
        with pytest.raises(ContentMissing):
            normalizer.normalize(ExtractedBook(title="T"), FileType.FB2, source)
