import pytest

from bookreader.library import Library, MemoryStore
from bookreader.schemas import Book, FileType, InlineChapter, LinkedChapter, SourceFile

FB2_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<FictionBook xmlns="http://www.gribuser.ru/xml/fictionbook/2.0" xmlns:l="http://www.w3.org/1999/xlink">
<description><title-info>{title_info}</title-info></description>
{body}
<binary id="cover.jpg" content-type="image/png">QUJD
REVG</binary>
</FictionBook>"""

DEFAULT_TITLE_INFO = (
    "<author><first-name>Іван</first-name><last-name>Франко</last-name></author>"
    "<book-title>Захар Беркут</book-title>"
    '<coverpage><image l:href="#cover.jpg"/></coverpage>'
)


def make_fb2(body: str = "<body><section><p>Text</p></section></body>", title_info: str = DEFAULT_TITLE_INFO) -> str:
    """拼出一个最小的 FB2 文档。"""
    return FB2_TEMPLATE.format(title_info=title_info, body=body)


@pytest.fixture
def fb2_source():
    """根据 body 构造 FB2 SourceFile 的工厂。"""

    def _make(body: str = "<body><section><p>Text</p></section></body>", name: str = "berkut.fb2", **kwargs):
        return SourceFile(name=name, content_type="", data=make_fb2(body, **kwargs).encode("utf-8"))

    return _make


@pytest.fixture
def library():
    """基于内存存储的空书库。"""
    return Library(MemoryStore())


@pytest.fixture
def text_book():
    """一本 4 章的 TXT 书。"""
    return Book(
        title="Test",
        author="Author",
        file_type=FileType.TXT,
        chapters=[InlineChapter(title=f"Chapter {i}", content=f"Body {i}\n") for i in range(1, 5)],
    )


@pytest.fixture
def epub_book():
    """一本 4 章的 EPUB 书。"""
    return Book(
        title="Packaged",
        author="Author",
        file_type=FileType.EPUB,
        current_position=0.0,
        chapters=[LinkedChapter(title=f"Part {i}", href=f"part{i}.xhtml") for i in range(1, 5)],
    )
