import base64
import os
import tempfile
from typing import List, Optional, Protocol, Tuple

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from bookreader.core.exceptions import BookReaderError, ContentMissing, ExternalEngineFailure
from bookreader.core.logger import get_logger
from bookreader.schemas import ExtractedBook, SourceFile

logger = get_logger(__name__)


class EngineBook(BaseModel):
    """
    渲染引擎打开 EPUB 后必须给出的信息。
    """

    title: Optional[str] = None
    author: Optional[str] = None
    cover_image: Optional[str] = None
    toc: List[Tuple[str, str]] = Field(default_factory=list, description="(标题, href) 按阅读顺序排列")


class RenderingEngine(Protocol):
    def open(self, data: bytes) -> EngineBook: ...


def _flatten_toc(toc, epub) -> List[Tuple[str, str]]:
    """深度优先展开 ebooklib 的目录树。"""
    entries: List[Tuple[str, str]] = []
    for item in toc:
        # 目录项可能是 Link、Section，或 (Section, [子项]) 元组
        if isinstance(item, tuple):
            section, children = item
            if getattr(section, "href", None):
                entries.append((section.title or "", section.href))
            entries.extend(_flatten_toc(children, epub))
        elif isinstance(item, (epub.Link, epub.Section)) and getattr(item, "href", None):
            entries.append((item.title or "", item.href))
    return entries


def _heading_title(content: bytes) -> str:
    soup = BeautifulSoup(content, "html.parser")
    heading = soup.find(["h1", "h2", "h3"]) or soup.find("title")
    return heading.get_text(" ", strip=True) if heading else ""


class EbooklibEngine:
    """
    基于 ebooklib 的默认 EPUB 引擎。
    """

    def _metadata(self, book, name: str) -> Optional[str]:
        values = book.get_metadata("DC", name)
        if values and values[0][0]:
            return str(values[0][0]).strip()
        return None

    def _cover(self, book, ebooklib) -> Optional[str]:
        items = list(book.get_items_of_type(ebooklib.ITEM_COVER))
        if not items:
            for _, attrs in book.get_metadata("OPF", "cover"):
                item = book.get_item_with_id(attrs.get("content", ""))
                if item is not None:
                    items.append(item)
                    break
        for item in items:
            media_type = getattr(item, "media_type", "") or ""
            if media_type.startswith("image/"):
                payload = base64.b64encode(item.get_content()).decode("ascii")
                return f"data:{media_type};base64,{payload}"
        return None

    def _spine_entries(self, book, ebooklib) -> List[Tuple[str, str]]:
        entries = []
        for idref, _linear in book.spine:
            item = book.get_item_with_id(idref)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            entries.append((_heading_title(item.get_content()), item.get_name()))
        return entries

    def open(self, data: bytes) -> EngineBook:
        import ebooklib
        from ebooklib import epub

        # ebooklib 只接受文件路径
        fd, path = tempfile.mkstemp(suffix=".epub")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            book = epub.read_epub(path, options={"ignore_ncx": False})
        finally:
            os.remove(path)

        toc = _flatten_toc(book.toc, epub) or self._spine_entries(book, ebooklib)
        return EngineBook(
            title=self._metadata(book, "title"),
            author=self._metadata(book, "creator"),
            cover_image=self._cover(book, ebooklib),
            toc=toc,
        )


class EpubAdapter:
    """
    EPUB 适配器：解码交给外部渲染引擎，这里只产出章节目录。
    """

    def __init__(self, engine: Optional[RenderingEngine] = None):
        self.engine = engine

    def _engine(self) -> RenderingEngine:
        return self.engine if self.engine is not None else EbooklibEngine()

    def extract(self, source: SourceFile) -> ExtractedBook:
        """
        Raises:
            ExternalEngineFailure: 引擎不可用或在打开文件时出错。
            ContentMissing: 目录和 spine 中都没有任何章节。
        """
        try:
            opened = self._engine().open(source.data)
        except ImportError as e:
            raise ExternalEngineFailure(f"EPUB engine is unavailable: {e}") from e
        except BookReaderError:
            raise
        except Exception as e:
            logger.error(f"EPUB 引擎打开 {source.name} 失败: {e}")
            raise ExternalEngineFailure(f"EPUB engine failed: {e}", {"file": source.name}) from e

        if not opened.toc:
            raise ContentMissing("EPUB has no table of contents or spine documents", {"file": source.name})

        logger.info(f"EPUB 目录读取完成: {source.name}，共 {len(opened.toc)} 章")
        return ExtractedBook(
            title=opened.title,
            author=opened.author,
            cover_image=opened.cover_image,
            chapters=opened.toc,
        )
