from typing import Callable, List, Optional

from bookreader.core.exceptions import ContentMissing
from bookreader.core.labels import chapter_label, label
from bookreader.schemas import Book, Chapter, ExtractedBook, FileType, InlineChapter, LinkedChapter, SourceFile


def first_non_empty(*attempts: Callable[[], Optional[str]]) -> Optional[str]:
    """
    依次执行取值函数，返回第一个去除空白后非空的结果。

    后面的函数只有在前面的都为空时才会被调用。
    """
    for attempt in attempts:
        value = attempt()
        if value and value.strip():
            return value.strip()
    return None


class Normalizer:
    """
    将任意提取器的输出包装为统一的 Book 记录。
    """

    def __init__(self, locale: Optional[str] = None):
        self.locale = locale

    def _chapters(self, extracted: ExtractedBook, file_type: FileType) -> List[Chapter]:
        chapters: List[Chapter] = []
        for number, (title, payload) in enumerate(extracted.chapters, start=1):
            title = (title or "").strip() or chapter_label(number, self.locale)
            if file_type is FileType.EPUB:
                chapters.append(LinkedChapter(title=title, href=payload))
            else:
                chapters.append(InlineChapter(title=title, content=payload))
        return chapters

    def normalize(self, extracted: ExtractedBook, file_type: FileType, source: SourceFile) -> Book:
        """
        生成完整的 Book；标题、作者为空时使用回退值。

        Raises:
            ContentMissing: 提取器没有给出任何章节。
        """
        chapters = self._chapters(extracted, file_type)
        if not chapters:
            raise ContentMissing("No chapters extracted", {"file": source.name})

        title = first_non_empty(lambda: extracted.title, lambda: source.stem) or label("book", self.locale)
        author = first_non_empty(lambda: extracted.author) or label("unknown_author", self.locale)

        return Book(
            title=title,
            author=author,
            cover_image=extracted.cover_image,
            chapters=chapters,
            file_type=file_type,
            file_name=source.name,
        )
