import re
from typing import List, Optional, Tuple

from bookreader.core.config import settings
from bookreader.core.exceptions import EmptyInput
from bookreader.core.labels import chapter_label, label
from bookreader.core.logger import get_logger
from bookreader.schemas import ExtractedBook, SourceFile

logger = get_logger(__name__)

CHAPTER_MARKER = re.compile(r"^(?:глава|chapter|розділ|частина|часть|part)\s+\d+", re.IGNORECASE)
ORDINAL_PREFIX = re.compile(r"^\d+\.\s+")
ROMAN_PREFIX = re.compile(r"^[IVXLCDM]+\.\s+")
SENTENCE_END = re.compile(r"[.!?]")

MAX_TITLE_LENGTH = 100
MIN_UPPERCASE_TITLE_LENGTH = 10

TEXT_ENCODINGS = ("utf-8-sig", "cp1251")


def _matches_pattern(line: str) -> bool:
    return bool(CHAPTER_MARKER.match(line) or ORDINAL_PREFIX.match(line) or ROMAN_PREFIX.match(line))


def is_title_line(line: str, legacy: bool = False) -> bool:
    """
    判断一行是否为章节标题。

    pattern 规则：章节标记 / 数字加点 / 罗马数字加点，且长度小于 100；
    或者是 10–100 个字符、不含句末标点的全大写行。

    legacy 规则：章节标记 / 数字加点，或 1–99 个字符、不含 "." 的大写行。
    """
    line = line.strip()
    if not line:
        return False

    if legacy:
        if CHAPTER_MARKER.match(line) or ORDINAL_PREFIX.match(line):
            return True
        return len(line) < MAX_TITLE_LENGTH and line.upper() == line and "." not in line

    if _matches_pattern(line) and len(line) < MAX_TITLE_LENGTH:
        return True
    return (
        MIN_UPPERCASE_TITLE_LENGTH <= len(line) <= MAX_TITLE_LENGTH
        and line.isupper()
        and not SENTENCE_END.search(line)
    )


class TextSegmenter:
    """
    按启发式标题行把纯文本切分为章节。
    """

    def __init__(self, locale: Optional[str] = None, legacy: Optional[bool] = None):
        self.locale = locale
        self.legacy = settings.TITLE_HEURISTIC == "legacy" if legacy is None else legacy

    def segment(self, text: str) -> List[Tuple[str, str]]:
        """
        切分文本，返回 (标题, 正文) 列表。没有任何标题行时整本书作为一章。

        Raises:
            EmptyInput: 文本为空或只含空白。
        """
        if not text.strip():
            raise EmptyInput("Text file is empty")

        chapters: List[Tuple[str, str]] = []
        title = chapter_label(1, self.locale)
        buffer: List[str] = []
        found_title = False

        for line in text.splitlines(keepends=True):
            if is_title_line(line, legacy=self.legacy):
                found_title = True
                content = "".join(buffer)
                if content.strip():
                    chapters.append((title, content))
                title = line.strip() or chapter_label(len(chapters) + 1, self.locale)
                buffer = []
            else:
                buffer.append(line)

        content = "".join(buffer)
        if content.strip():
            chapters.append((title, content))

        if not found_title or not chapters:
            return [(label("book", self.locale), text)]
        return chapters

    def _decode(self, data: bytes) -> str:
        for encoding in TEXT_ENCODINGS:
            try:
                return data.decode(encoding)
            except UnicodeDecodeError:
                logger.debug(f"无法以 {encoding} 解码，尝试下一种编码")
        return data.decode("utf-8", errors="replace")

    def extract(self, source: SourceFile) -> ExtractedBook:
        text = self._decode(source.data)
        chapters = self.segment(text)
        logger.info(f"TXT 切分完成: {source.name}，共 {len(chapters)} 章")
        return ExtractedBook(
            title=source.stem,
            author=label("unknown_author", self.locale),
            cover_image=None,
            chapters=chapters,
        )
