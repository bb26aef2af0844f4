import codecs
import re
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

from lxml import etree

from bookreader.constant import DEFAULT_COVER_TYPE, FB2_SIGNATURE, XLINK_NAMESPACE
from bookreader.core.exceptions import ContentMissing, FormatValidationError, MalformedMarkup
from bookreader.core.labels import chapter_label, label
from bookreader.core.logger import get_logger
from bookreader.schemas import ExtractedBook, SourceFile

from .normalizer import first_non_empty

logger = get_logger(__name__)

ENCODING_PATTERN = re.compile(rb"""<\?xml[^>]*encoding=["']([A-Za-z0-9._-]+)["']""")
UTF16_BOMS = (codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)
# C0 控制字符，保留 \t 和 \n
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f]")
# 不属于已知实体的 &
BARE_AMPERSAND = re.compile(r"&(?!(?:amp|lt|gt|quot|apos|#[0-9]+|#x[0-9a-fA-F]+);)")

HEADING_TAGS = {"title", "h1", "h2", "h3"}

Chapters = List[Tuple[str, str]]


def recover_markup(text: str) -> str:
    """
    修复常见的损坏标记：删除控制字符，转义孤立的 &。
    """
    text = CONTROL_CHARS.sub("", text)
    return BARE_AMPERSAND.sub("&amp;", text)


def _local(element) -> str:
    # 注释和处理指令的 tag 不是字符串
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def _first(root, name: str):
    return next(root.iter(f"{{*}}{name}"), None)


def _text(element) -> str:
    """元素的纯文本；含 <p> 的标题按段落以空格拼接。"""
    if element is None:
        return ""
    paragraphs = ["".join(p.itertext()) for p in element if _local(p) == "p"]
    raw = " ".join(paragraphs) if paragraphs else "".join(element.itertext())
    return " ".join(raw.split())


def _strip_namespaces(root) -> None:
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        element.tag = etree.QName(element).localname
        for name in list(element.attrib):
            if name.startswith("{"):
                element.attrib[etree.QName(name).localname] = element.attrib.pop(name)
    etree.cleanup_namespaces(root)


def _serialize(element) -> str:
    return etree.tostring(element, encoding="unicode", with_tail=True)


def _inner_markup(element) -> str:
    parts = [escape(element.text or "")]
    parts.extend(_serialize(child) for child in element)
    return "".join(parts)


class FB2Extractor:
    """
    FictionBook 2 提取器：解析元数据、封面，并按 section 切分章节。
    """

    def __init__(self, locale: Optional[str] = None):
        self.locale = locale

    def _decode(self, data: bytes) -> str:
        """按 BOM 或 XML 声明中的编码解码，失败时回退到 UTF-8。"""
        if data.startswith(UTF16_BOMS):
            encodings = ["utf-16"]
        else:
            match = ENCODING_PATTERN.search(data[:256])
            encodings = [match.group(1).decode("ascii")] if match else []
        encodings.append("utf-8-sig")
        for encoding in encodings:
            try:
                return data.decode(encoding)
            except (LookupError, UnicodeDecodeError):
                continue
        return data.decode("utf-8", errors="replace")

    def _parse_once(self, text: str):
        # 文本已解码，忽略文档自身声明的编码
        parser = etree.XMLParser(encoding="utf-8", resolve_entities=False, huge_tree=True)
        return etree.fromstring(text.encode("utf-8"), parser=parser)

    def parse(self, text: str):
        """
        解析 XML；失败时执行一次修复后重试。

        Raises:
            MalformedMarkup: 修复后仍无法解析，消息为最初的解析错误。
        """
        try:
            return self._parse_once(text)
        except etree.XMLSyntaxError as e:
            logger.warning(f"FB2 解析失败，尝试修复标记: {e}")
            try:
                return self._parse_once(recover_markup(text))
            except etree.XMLSyntaxError:
                raise MalformedMarkup(f"Malformed FB2 markup: {e}", original=e) from e

    def _title(self, root, source: SourceFile) -> Optional[str]:
        return first_non_empty(
            lambda: _text(_first(root, "book-title")),
            lambda: _text(_first(root, "title")),
            lambda: source.stem,
        )

    def _author(self, root) -> str:
        scope = _first(root, "title-info")
        scope = scope if scope is not None else root
        return first_non_empty(
            lambda: f"{_text(_first(scope, 'first-name'))} {_text(_first(scope, 'last-name'))}",
            lambda: _text(_first(root, "author")),
        ) or label("unknown_author", self.locale)

    def _cover(self, root) -> Optional[str]:
        coverpage = _first(root, "coverpage")
        if coverpage is None:
            return None
        image = _first(coverpage, "image")
        if image is None:
            return None

        href = image.get(f"{{{XLINK_NAMESPACE}}}href") or image.get("href")
        if not href:
            href = next((v for k, v in image.attrib.items() if k.endswith("}href")), None)
        if not href:
            return None

        binary_id = href.lstrip("#")
        for binary in root.iter("{*}binary"):
            if binary.get("id") == binary_id:
                payload = "".join((binary.text or "").split())
                content_type = binary.get("content-type") or DEFAULT_COVER_TYPE
                return f"data:{content_type};base64,{payload}"
        logger.debug(f"封面引用 {href} 没有对应的 binary 元素")
        return None

    def _section_chapters(self, body) -> Chapters:
        chapters: Chapters = []
        sections = [child for child in body if _local(child) == "section"]
        for number, section in enumerate(sections, start=1):
            title_element = next((c for c in section if _local(c) == "title"), None)
            title = _text(title_element) or chapter_label(number, self.locale)
            chapters.append((title, _inner_markup(section)))
        return chapters

    def _heading_chapters(self, body) -> Chapters:
        chapters: List[Tuple[str, List[str]]] = []
        preamble = [escape(body.text or "")]
        for child in body:
            if _local(child) in HEADING_TAGS:
                title = _text(child) or chapter_label(len(chapters) + 1, self.locale)
                chapters.append((title, []))
            elif chapters:
                chapters[-1][1].append(_serialize(child))
            else:
                preamble.append(_serialize(child))

        if chapters and "".join(preamble).strip():
            # 第一个标题之前的内容并入第一章
            chapters[0][1][:0] = preamble
        return [(title, "".join(parts)) for title, parts in chapters]

    def _chapters(self, root) -> Chapters:
        body = _first(root, "body")
        if body is None:
            raise ContentMissing("FB2 document has no <body>")

        chapters = self._section_chapters(body) or self._heading_chapters(body)
        if not chapters:
            chapters = [(label("book", self.locale), _inner_markup(body))]
        return chapters

    def extract(self, source: SourceFile) -> ExtractedBook:
        """
        从 FB2 文件中提取元数据和章节。

        Raises:
            FormatValidationError: 缺少 FictionBook 根元素签名。
            MalformedMarkup: XML 无法解析。
            ContentMissing: 缺少 body 或没有得到任何章节。
        """
        text = self._decode(source.data)
        if FB2_SIGNATURE not in text:
            raise FormatValidationError("Missing <FictionBook> root element", {"file": source.name})

        root = self.parse(text)
        title = self._title(root, source)
        author = self._author(root)
        cover = self._cover(root)

        _strip_namespaces(root)
        chapters = self._chapters(root)
        if not chapters:
            raise ContentMissing("No chapters found in FB2 document", {"file": source.name})

        logger.info(f"FB2 解析完成: {source.name}，共 {len(chapters)} 章")
        return ExtractedBook(title=title, author=author, cover_image=cover, chapters=chapters)
