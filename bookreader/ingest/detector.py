import codecs
import io
import zipfile
from typing import Optional

from bookreader.constant import (
    CONTENT_TYPES,
    EPUB_MIMETYPE,
    EXTENSIONS,
    FB2_SIGNATURE,
    SNIFF_BYTES,
    ZIP_SIGNATURE,
)
from bookreader.core.exceptions import UnsupportedFormat
from bookreader.core.logger import get_logger
from bookreader.schemas import FileType, SourceFile

logger = get_logger(__name__)


def _normalize_content_type(content_type: str) -> str:
    # 去掉 "; charset=..." 之类的参数
    return (content_type or "").split(";")[0].strip().lower()


def _by_content_type(content_type: str) -> Optional[FileType]:
    kind = CONTENT_TYPES.get(content_type)
    return FileType(kind) if kind else None


def _by_extension(extension: str) -> Optional[FileType]:
    kind = EXTENSIONS.get(extension)
    return FileType(kind) if kind else None


def _by_fb2_hint(content_type: str, filename: str) -> Optional[FileType]:
    # FB2 的 content-type 经常被报成通用 XML
    if "fictionbook" in content_type or "fb2" in content_type:
        return FileType.FB2
    if ".fb2" in filename.lower():
        return FileType.FB2
    return None


def _by_content(data: bytes) -> Optional[FileType]:
    if data.startswith(ZIP_SIGNATURE):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                if zf.read("mimetype").strip() == EPUB_MIMETYPE:
                    return FileType.EPUB
        except (zipfile.BadZipFile, KeyError):
            return None
        return None
    # UTF-16 的 FB2 以 BOM 开头
    encoding = "utf-16" if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)) else "utf-8"
    head = data[:SNIFF_BYTES].decode(encoding, errors="ignore")
    if FB2_SIGNATURE in head:
        return FileType.FB2
    return None


def detect_format(source: SourceFile) -> FileType:
    """
    判断文件格式，按顺序尝试，先命中者为准：

    1. content-type 精确匹配（通用类型视为未知）；
    2. 文件扩展名；
    3. FB2 专属的 content-type / 文件名提示；
    4. 内容嗅探（zip 中的 EPUB mimetype、FictionBook 根元素）。

    Raises:
        UnsupportedFormat: 全部失败时抛出，消息中包含文件扩展名。
    """
    content_type = _normalize_content_type(source.content_type)
    resolvers = (
        lambda: _by_content_type(content_type),
        lambda: _by_extension(source.extension),
        lambda: _by_fb2_hint(content_type, source.name),
        lambda: _by_content(source.data),
    )
    for resolve in resolvers:
        kind = resolve()
        if kind is not None:
            logger.debug(f"文件 {source.name} 识别为 {kind.value}")
            return kind

    raise UnsupportedFormat(source.extension)
