"""导入与阅读流程中使用的异常层级。"""

from typing import Optional


class BookReaderError(Exception):
    """所有引擎异常的基类。"""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- 导入错误 ----


class UnsupportedFormat(BookReaderError):
    """无法识别文件格式。"""

    def __init__(self, extension: str, message: str = ""):
        shown = extension or "<none>"
        super().__init__(message or f"Unsupported file format: '{shown}'", {"extension": shown})
        self.extension = extension


class FormatValidationError(BookReaderError):
    """内容与声明的格式签名不符。"""


class MalformedMarkup(BookReaderError):
    """XML 解析失败，且修复后仍然失败。"""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class ContentMissing(BookReaderError):
    """缺少必需的结构元素（例如 body）。"""


class EmptyInput(BookReaderError):
    """文件没有可用的文本内容。"""


class ExternalEngineFailure(BookReaderError):
    """EPUB 渲染引擎不可用或在其生命周期内抛出异常。"""


# ---- 存储错误 ----


class StorageFailure(BookReaderError):
    """持久化大型二进制数据失败（容量不足或存储不可用）。"""
