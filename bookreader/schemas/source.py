import mimetypes
import os
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class SourceFile(BaseModel):
    """
    待导入的文件：文件名、声明的 content-type 以及原始字节。
    """

    name: str
    content_type: str = ""
    data: bytes = b""

    @property
    def stem(self) -> str:
        """文件名（不带路径和后缀）。"""
        return os.path.splitext(os.path.basename(self.name))[0]

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name)[1].lower()

    @classmethod
    def from_path(cls, path: str | Path, content_type: Optional[str] = None) -> "SourceFile":
        """从磁盘读取文件，未指定 content-type 时按文件名猜测。"""
        path = Path(path)
        if content_type is None:
            content_type = mimetypes.guess_type(path.name)[0] or ""
        return cls(name=path.name, content_type=content_type, data=path.read_bytes())


class ExtractedBook(BaseModel):
    """
    各格式提取器的统一输出，尚未归一化为 Book。

    chapters 中的每一项为 (标题, 正文) 或 (标题, href)，由 file_type 决定。
    """

    title: Optional[str] = None
    author: Optional[str] = None
    cover_image: Optional[str] = None
    chapters: List[Tuple[str, str]] = Field(default_factory=list)
