import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class FileType(str, Enum):
    """
    支持的三种电子书格式。
    """

    FB2 = "fb2"  # 结构化 XML（FictionBook）
    TXT = "txt"  # 纯文本
    EPUB = "epub"  # 打包格式，由外部渲染引擎解码

    @property
    def scroll_based(self) -> bool:
        """fb2 / txt 以滚动偏移记录位置，epub 以章节内比例记录。"""
        return self is not FileType.EPUB


class InlineChapter(BaseModel):
    """
    正文内嵌在记录中的章节（fb2 / txt）。
    """

    kind: Literal["inline"] = "inline"
    title: str = Field(..., min_length=1, description="章节显示标题")
    content: str = Field("", description="可直接渲染的正文")


class LinkedChapter(BaseModel):
    """
    指向 EPUB 清单中某个位置的章节，由外部引擎在渲染时解析。
    """

    kind: Literal["href"] = "href"
    title: str = Field(..., min_length=1, description="章节显示标题")
    href: str = Field(..., description="EPUB 内部的位置引用")


Chapter = Annotated[Union[InlineChapter, LinkedChapter], Field(discriminator="kind")]


def new_book_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Book(BaseModel):
    """
    导入后的书籍记录。持久化时使用 camelCase 键名。
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=new_book_id)
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    cover_image: Optional[str] = None
    chapters: List[Chapter] = Field(..., min_length=1)
    file_type: FileType
    file_name: str = ""
    added_date: datetime = Field(default_factory=utcnow)
    reading_progress: float = Field(0.0, ge=0.0, le=100.0)
    current_chapter_index: int = Field(0, ge=0)
    current_position: float = Field(0.0, description="滚动偏移（fb2 / txt）或章节内比例（epub）")

    @model_validator(mode="after")
    def _check_chapters(self) -> "Book":
        expected = "href" if self.file_type is FileType.EPUB else "inline"
        for chapter in self.chapters:
            if chapter.kind != expected:
                raise ValueError(f"{self.file_type.value} book cannot hold '{chapter.kind}' chapters")
        if self.current_chapter_index >= len(self.chapters):
            raise ValueError("current_chapter_index out of range")
        return self

    @property
    def current_chapter(self) -> Chapter:
        return self.chapters[self.current_chapter_index]

    def to_record(self) -> dict:
        """序列化为持久化用的字典。"""
        return self.model_dump(by_alias=True, mode="json")
