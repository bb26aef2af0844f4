from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from .book import Book


class IngestSuccess(BaseModel):
    """单个文件导入成功。"""

    status: Literal["ok"] = "ok"
    filename: str
    book: Book

    @property
    def ok(self) -> bool:
        return True


class IngestFailure(BaseModel):
    """单个文件导入失败，error 为异常类名。"""

    status: Literal["failed"] = "failed"
    filename: str
    error: str
    message: str

    @property
    def ok(self) -> bool:
        return False


IngestResult = Annotated[Union[IngestSuccess, IngestFailure], Field(discriminator="status")]
