from enum import Enum

from pydantic import BaseModel, Field


class TrackerState(str, Enum):
    """
    进度跟踪器的状态。
    """

    IDLE = "idle"
    SAMPLING = "sampling"


class Viewport(BaseModel):
    """
    滚动型格式（fb2 / txt）的布局信号。
    """

    scroll_offset: float = 0.0
    viewport_height: float = 0.0
    content_height: float = 0.0


class Location(BaseModel):
    """
    外部 EPUB 引擎上报的位置：章节序号与章节内比例。
    """

    chapter_index: int = Field(..., ge=0)
    fraction: float = 0.0


class ProgressSample(BaseModel):
    """
    一次成功采样的结果。
    """

    book_id: str
    chapter_index: int
    chapter_progress: float
    percentage: float
    position: float
