from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

FONT_SIZE_RANGE = (12, 32)
LINE_HEIGHT_RANGE = (1.0, 3.0)


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SEPIA = "sepia"


class ReaderSettings(BaseModel):
    """
    阅读设置记录：字号（px）、行高与主题。超出范围的值会被夹到边界。
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    font_size: int = Field(18, description="字号，单位 px")
    line_height: float = Field(1.8, description="行高倍数")
    theme: Theme = Theme.LIGHT

    @field_validator("font_size")
    @classmethod
    def _clamp_font_size(cls, value: int) -> int:
        low, high = FONT_SIZE_RANGE
        return max(low, min(high, value))

    @field_validator("line_height")
    @classmethod
    def _clamp_line_height(cls, value: float) -> float:
        low, high = LINE_HEIGHT_RANGE
        return round(max(low, min(high, value)), 2)

    def change_font_size(self, delta: int) -> "ReaderSettings":
        return self.model_validate({**self.model_dump(), "font_size": self.font_size + delta})

    def change_line_height(self, delta: float) -> "ReaderSettings":
        return self.model_validate({**self.model_dump(), "line_height": self.line_height + delta})
