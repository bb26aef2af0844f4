from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    阅读器引擎的全局配置，从环境变量或 .env 文件加载。
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # 日志
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["text", "json"] = "text"
    LOG_FILE: Optional[str] = None
    # 包日志记录器名称，子模块的记录器挂在它下面
    LOGGER_NAME: str = "bookreader"

    # 回退文案所用的语言（uk / ru / en）
    LOCALE: str = "uk"

    # 书库存储目录（JSON 键值存储）
    LIBRARY_DIR: str = "library"

    # 进度采样
    SAMPLE_INTERVAL_MS: int = 150
    SETTLE_DELAY_MS: int = 100

    # 纯文本标题判定规则
    TITLE_HEURISTIC: Literal["pattern", "legacy"] = "pattern"

    # 单个 EPUB 二进制数据的容量上限
    MAX_PAYLOAD_BYTES: int = 50 * 1024 * 1024

    @field_validator("SAMPLE_INTERVAL_MS", "SETTLE_DELAY_MS")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("interval must be non-negative")
        return value

    @property
    def sample_interval(self) -> float:
        return self.SAMPLE_INTERVAL_MS / 1000

    @property
    def settle_delay(self) -> float:
        return self.SETTLE_DELAY_MS / 1000


settings = Settings()
