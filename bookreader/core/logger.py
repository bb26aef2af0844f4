"""
日志配置。

整个包只配置一个日志记录器（名称取自 settings.LOGGER_NAME），各子模块通过
get_logger 取得它的子记录器，日志向上传递到包记录器统一输出。
"""

import logging
import os
import sys
from typing import List, Optional

from .config import settings

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FORMATS = {
    "text": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "json": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}',
}


def _resolve_level(level: Optional[str]) -> int:
    value = getattr(logging, (level or settings.LOG_LEVEL).upper(), None)
    # 无效的级别名按 INFO 处理
    return value if isinstance(value, int) else logging.INFO


def _build_handlers(formatter: logging.Formatter, log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    level: Optional[str] = None, log_format: Optional[str] = None, log_file: Optional[str] = None
) -> logging.Logger:
    """
    （重新）配置包日志记录器，可重复调用，不会叠加处理器。

    未传入的参数取自配置中的 LOG_LEVEL / LOG_FORMAT / LOG_FILE。
    """
    logger = logging.getLogger(settings.LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(_resolve_level(level))
    formatter = logging.Formatter(FORMATS.get(log_format or settings.LOG_FORMAT, FORMATS["text"]), DATE_FORMAT)
    for handler in _build_handlers(formatter, log_file if log_file is not None else settings.LOG_FILE):
        logger.addHandler(handler)

    # 不传播到根日志记录器，避免宿主程序重复输出
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    返回包日志记录器，或挂在它下面的子记录器。

    get_logger("ingest") 与 get_logger("bookreader.ingest") 得到同一个记录器。
    """
    root = settings.LOGGER_NAME
    if not name or name == root:
        return logging.getLogger(root)
    if name.startswith(f"{root}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{root}.{name}")


reader_logger = configure_logging()
