from typing import Optional

from bookreader.constant import DEFAULT_LOCALE, LABELS

from .config import settings


def label(key: str, locale: Optional[str] = None) -> str:
    """按语言返回回退文案，未知语言退回默认语言。"""
    table = LABELS.get(locale or settings.LOCALE) or LABELS[DEFAULT_LOCALE]
    return table[key]


def chapter_label(number: int, locale: Optional[str] = None) -> str:
    """合成章节标题，例如 "Розділ 3"。"""
    return f"{label('chapter', locale)} {number}"
