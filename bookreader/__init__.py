"""FB2 / TXT / EPUB 电子书导入、章节切分与阅读进度跟踪。"""

__version__ = "0.1.0"
