import asyncio
import time
from typing import Callable, List, Optional

from bookreader.core.config import settings
from bookreader.core.logger import get_logger
from bookreader.library import Library
from bookreader.schemas import Book, Location, ProgressSample, TrackerState, Viewport

from .debounce import CoalescingQueue
from .signals import LayoutSignals

logger = get_logger(__name__)

Renderer = Callable[[Book, int], None]

LAYOUT_KEY = "layout"
SETTLE_KEY = "settle"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def chapter_local_progress(viewport: Viewport) -> float:
    """
    章节内进度：内容能完整显示时为 1，否则为滚动偏移占可滚动高度的比例。
    """
    scrollable = viewport.content_height - viewport.viewport_height
    if scrollable <= 0:
        return 1.0
    return _clamp(viewport.scroll_offset / scrollable, 0.0, 1.0)


def global_percentage(chapter_index: int, chapter_progress: float, total_chapters: int) -> float:
    """全书进度百分比，结果限制在 [0, 100]。"""
    if total_chapters <= 0:
        return 0.0
    return _clamp(100 * (chapter_index + chapter_progress) / total_chapters, 0.0, 100.0)


class ProgressTracker:
    """
    单本书的阅读进度跟踪器（每次打开书时创建，离开时关闭）。

    状态：idle -> sampling -> (sampling | idle)。

    原始布局信号经过 CoalescingQueue 合并，同一批信号在静默 interval 秒后只采样一次；
    章节渲染完成后立即采样一次，并在 settle_delay 秒后再强制采样一次。
    每次成功采样都会把进度和位置写回 Book 并保存书库。
    """

    def __init__(
        self,
        book: Book,
        library: Library,
        renderer: Optional[Renderer] = None,
        clock: Callable[[], float] = time.monotonic,
        interval: Optional[float] = None,
        settle_delay: Optional[float] = None,
    ):
        self.book = book
        self.library = library
        self.renderer = renderer
        self.clock = clock
        self.interval = settings.sample_interval if interval is None else interval
        self.settle_delay = settings.settle_delay if settle_delay is None else settle_delay
        self.queue = CoalescingQueue(self.interval)
        self.state = TrackerState.IDLE
        self._viewport: Optional[Viewport] = None
        self._location: Optional[Location] = None
        self._disconnectors: List[Callable[[], None]] = []

    @property
    def sampling(self) -> bool:
        return self.state is TrackerState.SAMPLING

    @property
    def restore_position(self) -> float:
        """打开书时表现层应恢复到的位置。"""
        return self.book.current_position

    @property
    def initial_percentage(self) -> float:
        """第一次采样之前显示的进度，按当前章节开头计算，不写回书籍。"""
        return global_percentage(self.book.current_chapter_index, 0.0, len(self.book.chapters))

    # ---- 生命周期 ----

    def open(self, signals: Optional[LayoutSignals] = None) -> float:
        """
        进入采样状态，连接信号并渲染当前章节。

        Returns:
            第一次采样之前应显示的进度百分比。
        """
        if not self.sampling:
            self.state = TrackerState.SAMPLING
            if signals is not None:
                self._observe(signals)
            self.library.set_last_book(self.book.id)
            logger.debug(f"开始跟踪《{self.book.title}》的阅读进度")
            self._render()
        return self.initial_percentage

    def close(self) -> None:
        """回到 idle：丢弃尚未执行的采样并断开所有信号。"""
        self.queue.clear()
        for disconnect in self._disconnectors:
            disconnect()
        self._disconnectors = []
        self.state = TrackerState.IDLE
        self._viewport = None
        self._location = None

    def _observe(self, signals: LayoutSignals) -> None:
        for signal in (signals.scroll, signals.resize, signals.mutation):
            self._disconnectors.append(signal.connect(self.on_layout))
        self._disconnectors.append(signals.location.connect(self.on_location))
        self._disconnectors.append(signals.render_completed.connect(self.on_render_completed))

    def _render(self) -> None:
        if self.renderer is None:
            return
        try:
            self.renderer(self.book, self.book.current_chapter_index)
        except Exception as e:
            logger.error(f"渲染第 {self.book.current_chapter_index + 1} 章失败: {e}")

    # ---- 信号 ----

    def on_layout(self, viewport: Viewport) -> None:
        if not self.sampling:
            return
        self._viewport = viewport
        self.queue.push(LAYOUT_KEY, viewport, self.clock())

    def on_location(self, location: Location) -> None:
        if not self.sampling:
            return
        self._location = location
        self.queue.push(LAYOUT_KEY, location, self.clock())

    def on_render_completed(self, viewport: Optional[Viewport] = None) -> Optional[ProgressSample]:
        """章节渲染完成：立即采样，并安排一次布局稳定后的强制采样。"""
        if not self.sampling:
            return None
        if viewport is not None:
            self._viewport = viewport
        self.queue.schedule(SETTLE_KEY, None, self.clock() + self.settle_delay)
        return self.sample()

    # ---- 采样 ----

    def pump(self, now: Optional[float] = None) -> Optional[ProgressSample]:
        """执行所有到期的采样任务；到期任务合并为一次采样。"""
        if not self.sampling:
            return None
        due = self.queue.pop_due(self.clock() if now is None else now)
        if not due:
            return None
        return self.sample()

    def _measure(self, total: int):
        if self.book.file_type.scroll_based:
            if self._viewport is None:
                return None
            position = max(0.0, self._viewport.scroll_offset)
            return self.book.current_chapter_index, chapter_local_progress(self._viewport), position
        if self._location is None:
            return None
        index = int(_clamp(self._location.chapter_index, 0, total - 1))
        fraction = _clamp(self._location.fraction, 0.0, 1.0)
        return index, fraction, fraction

    def sample(self) -> Optional[ProgressSample]:
        """
        根据最近的布局信号计算进度并写回。

        书已被删除、尚无信号或保存失败时返回 None，错误只记录日志。
        """
        if not self.sampling:
            return None
        try:
            if not self.library.contains(self.book.id):
                logger.debug(f"书籍 {self.book.id} 已不在书库中，丢弃采样")
                return None

            total = len(self.book.chapters)
            measured = self._measure(total)
            if measured is None:
                return None
            index, local, position = measured
            percentage = global_percentage(index, local, total)

            self.book.reading_progress = percentage
            self.book.current_position = position
            if not self.book.file_type.scroll_based:
                self.book.current_chapter_index = index
            self.library.save()
        except Exception as e:
            logger.warning(f"进度采样失败，等待下一次采样: {e}")
            return None

        return ProgressSample(
            book_id=self.book.id,
            chapter_index=index,
            chapter_progress=local,
            percentage=percentage,
            position=position,
        )

    # ---- 章节导航 ----

    def go_to_chapter(self, index: int) -> bool:
        """
        跳转到指定章节并重新开始采样；索引越界或跟踪器未打开时不做任何事。
        """
        if not self.sampling or not 0 <= index < len(self.book.chapters):
            return False

        self.queue.clear()
        self._viewport = None
        self._location = None
        self.book.current_chapter_index = index
        self.book.current_position = 0.0
        try:
            self.library.save()
        except Exception as e:
            logger.error(f"保存章节跳转失败: {e}")
        self._render()
        return True

    # ---- 异步驱动 ----

    async def run(self) -> None:
        """在事件循环中持续处理到期的采样，直到跟踪器关闭。"""
        while self.sampling:
            next_due = self.queue.next_due()
            delay = self.interval if next_due is None else max(0.0, next_due - self.clock())
            await asyncio.sleep(delay)
            self.pump()
