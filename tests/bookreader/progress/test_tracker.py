import asyncio
from unittest.mock import MagicMock

import pytest

from bookreader.progress import LayoutSignals, ProgressTracker, chapter_local_progress, global_percentage
from bookreader.schemas import Location, TrackerState, Viewport


class FakeClock:
    """可手动推进的时钟。"""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signals():
    return LayoutSignals()


def _tracker(book, library, clock, **kwargs):
    library.add(book)
    return ProgressTracker(book, library, clock=clock, interval=0.15, settle_delay=0.1, **kwargs)


class TestProgressMath:
    """
    测试进度计算公式。
    """

    def test_chapter_local_progress(self):
        assert chapter_local_progress(Viewport(scroll_offset=250, viewport_height=500, content_height=1000)) == 0.5

    @pytest.mark.parametrize("offset, expected", [(-50, 0.0), (900, 1.0)])
    def test_local_progress_is_clamped(self, offset, expected):
        viewport = Viewport(scroll_offset=offset, viewport_height=500, content_height=1000)
        assert chapter_local_progress(viewport) == expected

    def test_content_fits_viewport(self):
        """内容不足一屏时章节进度为 1。"""
        assert chapter_local_progress(Viewport(scroll_offset=0, viewport_height=800, content_height=600)) == 1.0

    def test_global_percentage(self):
        assert global_percentage(2, 0.5, 4) == 62.5
        assert global_percentage(3, 1.0, 4) == 100.0
        assert global_percentage(0, 0.0, 0) == 0.0


class TestProgressTracker:
    """
    测试进度跟踪器的采样、合并与生命周期。
    """

    def test_open_enters_sampling_and_renders(self, library, text_book, clock, signals):
        """打开时进入采样状态、记录最近打开的书并渲染当前章节。"""
        renderer = MagicMock()
        tracker = _tracker(text_book, library, clock, renderer=renderer)
        tracker.open(signals)

        assert tracker.state == TrackerState.SAMPLING
        assert library.last_book_id == text_book.id
        renderer.assert_called_once_with(text_book, 0)
        assert signals.receivers() == 5

    def test_open_returns_initial_percentage(self, library, text_book, clock):
        """第一次采样之前按当前章节开头显示进度，且不写回书籍记录。"""
        text_book.current_chapter_index = 2
        text_book.current_position = 80
        tracker = _tracker(text_book, library, clock)

        assert tracker.open() == 50.0
        assert tracker.initial_percentage == 50.0
        assert tracker.restore_position == 80
        assert text_book.reading_progress == 0.0

    def test_txt_sample(self, library, text_book, clock, signals):
        """第 3 章滚动到一半时全书进度为 62.5%。"""
        text_book.current_chapter_index = 2
        tracker = _tracker(text_book, library, clock)
        tracker.open(signals)

        signals.scroll.emit(Viewport(scroll_offset=250, viewport_height=500, content_height=1000))
        clock.advance(0.15)
        sample = tracker.pump()

        assert sample.percentage == 62.5
        assert sample.chapter_progress == 0.5
        assert text_book.reading_progress == 62.5
        assert text_book.current_position == 250

    def test_epub_sample(self, library, epub_book, clock, signals):
        """EPUB 按引擎上报的位置计算，并同步当前章节。"""
        tracker = _tracker(epub_book, library, clock)
        tracker.open(signals)

        signals.location.emit(Location(chapter_index=2, fraction=0.5))
        sample = tracker.pump(now=clock.advance(0.2))

        assert sample.percentage == 62.5
        assert epub_book.current_chapter_index == 2
        assert epub_book.current_position == 0.5

    def test_epub_location_is_clamped(self, library, epub_book, clock):
        tracker = _tracker(epub_book, library, clock)
        tracker.open()
        tracker.on_location(Location(chapter_index=9, fraction=1.7))
        sample = tracker.pump(now=1.0)
        assert sample.chapter_index == 3
        assert sample.percentage == 100.0

    def test_burst_is_coalesced(self, library, text_book, clock, signals, mocker):
        """静默期内的一串布局信号只触发一次采样和一次保存。"""
        tracker = _tracker(text_book, library, clock)
        tracker.open(signals)
        save = mocker.spy(library, "save")

        for offset in (10, 20, 30, 40):
            signals.scroll.emit(Viewport(scroll_offset=offset, viewport_height=100, content_height=500))
            clock.advance(0.05)

        assert tracker.pump() is None
        clock.advance(0.15)
        sample = tracker.pump()

        assert save.call_count == 1
        assert sample.position == 40
        assert tracker.pump(now=clock.advance(1)) is None

    def test_render_completed_samples_now_and_after_settle(self, library, text_book, clock, signals, mocker):
        """渲染完成时立即采样一次，settle_delay 后再采样一次。"""
        tracker = _tracker(text_book, library, clock)
        tracker.open(signals)
        save = mocker.spy(library, "save")

        viewport = Viewport(scroll_offset=0, viewport_height=500, content_height=500)
        signals.render_completed.emit(viewport)
        assert save.call_count == 1
        assert text_book.reading_progress == 25.0

        assert tracker.pump(now=clock.advance(0.05)) is None
        assert tracker.pump(now=clock.advance(0.05)) is not None
        assert save.call_count == 2

    def test_sampling_is_idempotent(self, library, text_book, clock):
        """相同布局重复采样得到相同结果。"""
        tracker = _tracker(text_book, library, clock)
        tracker.open()
        viewport = Viewport(scroll_offset=100, viewport_height=100, content_height=300)
        first = tracker.on_render_completed(viewport)
        second = tracker.sample()
        assert first == second
        assert text_book.reading_progress == first.percentage

    def test_no_signal_yet(self, library, text_book, clock):
        tracker = _tracker(text_book, library, clock)
        tracker.open()
        assert tracker.sample() is None

    def test_close_cancels_pending_work(self, library, text_book, clock, signals, mocker):
        """关闭后待执行的采样被丢弃，信号全部断开。"""
        tracker = _tracker(text_book, library, clock)
        tracker.open(signals)
        save = mocker.spy(library, "save")

        signals.scroll.emit(Viewport(scroll_offset=50, viewport_height=100, content_height=500))
        tracker.close()

        assert tracker.state == TrackerState.IDLE
        assert signals.receivers() == 0
        assert len(tracker.queue) == 0
        assert tracker.pump(now=clock.advance(10)) is None
        save.assert_not_called()

    def test_deleted_book_sample_is_noop(self, library, text_book, clock):
        """书被删除后采样不再写回。"""
        tracker = _tracker(text_book, library, clock)
        tracker.open()
        library.remove(text_book.id)

        assert tracker.on_render_completed(Viewport(scroll_offset=10, viewport_height=10, content_height=100)) is None
        assert text_book.reading_progress == 0.0
        assert library.books == []

    def test_save_error_is_swallowed(self, library, text_book, clock, mocker):
        """保存失败只记录日志，跟踪器保持采样状态。"""
        tracker = _tracker(text_book, library, clock)
        tracker.open()
        mocker.patch.object(library, "save", side_effect=OSError("quota"))

        assert tracker.on_render_completed(Viewport(viewport_height=10, content_height=10)) is None
        assert tracker.sampling is True

    def test_go_to_chapter(self, library, text_book, clock, signals):
        renderer = MagicMock()
        text_book.current_position = 120
        tracker = _tracker(text_book, library, clock, renderer=renderer)
        tracker.open(signals)
        signals.scroll.emit(Viewport(scroll_offset=50, viewport_height=100, content_height=500))

        assert tracker.go_to_chapter(3) is True
        assert text_book.current_chapter_index == 3
        assert text_book.current_position == 0
        assert len(tracker.queue) == 0
        renderer.assert_called_with(text_book, 3)

    @pytest.mark.parametrize("index", [-1, 4])
    def test_go_to_invalid_chapter(self, library, text_book, clock, index):
        """越界索引不做任何事。"""
        tracker = _tracker(text_book, library, clock)
        tracker.open()
        assert tracker.go_to_chapter(index) is False
        assert text_book.current_chapter_index == 0

    def test_go_to_chapter_when_idle(self, library, text_book, clock):
        tracker = _tracker(text_book, library, clock)
        assert tracker.go_to_chapter(1) is False

    def test_renderer_error_is_logged(self, library, text_book, clock):
        tracker = _tracker(text_book, library, clock, renderer=MagicMock(side_effect=RuntimeError("gone")))
        tracker.open()
        assert tracker.sampling is True

    @pytest.mark.asyncio
    async def test_run_pumps_until_closed(self, library, text_book):
        """异步驱动在到期后采样，关闭后退出。"""
        library.add(text_book)
        tracker = ProgressTracker(text_book, library, interval=0.01, settle_delay=0.01)
        tracker.open()
        task = asyncio.create_task(tracker.run())

        tracker.on_layout(Viewport(scroll_offset=200, viewport_height=100, content_height=500))
        await asyncio.sleep(0.1)
        tracker.close()
        await asyncio.wait_for(task, timeout=1)

        assert text_book.reading_progress == 12.5
        assert text_book.current_position == 200
