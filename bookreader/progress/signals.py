from typing import Any, Callable, List


class Signal:
    """
    最简单的观察者列表。``connect`` 返回一个用于断开该处理函数的可调用对象。
    """

    def __init__(self):
        self._handlers: List[Callable[..., Any]] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def connect(self, handler: Callable[..., Any]) -> Callable[[], None]:
        self._handlers.append(handler)
        return lambda: self.disconnect(handler)

    def disconnect(self, handler: Callable[..., Any]) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, *args: Any) -> None:
        for handler in list(self._handlers):
            handler(*args)


class LayoutSignals:
    """
    表现层为一本打开的书发出的布局信号。

    scroll / resize / mutation 携带 ``Viewport``；location 携带引擎上报的
    ``Location``；render_completed 携带可选的 ``Viewport``。
    """

    def __init__(self):
        self.scroll = Signal()
        self.resize = Signal()
        self.mutation = Signal()
        self.location = Signal()
        self.render_completed = Signal()

    def receivers(self) -> int:
        return sum(
            len(signal) for signal in (self.scroll, self.resize, self.mutation, self.location, self.render_completed)
        )
