from typing import Any, Dict, List, Optional, Tuple


class CoalescingQueue:
    """
    固定静默间隔的协作式防抖队列。

    对已在队列中的 key 再次 push 会替换载荷并推迟截止时间，因此一串连续信号
    只会弹出最后一个载荷。队列本身不会自动执行任何东西，由持有者传入当前时间
    调用 ``pop_due``。
    """

    def __init__(self, interval: float):
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self.interval = interval
        self._pending: Dict[str, Tuple[float, int, Any]] = {}
        self._seq = 0

    def __len__(self) -> int:
        return len(self._pending)

    def push(self, key: str, payload: Any, now: float) -> None:
        """在 ``now + interval`` 时安排 ``payload``，替换 ``key`` 尚未执行的条目。"""
        self.schedule(key, payload, now + self.interval)

    def schedule(self, key: str, payload: Any, due: float) -> None:
        self._seq += 1
        self._pending[key] = (due, self._seq, payload)

    def next_due(self) -> Optional[float]:
        if not self._pending:
            return None
        return min(due for due, _, _ in self._pending.values())

    def pop_due(self, now: float) -> List[Tuple[str, Any]]:
        """取出所有已到期的条目，按截止时间先后排列。"""
        ready = sorted(
            ((due, seq, key, payload) for key, (due, seq, payload) in self._pending.items() if due <= now),
        )
        for _, _, key, _ in ready:
            del self._pending[key]
        return [(key, payload) for _, _, key, payload in ready]

    def clear(self) -> None:
        self._pending.clear()
