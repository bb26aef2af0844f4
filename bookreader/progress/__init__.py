from .debounce import CoalescingQueue
from .signals import LayoutSignals, Signal
from .tracker import ProgressTracker, chapter_local_progress, global_percentage

__all__ = [
    "CoalescingQueue",
    "LayoutSignals",
    "ProgressTracker",
    "Signal",
    "chapter_local_progress",
    "global_percentage",
]
