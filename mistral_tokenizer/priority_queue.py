import heapq
from itertools import count
from typing import Generic, List, Tuple, TypeVar

T = TypeVar("T")


class PriorityQueue(Generic[T]):
    """
    Binary min-heap keyed by a float priority.

    Items never get compared: an insertion counter sits between the priority
    and the item, so equal priorities pop in insertion order. Popped items may
    be stale, the caller decides whether they are still meaningful.
    """

    def __init__(self) -> None:
        self._heap: List[Tuple[float, int, T]] = []
        self._counter = count()

    def push(self, priority: float, item: T) -> None:
        heapq.heappush(self._heap, (priority, next(self._counter), item))

    def pop(self) -> T:
        """Remove and return the item with the smallest priority."""
        if not self._heap:
            raise IndexError("pop from an empty priority queue")
        _priority, _seq, item = heapq.heappop(self._heap)
        return item

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
