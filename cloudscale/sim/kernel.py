"""
Simulation Kernel
=================
Discrete-event kernel tối giản: một event queue theo virtual time.

Đặc điểm:
    - Single-threaded: callbacks được giao lần lượt, không preemption
    - Events theo thứ tự (time, sequence): cùng thời điểm thì FIFO
    - Timers là one-shot, bên gọi tự re-arm nếu cần lặp

Usage:
    >>> kernel = SimulationKernel()
    >>> kernel.schedule_timer(5.0, "monitor", adapter.dispatch)
    >>> kernel.run(until=100)
"""

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

Callback = Callable[[str, Any], None]


@dataclass(order=True)
class SimEvent:
    """Một event đã được schedule."""
    time: float
    seq: int
    tag: str = field(compare=False)
    callback: Callback = field(compare=False, repr=False)
    data: Any = field(default=None, compare=False)


class SimulationKernel:
    """
    Event loop theo virtual time.

    Attributes:
        clock: Virtual time hiện tại
    """

    def __init__(self, start_time: float = 0.0):
        self.clock = float(start_time)
        self._queue: List[SimEvent] = []
        self._seq = itertools.count()
        self._clock_listeners: List[Callable[[float], None]] = []
        self._stopped = False

    def now(self) -> float:
        return self.clock

    def schedule_timer(
        self,
        delay: float,
        tag: str,
        callback: Callback,
        data: Any = None
    ) -> SimEvent:
        """
        Đăng ký one-shot callback tại now + delay.

        Raises:
            ValueError: Nếu delay < 0
        """
        if delay < 0:
            raise ValueError(f"delay phải >= 0 (delay={delay})")
        event = SimEvent(self.clock + delay, next(self._seq), tag, callback, data)
        heapq.heappush(self._queue, event)
        return event

    def add_clock_listener(self, listener: Callable[[float], None]) -> None:
        """Listener được gọi mỗi khi clock tiến tới giá trị mới."""
        self._clock_listeners.append(listener)

    def pending(self) -> int:
        return len(self._queue)

    def stop(self) -> None:
        self._stopped = True

    def _advance(self, time: float) -> None:
        if time > self.clock:
            self.clock = time
            for listener in self._clock_listeners:
                listener(time)

    def run(self, until: Optional[float] = None) -> int:
        """
        Giao events cho tới khi hết queue, quá until, hoặc stop().

        Args:
            until: Virtual time dừng (optional); clock được đưa tới until

        Returns:
            Số events đã giao
        """
        self._stopped = False
        delivered = 0

        while self._queue and not self._stopped:
            if until is not None and self._queue[0].time > until:
                break
            event = heapq.heappop(self._queue)
            self._advance(event.time)
            event.callback(event.tag, event.data)
            delivered += 1

        if until is not None and not self._stopped:
            self._advance(until)

        return delivered
