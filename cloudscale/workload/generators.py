"""
Workload Generators
===================
Các job sources cho simulation.

Generators:
    - StaticWorkload: Một batch jobs tại t=0, độ dài tăng dần
    - GrowingWorkload: Mỗi lần arrival thêm 1 + now / growth_period jobs
    - SessionWorkload: Các waves sessions tăng dần, độ dài Gaussian (seeded)

Mọi generator đều có:
    - arrival_interval: Chu kỳ job arrival (None = không có arrivals)
    - initial_jobs(now): Batch đầu tiên
    - next_batch(now): Batch tại mỗi arrival tick
    - exhausted: True khi không còn jobs để sinh

Usage:
    >>> workload = GrowingWorkload(arrival_interval=15, max_jobs=200)
    >>> jobs = workload.next_batch(now=30.0)
"""

import itertools
from typing import List, Optional

import numpy as np

from ..autoscaling.registry import Job


class _JobFactory:
    """Sinh job IDs liên tục cho một workload."""

    def __init__(self):
        self._ids = itertools.count()
        self.created = 0

    def make(self, length: float, now: float) -> Job:
        self.created += 1
        return Job(job_id=next(self._ids), length=float(length), submitted_at=now)


class StaticWorkload:
    """
    Một batch jobs cố định tại thời điểm bắt đầu.

    Attributes:
        count: Số jobs
        base_length: Độ dài job đầu tiên, job i dài base_length * (1 + i // 3)
    """

    arrival_interval = None

    def __init__(self, count: int = 15, base_length: float = 50000):
        self.count = count
        self.base_length = base_length
        self._factory = _JobFactory()
        self._submitted = False

    @property
    def exhausted(self) -> bool:
        return self._submitted

    def initial_jobs(self, now: float = 0.0) -> List[Job]:
        if self._submitted:
            return []
        self._submitted = True
        return [
            self._factory.make(self.base_length * (1 + i // 3), now)
            for i in range(self.count)
        ]

    def next_batch(self, now: float) -> List[Job]:
        return []


class GrowingWorkload:
    """
    Load tăng dần theo thời gian.

    Mỗi arrival tick thêm 1 + int(now / growth_period) jobs.

    Attributes:
        arrival_interval: Chu kỳ arrival
        growth_period: Thời gian để số jobs mỗi batch tăng thêm 1
        base_length: Độ dài job đầu tiên
        length_step: Độ dài tăng thêm cho mỗi job kế tiếp
        max_jobs: Giới hạn tổng số jobs (None = không giới hạn)
        stop_time: Không sinh thêm jobs sau thời điểm này
    """

    def __init__(
        self,
        arrival_interval: float = 15.0,
        growth_period: float = 100.0,
        base_length: float = 10000,
        length_step: float = 2000,
        max_jobs: Optional[int] = None,
        stop_time: Optional[float] = None
    ):
        self.arrival_interval = arrival_interval
        self.growth_period = growth_period
        self.base_length = base_length
        self.length_step = length_step
        self.max_jobs = max_jobs
        self.stop_time = stop_time
        self._factory = _JobFactory()
        self._stopped = False

    @property
    def exhausted(self) -> bool:
        if self._stopped:
            return True
        return self.max_jobs is not None and self._factory.created >= self.max_jobs

    def initial_jobs(self, now: float = 0.0) -> List[Job]:
        return []

    def next_batch(self, now: float) -> List[Job]:
        if self.stop_time is not None and now > self.stop_time:
            self._stopped = True
        if self.exhausted:
            return []

        count = 1 + int(now / self.growth_period)
        if self.max_jobs is not None:
            count = min(count, self.max_jobs - self._factory.created)

        jobs = []
        for _ in range(count):
            index = self._factory.created
            jobs.append(self._factory.make(self.base_length + index * self.length_step, now))
        return jobs


class SessionWorkload:
    """
    Các waves web sessions với cường độ tăng dần.

    Wave i (bắt đầu từ 0) submit sessions_per_wave * (i + 1) jobs, độ dài
    lấy từ phân phối Gaussian với seed cố định.

    Attributes:
        waves: Số waves
        wave_interval: Khoảng cách giữa các waves
        sessions_per_wave: Số sessions của wave đầu tiên
        mean_length: Độ dài trung bình
        std_length: Độ lệch chuẩn
        seed: Seed cho numpy Generator
    """

    def __init__(
        self,
        waves: int = 5,
        wave_interval: float = 50.0,
        sessions_per_wave: int = 10,
        mean_length: float = 800,
        std_length: float = 200,
        seed: int = 42
    ):
        self.waves = waves
        self.arrival_interval = wave_interval
        self.sessions_per_wave = sessions_per_wave
        self.mean_length = mean_length
        self.std_length = std_length
        self._rng = np.random.default_rng(seed)
        self._factory = _JobFactory()
        self._wave = 0

    @property
    def exhausted(self) -> bool:
        return self._wave >= self.waves

    def _make_wave(self, now: float) -> List[Job]:
        if self.exhausted:
            return []
        count = self.sessions_per_wave * (self._wave + 1)
        lengths = np.clip(self._rng.normal(self.mean_length, self.std_length, count), 1, None)
        self._wave += 1
        return [self._factory.make(length, now) for length in lengths]

    def initial_jobs(self, now: float = 0.0) -> List[Job]:
        return self._make_wave(now)

    def next_batch(self, now: float) -> List[Job]:
        return self._make_wave(now)
