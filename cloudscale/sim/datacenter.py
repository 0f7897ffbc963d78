"""
Datacenter Resource Model
=========================
Resource model đơn giản cho simulation: một host, nhiều units (VMs),
jobs chạy time-shared trên units.

Cung cấp interface mà autoscaling core cần:
    - now(), schedule_timer()
    - request_unit_create() -> ack bất đồng bộ sau startup_delay
    - request_unit_destroy()
    - submit(), reassign(), release(), jobs_on()
    - sample_utilization(), utilization_history(), host_utilization_history()

Utilization của một unit = min(1, số jobs / job_threshold), tức là
"job_threshold jobs trên một unit là full".

Usage:
    >>> kernel = SimulationKernel()
    >>> datacenter = Datacenter(kernel, HostSpec(pes=8))
    >>> datacenter.set_listener(adapter.dispatch)
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from loguru import logger

from .kernel import SimulationKernel

log = logger.bind(component="datacenter")

# Event tags giao cho listener (SchedulingAdapter.dispatch)
UNIT_CREATE_ACK = "unit_create_ack"
JOB_COMPLETE = "job_complete"
PROCESSING = "processing"
_EPSILON = 1e-6


@dataclass(frozen=True)
class HostSpec:
    """
    Cấu hình host vật lý.

    Attributes:
        mips: MIPS mỗi core
        pes: Số cores, giới hạn số units chạy đồng thời
    """
    mips: float = 4000.0
    pes: int = 8

    @property
    def capacity(self) -> float:
        return self.mips * self.pes


@dataclass
class _Instance:
    unit_id: int
    spec: Any
    history: Deque[float]
    running: bool = False
    jobs: Dict[int, Any] = field(default_factory=dict)


class Datacenter:
    """
    Resource model: provisioning, job execution và utilization history.

    Attributes:
        kernel: SimulationKernel
        host: HostSpec
        startup_delay: Thời gian từ request tới ack tạo unit
        history_size: Số điểm history giữ lại cho mỗi unit / host
    """

    def __init__(
        self,
        kernel: SimulationKernel,
        host: Optional[HostSpec] = None,
        startup_delay: float = 0.1,
        history_size: int = 30
    ):
        self.kernel = kernel
        self.host = host or HostSpec()
        self.startup_delay = startup_delay
        self.history_size = history_size

        self.instances: Dict[int, _Instance] = {}
        self.host_history: Deque[float] = deque(maxlen=history_size)
        self.listener: Optional[Callable[[str, Any], None]] = None

        self._placements: Dict[int, int] = {}
        self._reserved_pes = 0
        self._last_update = kernel.now()
        self._wakeup_at: Optional[float] = None

        kernel.add_clock_listener(self.update_processing)

    def set_listener(self, listener: Callable[[str, Any], None]) -> None:
        """Nơi nhận unit_create_ack và job_complete."""
        self.listener = listener

    def _notify(self, tag: str, data: Any) -> None:
        if self.listener is not None:
            self.listener(tag, data)

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def now(self) -> float:
        return self.kernel.now()

    def schedule_timer(self, delay: float, tag: str, callback, data: Any = None):
        return self.kernel.schedule_timer(delay, tag, callback, data)

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    @property
    def free_pes(self) -> int:
        return self.host.pes - self._reserved_pes

    def request_unit_create(self, unit_id: int, spec) -> None:
        """Request tạo unit; ack tới sau startup_delay."""
        success = unit_id not in self.instances and spec.pes <= self.free_pes

        if success:
            self._reserved_pes += spec.pes
            self.instances[unit_id] = _Instance(
                unit_id, spec, deque(maxlen=self.history_size)
            )
        else:
            log.warning(
                "Host không đủ cores cho unit #{unit_id} (free={free})",
                unit_id=unit_id, free=self.free_pes
            )

        self.kernel.schedule_timer(
            self.startup_delay, UNIT_CREATE_ACK, self._deliver_ack, (unit_id, success)
        )

    def _deliver_ack(self, tag: str, data: Any) -> None:
        unit_id, success = data
        instance = self.instances.get(unit_id)
        if success and instance is not None:
            instance.running = True
        self._notify(tag, (unit_id, success and instance is not None))

    def request_unit_destroy(self, unit_id: int) -> None:
        """Fire-and-forget: giải phóng cores của unit."""
        instance = self.instances.pop(unit_id, None)
        if instance is None:
            return
        if instance.jobs:
            log.warning(
                "Unit #{unit_id} bị destroy khi còn {n} jobs",
                unit_id=unit_id, n=len(instance.jobs)
            )
            for job_id in instance.jobs:
                self._placements.pop(job_id, None)
        self._reserved_pes -= instance.spec.pes

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def submit(self, job, unit_id: int) -> None:
        self.instances[unit_id].jobs[job.job_id] = job
        self._placements[job.job_id] = unit_id
        self._schedule_wakeup()

    def reassign(self, job_id: int, new_unit_id: int) -> None:
        old_unit_id = self._placements[job_id]
        job = self.instances[old_unit_id].jobs.pop(job_id)
        self.instances[new_unit_id].jobs[job_id] = job
        self._placements[job_id] = new_unit_id
        self._schedule_wakeup()

    def release(self, job_id: int) -> None:
        """Dừng chạy job (job được đưa về pending queue)."""
        unit_id = self._placements.pop(job_id, None)
        if unit_id is not None and unit_id in self.instances:
            self.instances[unit_id].jobs.pop(job_id, None)

    def jobs_on(self, unit_id: int) -> List:
        instance = self.instances.get(unit_id)
        return list(instance.jobs.values()) if instance else []

    @staticmethod
    def _job_rate(instance: _Instance) -> float:
        spec = instance.spec
        return min(spec.mips, spec.capacity / len(instance.jobs))

    def update_processing(self, now: float) -> None:
        """Tiến độ jobs từ lần update trước tới now."""
        elapsed = now - self._last_update
        if elapsed <= 0:
            return

        finished = []
        for instance in self.instances.values():
            if not instance.running or not instance.jobs:
                continue
            rate = self._job_rate(instance)
            for job in instance.jobs.values():
                job.remaining = max(0.0, job.remaining - rate * elapsed)
                if job.remaining <= _EPSILON:
                    finished.append((instance, job))

        for instance, job in finished:
            instance.jobs.pop(job.job_id, None)
            self._placements.pop(job.job_id, None)
            job.remaining = 0.0

        self._last_update = now
        self._record_history()

        for _, job in finished:
            job.finished_at = now
            self._notify(JOB_COMPLETE, job)

        self._schedule_wakeup()

    def _schedule_wakeup(self) -> None:
        now = self.kernel.now()
        delays = [
            job.remaining / self._job_rate(instance)
            for instance in self.instances.values()
            if instance.running and instance.jobs
            for job in instance.jobs.values()
        ]
        if not delays:
            return

        target = now + max(_EPSILON, min(delays))
        if self._wakeup_at is not None and now < self._wakeup_at <= target:
            return
        self._wakeup_at = target
        self.kernel.schedule_timer(target - now, PROCESSING, self._on_wakeup)

    def _on_wakeup(self, tag: str, data: Any) -> None:
        # update_processing đã chạy qua clock listener
        if self._wakeup_at is not None and self._wakeup_at <= self.kernel.now():
            self._wakeup_at = None
        self._schedule_wakeup()

    # ------------------------------------------------------------------
    # Utilization
    # ------------------------------------------------------------------

    def sample_utilization(self, unit_id: int) -> float:
        instance = self.instances.get(unit_id)
        if instance is None or not instance.running:
            return 0.0
        return min(1.0, len(instance.jobs) / instance.spec.job_threshold)

    def host_utilization(self) -> float:
        used = sum(
            self.sample_utilization(i.unit_id) * i.spec.capacity
            for i in self.instances.values()
        )
        return used / self.host.capacity

    def _record_history(self) -> None:
        for instance in self.instances.values():
            if instance.running:
                instance.history.append(self.sample_utilization(instance.unit_id))
        self.host_history.append(self.host_utilization())

    def utilization_history(self, unit_id: int) -> List[float]:
        instance = self.instances.get(unit_id)
        return list(instance.history) if instance else []

    def host_utilization_history(self) -> List[float]:
        return list(self.host_history)
