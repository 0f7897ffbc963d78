"""
Unit Registry
=============
Data model của autoscaling core: Unit, Job và registry sở hữu chúng.

Registry là nơi duy nhất giữ trạng thái units / jobs / pending queue
của một simulation. Không có global state: registry được truyền vào
từng component (sampler, lifecycle manager, migrator).

Invariants:
    - job.unit_id là None hoặc trỏ tới unit ACTIVE / DRAINING
    - Unit DESTROYED không giữ job nào
    - Pending queue là FIFO

Usage:
    >>> registry = UnitRegistry()
    >>> unit = registry.add_unit(Unit(registry.next_unit_id(), 1000, 1, created_at=0.0))
    >>> unit.status = UnitStatus.ACTIVE
    >>> registry.assign(job, unit)
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional

from .exceptions import PlacementError


class UnitStatus(Enum):
    """Các trạng thái của một compute unit."""
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    DRAINING = "draining"
    DESTROYED = "destroyed"


LIVE_STATUSES = (UnitStatus.PROVISIONING, UnitStatus.ACTIVE, UnitStatus.DRAINING)


@dataclass(frozen=True)
class UnitSpec:
    """
    Cấu hình của một unit mới.

    Attributes:
        mips: Processing rate mỗi core
        pes: Số cores
        job_mips: MIPS mà một job cần, dùng để tính job_threshold
    """
    mips: float = 1000.0
    pes: int = 1
    job_mips: float = 250.0

    @property
    def capacity(self) -> float:
        return self.mips * self.pes

    @property
    def job_threshold(self) -> int:
        """Số jobs tối đa một unit nhận trước khi coi là full."""
        return max(1, int(self.capacity // self.job_mips))


@dataclass
class Unit:
    """
    Một compute unit (VM).

    Attributes:
        unit_id: ID duy nhất trong registry
        mips: Processing rate mỗi core
        pes: Số cores
        created_at: Virtual time lúc request tạo unit
        job_threshold: Số jobs tối đa (derived từ capacity)
        status: UnitStatus hiện tại
        utilization: Utilization gần nhất (0-1)
    """
    unit_id: int
    mips: float
    pes: int
    created_at: float
    job_threshold: int = 1
    status: UnitStatus = UnitStatus.PROVISIONING
    utilization: float = 0.0
    activated_at: Optional[float] = None
    destroyed_at: Optional[float] = None

    @classmethod
    def from_spec(cls, unit_id: int, spec: UnitSpec, created_at: float) -> "Unit":
        return cls(
            unit_id=unit_id,
            mips=spec.mips,
            pes=spec.pes,
            created_at=created_at,
            job_threshold=spec.job_threshold
        )

    @property
    def capacity(self) -> float:
        return self.mips * self.pes

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES


@dataclass
class Job:
    """
    Một job (cloudlet) được submit vào hệ thống.

    Attributes:
        job_id: ID duy nhất
        length: Tổng khối lượng công việc (MI)
        submitted_at: Virtual time lúc submit
        remaining: Khối lượng còn lại, mặc định = length
        unit_id: Unit đang chạy job, None nghĩa là pending
    """
    job_id: int
    length: float
    submitted_at: float = 0.0
    remaining: Optional[float] = None
    unit_id: Optional[int] = None
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    def __post_init__(self):
        if self.remaining is None:
            self.remaining = float(self.length)

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    @property
    def is_pending(self) -> bool:
        return self.unit_id is None and not self.is_finished

    @property
    def response_time(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return self.finished_at - self.submitted_at


class UnitRegistry:
    """
    Registry sở hữu units, jobs và pending queue.

    Mọi thay đổi assignment đều đi qua registry để giữ invariants.
    Kernel là single-threaded nên không cần lock.
    """

    def __init__(self):
        self.units: Dict[int, Unit] = {}
        self.jobs: Dict[int, Job] = {}
        self.pending: Deque[Job] = deque()
        self._assignments: Dict[int, List[Job]] = {}
        self._next_unit_id = 0

    # ------------------------------------------------------------------
    # Units
    # ------------------------------------------------------------------

    def next_unit_id(self) -> int:
        unit_id = self._next_unit_id
        self._next_unit_id += 1
        return unit_id

    def add_unit(self, unit: Unit) -> Unit:
        if unit.unit_id in self.units:
            raise ValueError(f"Unit #{unit.unit_id} đã tồn tại")
        self.units[unit.unit_id] = unit
        self._assignments[unit.unit_id] = []
        self._next_unit_id = max(self._next_unit_id, unit.unit_id + 1)
        return unit

    def get(self, unit_id: int) -> Optional[Unit]:
        return self.units.get(unit_id)

    def units_with(self, *statuses: UnitStatus) -> List[Unit]:
        """Units có status thuộc statuses, theo thứ tự unit_id."""
        return [u for u in self.units.values() if u.status in statuses]

    def active_units(self) -> List[Unit]:
        return self.units_with(UnitStatus.ACTIVE)

    def live_units(self) -> List[Unit]:
        return self.units_with(*LIVE_STATUSES)

    def count(self, *statuses: UnitStatus) -> int:
        return sum(1 for u in self.units.values() if u.status in statuses)

    def mark_destroyed(self, unit: Unit, now: float) -> None:
        if self._assignments.get(unit.unit_id):
            raise PlacementError(
                f"Unit #{unit.unit_id} còn {len(self._assignments[unit.unit_id])} jobs, không thể destroy"
            )
        unit.status = UnitStatus.DESTROYED
        unit.destroyed_at = now
        unit.utilization = 0.0

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def add_jobs(self, jobs: Iterable[Job]) -> List[Job]:
        """Đăng ký jobs mới và đưa vào cuối pending queue."""
        added = []
        for job in jobs:
            if job.job_id in self.jobs:
                raise ValueError(f"Job #{job.job_id} đã tồn tại")
            job.unit_id = None
            self.jobs[job.job_id] = job
            self.pending.append(job)
            added.append(job)
        return added

    def jobs_on(self, unit_id: int) -> List[Job]:
        return list(self._assignments.get(unit_id, ()))

    def load_of(self, unit: Unit) -> int:
        return len(self._assignments.get(unit.unit_id, ()))

    def has_free_slot(self, unit: Unit) -> bool:
        return self.load_of(unit) < unit.job_threshold

    def assign(self, job: Job, unit: Unit) -> None:
        """Gán job (chưa có unit) vào một unit ACTIVE."""
        if unit.status != UnitStatus.ACTIVE:
            raise PlacementError(
                f"Không thể gán job #{job.job_id} vào unit #{unit.unit_id} ({unit.status.value})"
            )
        if job.unit_id is not None:
            self.unassign(job)
        job.unit_id = unit.unit_id
        self._assignments[unit.unit_id].append(job)

    def unassign(self, job: Job) -> None:
        if job.unit_id is None:
            return
        jobs = self._assignments.get(job.unit_id, [])
        if job in jobs:
            jobs.remove(job)
        job.unit_id = None

    def requeue(self, job: Job) -> None:
        """Bỏ assignment và đưa job về cuối pending queue."""
        self.unassign(job)
        self.pending.append(job)

    def pop_pending(self) -> Optional[Job]:
        return self.pending.popleft() if self.pending else None

    def running_jobs(self) -> List[Job]:
        return [j for j in self.jobs.values() if j.unit_id is not None]

    def finished_jobs(self) -> List[Job]:
        return [j for j in self.jobs.values() if j.is_finished]
