"""
Unit Lifecycle Manager
======================
Quản lý vòng đời của units và việc gán jobs.

Vòng đời một unit:
    PROVISIONING -> ACTIVE -> DRAINING -> DESTROYED
    PROVISIONING -> DESTROYED (tạo thất bại)

Scale-down theo thứ tự drain-then-destroy: unit chỉ bị destroy sau khi
migrator đã chuyển hết hoặc requeue hết jobs của nó.

Usage:
    >>> manager = UnitLifecycleManager(registry, datacenter, policy, migrator)
    >>> manager.scale_up(2)
    >>> manager.on_unit_create_ack(unit_id, success=True)
    >>> manager.scale_down(1)
"""

from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
from loguru import logger

from .exceptions import PlacementError
from .migration import MigrationResult, WorkloadMigrator
from .policy import ScalingPolicy
from .registry import Job, Unit, UnitRegistry, UnitSpec, UnitStatus
from .selection import ConsolidationSelector

log = logger.bind(component="lifecycle")


class UnitLifecycleManager:
    """
    Sở hữu việc tạo / destroy units và onboarding jobs.

    Attributes:
        registry: UnitRegistry dùng chung
        backend: Resource model bên ngoài (Datacenter)
        policy: ScalingPolicy (dùng min_units)
        migrator: WorkloadMigrator
        selector: ConsolidationSelector, None = chọn theo utilization thấp nhất
        unit_spec: UnitSpec cho units mới
        stats: Các counters
    """

    def __init__(
        self,
        registry: UnitRegistry,
        backend,
        policy: ScalingPolicy,
        migrator: Optional[WorkloadMigrator] = None,
        selector: Optional[ConsolidationSelector] = None,
        unit_spec: Optional[UnitSpec] = None
    ):
        self.registry = registry
        self.backend = backend
        self.policy = policy
        self.migrator = migrator or WorkloadMigrator(registry, backend)
        self.selector = selector
        self.unit_spec = unit_spec or UnitSpec()

        self.stats: Dict[str, int] = {
            'units_requested': 0,
            'units_created': 0,
            'units_failed': 0,
            'units_destroyed': 0,
            'jobs_submitted': 0,
            'jobs_finished': 0,
            'jobs_migrated': 0,
            'jobs_requeued': 0
        }

    # ------------------------------------------------------------------
    # Scale-up
    # ------------------------------------------------------------------

    def scale_up(self, count: int) -> List[Unit]:
        """
        Request tạo count units mới.

        Units ở trạng thái PROVISIONING cho tới khi nhận ack.
        """
        now = self.backend.now()
        units = []

        for _ in range(count):
            unit = Unit.from_spec(self.registry.next_unit_id(), self.unit_spec, now)
            self.registry.add_unit(unit)
            self.backend.request_unit_create(unit.unit_id, self.unit_spec)
            self.stats['units_requested'] += 1
            units.append(unit)

        if units:
            log.info(
                "{now:.2f}: SCALING UP - requested {n} unit(s): {ids}",
                now=now, n=len(units), ids=[u.unit_id for u in units]
            )
        return units

    def on_unit_create_ack(self, unit_id: int, success: bool) -> Optional[Unit]:
        """
        Xử lý ack tạo unit từ resource model.

        Ack cho unit không tồn tại hoặc không còn PROVISIONING bị bỏ qua.
        """
        unit = self.registry.get(unit_id)
        now = self.backend.now()

        if unit is None or unit.status != UnitStatus.PROVISIONING:
            log.debug("{now:.2f}: bỏ qua ack cho unit #{unit_id}", now=now, unit_id=unit_id)
            return None

        if not success:
            self.registry.mark_destroyed(unit, now)
            self.stats['units_failed'] += 1
            log.warning(
                "{now:.2f}: tạo unit #{unit_id} thất bại, coi như chưa provision",
                now=now, unit_id=unit_id
            )
            return unit

        unit.status = UnitStatus.ACTIVE
        unit.activated_at = now
        self.stats['units_created'] += 1
        log.info("{now:.2f}: unit #{unit_id} ACTIVE", now=now, unit_id=unit_id)

        self.onboard_pending()
        return unit

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def submit_jobs(self, jobs: Iterable[Job]) -> int:
        """Đăng ký jobs mới vào pending queue rồi onboard."""
        added = self.registry.add_jobs(jobs)
        self.stats['jobs_submitted'] += len(added)
        self.onboard_pending()
        return len(added)

    def onboard_pending(self) -> int:
        """
        Gán pending jobs theo first-fit.

        Điền unit ACTIVE mới nhất tới job_threshold rồi tới unit kế tiếp.

        Returns:
            Số jobs đã được gán
        """
        if not self.registry.pending:
            return 0

        targets = sorted(
            self.registry.active_units(),
            key=lambda u: (u.created_at, u.unit_id),
            reverse=True
        )
        placed = 0
        now = self.backend.now()

        for unit in targets:
            while self.registry.pending and self.registry.has_free_slot(unit):
                job = self.registry.pop_pending()
                self.registry.assign(job, unit)
                if job.started_at is None:
                    job.started_at = now
                self.backend.submit(job, unit.unit_id)
                placed += 1
            if not self.registry.pending:
                break

        return placed

    def on_job_complete(self, job: Job) -> None:
        """Job chạy xong: giải phóng slot và onboard pending jobs."""
        if job.finished_at is None:
            job.finished_at = self.backend.now()
        self.registry.unassign(job)
        self.stats['jobs_finished'] += 1
        self.onboard_pending()

    # ------------------------------------------------------------------
    # Scale-down
    # ------------------------------------------------------------------

    def _select_candidates(self, pool: List[Unit], n: int) -> List[Unit]:
        if self.selector is None:
            ordered = sorted(pool, key=lambda u: (u.utilization, u.created_at, u.unit_id))
            return ordered[:n]

        reference = self.backend.host_utilization_history()
        remaining = list(pool)
        selected = []
        for _ in range(n):
            unit = self.selector.select(remaining, reference)
            if unit is None:
                break
            selected.append(unit)
            remaining.remove(unit)
        return selected

    def scale_down(self, count: int) -> List[Tuple[Unit, MigrationResult]]:
        """
        Reclaim tối đa count units ACTIVE.

        Không bao giờ đưa số units ACTIVE + PROVISIONING xuống dưới min_units.
        Thứ tự: chọn candidates -> DRAINING -> migrate -> DESTROYED.

        Returns:
            List (unit, MigrationResult) cho các units đã destroy
        """
        pool = self.registry.active_units()
        capacity_units = self.registry.count(UnitStatus.ACTIVE, UnitStatus.PROVISIONING)
        n = min(count, capacity_units - self.policy.min_units, len(pool))
        if n <= 0:
            return []

        now = self.backend.now()
        candidates = self._select_candidates(pool, n)

        for unit in candidates:
            unit.status = UnitStatus.DRAINING

        log.info(
            "{now:.2f}: SCALING DOWN - draining {n} unit(s): {ids}",
            now=now, n=len(candidates), ids=[u.unit_id for u in candidates]
        )

        results = []
        for index, unit in enumerate(candidates):
            result = self.migrator.migrate(unit)
            if self.registry.jobs_on(unit.unit_id):
                # Candidates chưa xử lý quay lại ACTIVE
                for pending_unit in candidates[index:]:
                    pending_unit.status = UnitStatus.ACTIVE
                raise PlacementError(f"Migration của unit #{unit.unit_id} chưa hoàn tất")

            self.registry.mark_destroyed(unit, now)
            self.backend.request_unit_destroy(unit.unit_id)

            self.stats['units_destroyed'] += 1
            self.stats['jobs_migrated'] += result.moved
            self.stats['jobs_requeued'] += result.requeued
            results.append((unit, result))

            log.info(
                "{now:.2f}: unit #{unit_id} DESTROYED (moved={moved}, requeued={requeued})",
                now=now, unit_id=unit.unit_id, moved=result.moved, requeued=result.requeued
            )

        return results

    def job_frame(self) -> pd.DataFrame:
        """Bảng jobs dưới dạng DataFrame."""
        if not self.registry.jobs:
            return pd.DataFrame()

        return pd.DataFrame([
            {
                'job_id': j.job_id,
                'length': j.length,
                'remaining': j.remaining,
                'unit_id': j.unit_id,
                'submitted_at': j.submitted_at,
                'started_at': j.started_at,
                'finished_at': j.finished_at,
                'response_time': j.response_time
            }
            for j in self.registry.jobs.values()
        ]).set_index('job_id')
