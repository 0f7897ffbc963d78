"""
Workload Migrator
=================
Chuyển jobs ra khỏi một unit sắp bị destroy.

Placement:
    - Đích là unit ACTIVE khác fromUnit, còn slot trống
    - Ưu tiên unit có load thấp nhất (jobs / job_threshold)
    - Không có đích -> job về cuối pending queue (FIFO)

Usage:
    >>> migrator = WorkloadMigrator(registry, datacenter)
    >>> result = migrator.migrate(unit)
    >>> print(result.moved, result.requeued)
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .registry import Unit, UnitRegistry

log = logger.bind(component="migrator")


@dataclass(frozen=True)
class MigrationResult:
    """Số jobs đã chuyển và số jobs bị đưa về pending queue."""
    moved: int = 0
    requeued: int = 0

    @property
    def total(self) -> int:
        return self.moved + self.requeued


class WorkloadMigrator:
    """
    Migrator cho scale-down.

    Migrate là idempotent: gọi trên unit không còn job trả về
    MigrationResult(0, 0) và không thay đổi gì.
    """

    def __init__(self, registry: UnitRegistry, backend):
        self.registry = registry
        self.backend = backend

    def _pick_destination(self, from_unit: Unit) -> Optional[Unit]:
        eligible = [
            u for u in self.registry.active_units()
            if u.unit_id != from_unit.unit_id and self.registry.has_free_slot(u)
        ]
        if not eligible:
            return None
        return min(
            eligible,
            key=lambda u: (self.registry.load_of(u) / u.job_threshold, u.unit_id)
        )

    def migrate(self, from_unit: Unit) -> MigrationResult:
        """
        Chuyển mọi job của from_unit.

        Args:
            from_unit: Unit nguồn (thường đang DRAINING)

        Returns:
            MigrationResult
        """
        jobs = self.registry.jobs_on(from_unit.unit_id)
        if not jobs:
            return MigrationResult()

        moved = 0
        requeued = 0

        for job in jobs:
            destination = self._pick_destination(from_unit)

            if destination is None:
                self.registry.requeue(job)
                self.backend.release(job.job_id)
                requeued += 1
                log.warning(
                    "Job #{job_id}: không có unit đích, đưa về pending queue",
                    job_id=job.job_id
                )
                continue

            self.registry.assign(job, destination)
            self.backend.reassign(job.job_id, destination.unit_id)
            moved += 1
            log.debug(
                "Job #{job_id}: unit #{src} -> unit #{dst}",
                job_id=job.job_id, src=from_unit.unit_id, dst=destination.unit_id
            )

        return MigrationResult(moved=moved, requeued=requeued)
