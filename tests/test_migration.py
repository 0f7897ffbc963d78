"""
Test Workload Migrator
======================
Unit tests cho WorkloadMigrator.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cloudscale.autoscaling import (
    Job,
    MigrationResult,
    Unit,
    UnitStatus,
    WorkloadMigrator
)


def add_unit(registry, threshold=4):
    unit = Unit(registry.next_unit_id(), 1000, 1, created_at=0.0, job_threshold=threshold)
    registry.add_unit(unit)
    unit.status = UnitStatus.ACTIVE
    return unit


def place(registry, unit, count):
    """Gán count jobs mới vào unit."""
    start = len(registry.jobs)
    jobs = [Job(job_id=i, length=1000.0) for i in range(start, start + count)]
    registry.add_jobs(jobs)
    for _ in jobs:
        registry.assign(registry.pop_pending(), unit)
    return jobs


class TestWorkloadMigrator:
    """Test cases cho WorkloadMigrator."""

    @pytest.fixture
    def migrator(self, registry, backend):
        return WorkloadMigrator(registry, backend)

    def test_migrate_empty_unit(self, migrator, registry):
        """Unit không có job -> MigrationResult(0, 0)."""
        unit = add_unit(registry)

        assert migrator.migrate(unit) == MigrationResult()

    def test_migrate_is_idempotent(self, migrator, registry, backend):
        source = add_unit(registry)
        target = add_unit(registry)
        place(registry, source, 2)
        source.status = UnitStatus.DRAINING

        first = migrator.migrate(source)
        second = migrator.migrate(source)

        assert first.moved == 2
        assert second == MigrationResult(0, 0)
        assert registry.load_of(target) == 2
        assert len(backend.reassigned) == 2

    def test_least_loaded_destination(self, migrator, registry, backend):
        source = add_unit(registry)
        busy = add_unit(registry)
        idle = add_unit(registry)
        place(registry, busy, 3)
        place(registry, idle, 1)
        job, = place(registry, source, 1)
        source.status = UnitStatus.DRAINING

        result = migrator.migrate(source)

        assert result.moved == 1
        assert job.unit_id == idle.unit_id
        assert backend.reassigned == [(job.job_id, idle.unit_id)]

    def test_skips_draining_and_full_units(self, migrator, registry):
        source = add_unit(registry)
        draining = add_unit(registry)
        full = add_unit(registry, threshold=1)
        place(registry, full, 1)
        place(registry, source, 1)
        source.status = UnitStatus.DRAINING
        draining.status = UnitStatus.DRAINING

        result = migrator.migrate(source)

        assert result == MigrationResult(moved=0, requeued=1)
        assert registry.load_of(draining) == 0

    def test_requeue_preserves_fifo(self, migrator, registry, backend):
        """Jobs không có đích xếp sau pending jobs sẵn có, giữ thứ tự."""
        source = add_unit(registry)
        moved = place(registry, source, 2)
        waiting = Job(job_id=99, length=1000.0)
        registry.add_jobs([waiting])
        source.status = UnitStatus.DRAINING

        result = migrator.migrate(source)

        assert result.requeued == 2
        assert result.total == 2
        assert [j.job_id for j in registry.pending] == [99] + [j.job_id for j in moved]
        assert backend.released == [j.job_id for j in moved]
        assert registry.jobs_on(source.unit_id) == []

    def test_spreads_across_destinations(self, migrator, registry):
        source = add_unit(registry)
        first = add_unit(registry, threshold=2)
        second = add_unit(registry, threshold=2)
        place(registry, source, 4)
        source.status = UnitStatus.DRAINING

        result = migrator.migrate(source)

        assert result.moved == 4
        assert registry.load_of(first) == 2
        assert registry.load_of(second) == 2


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
