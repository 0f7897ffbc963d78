"""
Test Scheduling
===============
Unit tests cho SimulationKernel, Datacenter và SchedulingAdapter.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cloudscale.autoscaling import (
    AutoscalingController,
    Job,
    ConfigurationError,
    SchedulingAdapter,
    ScalingPolicy,
    UnitSpec,
    UnitStatus
)
from cloudscale.sim import Datacenter, HostSpec, SimulationKernel
from cloudscale.workload import GrowingWorkload, StaticWorkload


class TestSimulationKernel:
    """Test cases cho SimulationKernel."""

    def test_events_in_time_order(self):
        kernel = SimulationKernel()
        fired = []
        record = lambda tag, data: fired.append((kernel.now(), tag))

        kernel.schedule_timer(5.0, "late", record)
        kernel.schedule_timer(1.0, "first", record)
        kernel.schedule_timer(1.0, "second", record)
        delivered = kernel.run()

        assert delivered == 3
        assert fired == [(1.0, "first"), (1.0, "second"), (5.0, "late")]

    def test_negative_delay(self):
        with pytest.raises(ValueError):
            SimulationKernel().schedule_timer(-1.0, "bad", lambda tag, data: None)

    def test_run_until(self):
        kernel = SimulationKernel()
        fired = []
        kernel.schedule_timer(3.0, "a", lambda tag, data: fired.append(tag))
        kernel.schedule_timer(30.0, "b", lambda tag, data: fired.append(tag))

        kernel.run(until=10.0)

        assert fired == ["a"]
        assert kernel.now() == 10.0
        assert kernel.pending() == 1

    def test_clock_listener(self):
        kernel = SimulationKernel()
        times = []
        kernel.add_clock_listener(times.append)
        kernel.schedule_timer(2.0, "a", lambda tag, data: None)
        kernel.schedule_timer(2.0, "b", lambda tag, data: None)

        kernel.run(until=4.0)

        assert times == [2.0, 4.0]

    def test_data_passed_to_callback(self):
        kernel = SimulationKernel()
        received = []
        kernel.schedule_timer(1.0, "ack", lambda tag, data: received.append((tag, data)), (7, True))

        kernel.run()

        assert received == [("ack", (7, True))]


class TestDatacenter:
    """Test cases cho Datacenter resource model."""

    @pytest.fixture
    def kernel(self):
        return SimulationKernel()

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def datacenter(self, kernel, events):
        dc = Datacenter(kernel, HostSpec(mips=1000, pes=2), startup_delay=0.1)
        dc.set_listener(lambda tag, data: events.append((kernel.now(), tag, data)))
        return dc

    def test_create_ack_after_delay(self, kernel, datacenter, events):
        datacenter.request_unit_create(0, UnitSpec())
        kernel.run()

        assert events == [(pytest.approx(0.1), "unit_create_ack", (0, True))]

    def test_create_fails_without_cores(self, kernel, datacenter, events):
        for unit_id in range(3):
            datacenter.request_unit_create(unit_id, UnitSpec())
        kernel.run()

        assert [data for _, _, data in events] == [(0, True), (1, True), (2, False)]
        assert datacenter.free_pes == 0

    def test_destroy_releases_cores(self, kernel, datacenter):
        datacenter.request_unit_create(0, UnitSpec())
        kernel.run()
        datacenter.request_unit_destroy(0)

        assert datacenter.free_pes == 2

    def test_job_completion(self, kernel, datacenter, events):
        datacenter.request_unit_create(0, UnitSpec())
        kernel.run()
        job = Job(job_id=0, length=1000.0)
        datacenter.submit(job, 0)
        kernel.run()

        time, tag, data = events[-1]
        assert tag == "job_complete"
        assert data is job
        assert job.finished_at == pytest.approx(1.1)
        assert datacenter.jobs_on(0) == []

    def test_time_shared_jobs(self, kernel, datacenter, events):
        """Hai jobs trên một core chia đôi MIPS."""
        datacenter.request_unit_create(0, UnitSpec())
        kernel.run()
        jobs = [Job(job_id=i, length=1000.0) for i in range(2)]
        for job in jobs:
            datacenter.submit(job, 0)

        assert datacenter.sample_utilization(0) == pytest.approx(0.5)

        kernel.run()

        assert [job.finished_at for job in jobs] == [pytest.approx(2.1), pytest.approx(2.1)]

    def test_utilization_history(self, kernel, datacenter):
        datacenter.request_unit_create(0, UnitSpec())
        kernel.run()
        for i in range(4):
            datacenter.submit(Job(job_id=i, length=4000.0), 0)
        kernel.run(until=1.0)

        assert datacenter.utilization_history(0)[-1] == pytest.approx(1.0)
        assert datacenter.host_utilization_history()[-1] == pytest.approx(0.5)


class TestSchedulingAdapter:
    """Test cases cho SchedulingAdapter."""

    @pytest.fixture
    def kernel(self):
        return SimulationKernel()

    def _build(self, kernel, workload=None, policy=None):
        datacenter = Datacenter(kernel)
        controller = AutoscalingController(policy or ScalingPolicy(monitoring_interval=5.0), datacenter)
        adapter = SchedulingAdapter(kernel, controller, workload=workload)
        datacenter.set_listener(adapter.dispatch)
        controller.bootstrap()
        return controller, adapter

    def test_monitor_rearms(self, kernel):
        controller, adapter = self._build(kernel)
        adapter.start()
        kernel.run(until=20.0)

        assert adapter.ticks == 4
        assert list(controller.get_timeline().index) == [5.0, 10.0, 15.0, 20.0]

    def test_explicit_monitoring_interval(self, kernel):
        """Interval truyền vào được dùng thay cho interval của policy."""
        datacenter = Datacenter(kernel)
        controller = AutoscalingController(ScalingPolicy(monitoring_interval=5.0), datacenter)
        adapter = SchedulingAdapter(kernel, controller, monitoring_interval=2.0)
        datacenter.set_listener(adapter.dispatch)
        controller.bootstrap()
        adapter.start()
        kernel.run(until=10.0)

        assert adapter.monitoring_interval == 2.0
        assert adapter.ticks == 5

    def test_zero_monitoring_interval_rejected(self, kernel):
        """Interval 0 không bị thay bằng interval của policy."""
        controller = AutoscalingController(ScalingPolicy(monitoring_interval=5.0), Datacenter(kernel))

        with pytest.raises(ConfigurationError):
            SchedulingAdapter(kernel, controller, monitoring_interval=0.0)

    def test_stop(self, kernel):
        controller, adapter = self._build(kernel)
        adapter.start()
        kernel.run(until=10.0)
        adapter.stop()
        kernel.run(until=30.0)

        assert adapter.ticks == 2

    def test_unknown_tag(self, kernel):
        _, adapter = self._build(kernel)

        with pytest.raises(KeyError):
            adapter.dispatch("no_such_event")

    def test_unit_activated_by_ack(self, kernel):
        controller, adapter = self._build(kernel)
        adapter.start()
        kernel.run(until=1.0)

        assert controller.registry.count(UnitStatus.ACTIVE) == 1

    def test_job_arrivals_stop_when_exhausted(self, kernel):
        workload = GrowingWorkload(arrival_interval=15.0, max_jobs=3)
        controller, adapter = self._build(kernel, workload=workload)
        adapter.start()
        kernel.run(until=200.0)

        assert workload.exhausted
        assert len(controller.registry.jobs) == 3
        assert controller.lifecycle.stats['jobs_submitted'] == 3

    def test_initial_jobs_submitted(self, kernel):
        controller, adapter = self._build(kernel, workload=StaticWorkload(count=5))
        adapter.start()

        assert len(controller.registry.pending) == 5


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
