"""
Shared fixtures
===============
FakeBackend thay cho Datacenter trong unit tests của core.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cloudscale.autoscaling import ScalingPolicy, UnitRegistry


class FakeBackend:
    """Resource model giả: ghi lại mọi request, utilization đặt tay."""

    def __init__(self):
        self.clock = 0.0
        self.created = []
        self.destroyed = []
        self.submitted = []
        self.reassigned = []
        self.released = []
        self.utilization = {}
        self.histories = {}
        self.host_history = []

    def now(self):
        return self.clock

    def request_unit_create(self, unit_id, spec):
        self.created.append(unit_id)

    def request_unit_destroy(self, unit_id):
        self.destroyed.append(unit_id)

    def submit(self, job, unit_id):
        self.submitted.append((job.job_id, unit_id))

    def reassign(self, job_id, unit_id):
        self.reassigned.append((job_id, unit_id))

    def release(self, job_id):
        self.released.append(job_id)

    def sample_utilization(self, unit_id):
        return self.utilization.get(unit_id, 0.0)

    def utilization_history(self, unit_id):
        return self.histories.get(unit_id, [])

    def host_utilization_history(self):
        return self.host_history


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def registry():
    return UnitRegistry()


@pytest.fixture
def policy():
    return ScalingPolicy(upper_threshold=0.8, lower_threshold=0.2, cooldown=0.0, min_units=1)
