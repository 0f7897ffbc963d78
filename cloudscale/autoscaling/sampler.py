"""
Utilization Sampler
===================
Đọc utilization hiện tại của từng unit từ resource model bên ngoài.

Sample chỉ tồn tại trong một monitor tick, không được lưu lại.
"""

from dataclasses import dataclass
from typing import Dict

from loguru import logger

from .registry import UnitRegistry, UnitStatus

log = logger.bind(component="sampler")


@dataclass(frozen=True)
class Reading:
    """Utilization của một unit tại một thời điểm."""
    value: float
    measured_at: float
    status: UnitStatus


UtilizationSample = Dict[int, Reading]


class UtilizationSampler:
    """
    Sampler đọc utilization cho mọi unit còn sống.

    Units PROVISIONING chưa có load nên được đọc là 0.0. Engine tự lọc
    theo status khi tính trung bình.
    """

    def __init__(self, registry: UnitRegistry, backend):
        self.registry = registry
        self.backend = backend

    def sample(self, now: float) -> UtilizationSample:
        samples: UtilizationSample = {}

        for unit in self.registry.live_units():
            if unit.status == UnitStatus.PROVISIONING:
                value = 0.0
            else:
                value = float(self.backend.sample_utilization(unit.unit_id))
            value = min(1.0, max(0.0, value))

            unit.utilization = value
            samples[unit.unit_id] = Reading(value, now, unit.status)

            log.debug(
                "{now:.2f}: unit #{unit_id} ({status}) utilization {value:.2f}",
                now=now, unit_id=unit.unit_id, status=unit.status.value, value=value
            )

        return samples
