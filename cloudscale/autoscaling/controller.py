"""
Autoscaling Controller
======================
Facade của core: nối Sampler -> Decision Engine -> Lifecycle Manager.

Entry points cho Scheduling Adapter:
    - on_monitor_tick(): một vòng monitor / decide / scale
    - on_unit_create_ack(unit_id, success)
    - on_job_complete(job)
    - submit_jobs(jobs)

Usage:
    >>> policy = configure(upper_threshold=0.8, lower_threshold=0.2, cooldown=10)
    >>> controller = AutoscalingController(policy, datacenter)
    >>> controller.bootstrap(initial_units=1)
    >>> decision = controller.on_monitor_tick()
"""

from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from .lifecycle import UnitLifecycleManager
from .migration import WorkloadMigrator
from .policy import ScaleAction, ScalingDecision, ScalingDecisionEngine, ScalingPolicy
from .registry import Job, UnitRegistry, UnitSpec, UnitStatus
from .sampler import UtilizationSampler
from .selection import ConsolidationSelector


def configure(
    upper_threshold: float = 0.8,
    lower_threshold: float = 0.2,
    cooldown: float = 0.0,
    min_units: int = 1,
    monitoring_interval: float = 5.0,
    **extra
) -> ScalingPolicy:
    """
    Tạo ScalingPolicy đã validate.

    Args:
        upper_threshold: Ngưỡng scale-up
        lower_threshold: Ngưỡng scale-down
        cooldown: Cooldown giữa các scaling actions
        min_units: Số units tối thiểu
        monitoring_interval: Chu kỳ monitor tick
        **extra: max_units, scale_factor

    Raises:
        ConfigurationError: Nếu cấu hình không hợp lệ
    """
    return ScalingPolicy(
        upper_threshold=upper_threshold,
        lower_threshold=lower_threshold,
        cooldown=cooldown,
        min_units=min_units,
        monitoring_interval=monitoring_interval,
        **extra
    )


class AutoscalingController:
    """
    Một autoscaling policy đang chạy trên một simulation instance.

    Attributes:
        policy: ScalingPolicy
        backend: Resource model bên ngoài
        registry: UnitRegistry của simulation
        engine: ScalingDecisionEngine
        lifecycle: UnitLifecycleManager
        timeline: Một record cho mỗi monitor tick
    """

    def __init__(
        self,
        policy: ScalingPolicy,
        backend,
        unit_spec: Optional[UnitSpec] = None,
        use_consolidation: bool = False
    ):
        self.policy = policy
        self.backend = backend

        self.registry = UnitRegistry()
        self.sampler = UtilizationSampler(self.registry, backend)
        self.engine = ScalingDecisionEngine(policy)
        self.migrator = WorkloadMigrator(self.registry, backend)
        self.selector = (
            ConsolidationSelector(backend.utilization_history) if use_consolidation else None
        )
        self.lifecycle = UnitLifecycleManager(
            self.registry,
            backend,
            policy,
            migrator=self.migrator,
            selector=self.selector,
            unit_spec=unit_spec
        )

        self.timeline: List[Dict] = []

    def bootstrap(self, initial_units: Optional[int] = None) -> None:
        """Request các units ban đầu (mặc định: max(min_units, 1))."""
        count = initial_units if initial_units is not None else max(self.policy.min_units, 1)
        self.lifecycle.scale_up(count)

    def submit_jobs(self, jobs: Iterable[Job]) -> int:
        return self.lifecycle.submit_jobs(jobs)

    def on_unit_create_ack(self, unit_id: int, success: bool) -> None:
        self.lifecycle.on_unit_create_ack(unit_id, success)

    def on_job_complete(self, job: Job) -> None:
        self.lifecycle.on_job_complete(job)

    def unit_count(self) -> int:
        """Số units ACTIVE + PROVISIONING."""
        return self.registry.count(UnitStatus.ACTIVE, UnitStatus.PROVISIONING)

    def on_monitor_tick(self) -> ScalingDecision:
        """
        Một monitor tick: sample -> decide -> scale.

        Pending jobs được onboard lại trước khi sample, vì tick là điểm
        retry tự nhiên cho jobs chưa được gán.
        """
        now = self.backend.now()
        self.lifecycle.onboard_pending()

        samples = self.sampler.sample(now)
        decision = self.engine.evaluate(samples, self.unit_count(), now)

        if decision.action == ScaleAction.SCALE_UP:
            self.lifecycle.scale_up(decision.count)
        elif decision.action == ScaleAction.SCALE_DOWN:
            self.lifecycle.scale_down(decision.count)

        mean = self.engine.mean_utilization(samples)
        self.timeline.append({
            'time': now,
            'mean_utilization': np.nan if mean is None else mean,
            'active_units': self.registry.count(UnitStatus.ACTIVE),
            'provisioning_units': self.registry.count(UnitStatus.PROVISIONING),
            'draining_units': self.registry.count(UnitStatus.DRAINING),
            'live_units': len(self.registry.live_units()),
            'pending_jobs': len(self.registry.pending),
            'running_jobs': len(self.registry.running_jobs()),
            'finished_jobs': len(self.registry.finished_jobs()),
            'action': decision.action.value,
            'count': decision.count
        })

        return decision

    def get_timeline(self) -> pd.DataFrame:
        """Timeline của các monitor ticks, index theo virtual time."""
        if not self.timeline:
            return pd.DataFrame()
        return pd.DataFrame(self.timeline).set_index('time')
