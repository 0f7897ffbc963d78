"""
Autoscaling Module
==================
Control loop autoscaling: monitor -> decide -> scale.

Classes:
- AutoscalingController: Facade nối sampler, engine và lifecycle manager
- ScalingDecisionEngine: Threshold + cooldown decisions
- ScalingPolicy: Cấu hình scaling policy
- UnitLifecycleManager: Tạo / drain / destroy units
- WorkloadMigrator: Chuyển jobs khỏi unit sắp destroy
- ConsolidationSelector: Chọn unit theo Pearson correlation
- SchedulingAdapter: Nối controller với simulation clock
- AutoscalingSimulator: Simulator cho testing

Enums:
- ScaleAction: NONE, SCALE_UP, SCALE_DOWN
- UnitStatus: PROVISIONING, ACTIVE, DRAINING, DESTROYED
"""

from .controller import AutoscalingController, configure
from .exceptions import CloudscaleError, ConfigurationError, PlacementError
from .lifecycle import UnitLifecycleManager
from .migration import MigrationResult, WorkloadMigrator
from .policy import (
    ScaleAction,
    ScalingDecision,
    ScalingDecisionEngine,
    ScalingPolicy
)
from .registry import Job, Unit, UnitRegistry, UnitSpec, UnitStatus
from .sampler import Reading, UtilizationSampler
from .scheduler import SchedulingAdapter
from .selection import ConsolidationSelector, pearson
from .simulator import AutoscalingSimulator

__all__ = [
    'AutoscalingController',
    'configure',
    'CloudscaleError',
    'ConfigurationError',
    'PlacementError',
    'UnitLifecycleManager',
    'MigrationResult',
    'WorkloadMigrator',
    'ScaleAction',
    'ScalingDecision',
    'ScalingDecisionEngine',
    'ScalingPolicy',
    'Job',
    'Unit',
    'UnitRegistry',
    'UnitSpec',
    'UnitStatus',
    'Reading',
    'UtilizationSampler',
    'SchedulingAdapter',
    'ConsolidationSelector',
    'pearson',
    'AutoscalingSimulator'
]
