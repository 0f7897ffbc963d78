"""
Autoscaling Policy Module
=========================
Module định nghĩa policy và Scaling Decision Engine.

Decision rules:
    1. Không có unit nào -> NoAction
    2. Đang trong cooldown -> NoAction (anti-flapping)
    3. Mean utilization > upper_threshold -> ScaleUp
    4. Mean utilization < lower_threshold và còn dư units -> ScaleDown

Anti-flapping mechanisms:
    - Cooldown period: Không có 2 scaling actions trong cùng một cửa sổ cooldown
    - Hysteresis: Ngưỡng khác nhau cho scale-up và scale-down

Usage:
    >>> policy = ScalingPolicy(upper_threshold=0.8, lower_threshold=0.2)
    >>> engine = ScalingDecisionEngine(policy)
    >>> decision = engine.evaluate(samples, unit_count=4, now=10.0)
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from .exceptions import ConfigurationError
from .registry import UnitStatus
from .sampler import UtilizationSample

log = logger.bind(component="engine")


class ScaleAction(Enum):
    """Các actions scaling có thể thực hiện."""
    NONE = "none"
    SCALE_UP = "scale_up"      # Thêm units
    SCALE_DOWN = "scale_down"  # Giảm units


@dataclass(frozen=True)
class ScalingDecision:
    """Kết quả của engine: action và số units."""
    action: ScaleAction = ScaleAction.NONE
    count: int = 0

    @classmethod
    def no_action(cls) -> "ScalingDecision":
        return cls(ScaleAction.NONE, 0)

    @classmethod
    def scale_up(cls, count: int) -> "ScalingDecision":
        return cls(ScaleAction.SCALE_UP, count)

    @classmethod
    def scale_down(cls, count: int) -> "ScalingDecision":
        return cls(ScaleAction.SCALE_DOWN, count)

    @property
    def is_action(self) -> bool:
        return self.action != ScaleAction.NONE


@dataclass
class ScalingPolicy:
    """
    Cấu hình scaling policy.

    Attributes:
        upper_threshold: Mean utilization để trigger scale-up (vd: 0.8 = 80%)
        lower_threshold: Mean utilization để trigger scale-down (vd: 0.2 = 20%)
        cooldown: Virtual time tối thiểu giữa 2 scaling actions
        min_units: Số units tối thiểu
        max_units: Số units tối đa (None = không giới hạn)
        scale_factor: Hệ số nhân độ vượt ngưỡng khi scale-up
        monitoring_interval: Chu kỳ monitor tick
    """
    upper_threshold: float = 0.8
    lower_threshold: float = 0.2
    cooldown: float = 0.0
    min_units: int = 1
    max_units: Optional[int] = None
    scale_factor: float = 10.0
    monitoring_interval: float = 5.0

    def __post_init__(self):
        if not 0.0 <= self.lower_threshold < self.upper_threshold <= 1.0:
            raise ConfigurationError(
                f"Thresholds phải thỏa 0 <= lower < upper <= 1 "
                f"(lower={self.lower_threshold}, upper={self.upper_threshold})"
            )
        if self.cooldown < 0:
            raise ConfigurationError(f"cooldown phải >= 0 (cooldown={self.cooldown})")
        if self.min_units < 0:
            raise ConfigurationError(f"min_units phải >= 0 (min_units={self.min_units})")
        if self.max_units is not None and self.max_units < max(self.min_units, 1):
            raise ConfigurationError(
                f"max_units phải >= max(min_units, 1) (max_units={self.max_units})"
            )
        if self.scale_factor <= 0:
            raise ConfigurationError(f"scale_factor phải > 0 (scale_factor={self.scale_factor})")
        if self.monitoring_interval <= 0:
            raise ConfigurationError(
                f"monitoring_interval phải > 0 (monitoring_interval={self.monitoring_interval})"
            )


@dataclass
class CooldownState:
    """Thời điểm scaling action gần nhất và độ dài cooldown."""
    cooldown: float
    last_action_time: Optional[float] = None

    def in_cooldown(self, now: float) -> bool:
        if self.last_action_time is None:
            return False
        return now - self.last_action_time < self.cooldown


@dataclass
class ScalingEvent:
    """Record của một scaling decision."""
    timestamp: float
    action: str
    count: int
    unit_count: int
    utilization: float
    reason: str


def _ceil(value: float) -> int:
    # (0.9 - 0.8) * 10 = 1.0000000000000009
    return int(math.ceil(np.round(value, 9)))


class ScalingDecisionEngine:
    """
    Engine chính cho scaling decisions.

    Engine là pure function của (samples, unit_count, now), ngoại trừ một
    side effect: cập nhật CooldownState sau mỗi decision khác NoAction.

    Attributes:
        policy: ScalingPolicy instance
        cooldown_state: CooldownState của engine
        scaling_history: Lịch sử các scaling events

    Example:
        >>> engine = ScalingDecisionEngine(ScalingPolicy())
        >>> decision = engine.evaluate(sampler.sample(now), unit_count, now)
        >>> if decision.action == ScaleAction.SCALE_UP:
        ...     lifecycle.scale_up(decision.count)
    """

    def __init__(self, policy: ScalingPolicy):
        self.policy = policy
        self.cooldown_state = CooldownState(policy.cooldown)
        self.scaling_history: List[ScalingEvent] = []

    def reset(self):
        """Reset engine về trạng thái ban đầu."""
        self.cooldown_state = CooldownState(self.policy.cooldown)
        self.scaling_history = []

    @staticmethod
    def mean_utilization(samples: UtilizationSample) -> Optional[float]:
        """
        Mean utilization của các units ACTIVE.

        Returns:
            Mean, hoặc None nếu không có unit ACTIVE nào
        """
        values = [r.value for r in samples.values() if r.status == UnitStatus.ACTIVE]
        if not values:
            return None
        return float(np.mean(values))

    def evaluate(
        self,
        samples: UtilizationSample,
        unit_count: int,
        now: float
    ) -> ScalingDecision:
        """
        Đánh giá một monitor tick.

        Args:
            samples: UtilizationSample của tick hiện tại
            unit_count: Số units ACTIVE + PROVISIONING
            now: Virtual time hiện tại

        Returns:
            ScalingDecision
        """
        if unit_count == 0:
            return ScalingDecision.no_action()

        if self.cooldown_state.in_cooldown(now):
            return ScalingDecision.no_action()

        mean = self.mean_utilization(samples)
        if mean is None:
            # Tất cả units đang provisioning
            return ScalingDecision.no_action()

        policy = self.policy
        decision = ScalingDecision.no_action()
        reason = ""

        # Check scale-up
        if mean > policy.upper_threshold:
            magnitude = max(1, _ceil((mean - policy.upper_threshold) * policy.scale_factor))
            if policy.max_units is not None:
                magnitude = min(magnitude, policy.max_units - unit_count)
            if magnitude > 0:
                decision = ScalingDecision.scale_up(magnitude)
                reason = f"Utilization {mean:.1%} > {policy.upper_threshold:.0%}"

        # Check scale-down
        elif mean < policy.lower_threshold and unit_count > policy.min_units:
            magnitude = min(
                _ceil((policy.lower_threshold - mean) * unit_count),
                unit_count - policy.min_units
            )
            if magnitude > 0:
                decision = ScalingDecision.scale_down(magnitude)
                reason = f"Utilization {mean:.1%} < {policy.lower_threshold:.0%}"

        if decision.is_action:
            self.cooldown_state.last_action_time = now
            self.scaling_history.append(ScalingEvent(
                timestamp=now,
                action=decision.action.value,
                count=decision.count,
                unit_count=unit_count,
                utilization=mean,
                reason=reason
            ))
            log.info(
                "{now:.2f}: {action} x{count} ({reason}, units={units})",
                now=now, action=decision.action.value, count=decision.count,
                reason=reason, units=unit_count
            )

        return decision

    def get_scaling_history(self) -> pd.DataFrame:
        """Lấy scaling history dưới dạng DataFrame."""
        if not self.scaling_history:
            return pd.DataFrame()

        return pd.DataFrame([
            {
                'timestamp': e.timestamp,
                'action': e.action,
                'count': e.count,
                'unit_count': e.unit_count,
                'utilization': e.utilization,
                'reason': e.reason
            }
            for e in self.scaling_history
        ])

    def get_stats(self) -> Dict:
        """Lấy thống kê về scaling."""
        history_df = self.get_scaling_history()

        if len(history_df) == 0:
            return {
                'total_events': 0,
                'scale_up_count': 0,
                'scale_down_count': 0,
                'units_added': 0,
                'units_removed': 0
            }

        ups = history_df[history_df['action'] == ScaleAction.SCALE_UP.value]
        downs = history_df[history_df['action'] == ScaleAction.SCALE_DOWN.value]

        return {
            'total_events': len(history_df),
            'scale_up_count': len(ups),
            'scale_down_count': len(downs),
            'units_added': int(ups['count'].sum()),
            'units_removed': int(downs['count'].sum())
        }
