"""
API Schemas
===========
Pydantic schemas cho FastAPI endpoints.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime
from enum import Enum


class WorkloadType(str, Enum):
    """Enum cho các workload types."""
    STATIC = "static"
    GROWING = "growing"
    SESSIONS = "sessions"


class DecisionAction(str, Enum):
    """Scaling actions."""
    NONE = "none"
    SCALE_UP = "scale_up"
    SCALE_DOWN = "scale_down"


# =============================================================================
# Policy Schemas
# =============================================================================

class PolicyConfig(BaseModel):
    """Các trường của ScalingPolicy."""
    upper_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Mean utilization để scale up"
    )
    lower_threshold: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Mean utilization để scale down"
    )
    cooldown: float = Field(
        default=0.0,
        ge=0.0,
        description="Virtual time tối thiểu giữa 2 scaling actions"
    )
    min_units: int = Field(
        default=1,
        ge=0,
        description="Số units tối thiểu"
    )
    max_units: Optional[int] = Field(
        default=None,
        ge=1,
        description="Số units tối đa (None = không giới hạn)"
    )
    scale_factor: float = Field(
        default=10.0,
        gt=0.0,
        description="Hệ số nhân độ vượt ngưỡng khi scale up"
    )
    monitoring_interval: float = Field(
        default=5.0,
        gt=0.0,
        description="Chu kỳ monitor tick"
    )


# =============================================================================
# Decision Schemas
# =============================================================================

class DecisionRequest(BaseModel):
    """Request cho một lần evaluate đơn lẻ."""
    utilizations: List[float] = Field(
        description="Utilization (0-1) của các units ACTIVE"
    )
    unit_count: int = Field(
        ge=0,
        description="Số units ACTIVE + PROVISIONING"
    )
    now: float = Field(
        default=0.0,
        description="Virtual time hiện tại"
    )
    last_action_time: Optional[float] = Field(
        default=None,
        description="Thời điểm scaling action gần nhất"
    )
    policy: PolicyConfig = Field(default_factory=PolicyConfig)

    class Config:
        json_schema_extra = {
            "example": {
                "utilizations": [0.9, 0.95, 0.85],
                "unit_count": 3,
                "now": 100.0,
                "last_action_time": 50.0,
                "policy": {"upper_threshold": 0.8, "lower_threshold": 0.2, "cooldown": 30}
            }
        }


class DecisionResponse(BaseModel):
    """Response cho decision endpoint."""
    action: DecisionAction
    count: int
    mean_utilization: Optional[float]
    in_cooldown: bool
    recommended_units: int


# =============================================================================
# Simulation Schemas
# =============================================================================

class SimulationRequest(BaseModel):
    """Request cho autoscaling simulation."""
    workload: WorkloadType = Field(
        default=WorkloadType.GROWING,
        description="Workload: static, growing hoặc sessions"
    )
    duration: float = Field(
        default=300.0,
        gt=0.0,
        le=100000.0,
        description="Virtual time chạy simulation"
    )
    seed: int = Field(
        default=42,
        description="Seed cho sessions workload"
    )
    max_jobs: Optional[int] = Field(
        default=200,
        ge=1,
        description="Giới hạn số jobs cho growing workload"
    )
    initial_units: Optional[int] = Field(
        default=None,
        ge=0,
        description="Số units ban đầu"
    )
    use_consolidation: bool = Field(
        default=False,
        description="Chọn unit scale-down theo correlation"
    )
    policy: PolicyConfig = Field(default_factory=PolicyConfig)

    class Config:
        json_schema_extra = {
            "example": {
                "workload": "growing",
                "duration": 300,
                "max_jobs": 200,
                "use_consolidation": True,
                "policy": {"upper_threshold": 0.8, "lower_threshold": 0.2, "cooldown": 10}
            }
        }


class ScalingEventPoint(BaseModel):
    """Một monitor tick có scaling action."""
    time: float
    action: DecisionAction
    count: int
    live_units: int
    mean_utilization: Optional[float]


class SimulationResponse(BaseModel):
    """Response cho autoscaling simulation."""
    workload: str
    duration: float
    metrics: Dict[str, Any]
    scaling_events: List[ScalingEventPoint]


class CompareRequest(BaseModel):
    """Request cho so sánh strategies trên cùng workload."""
    workload: WorkloadType = WorkloadType.GROWING
    duration: float = Field(default=300.0, gt=0.0, le=100000.0)
    seed: int = 42
    max_jobs: Optional[int] = Field(default=200, ge=1)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)


class StrategyResult(BaseModel):
    """Metrics cho một strategy."""
    strategy: str
    avg_units: float
    max_units: int
    scale_up_count: int
    scale_down_count: int
    avg_utilization: Optional[float]
    jobs_finished: int
    mean_response_time: Optional[float]


class CompareResponse(BaseModel):
    """Response cho strategy comparison."""
    workload: str
    strategies: List[StrategyResult]
    fewest_units: str


# =============================================================================
# Health Schemas
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: datetime
    version: str
