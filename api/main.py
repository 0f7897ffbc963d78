"""
FastAPI Application
===================
API endpoints cho Cloudscale autoscaling system.

Endpoints:
    - POST /decision: Evaluate một monitor tick đơn lẻ
    - POST /simulate: Run autoscaling simulation
    - POST /simulate/compare: So sánh các strategies trên cùng workload
    - GET /health: Health check

Run:
    uvicorn api.main:app --reload --port 8000
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from datetime import datetime
from typing import Any, Callable, Dict
import math
import sys
import os

from loguru import logger

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cloudscale import __version__
from cloudscale.autoscaling import (
    AutoscalingSimulator,
    ConfigurationError,
    Reading,
    ScaleAction,
    ScalingDecisionEngine,
    ScalingPolicy,
    UnitStatus
)
from cloudscale.workload import GrowingWorkload, SessionWorkload, StaticWorkload
from api.schemas import (
    PolicyConfig, WorkloadType,
    DecisionRequest, DecisionResponse, DecisionAction,
    SimulationRequest, SimulationResponse, ScalingEventPoint,
    CompareRequest, CompareResponse, StrategyResult,
    HealthResponse
)

log = logger.bind(component="api")

# =============================================================================
# App Configuration
# =============================================================================

app = FastAPI(
    title="Cloudscale API",
    description="""
    API cho hệ thống autoscaling compute units.

    ## Features
    - **Decision**: Evaluate threshold + cooldown rules cho một tick
    - **Simulation**: Mô phỏng autoscaling trên discrete-event simulation
    - **Comparison**: So sánh utilization vs correlation consolidation
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Helpers
# =============================================================================

def build_policy(config: PolicyConfig) -> ScalingPolicy:
    """PolicyConfig -> ScalingPolicy (raise ConfigurationError nếu không hợp lệ)."""
    return ScalingPolicy(**config.model_dump())


def workload_factory(kind: WorkloadType, seed: int, max_jobs) -> Callable[[], Any]:
    """Factory tạo workload mới cho mỗi lần chạy."""
    if kind == WorkloadType.STATIC:
        return lambda: StaticWorkload()
    if kind == WorkloadType.SESSIONS:
        return lambda: SessionWorkload(seed=seed)
    return lambda: GrowingWorkload(max_jobs=max_jobs)


def _finite(value):
    """NaN -> None để response encode được thành JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _clean(metrics: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _finite(v) for k, v in metrics.items()}


# =============================================================================
# Health Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(),
        version=__version__
    )


# =============================================================================
# Decision Endpoints
# =============================================================================

@app.post("/decision", response_model=DecisionResponse, tags=["Autoscaling"])
async def evaluate_decision(request: DecisionRequest):
    """
    Evaluate một monitor tick.

    Utilizations là của các units ACTIVE; unit_count gồm cả units đang
    provisioning.
    """
    try:
        policy = build_policy(request.policy)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    engine = ScalingDecisionEngine(policy)
    engine.cooldown_state.last_action_time = request.last_action_time
    in_cooldown = engine.cooldown_state.in_cooldown(request.now)

    samples = {
        i: Reading(min(1.0, max(0.0, value)), request.now, UnitStatus.ACTIVE)
        for i, value in enumerate(request.utilizations)
    }
    decision = engine.evaluate(samples, request.unit_count, request.now)

    recommended = request.unit_count
    if decision.action == ScaleAction.SCALE_UP:
        recommended += decision.count
    elif decision.action == ScaleAction.SCALE_DOWN:
        recommended -= decision.count

    return DecisionResponse(
        action=DecisionAction(decision.action.value),
        count=decision.count,
        mean_utilization=engine.mean_utilization(samples),
        in_cooldown=in_cooldown,
        recommended_units=recommended
    )


# =============================================================================
# Simulation Endpoints
# =============================================================================

@app.post("/simulate", response_model=SimulationResponse, tags=["Simulation"])
async def run_simulation(request: SimulationRequest):
    """
    Chạy autoscaling simulation với các parameters cho trước.
    """
    try:
        policy = build_policy(request.policy)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        simulator = AutoscalingSimulator(policy, use_consolidation=request.use_consolidation)
        factory = workload_factory(request.workload, request.seed, request.max_jobs)

        timeline = simulator.simulate(factory(), request.duration, request.initial_units)
        metrics = simulator.calculate_metrics(timeline)
        events = simulator.get_scaling_events(timeline)

        scaling_events = [
            ScalingEventPoint(
                time=float(time),
                action=DecisionAction(row['action']),
                count=int(row['count']),
                live_units=int(row['live_units']),
                mean_utilization=_finite(float(row['mean_utilization']))
            )
            for time, row in events.iterrows()
        ]

        log.info(
            "Simulation {workload}: {n} scaling events",
            workload=request.workload.value, n=len(scaling_events)
        )

    except Exception as e:
        log.exception("Simulation error")
        raise HTTPException(status_code=500, detail=f"Simulation error: {str(e)}")

    return SimulationResponse(
        workload=request.workload.value,
        duration=request.duration,
        metrics=_clean(metrics),
        scaling_events=scaling_events
    )


@app.post("/simulate/compare", response_model=CompareResponse, tags=["Simulation"])
async def compare_strategies(request: CompareRequest):
    """
    So sánh các scaling strategies trên cùng một workload.
    """
    try:
        policy = build_policy(request.policy)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        simulator = AutoscalingSimulator(policy)
        factory = workload_factory(request.workload, request.seed, request.max_jobs)
        comparison = simulator.compare_strategies(factory, request.duration)

        strategies = [
            StrategyResult(
                strategy=row['strategy'],
                avg_units=float(row['avg_units']),
                max_units=int(row['max_units']),
                scale_up_count=int(row['scale_up_count']),
                scale_down_count=int(row['scale_down_count']),
                avg_utilization=_finite(float(row['avg_utilization'])),
                jobs_finished=int(row['jobs_finished']),
                mean_response_time=_finite(float(row['mean_response_time']))
            )
            for _, row in comparison.iterrows()
        ]

    except Exception as e:
        log.exception("Comparison error")
        raise HTTPException(status_code=500, detail=f"Comparison error: {str(e)}")

    fewest = min(strategies, key=lambda s: s.avg_units)

    return CompareResponse(
        workload=request.workload.value,
        strategies=strategies,
        fewest_units=fewest.strategy
    )


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
