"""
Quick simulation script for the autoscaling control loop.
Runs the three workloads, compares strategies and sweeps the thresholds.
"""
import pandas as pd
import sys
import os

# Set working directory to script location
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
os.chdir(SCRIPT_DIR)
sys.path.insert(0, SCRIPT_DIR)

from loguru import logger

from cloudscale.autoscaling import AutoscalingSimulator, configure
from cloudscale.workload import GrowingWorkload, SessionWorkload, StaticWorkload

# Chỉ giữ WARNING trở lên trên stderr
logger.remove()
logger.add(sys.stderr, level="WARNING")

pd.set_option('display.width', 160)
pd.set_option('display.max_columns', 20)

print("="*60)
print("           AUTOSCALING SIMULATION SCRIPT")
print("="*60)

policy = configure(upper_threshold=0.8, lower_threshold=0.2, cooldown=10, min_units=1)
print(f"\nPolicy: {policy}")

# ========== Static ==========
print("\n1. Static workload (15 jobs tại t=0)...")
simulator = AutoscalingSimulator(policy)
static_df = simulator.simulate(StaticWorkload(), duration=300)
static_metrics = simulator.calculate_metrics(static_df)
print(f"   Max units={static_metrics['max_units']}, "
      f"scale ups={static_metrics['scale_up_count']}, "
      f"scale downs={static_metrics['scale_down_count']}")
print(f"   Jobs finished: {static_metrics['jobs_finished']}/{static_metrics['jobs_submitted']}")

# ========== Growing ==========
print("\n2. Growing workload...")
simulator = AutoscalingSimulator(policy, use_consolidation=True)
growing_df = simulator.simulate(GrowingWorkload(max_jobs=200), duration=600)
growing_metrics = simulator.calculate_metrics(growing_df)
print(f"   Avg units={growing_metrics['avg_units']:.2f}, max units={growing_metrics['max_units']}")
print(f"   Migrated={growing_metrics['jobs_migrated']}, requeued={growing_metrics['jobs_requeued']}")
print("\n   Scaling events:")
print(simulator.get_scaling_events(growing_df)[['live_units', 'mean_utilization', 'action', 'count']].head(10))

# ========== Sessions ==========
print("\n3. Session waves...")
simulator = AutoscalingSimulator(policy)
session_df = simulator.simulate(SessionWorkload(seed=42), duration=400)
session_metrics = simulator.calculate_metrics(session_df)
print(f"   Mean response time: {session_metrics['mean_response_time']:.2f}")

# ========== Strategies ==========
print("\n4. Comparing strategies on growing workload...")
comparison = AutoscalingSimulator(policy).compare_strategies(
    lambda: GrowingWorkload(max_jobs=200),
    duration=600
)
print(comparison[['strategy', 'avg_units', 'max_units', 'scale_up_count',
                  'scale_down_count', 'mean_response_time']])

# ========== Sensitivity ==========
print("\n5. Sensitivity analysis (cooldown)...")
sensitivity = AutoscalingSimulator(policy).run_sensitivity_analysis(
    lambda: SessionWorkload(seed=42),
    duration=400,
    param_name='cooldown'
)
print(sensitivity[['cooldown', 'avg_units', 'total_scaling_events', 'mean_response_time']])

# ========== Summary ==========
print("\n" + "="*60)
print("           SIMULATION COMPLETE!")
print("="*60)
best = comparison.loc[comparison['avg_units'].idxmin()]
print(f"\nFewest average units: {best['strategy']} ({best['avg_units']:.2f})")
