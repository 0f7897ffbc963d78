"""
Autoscaling Simulator
=====================
Module chạy autoscaling policy trên một discrete-event simulation.

Cho phép:
    - Test các scaling policies khác nhau trên cùng workload
    - So sánh chọn candidate theo utilization vs theo correlation
    - Phân tích số units, utilization và response time

Usage:
    >>> simulator = AutoscalingSimulator(policy)
    >>> timeline = simulator.simulate(GrowingWorkload(max_jobs=100), duration=500)
    >>> metrics = simulator.calculate_metrics(timeline)
"""

from dataclasses import asdict
from typing import Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from ..sim.datacenter import Datacenter, HostSpec
from ..sim.kernel import SimulationKernel
from .controller import AutoscalingController
from .policy import ScaleAction, ScalingPolicy
from .registry import UnitSpec
from .scheduler import SchedulingAdapter


class AutoscalingSimulator:
    """
    Simulator cho autoscaling.

    Mỗi lần simulate() tạo một kernel, datacenter và controller mới, nên
    các lần chạy độc lập với nhau.

    Attributes:
        policy: ScalingPolicy
        unit_spec: UnitSpec cho units mới
        host_spec: HostSpec của datacenter
        use_consolidation: Chọn candidate scale-down theo correlation
        startup_delay: Thời gian provision một unit
        controller: Controller của lần simulate() gần nhất

    Example:
        >>> sim = AutoscalingSimulator(ScalingPolicy(cooldown=10))
        >>> df = sim.simulate(SessionWorkload(seed=7), duration=400)
        >>> print(sim.calculate_metrics(df)['max_units'])
    """

    def __init__(
        self,
        policy: ScalingPolicy,
        unit_spec: Optional[UnitSpec] = None,
        host_spec: Optional[HostSpec] = None,
        use_consolidation: bool = False,
        startup_delay: float = 0.1
    ):
        self.policy = policy
        self.unit_spec = unit_spec or UnitSpec()
        self.host_spec = host_spec or HostSpec()
        self.use_consolidation = use_consolidation
        self.startup_delay = startup_delay
        self.controller: Optional[AutoscalingController] = None

    def simulate(
        self,
        workload,
        duration: float,
        initial_units: Optional[int] = None
    ) -> pd.DataFrame:
        """
        Chạy simulation.

        Args:
            workload: Job source (StaticWorkload, GrowingWorkload, ...)
            duration: Virtual time chạy simulation
            initial_units: Số units ban đầu (mặc định: max(min_units, 1))

        Returns:
            DataFrame timeline, index là virtual time của các monitor ticks:
                - mean_utilization
                - active_units, provisioning_units, draining_units, live_units
                - pending_jobs, running_jobs, finished_jobs
                - action, count
        """
        kernel = SimulationKernel()
        datacenter = Datacenter(
            kernel,
            self.host_spec,
            startup_delay=self.startup_delay
        )
        controller = AutoscalingController(
            self.policy,
            datacenter,
            unit_spec=self.unit_spec,
            use_consolidation=self.use_consolidation
        )
        adapter = SchedulingAdapter(kernel, controller, workload=workload)
        datacenter.set_listener(adapter.dispatch)

        controller.bootstrap(initial_units)
        adapter.start()
        kernel.run(until=duration)
        adapter.stop()

        self.controller = controller
        return controller.get_timeline()

    def get_scaling_events(self, simulation_df: pd.DataFrame) -> pd.DataFrame:
        """
        Extract scaling events từ simulation results.

        Args:
            simulation_df: DataFrame từ simulate()

        Returns:
            DataFrame chỉ chứa các monitor ticks có scaling action
        """
        if len(simulation_df) == 0:
            return simulation_df
        events = simulation_df[simulation_df['action'] != ScaleAction.NONE.value].copy()
        events['unit_change'] = np.where(
            events['action'] == ScaleAction.SCALE_UP.value,
            events['count'],
            -events['count']
        )
        return events

    def calculate_metrics(self, simulation_df: pd.DataFrame) -> Dict:
        """
        Tính các metrics từ simulation.

        Args:
            simulation_df: DataFrame từ simulate()

        Returns:
            Dict với các metrics
        """
        events = self.get_scaling_events(simulation_df)
        scale_up_count = int((events['action'] == ScaleAction.SCALE_UP.value).sum()) if len(events) > 0 else 0
        scale_down_count = int((events['action'] == ScaleAction.SCALE_DOWN.value).sum()) if len(events) > 0 else 0

        metrics = {
            'ticks': len(simulation_df),
            'avg_units': float(simulation_df['live_units'].mean()) if len(simulation_df) else 0.0,
            'max_units': int(simulation_df['live_units'].max()) if len(simulation_df) else 0,
            'min_units': int(simulation_df['live_units'].min()) if len(simulation_df) else 0,
            'scale_up_count': scale_up_count,
            'scale_down_count': scale_down_count,
            'total_scaling_events': scale_up_count + scale_down_count,
            'avg_utilization': float(simulation_df['mean_utilization'].mean()) if len(simulation_df) else 0.0,
            'max_utilization': float(simulation_df['mean_utilization'].max()) if len(simulation_df) else 0.0,
            'max_pending_jobs': int(simulation_df['pending_jobs'].max()) if len(simulation_df) else 0,
        }

        if self.controller is not None:
            stats = self.controller.lifecycle.stats
            jobs = self.controller.lifecycle.job_frame()
            finished = jobs[jobs['finished_at'].notna()] if len(jobs) else jobs

            metrics.update({
                'jobs_submitted': stats['jobs_submitted'],
                'jobs_finished': stats['jobs_finished'],
                'jobs_pending': len(self.controller.registry.pending),
                'jobs_migrated': stats['jobs_migrated'],
                'jobs_requeued': stats['jobs_requeued'],
                'units_created': stats['units_created'],
                'units_failed': stats['units_failed'],
                'units_destroyed': stats['units_destroyed'],
                'mean_response_time': float(finished['response_time'].mean()) if len(finished) else float('nan')
            })

        return metrics

    def compare_strategies(
        self,
        workload_factory: Callable[[], object],
        duration: float,
        strategies: Dict[str, dict] = None
    ) -> pd.DataFrame:
        """
        So sánh nhiều strategies khác nhau trên cùng workload.

        Args:
            workload_factory: Hàm tạo workload mới cho mỗi lần chạy
            duration: Virtual time mỗi lần chạy
            strategies: Dict của {name: {'policy': ScalingPolicy, 'use_consolidation': bool}}

        Returns:
            DataFrame so sánh các strategies
        """
        if strategies is None:
            # Default strategies
            strategies = {
                'Utilization': {
                    'policy': self.policy,
                    'use_consolidation': False
                },
                'Correlation': {
                    'policy': self.policy,
                    'use_consolidation': True
                },
                'Aggressive': {
                    'policy': ScalingPolicy(**{
                        **asdict(self.policy),
                        'upper_threshold': 0.7,
                        'lower_threshold': 0.3
                    }),
                    'use_consolidation': False
                },
                'Conservative': {
                    'policy': ScalingPolicy(**{
                        **asdict(self.policy),
                        'upper_threshold': 0.9,
                        'lower_threshold': 0.1,
                        'cooldown': max(self.policy.cooldown, 3 * self.policy.monitoring_interval)
                    }),
                    'use_consolidation': False
                }
            }

        results = []

        for name, config in strategies.items():
            sim = AutoscalingSimulator(
                config['policy'],
                unit_spec=self.unit_spec,
                host_spec=self.host_spec,
                use_consolidation=config.get('use_consolidation', False),
                startup_delay=self.startup_delay
            )
            sim_results = sim.simulate(workload_factory(), duration)

            metrics = sim.calculate_metrics(sim_results)
            metrics['strategy'] = name
            results.append(metrics)

        df = pd.DataFrame(results)

        # Reorder columns
        cols = ['strategy'] + [c for c in df.columns if c != 'strategy']
        return df[cols]

    def run_sensitivity_analysis(
        self,
        workload_factory: Callable[[], object],
        duration: float,
        param_name: str = 'upper_threshold',
        param_values: List = None
    ) -> pd.DataFrame:
        """
        Chạy sensitivity analysis cho một parameter của ScalingPolicy.

        Args:
            workload_factory: Hàm tạo workload mới cho mỗi lần chạy
            duration: Virtual time mỗi lần chạy
            param_name: Tên parameter để vary
            param_values: Các giá trị để test

        Returns:
            DataFrame với results cho mỗi parameter value
        """
        if param_values is None:
            if param_name == 'upper_threshold':
                param_values = [0.6, 0.7, 0.8, 0.9]
            elif param_name == 'lower_threshold':
                param_values = [0.05, 0.1, 0.2, 0.3]
            elif param_name == 'cooldown':
                param_values = [0, 5, 10, 20, 40]
            elif param_name == 'scale_factor':
                param_values = [1, 5, 10, 20]
            else:
                raise ValueError(f"Không có giá trị mặc định cho parameter '{param_name}'")

        results = []

        for value in param_values:
            policy_dict = asdict(self.policy)
            policy_dict[param_name] = value
            test_policy = ScalingPolicy(**policy_dict)

            sim = AutoscalingSimulator(
                test_policy,
                unit_spec=self.unit_spec,
                host_spec=self.host_spec,
                use_consolidation=self.use_consolidation,
                startup_delay=self.startup_delay
            )
            sim_results = sim.simulate(workload_factory(), duration)
            metrics = sim.calculate_metrics(sim_results)
            metrics[param_name] = value
            results.append(metrics)

        return pd.DataFrame(results)
