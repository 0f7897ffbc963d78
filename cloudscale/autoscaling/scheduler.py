"""
Scheduling Adapter
==================
Chuyển decisions của core thành timed events trên simulation clock.

Kernel chỉ giao one-shot timers, nên adapter tự re-arm các timers lặp lại
(monitor, job arrival) tại now + interval sau mỗi lần fire.

Events được dispatch qua một callback table theo tag:
    - monitor: monitor tick -> controller.on_monitor_tick()
    - job_arrival: lấy batch jobs mới từ workload
    - unit_create_ack: ack tạo unit từ resource model
    - job_complete: job chạy xong

Usage:
    >>> adapter = SchedulingAdapter(kernel, controller, monitoring_interval=5.0,
    ...                             workload=GrowingWorkload())
    >>> adapter.start()
    >>> kernel.run(until=500)
"""

from typing import Any, Callable, Dict, Optional

from loguru import logger

from .controller import AutoscalingController
from .exceptions import ConfigurationError

log = logger.bind(component="scheduler")

MONITOR = "monitor"
JOB_ARRIVAL = "job_arrival"
UNIT_CREATE_ACK = "unit_create_ack"
JOB_COMPLETE = "job_complete"


class SchedulingAdapter:
    """
    Adapter giữa simulation kernel và AutoscalingController.

    Attributes:
        kernel: SimulationKernel (now(), schedule_timer())
        controller: AutoscalingController
        monitoring_interval: Chu kỳ monitor tick
        workload: Job source (optional), phải có arrival_interval,
            initial_jobs(), next_batch(now) và exhausted
    """

    def __init__(
        self,
        kernel,
        controller: AutoscalingController,
        monitoring_interval: Optional[float] = None,
        workload=None
    ):
        self.kernel = kernel
        self.controller = controller
        if monitoring_interval is None:
            monitoring_interval = controller.policy.monitoring_interval
        if monitoring_interval <= 0:
            raise ConfigurationError(
                f"monitoring_interval phải > 0 (monitoring_interval={monitoring_interval})"
            )
        self.monitoring_interval = monitoring_interval
        self.workload = workload
        self.running = False
        self.ticks = 0

        self._callbacks: Dict[str, Callable[[Any], None]] = {
            MONITOR: self._on_monitor,
            JOB_ARRIVAL: self._on_job_arrival,
            UNIT_CREATE_ACK: self._on_unit_create_ack,
            JOB_COMPLETE: self._on_job_complete,
        }

    def start(self) -> None:
        """Submit jobs ban đầu và arm các timers."""
        self.running = True

        if self.workload is not None:
            initial = self.workload.initial_jobs(self.kernel.now())
            if initial:
                self.controller.submit_jobs(initial)
            if self.workload.arrival_interval and not self.workload.exhausted:
                self._arm(JOB_ARRIVAL, self.workload.arrival_interval)

        self._arm(MONITOR, self.monitoring_interval)

    def stop(self) -> None:
        """Ngừng re-arm; timers đang chờ sẽ fire nhưng không lặp lại."""
        self.running = False

    def dispatch(self, tag: str, data: Any = None) -> None:
        """
        Callback entry point cho kernel.

        Raises:
            KeyError: Nếu tag không có trong callback table
        """
        handler = self._callbacks.get(tag)
        if handler is None:
            raise KeyError(f"Không có handler cho event tag '{tag}'")
        handler(data)

    def _arm(self, tag: str, delay: float) -> None:
        self.kernel.schedule_timer(delay, tag, self.dispatch)

    def _on_monitor(self, data: Any) -> None:
        if not self.running:
            return
        self.ticks += 1
        self.controller.on_monitor_tick()
        self._arm(MONITOR, self.monitoring_interval)

    def _on_job_arrival(self, data: Any) -> None:
        if not self.running or self.workload is None:
            return
        now = self.kernel.now()
        jobs = self.workload.next_batch(now)
        if jobs:
            log.info("{now:.2f}: {n} job(s) mới", now=now, n=len(jobs))
            self.controller.submit_jobs(jobs)
        if not self.workload.exhausted:
            self._arm(JOB_ARRIVAL, self.workload.arrival_interval)

    def _on_unit_create_ack(self, data: Any) -> None:
        unit_id, success = data
        self.controller.on_unit_create_ack(unit_id, success)

    def _on_job_complete(self, data: Any) -> None:
        self.controller.on_job_complete(data)
