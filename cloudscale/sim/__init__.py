"""
Simulation Module
=================
Discrete-event kernel và resource model cho autoscaling simulation.

Classes:
- SimulationKernel: Event queue theo virtual time
- Datacenter: Host, units, time-shared jobs, utilization history
- HostSpec: Cấu hình host
"""

from .datacenter import Datacenter, HostSpec
from .kernel import SimEvent, SimulationKernel

__all__ = [
    'SimulationKernel',
    'SimEvent',
    'Datacenter',
    'HostSpec'
]
