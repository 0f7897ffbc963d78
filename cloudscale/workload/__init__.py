"""
Workload Module
===============
Job sources cho simulation.
"""

from .generators import GrowingWorkload, SessionWorkload, StaticWorkload

__all__ = [
    'StaticWorkload',
    'GrowingWorkload',
    'SessionWorkload'
]
