"""
CLOUDSCALE
==========
Hệ thống autoscaling phản ứng cho một cụm compute units, chạy trên
discrete-event simulation.

Modules:
- autoscaling: Sampler, decision engine, lifecycle manager, migrator,
  consolidation selector, scheduling adapter, simulator
- sim: Simulation kernel và datacenter resource model
- workload: Các job sources (static, growing, sessions)
"""

__version__ = "1.0.0"
__author__ = "Cloudscale Team"
