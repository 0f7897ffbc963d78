"""
Exceptions
==========
Các lỗi của autoscaling core.

- ConfigurationError: policy không hợp lệ, raise ngay khi khởi tạo
- PlacementError: vi phạm invariant khi gán job vào unit

Correlation suy biến (NaN) không phải exception: selector xếp nó cuối cùng.
"""


class CloudscaleError(Exception):
    """Base class cho mọi lỗi của cloudscale."""


class ConfigurationError(CloudscaleError, ValueError):
    """Cấu hình thresholds / min_units không hợp lệ."""


class PlacementError(CloudscaleError, RuntimeError):
    """Gán job vào unit không nhận job, hoặc destroy unit còn job."""
