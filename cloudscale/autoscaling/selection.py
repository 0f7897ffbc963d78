"""
Consolidation Selector
======================
Chọn unit để reclaim dựa trên Pearson correlation giữa utilization
history của host và của từng unit.

Unit có load bám sát load tổng của host nhất (correlation cao nhất) được
chọn: bỏ nó đi giảm trực tiếp áp lực lên host mà không làm phân mảnh load.

Quy tắc xếp hạng:
    1. Correlation cao hơn đứng trước
    2. NaN (series suy biến, vd: hằng số) đứng sau mọi giá trị hữu hạn
    3. Hòa điểm -> utilization gần nhất thấp hơn đứng trước
    4. Cuối cùng theo unit_id

Usage:
    >>> selector = ConsolidationSelector(datacenter.utilization_history)
    >>> unit = selector.select(candidates, datacenter.host_utilization_history())
"""

import math
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .registry import Unit

ConsolidationCandidateSet = List[Tuple[Unit, float]]


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation trên cửa sổ cuối chung của hai series.

    Args:
        x: Series thứ nhất
        y: Series thứ hai

    Returns:
        Hệ số trong [-1, 1], hoặc NaN nếu ít hơn 2 điểm / variance = 0
    """
    n = min(len(x), len(y))
    if n < 2:
        return float('nan')

    xs = np.asarray(list(x)[len(x) - n:], dtype=float)
    ys = np.asarray(list(y)[len(y) - n:], dtype=float)

    # Series hằng số (kể cả sai số float quanh mean) là suy biến
    if np.allclose(xs, xs[0]) or np.allclose(ys, ys[0]):
        return float('nan')

    dx = xs - xs.mean()
    dy = ys - ys.mean()
    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))
    if denominator == 0 or not np.isfinite(denominator):
        return float('nan')

    return float(np.clip(np.sum(dx * dy) / denominator, -1.0, 1.0))


class ConsolidationSelector:
    """
    Selector theo maximum correlation.

    Pure ranking function: không mutate units, an toàn khi gọi thử.

    Attributes:
        history_source: Callable unit_id -> utilization history
    """

    def __init__(self, history_source: Callable[[int], Sequence[float]]):
        self.history_source = history_source

    def _latest_utilization(self, unit: Unit, history: Sequence[float]) -> float:
        if len(history) > 0:
            return float(history[-1])
        return unit.utilization

    def rank(
        self,
        candidates: Sequence[Unit],
        reference_history: Sequence[float]
    ) -> ConsolidationCandidateSet:
        """
        Xếp hạng candidates theo correlation giảm dần.

        Args:
            candidates: Units có thể reclaim
            reference_history: Utilization history của host

        Returns:
            List (unit, score), score có thể là NaN
        """
        reference_history = list(reference_history)
        scored = []
        for unit in candidates:
            history = list(self.history_source(unit.unit_id) or [])
            score = pearson(reference_history, history)
            rank_score = -math.inf if math.isnan(score) else score
            latest = self._latest_utilization(unit, history)
            scored.append(((-rank_score, latest, unit.unit_id), unit, score))

        scored.sort(key=lambda item: item[0])
        return [(unit, score) for _, unit, score in scored]

    def select(
        self,
        candidates: Sequence[Unit],
        reference_history: Sequence[float]
    ) -> Optional[Unit]:
        """Unit tốt nhất để consolidate, hoặc None nếu không có candidate."""
        if not candidates:
            return None
        return self.rank(candidates, reference_history)[0][0]
