"""
Test Consolidation Selector
===========================
Unit tests cho pearson() và ConsolidationSelector.
"""

import math
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cloudscale.autoscaling import ConsolidationSelector, Unit, UnitStatus, pearson


def make_unit(unit_id, utilization=0.0):
    return Unit(unit_id, 1000, 1, created_at=0.0, status=UnitStatus.ACTIVE, utilization=utilization)


class TestPearson:
    """Test cases cho pearson()."""

    def test_perfect_correlation(self):
        assert pearson([0.5, 0.6, 0.7], [0.5, 0.6, 0.7]) == pytest.approx(1.0)

    def test_perfect_anticorrelation(self):
        assert pearson([0.5, 0.6, 0.7], [0.7, 0.6, 0.5]) == pytest.approx(-1.0)

    def test_constant_series_is_nan(self):
        assert math.isnan(pearson([0.5, 0.6, 0.7], [0.4, 0.4, 0.4]))
        assert math.isnan(pearson([0.1, 0.1, 0.1, 0.1], [0.5, 0.6, 0.7, 0.8]))

    def test_too_short_is_nan(self):
        assert math.isnan(pearson([0.5], [0.5]))
        assert math.isnan(pearson([], [0.1, 0.2]))

    def test_trailing_window(self):
        """Series dài hơn được cắt theo cửa sổ cuối chung."""
        assert pearson([0.9, 0.1, 0.2, 0.3], [0.1, 0.2, 0.3]) == pytest.approx(1.0)

    def test_accepts_deque(self):
        from collections import deque
        history = deque([0.1, 0.3, 0.2], maxlen=3)

        assert pearson(history, [0.1, 0.3, 0.2]) == pytest.approx(1.0)


class TestConsolidationSelector:
    """Test cases cho ConsolidationSelector."""

    @pytest.fixture
    def histories(self):
        return {}

    @pytest.fixture
    def selector(self, histories):
        return ConsolidationSelector(lambda unit_id: histories.get(unit_id, []))

    def test_highest_correlation_selected(self, selector, histories):
        """Host [0.5, 0.6, 0.7]: A cùng chiều, B ngược chiều -> chọn A."""
        unit_a, unit_b = make_unit(1), make_unit(2)
        histories[1] = [0.5, 0.6, 0.7]
        histories[2] = [0.7, 0.6, 0.5]

        assert selector.select([unit_b, unit_a], [0.5, 0.6, 0.7]) is unit_a

    def test_nan_ranked_last(self, selector, histories):
        flat, negative = make_unit(1), make_unit(2)
        histories[1] = [0.3, 0.3, 0.3]
        histories[2] = [0.7, 0.6, 0.5]

        ranked = selector.rank([flat, negative], [0.5, 0.6, 0.7])

        assert ranked[0][0] is negative
        assert math.isnan(ranked[1][1])

    def test_tie_broken_by_latest_utilization(self, selector, histories):
        high, low = make_unit(1), make_unit(2)
        histories[1] = [0.6, 0.6, 0.6]
        histories[2] = [0.3, 0.3, 0.3]

        assert selector.select([high, low], [0.5, 0.6, 0.7]) is low

    def test_tie_broken_by_unit_id(self, selector, histories):
        units = [make_unit(3), make_unit(1), make_unit(2)]
        for unit in units:
            histories[unit.unit_id] = [0.1, 0.2, 0.3]

        ranked = selector.rank(units, [0.5, 0.6, 0.7])

        assert [u.unit_id for u, _ in ranked] == [1, 2, 3]

    def test_no_history_falls_back_to_utilization(self, selector):
        busy, idle = make_unit(1, utilization=0.8), make_unit(2, utilization=0.1)

        assert selector.select([busy, idle], []) is idle

    def test_flat_history_never_beats_finite_score(self, selector, histories):
        """History hằng số 0.4 (NaN) xếp sau cả correlation -1."""
        flat, negative = make_unit(0), make_unit(1)
        histories[0] = [0.4, 0.4, 0.4]
        histories[1] = [0.7, 0.6, 0.5]

        ranked = selector.rank([flat, negative], [0.5, 0.6, 0.7])

        assert [u.unit_id for u, _ in ranked] == [1, 0]
        assert math.isnan(ranked[1][1])
        assert selector.select([flat, negative], [0.5, 0.6, 0.7]) is negative

    def test_empty_candidates(self, selector):
        assert selector.select([], [0.5, 0.6]) is None

    def test_deterministic(self, selector, histories):
        units = [make_unit(i) for i in range(5)]
        for i, unit in enumerate(units):
            histories[unit.unit_id] = [0.1 * i, 0.2, 0.1 * (5 - i)]
        reference = [0.2, 0.5, 0.3]

        first = [(u.unit_id, s) for u, s in selector.rank(units, reference)]
        second = [(u.unit_id, s) for u, s in selector.rank(list(reversed(units)), reference)]

        assert [i for i, _ in first] == [i for i, _ in second]

    def test_rank_does_not_mutate(self, selector, histories):
        unit = make_unit(1, utilization=0.4)
        histories[1] = [0.1, 0.2, 0.3]

        selector.rank([unit], [0.5, 0.6, 0.7])

        assert unit.status == UnitStatus.ACTIVE
        assert unit.utilization == 0.4


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
