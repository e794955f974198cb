"""Tests for maprender.services.classification_service."""

import itertools

import pytest

from maprender.services.classification_service import (
    MAX_CLASSES,
    MIN_CLASSES,
    ClassificationService,
    best_fit_class_count,
)

GAP_VALUES = [1, 2, 3, 4, 5, 10, 11, 12, 50, 51]


@pytest.fixture
def service():
    return ClassificationService()


class TestClassify:
    def test_two_classes_split_at_gap(self, service):
        result = service.classify(GAP_VALUES)
        assert result.breaks_for(2) == [50.0]

    def test_three_classes(self, service):
        result = service.classify(GAP_VALUES)
        assert result.breaks_for(3) == [10.0, 50.0]

    def test_order_does_not_matter(self, service):
        shuffled = [51, 3, 12, 1, 50, 10, 5, 2, 11, 4]
        assert service.classify(shuffled).breaks == service.classify(GAP_VALUES).breaks

    def test_one_entry_per_class_count(self, service):
        result = service.classify(GAP_VALUES)
        assert len(result.breaks) == MAX_CLASSES - MIN_CLASSES + 1
        for k in range(2, 11):
            assert len(result.breaks_for(k)) == k - 1
        assert result.breaks_for(11) == []
        assert result.omitted == [11]

    def test_breaks_ascending_and_within_range(self, service):
        result = service.classify(GAP_VALUES)
        for breaks in result.breaks:
            assert breaks == sorted(breaks)
            assert all(1 < b <= 51 for b in breaks)

    def test_min_and_max(self, service):
        result = service.classify(GAP_VALUES)
        assert result.min_value == 1.0
        assert result.max_value == 51.0
        assert result.distinct_count == 10

    def test_two_classes_are_optimal(self, service):
        values = [3.2, 7.5, 1.1, 9.9, 4.4, 6.0, 2.8, 8.1]
        best = service.within_class_variance(values, service.classify(values).breaks_for(2))
        for split in sorted(set(values))[1:]:
            assert best <= service.within_class_variance(values, [split]) + 1e-9

    def test_three_classes_are_optimal(self, service):
        values = [3.2, 7.5, 1.1, 9.9, 4.4, 6.0, 2.8, 8.1]
        best = service.within_class_variance(values, service.classify(values).breaks_for(3))
        for pair in itertools.combinations(sorted(values)[1:], 2):
            assert best <= service.within_class_variance(values, list(pair)) + 1e-9

    def test_variance_does_not_increase_with_classes(self, service):
        values = [0.5, 1.7, 2.2, 3.9, 4.1, 6.6, 7.0, 8.8, 9.3, 12.5, 13.1, 20.0]
        result = service.classify(values)
        variances = [service.within_class_variance(values, b) for b in result.breaks if b]
        assert all(later <= earlier + 1e-9 for earlier, later in zip(variances, variances[1:]))

    def test_gvf_between_zero_and_one(self, service):
        result = service.classify(GAP_VALUES)
        assert set(result.gvf) == set(range(2, 11))
        assert all(0.0 <= g <= 1.0 for g in result.gvf.values())
        assert result.gvf[2] < result.gvf[3]

    def test_best_fit(self, service):
        assert service.classify(GAP_VALUES).best_fit_class_count == 3

    def test_large_offset_does_not_change_breaks(self, service):
        values = [1, 2, 3, 4, 5, 10, 11, 12, 50, 51, 52, 53, 7, 8, 30, 31]
        offset = 1e9
        plain = service.classify(values)
        shifted = service.classify([v + offset for v in values])
        for k in range(MIN_CLASSES, MAX_CLASSES + 1):
            assert [b - offset for b in shifted.breaks_for(k)] == pytest.approx(plain.breaks_for(k))
        assert plain.breaks_for(4) == [7.0, 30.0, 50.0]
        assert shifted.best_fit_class_count == plain.best_fit_class_count


class TestFewDistinctValues:
    def test_counts_above_distinct_values_are_omitted(self, service):
        result = service.classify([1, 1, 2, 2, 3])
        assert result.breaks_for(2) == [2.0]
        assert result.breaks_for(3) == [2.0, 3.0]
        assert result.omitted == list(range(4, 12))
        assert all(result.breaks_for(k) == [] for k in range(4, 12))

    def test_equal_values_stay_in_one_class(self, service):
        result = service.classify([1, 1, 1, 1, 9])
        assert result.breaks_for(2) == [9.0]

    def test_single_value(self, service):
        result = service.classify([5, 5, 5])
        assert result.omitted == list(range(2, 12))
        assert result.best_fit_class_count == 0
        assert result.min_value == result.max_value == 5.0

    def test_empty(self, service):
        with pytest.raises(ValueError):
            service.classify([])

    def test_not_finite(self, service):
        with pytest.raises(ValueError):
            service.classify([1.0, float("nan")])


class TestBestFitClassCount:
    def test_first_count_where_gain_flattens(self):
        assert best_fit_class_count({2: 0.5, 3: 0.95, 4: 0.96}) == 3

    def test_skips_counts_still_improving(self):
        assert best_fit_class_count({2: 0.5, 3: 0.91, 4: 0.99, 5: 0.995}) == 4

    def test_last_count_has_no_successor(self):
        assert best_fit_class_count({2: 0.95, 3: 1.0}) == 3

    def test_threshold_never_reached(self):
        assert best_fit_class_count({2: 0.5, 3: 0.6}) == 3

    def test_nothing_computed(self):
        assert best_fit_class_count({}) == 0

    def test_custom_threshold(self):
        assert best_fit_class_count({2: 0.8, 3: 0.81}, threshold=0.75) == 2


class TestServiceConfiguration:
    def test_invalid_range(self):
        with pytest.raises(ValueError):
            ClassificationService(min_classes=1)
        with pytest.raises(ValueError):
            ClassificationService(min_classes=5, max_classes=4)

    def test_smaller_range(self):
        result = ClassificationService(max_classes=4).classify(GAP_VALUES)
        assert len(result.breaks) == 3
        assert result.breaks_for(4) == result.breaks[-1]
