import unittest
from datetime import datetime, timedelta, timezone

from marine_conditions.domain import ExtremeKind, TideExtremePoint, TideTrend
from marine_conditions.tide_interpolation import classify_trend, interpolate_tide_state, sort_extrema


def _at(hour, minute=0, day=1):
    return datetime(2024, 6, day, hour, minute, tzinfo=timezone.utc)


def _extreme(hour, height, kind, day=1):
    return TideExtremePoint(timestamp=_at(hour, day=day), height=height, kind=kind)


HIGH_08 = _extreme(8, 2.0, ExtremeKind.HIGH)
LOW_14 = _extreme(14, 1.0, ExtremeKind.LOW)
HIGH_20 = _extreme(20, 2.0, ExtremeKind.HIGH)
DAY = [HIGH_08, LOW_14, HIGH_20]


class TestInterpolateTideState(unittest.TestCase):
    def test_midway_between_uneven_extremes(self):
        extrema = [
            _extreme(8, 3.0, ExtremeKind.HIGH),
            _extreme(14, 0.5, ExtremeKind.LOW),
            _extreme(20, 3.2, ExtremeKind.HIGH),
        ]
        state = interpolate_tide_state(extrema, _at(11))
        self.assertAlmostEqual(state.height, 1.75)
        self.assertIs(state.trend, TideTrend.FALLING)
        self.assertEqual(state.next_low_tide, extrema[1])
        self.assertEqual(state.next_high_tide, extrema[2])

    def test_quarter_way_through_ebb(self):
        state = interpolate_tide_state(DAY, _at(9, 30))
        self.assertAlmostEqual(state.height, 1.75)
        self.assertIs(state.trend, TideTrend.FALLING)
        self.assertEqual(state.next_low_tide, LOW_14)
        self.assertEqual(state.next_high_tide, HIGH_20)
        self.assertEqual(state.timestamp, _at(9, 30))

    def test_rising_between_low_and_high(self):
        state = interpolate_tide_state(DAY, _at(17))
        self.assertAlmostEqual(state.height, 1.5)
        self.assertIs(state.trend, TideTrend.RISING)
        self.assertIsNone(state.next_low_tide)

    def test_exact_at_extremes(self):
        at_high = interpolate_tide_state(DAY, HIGH_08.timestamp)
        self.assertEqual(at_high.height, 2.0)
        self.assertIs(at_high.trend, TideTrend.HIGH)

        at_low = interpolate_tide_state(DAY, LOW_14.timestamp)
        self.assertEqual(at_low.height, 1.0)
        self.assertIs(at_low.trend, TideTrend.LOW)
        self.assertEqual(at_low.next_high_tide, HIGH_20)

    def test_height_is_monotone_between_extremes(self):
        heights = [interpolate_tide_state(DAY, _at(8) + timedelta(minutes=m)).height for m in range(0, 361, 15)]
        self.assertEqual(heights, sorted(heights, reverse=True))
        for h in heights:
            self.assertGreaterEqual(h, 1.0)
            self.assertLessEqual(h, 2.0)

        heights = [interpolate_tide_state(DAY, _at(14) + timedelta(minutes=m)).height for m in range(0, 361, 15)]
        self.assertEqual(heights, sorted(heights))

    def test_before_first_extreme_uses_first(self):
        state = interpolate_tide_state(DAY, _at(3))
        self.assertEqual(state.height, 2.0)
        self.assertIs(state.trend, TideTrend.HIGH)
        self.assertEqual(state.next_high_tide, HIGH_08)
        self.assertEqual(state.next_low_tide, LOW_14)

    def test_after_last_extreme_uses_last(self):
        state = interpolate_tide_state(DAY, _at(23))
        self.assertEqual(state.height, 2.0)
        self.assertIs(state.trend, TideTrend.HIGH)
        self.assertIsNone(state.next_high_tide)
        self.assertIsNone(state.next_low_tide)

    def test_single_extreme(self):
        state = interpolate_tide_state([LOW_14], _at(10))
        self.assertEqual(state.height, 1.0)
        self.assertIs(state.trend, TideTrend.LOW)

    def test_empty_input_is_no_data_state(self):
        state = interpolate_tide_state([], _at(10))
        self.assertEqual(state.height, 0.0)
        self.assertIs(state.trend, TideTrend.LOW)
        self.assertIsNone(state.next_high_tide)
        self.assertIsNone(state.next_low_tide)

    def test_same_kind_neighbours_follow_previous_kind(self):
        extrema = [_extreme(8, 2.0, ExtremeKind.HIGH), _extreme(14, 3.0, ExtremeKind.HIGH)]
        state = interpolate_tide_state(extrema, _at(11))
        self.assertAlmostEqual(state.height, 2.5)
        self.assertIs(state.trend, TideTrend.HIGH)

    def test_unsorted_input(self):
        shuffled = [HIGH_20, HIGH_08, LOW_14]
        self.assertEqual(interpolate_tide_state(shuffled, _at(9, 30)), interpolate_tide_state(DAY, _at(9, 30)))

    def test_naive_query_time_is_utc(self):
        state = interpolate_tide_state(DAY, datetime(2024, 6, 1, 9, 30))
        self.assertAlmostEqual(state.height, 1.75)


class TestHelpers(unittest.TestCase):
    def test_sort_extrema_is_stable(self):
        twin = _extreme(8, 0.5, ExtremeKind.LOW)
        ordered = sort_extrema([LOW_14, HIGH_08, twin])
        self.assertEqual(ordered, [HIGH_08, twin, LOW_14])

    def test_classify_trend(self):
        self.assertIs(classify_trend(ExtremeKind.HIGH, ExtremeKind.LOW), TideTrend.FALLING)
        self.assertIs(classify_trend(ExtremeKind.LOW, ExtremeKind.HIGH), TideTrend.RISING)
        self.assertIs(classify_trend(ExtremeKind.LOW, ExtremeKind.LOW), TideTrend.LOW)


if __name__ == "__main__":
    unittest.main()
