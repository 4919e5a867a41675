"""Tests for zstdbench.stats: timing sample summaries."""

from __future__ import annotations

import unittest

from zstdbench.stats import (
    Statistic,
    compute_statistic,
    median,
    speed_mbps,
    speed_stddev_mbps,
)


class TestComputeStatistic(unittest.TestCase):
    def test_known_values(self) -> None:
        stat = compute_statistic([1, 2, 3, 4, 5])
        self.assertEqual(stat.min, 1)
        self.assertEqual(stat.max, 5)
        self.assertEqual(stat.mean, 3)
        self.assertEqual(stat.median, 3)
        # Population variance 2 -> isqrt 1.
        self.assertEqual(stat.std_dev, 1)

    def test_even_median_is_floor_average(self) -> None:
        self.assertEqual(compute_statistic([1, 2, 3, 4]).median, 2)
        self.assertEqual(median([4, 1, 3, 2]), 2)

    def test_unsorted_input(self) -> None:
        stat = compute_statistic([9, 1, 5])
        self.assertEqual((stat.min, stat.median, stat.max), (1, 5, 9))

    def test_mean_is_truncated(self) -> None:
        self.assertEqual(compute_statistic([1, 2]).mean, 1)

    def test_single_sample(self) -> None:
        stat = compute_statistic([42])
        self.assertEqual(stat, Statistic(min=42, max=42, mean=42, median=42, std_dev=0))

    def test_identical_samples_have_zero_spread(self) -> None:
        self.assertEqual(compute_statistic([7, 7, 7, 7]).std_dev, 0)

    def test_large_values(self) -> None:
        stat = compute_statistic([10**12, 10**12 + 2])
        self.assertEqual(stat.mean, 10**12 + 1)
        self.assertEqual(stat.std_dev, 1)

    def test_ordering_invariant(self) -> None:
        for samples in ([3, 1, 2], [100, 5, 50, 75], [8]):
            stat = compute_statistic(samples)
            self.assertLessEqual(stat.min, stat.median)
            self.assertLessEqual(stat.median, stat.max)
            self.assertLessEqual(stat.min, stat.mean)
            self.assertLessEqual(stat.mean, stat.max)

    def test_empty_raises(self) -> None:
        with self.assertRaises(ValueError):
            compute_statistic([])

    def test_negative_raises(self) -> None:
        with self.assertRaises(ValueError):
            compute_statistic([1, -1])


class TestStatisticSerialization(unittest.TestCase):
    def test_dict_round_trip(self) -> None:
        stat = Statistic(min=1, max=9, mean=5, median=4, std_dev=2)
        self.assertEqual(Statistic.from_dict(stat.to_dict()), stat)


class TestSpeed(unittest.TestCase):
    def test_speed_mbps(self) -> None:
        # 1 MB in 1 ms is 1000 MB/s.
        self.assertAlmostEqual(speed_mbps(1_000_000, 1_000_000), 1000.0)

    def test_speed_missing_bytes(self) -> None:
        self.assertIsNone(speed_mbps(None, 100))

    def test_speed_zero_duration(self) -> None:
        self.assertIsNone(speed_mbps(100, 0))

    def test_speed_stddev_scales_with_relative_spread(self) -> None:
        # 10% duration spread -> 10% of the mean speed.
        self.assertAlmostEqual(speed_stddev_mbps(1_000_000, 1_000_000, 100_000), 100.0)

    def test_speed_stddev_zero_spread(self) -> None:
        self.assertEqual(speed_stddev_mbps(1000, 100, 0), 0.0)

    def test_speed_stddev_missing(self) -> None:
        self.assertIsNone(speed_stddev_mbps(None, 100, 10))
        self.assertIsNone(speed_stddev_mbps(1000, 0, 10))


if __name__ == "__main__":
    unittest.main()
