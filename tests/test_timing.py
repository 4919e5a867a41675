"""Tests for zstdbench.timing: Metrics and Timer."""

from __future__ import annotations

import unittest
from unittest.mock import patch

from zstdbench.timing import Metrics, Timer


class TestMetrics(unittest.TestCase):
    def test_add_all_present(self) -> None:
        total = Metrics(1, 2, 3) + Metrics(10, 20, 30)
        self.assertEqual(total, Metrics(11, 22, 33))

    def test_add_missing_field_is_missing(self) -> None:
        total = Metrics(1, None, 3) + Metrics(10, 20, 30)
        self.assertEqual(total, Metrics(11, None, 33))

    def test_zero_is_identity(self) -> None:
        m = Metrics(5, 6, 7)
        self.assertEqual(Metrics.zero() + m, m)

    def test_empty_absorbs(self) -> None:
        self.assertEqual(Metrics.zero() + Metrics(), Metrics())

    def test_sum_over_datums(self) -> None:
        parts = [Metrics(1, 1, 1)] * 4
        total = Metrics.zero()
        for p in parts:
            total = total + p
        self.assertEqual(total, Metrics(4, 4, 4))

    def test_add_non_metrics(self) -> None:
        with self.assertRaises(TypeError):
            Metrics() + 1  # type: ignore[operator]


class TestTimer(unittest.TestCase):
    @patch("zstdbench.timing.time.perf_counter_ns")
    def test_stop_returns_elapsed(self, clock) -> None:  # type: ignore[no-untyped-def]
        clock.side_effect = [1_000, 4_500]
        timer = Timer()
        self.assertEqual(timer.stop(), 3_500)

    @patch("zstdbench.timing.time.perf_counter_ns")
    def test_accumulates_across_restarts(self, clock) -> None:  # type: ignore[no-untyped-def]
        clock.side_effect = [0, 100, 1_000, 1_050]
        timer = Timer()
        timer.stop()
        timer.start()
        self.assertEqual(timer.stop(), 150)

    @patch("zstdbench.timing.time.perf_counter_ns")
    def test_reset_zeroes(self, clock) -> None:  # type: ignore[no-untyped-def]
        clock.side_effect = [0, 500, 600]
        timer = Timer()
        timer.reset()
        self.assertEqual(timer.stop(), 100)

    def test_stop_twice_raises(self) -> None:
        timer = Timer()
        timer.stop()
        with self.assertRaises(RuntimeError):
            timer.stop()

    def test_start_while_running_raises(self) -> None:
        with self.assertRaises(RuntimeError):
            Timer().start()


if __name__ == "__main__":
    unittest.main()
