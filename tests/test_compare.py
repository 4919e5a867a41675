"""Tests for zstdbench.compare: report rows, sorting and grouping."""

from __future__ import annotations

import math
import unittest

from bench_test_helpers import make_result

from zstdbench.compare import (
    Baseline,
    Comparison,
    ReportError,
    Row,
    compare_rows,
    diff,
    display_value,
    is_null_comparison,
    is_result_key,
    row_from_result,
    sort_rows,
)
from zstdbench.stats import Statistic


class TestRowFromResult(unittest.TestCase):
    def test_projection(self) -> None:
        row = row_from_result(make_result(mean_ns=1_000_000))
        self.assertEqual(row.get("commit"), "0123456789")
        self.assertEqual(row.get("duration_ns"), 1_000_000)
        self.assertEqual(row.get("ratio"), 4.0)
        # 1000 bytes in 1 ms.
        self.assertAlmostEqual(row.get("speed_mbps"), 1.0)
        self.assertEqual(row.get("command_prefix"), "")

    def test_min_and_max_speed_swap_durations(self) -> None:
        result = make_result()
        result.duration_ns = Statistic(min=50, max=200, mean=100, median=100, std_dev=10)
        row = row_from_result(result)
        self.assertGreater(row.get("speed_mbps_max"), row.get("speed_mbps_min"))
        self.assertAlmostEqual(row.get("speed_mbps_max"), 1000.0 * 1000 / 50)

    def test_missing_bytes_propagate(self) -> None:
        row = row_from_result(make_result(uncompressed=None, compressed=None))
        self.assertIsNone(row.get("ratio"))
        self.assertIsNone(row.get("speed_mbps"))

    def test_titles(self) -> None:
        row = row_from_result(make_result())
        self.assertEqual(row.title("speed_mbps"), "Speed MB/s")
        self.assertEqual(row.title("cc"), "Compiler")
        self.assertEqual(row.title("iters_per_run"), "Iters Per Run")
        self.assertEqual(row.title("duration_ns_min"), "Duration Ns Min")

    def test_unknown_key(self) -> None:
        with self.assertRaises(ReportError):
            row_from_result(make_result()).get("colour")


class TestResultKeys(unittest.TestCase):
    def test_result_keys(self) -> None:
        for key in ("ratio", "compressed_bytes", "duration_ns_median", "speed_mbps"):
            self.assertTrue(is_result_key(key), key)

    def test_label_keys(self) -> None:
        for key in ("revision", "commit", "runs", "iters_per_run"):
            self.assertFalse(is_result_key(key), key)


class TestSortRows(unittest.TestCase):
    def test_lexicographic_by_key_order(self) -> None:
        rows = [
            row_from_result(make_result(benchmark="b", dataset="x")),
            row_from_result(make_result(benchmark="a", dataset="y")),
            row_from_result(make_result(benchmark="a", dataset="x")),
        ]
        ordered = sort_rows(rows, ["benchmark", "dataset"])
        self.assertEqual(
            [(r.get("benchmark"), r.get("dataset")) for r in ordered],
            [("a", "x"), ("a", "y"), ("b", "x")],
        )

    def test_stable(self) -> None:
        rows = [row_from_result(make_result(revision=r)) for r in ("z", "a", "m")]
        ordered = sort_rows(rows, ["benchmark"])
        self.assertEqual([r.get("revision") for r in ordered], ["z", "a", "m"])

    def test_missing_values_sort_last(self) -> None:
        rows = [
            Row({"k": None}),
            Row({"k": 3}),
            Row({"k": "s"}),
            Row({"k": 1.5}),
        ]
        ordered = [r.get("k") for r in sort_rows(rows, ["k"])]
        self.assertEqual(ordered, ["s", 3, 1.5, None])


class TestCompareRows(unittest.TestCase):
    KEYS = ["benchmark", "dataset", "revision", "duration_ns", "cc"]

    def rows(self) -> list[Row]:
        return [
            row_from_result(make_result(revision="v1", dataset="a", mean_ns=80)),
            row_from_result(make_result(revision="dev", dataset="a", mean_ns=100)),
            row_from_result(make_result(revision="v1", dataset="b", mean_ns=40)),
            row_from_result(make_result(revision="dev", dataset="b", mean_ns=50)),
        ]

    def test_one_row_per_group(self) -> None:
        out = compare_rows(self.rows(), self.KEYS, Baseline("revision", "dev"))
        self.assertEqual([r.get("dataset") for r in out], ["a", "b"])

    def test_suffix_keys_become_comparisons(self) -> None:
        out = compare_rows(self.rows(), self.KEYS, Baseline("revision", "dev"))
        cmp = out[0].get("duration_ns")
        self.assertIsInstance(cmp, Comparison)
        self.assertEqual(cmp.entries, [("dev", 100), ("v1", 80)])
        self.assertIsInstance(out[0].get("cc"), Comparison)
        # Prefix keys stay scalar.
        self.assertEqual(out[0].get("benchmark"), "compress")

    def test_baseline_moved_to_front(self) -> None:
        out = compare_rows(self.rows(), self.KEYS, Baseline("revision", "v1"))
        self.assertEqual(out[0].get("duration_ns").labels, ["v1", "dev"])

    def test_missing_baseline_uses_first_member(self) -> None:
        with self.assertLogs("zstdbench.compare", level="WARNING"):
            out = compare_rows(self.rows(), self.KEYS, Baseline("revision", "v9"))
        self.assertEqual(out[0].get("duration_ns").labels, ["dev", "v1"])

    def test_key_must_be_listed(self) -> None:
        with self.assertRaises(ReportError):
            compare_rows(self.rows(), ["benchmark", "dataset"], Baseline("revision", "dev"))

    def test_mismatched_groups(self) -> None:
        rows = self.rows()[:3]
        with self.assertRaises(ReportError):
            compare_rows(rows, self.KEYS, Baseline("revision", "dev"))

    def test_null_comparison(self) -> None:
        out = compare_rows(self.rows(), self.KEYS, Baseline("revision", "dev"))
        self.assertTrue(is_null_comparison(out, "cc"))
        self.assertFalse(is_null_comparison(out, "duration_ns"))


class TestBaselineParse(unittest.TestCase):
    def test_parse(self) -> None:
        self.assertEqual(Baseline.parse("revision=dev"), Baseline("revision", "dev"))

    def test_invalid(self) -> None:
        for bad in ("revision", "=dev", "revision="):
            with self.subTest(bad=bad), self.assertRaises(ReportError):
                Baseline.parse(bad)


class TestDiff(unittest.TestCase):
    def test_integers(self) -> None:
        self.assertAlmostEqual(diff(100, 80), -0.2)

    def test_floats(self) -> None:
        self.assertAlmostEqual(diff(2.0, 3.0), 0.5)

    def test_missing_is_nan(self) -> None:
        self.assertTrue(math.isnan(diff(None, 3)))
        self.assertTrue(math.isnan(diff(0, 3)))

    def test_mismatched_types(self) -> None:
        with self.assertRaises(ReportError):
            diff(1, 1.0)

    def test_non_numeric(self) -> None:
        with self.assertRaises(ReportError):
            diff("a", "b")


class TestDisplayValue(unittest.TestCase):
    def test_values(self) -> None:
        self.assertEqual(display_value(None), "N/A")
        self.assertEqual(display_value(3.14159), "3.14")
        self.assertEqual(display_value(42), "42")
        self.assertEqual(display_value("dev"), "dev")

    def test_comparison_has_no_single_value(self) -> None:
        with self.assertRaises(ReportError):
            display_value(Comparison([("a", 1)]))


if __name__ == "__main__":
    unittest.main()
