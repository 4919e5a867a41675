"""Tests for zstdbench.dataset: dataset loading, modes and deduplication."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from bench_test_helpers import write_files

from zstdbench.config import DataSetConfig, DataSetMode
from zstdbench.dataset import (
    DataSet,
    DataSetError,
    Datum,
    fingerprint,
    load_dataset,
    load_datasets,
)


class DatasetTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def load(self, mode: DataSetMode, *patterns: str) -> DataSet:
        globs = [str(self.root / p) for p in patterns] or [str(self.root / "*")]
        return load_dataset(DataSetConfig("test", globs, mode))


class TestFingerprint(unittest.TestCase):
    def test_deterministic(self) -> None:
        self.assertEqual(fingerprint(b"abc"), fingerprint(b"abc"))

    def test_distinguishes_content(self) -> None:
        self.assertNotEqual(fingerprint(b"abc"), fingerprint(b"abd"))

    def test_fits_in_64_bits(self) -> None:
        self.assertLess(fingerprint(b"x" * 1000), 2**64)

    def test_datum_from_bytes(self) -> None:
        datum = Datum.from_bytes(b"hello")
        self.assertEqual(datum.id, fingerprint(b"hello"))
        self.assertEqual(len(datum), 5)


class TestSeparateMode(DatasetTestCase):
    def test_one_datum_per_file_in_sorted_order(self) -> None:
        write_files(self.root, {"b.txt": b"bbbb", "a.txt": b"aa", "c.txt": b"c"})
        ds = self.load(DataSetMode.separate())
        self.assertEqual([d.data for d in ds], [b"aa", b"bbbb", b"c"])
        self.assertEqual(ds.total_bytes, 7)

    def test_duplicates_are_dropped(self) -> None:
        write_files(self.root, {"a": b"same", "b": b"same", "c": b"other"})
        ds = self.load(DataSetMode.separate())
        self.assertEqual(len(ds), 2)
        self.assertEqual([d.data for d in ds], [b"same", b"other"])

    def test_fingerprints_unique(self) -> None:
        write_files(self.root, {f"f{i}": bytes([i % 3]) * 10 for i in range(9)})
        ds = self.load(DataSetMode.separate())
        self.assertEqual(len(set(ds.fingerprints)), len(ds))
        self.assertEqual(len(ds), 3)

    def test_pattern_order_then_file_order(self) -> None:
        write_files(self.root / "x", {"1": b"x1", "2": b"x2"})
        write_files(self.root / "a", {"1": b"a1"})
        ds = self.load(DataSetMode.separate(), "x/*", "a/*")
        self.assertEqual([d.data for d in ds], [b"x1", b"x2", b"a1"])

    def test_recursive_glob(self) -> None:
        write_files(self.root / "deep" / "er", {"f": b"deep"})
        ds = self.load(DataSetMode.separate(), "**/f")
        self.assertEqual([d.data for d in ds], [b"deep"])

    def test_directories_are_skipped(self) -> None:
        write_files(self.root / "sub", {"f": b"inner"})
        write_files(self.root, {"top": b"top"})
        ds = self.load(DataSetMode.separate())
        self.assertEqual([d.data for d in ds], [b"top"])

    def test_loading_is_deterministic(self) -> None:
        write_files(self.root, {"a": b"1", "b": b"2", "c": b"3"})
        first = self.load(DataSetMode.separate())
        second = self.load(DataSetMode.separate())
        self.assertEqual(first.fingerprints, second.fingerprints)


class TestConcatenateMode(DatasetTestCase):
    def test_single_datum_in_file_order(self) -> None:
        write_files(self.root, {"1": b"abc", "2": b"def"})
        ds = self.load(DataSetMode.concatenate())
        self.assertEqual(len(ds), 1)
        self.assertEqual(ds.data[0].data, b"abcdef")


class TestCutMode(DatasetTestCase):
    def test_chunks_per_file_last_shorter(self) -> None:
        write_files(self.root, {"1": b"abcdefg", "2": b"hij"})
        ds = self.load(DataSetMode.cut(3))
        self.assertEqual([d.data for d in ds], [b"abc", b"def", b"g", b"hij"])

    def test_empty_file_contributes_nothing(self) -> None:
        write_files(self.root, {"1": b"", "2": b"xyz"})
        ds = self.load(DataSetMode.cut(2))
        self.assertEqual([d.data for d in ds], [b"xy", b"z"])

    def test_repeated_chunks_deduplicated(self) -> None:
        write_files(self.root, {"1": b"abab" * 4})
        ds = self.load(DataSetMode.cut(2))
        self.assertEqual([d.data for d in ds], [b"ab"])

    def test_only_empty_files_is_error(self) -> None:
        write_files(self.root, {"1": b""})
        with self.assertRaises(DataSetError):
            self.load(DataSetMode.cut(4))


class TestErrors(DatasetTestCase):
    def test_no_match_is_error(self) -> None:
        with self.assertRaises(DataSetError):
            self.load(DataSetMode.separate(), "missing/*")

    def test_error_is_value_error(self) -> None:
        self.assertTrue(issubclass(DataSetError, ValueError))


class TestLoadDatasets(DatasetTestCase):
    def test_declaration_order(self) -> None:
        write_files(self.root / "a", {"f": b"a"})
        write_files(self.root / "b", {"f": b"b"})
        configs = [
            DataSetConfig("second", [str(self.root / "b" / "*")]),
            DataSetConfig("first", [str(self.root / "a" / "*")]),
        ]
        names = [ds.name for ds in load_datasets(configs)]
        self.assertEqual(names, ["second", "first"])


if __name__ == "__main__":
    unittest.main()
