"""Tests for zstdbench.display: report table rendering."""

from __future__ import annotations

import unittest

from bench_test_helpers import make_result

from zstdbench.compare import Baseline, ReportError
from zstdbench.display import Column, Format, format_table, render

KEYS = ["benchmark", "dataset", "revision", "duration_ns"]


def three_revisions() -> list:
    return [
        make_result(revision="dev", mean_ns=100),
        make_result(revision="v1", mean_ns=80),
        make_result(revision="v1", mean_ns=80),
    ]


class TestFormat(unittest.TestCase):
    def test_parse(self) -> None:
        self.assertIs(Format.parse("markdown"), Format.MARKDOWN)
        self.assertIs(Format.parse("Pretty-CSV"), Format.PRETTY_CSV)

    def test_parse_unknown(self) -> None:
        with self.assertRaises(ValueError):
            Format.parse("html")


class TestFormatTable(unittest.TestCase):
    def setUp(self) -> None:
        self.columns = [
            Column("Name", ["a", "bbbbbb"]),
            Column("N", ["1", "100"], right_align=True),
        ]

    def test_pretty(self) -> None:
        text = format_table(self.columns, Format.PRETTY)
        self.assertEqual(
            text.splitlines(),
            [" Name   N ", "------ ---", "a        1", "bbbbbb 100"],
        )

    def test_markdown(self) -> None:
        text = format_table(self.columns, Format.MARKDOWN)
        self.assertEqual(
            text.splitlines(),
            [
                "|  Name  |  N  |",
                "|--------|-----|",
                "| a      |   1 |",
                "| bbbbbb | 100 |",
            ],
        )

    def test_csv_has_no_padding_or_rule(self) -> None:
        text = format_table(self.columns, Format.CSV)
        self.assertEqual(text.splitlines(), ["Name,N", "a,1", "bbbbbb,100"])

    def test_tsv(self) -> None:
        text = format_table(self.columns, Format.TSV)
        self.assertEqual(text.splitlines()[1], "a\t1")

    def test_pretty_csv_pads(self) -> None:
        text = format_table(self.columns, Format.PRETTY_CSV)
        self.assertEqual(text.splitlines()[1], "a     ,   1")

    def test_title_wider_than_values(self) -> None:
        text = format_table([Column("Long Title", ["x"])], Format.PRETTY)
        self.assertEqual(text.splitlines()[2], "x         ")

    def test_no_columns(self) -> None:
        self.assertEqual(format_table([], Format.PRETTY), "")


class TestRender(unittest.TestCase):
    def test_plain_listing_sorted(self) -> None:
        results = [make_result(revision="v1"), make_result(revision="dev")]
        lines = render(results, KEYS, fmt=Format.CSV).splitlines()
        self.assertEqual(lines[0], "Benchmark,Dataset,Revision,Duration Ns")
        self.assertEqual(lines[1:], ["compress,silesia,dev,100", "compress,silesia,v1,100"])

    def test_delta_against_baseline(self) -> None:
        text = render(three_revisions(), KEYS, Baseline("revision", "dev"), Format.CSV)
        header, row = text.splitlines()
        self.assertEqual(
            header.split(","),
            [
                "Benchmark",
                "Dataset",
                "Duration Ns (dev)",
                "Duration Ns (v1)",
                "Duration Ns (v1 - dev)",
                "Duration Ns (v1)",
                "Duration Ns (v1 - dev)",
            ],
        )
        self.assertEqual(row.split(","), ["compress", "silesia", "100", "80", "-20.0%", "80", "-20.0%"])

    def test_positive_delta_has_sign(self) -> None:
        results = [make_result(revision="dev", mean_ns=100), make_result(revision="v1", mean_ns=150)]
        text = render(results, KEYS, Baseline("revision", "dev"), Format.CSV)
        self.assertTrue(text.splitlines()[1].endswith(",+50.0%"))

    def test_null_comparison_collapses(self) -> None:
        keys = KEYS + ["cc"]
        text = render(three_revisions(), keys, Baseline("revision", "dev"), Format.CSV)
        header = text.splitlines()[0].split(",")
        self.assertEqual(header.count("Compiler"), 1)
        self.assertNotIn("Compiler (dev)", header)
        self.assertTrue(text.splitlines()[1].endswith(",gcc"))

    def test_no_delta_for_label_keys(self) -> None:
        results = [
            make_result(revision="dev", commit="a" * 20),
            make_result(revision="v1", commit="b" * 20),
        ]
        keys = ["benchmark", "revision", "commit"]
        text = render(results, keys, Baseline("revision", "dev"), Format.CSV)
        self.assertEqual(text.splitlines()[0], "Benchmark,Commit (dev),Commit (v1)")

    def test_missing_values_render_na(self) -> None:
        results = [make_result(uncompressed=None, compressed=None)]
        text = render(results, ["benchmark", "ratio"], fmt=Format.CSV)
        self.assertEqual(text.splitlines()[1], "compress,N/A")

    def test_floats_two_decimals(self) -> None:
        text = render([make_result()], ["ratio"], fmt=Format.CSV)
        self.assertEqual(text.splitlines()[1], "4.00")

    def test_markdown_border(self) -> None:
        text = render(three_revisions(), KEYS, Baseline("revision", "dev"), Format.MARKDOWN)
        lines = text.splitlines()
        self.assertTrue(all(line.startswith("|") and line.endswith("|") for line in lines))
        self.assertTrue(lines[1].startswith("|-"))
        self.assertIn("-20.0%", lines[2])

    def test_empty(self) -> None:
        self.assertEqual(render([], KEYS), "")

    def test_unknown_key(self) -> None:
        with self.assertRaises(ReportError):
            render([make_result()], ["benchmark", "colour"])

    def test_baseline_key_not_listed(self) -> None:
        with self.assertRaises(ReportError):
            render(three_revisions(), ["benchmark", "duration_ns"], Baseline("revision", "dev"))


if __name__ == "__main__":
    unittest.main()
