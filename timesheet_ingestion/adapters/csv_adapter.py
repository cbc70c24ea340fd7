"""
CSV source adapter.

Uses csv.DictReader.  Options: delimiter, encoding, has_header, columns,
skip_rows.  Handles a BOM via utf-8-sig when the encoding is utf-8.
Without a header the caller supplies ``columns``; extra cells are dropped
and missing cells read as None.  Streams rows.  The probe ignores rows
whose cells are all blank.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator, TextIO

from timesheet_ingestion.adapters.base import SourceProbe, is_blank_row

_PROBE_SAMPLE_SIZE = 5


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() in ("utf-8", "utf8"):
        return "utf-8-sig"
    return enc


def _skip(f: TextIO, skip_rows: int) -> None:
    for _ in range(skip_rows):
        next(f, None)


def _rows(f: TextIO, options: dict[str, Any]) -> tuple[tuple[str, ...], Iterator[dict[str, Any]]]:
    delimiter = options.get("delimiter", ",")
    if options.get("has_header", True):
        reader = csv.DictReader(f, delimiter=delimiter)
        columns = tuple((name or "").strip() for name in (reader.fieldnames or ()))
        reader.fieldnames = list(columns)
        return columns, (dict(row) for row in reader)

    columns = tuple(options.get("columns") or ())
    if not columns:
        raise ValueError("CSV without a header requires the 'columns' option")
    plain = csv.reader(f, delimiter=delimiter)
    return columns, (
        {name: (row[i] if i < len(row) else None) for i, name in enumerate(columns)}
        for row in plain
    )


class CsvSourceAdapter:
    """Read CSV files as one dict per row. Streams; does not load entire file."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        with source_path.open("r", encoding=_get_encoding(options), newline="") as f:
            _skip(f, int(options.get("skip_rows", 0)))
            _, rows = _rows(f, options)
            yield from rows

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        encoding = _get_encoding(options)
        with source_path.open("r", encoding=encoding, newline="") as f:
            _skip(f, int(options.get("skip_rows", 0)))
            columns, rows = _rows(f, options)
            sample: list[dict[str, Any]] = []
            count = 0
            for row in rows:
                if is_blank_row(row):
                    continue
                if len(sample) < _PROBE_SAMPLE_SIZE:
                    sample.append(row)
                count += 1

        return SourceProbe(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=options.get("delimiter", ","),
        )
