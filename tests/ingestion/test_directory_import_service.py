"""
Tests for DirectoryImportService.

Covers:
- A clean directory file becomes a snapshot keyed by normalized email
- Row errors collected with 1-based row numbers and error codes
- The 10% error-rate threshold (at the limit passes, above it fails)
- Duplicate emails: later row wins and is reported
- File-level failures: missing file, empty or all-blank file, missing columns
- Headerless files use the fixed 11-column layout
"""

import pytest

from timesheet_ingestion.domain.types import DIRECTORY_COLUMNS
from timesheet_ingestion.services.directory_import_service import (
    DirectoryImportService,
    record_from_row,
)
from timesheet_kernel.domain.organization import Position
from timesheet_kernel.exceptions import (
    DirectoryFileError,
    ErrorRateExceededError,
    InvalidEmployeeRecordError,
)

HEADER = ",".join(DIRECTORY_COLUMNS)


def row(email, name, position, *codes):
    cells = [email, name]
    padded = list(codes) + [""] * (4 - len(codes))
    for code in padded:
        cells += [code, f"{code} unit" if code else ""]
    cells.append(position)
    return ",".join(cells)


def write_directory(tmp_path, rows, header=True, name="directory.csv"):
    path = tmp_path / name
    lines = ([HEADER] if header else []) + list(rows)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def valid_rows(count):
    return [
        row(f"staff{i}@x.com", f"Staff {i}", "staff", "HQ", "D1", "P1", "G1")
        for i in range(count)
    ]


class TestLoad:

    def test_clean_file(self, tmp_path):
        path = write_directory(tmp_path, [
            row("Dev@X.com", "Dev", "staff", "HQ", "D1", "P1", "G1"),
            row("mgr@x.com", "Mgr", "Manager", "HQ", "D1", "P1", "G1"),
            row("gm@x.com", "GM", "general_manager", "HQ"),
        ])
        result = DirectoryImportService().load(path)

        assert result.total_rows == 3
        assert result.errors == ()
        assert set(result.snapshot) == {"dev@x.com", "mgr@x.com", "gm@x.com"}
        dev = result.snapshot["dev@x.com"]
        assert dev.position is Position.STAFF
        assert dev.scope_key(4) == ("HQ", "D1", "P1", "G1")
        assert dev.levels[0].name == "HQ unit"
        assert result.position_counts == {"general_manager": 1, "manager": 1, "staff": 1}

    def test_blank_rows_skipped(self, tmp_path):
        path = write_directory(tmp_path, valid_rows(2) + [",,,,,,,,,,"])
        result = DirectoryImportService().load(path)
        assert result.total_rows == 2

    def test_row_errors_collected(self, tmp_path):
        rows = valid_rows(19) + [row("bad@x.com", "Bad", "intern", "HQ")]
        result = DirectoryImportService().load(write_directory(tmp_path, rows))

        assert result.total_rows == 20
        [error] = result.errors
        assert error.row_number == 20
        assert error.email == "bad@x.com"
        assert error.code == "INVALID_POSITION"
        assert "bad@x.com" not in result.snapshot

    def test_error_rate_at_threshold_passes(self, tmp_path):
        rows = valid_rows(9) + [row("not-an-email", "X", "staff", "HQ")]
        result = DirectoryImportService().load(write_directory(tmp_path, rows))
        assert result.error_rate == pytest.approx(0.10)
        assert len(result.snapshot) == 9

    def test_error_rate_above_threshold_fails(self, tmp_path, captured_logs):
        rows = valid_rows(8) + [
            row("gap@x.com", "Gap", "staff", "HQ", "", "P1"),
            row("", "Nobody", "staff", "HQ"),
        ]
        with pytest.raises(ErrorRateExceededError) as exc_info:
            DirectoryImportService().load(write_directory(tmp_path, rows))
        assert exc_info.value.error_count == 2
        assert any(r["message"] == "directory_import_rejected" for r in captured_logs())

    def test_configurable_threshold(self, tmp_path):
        rows = valid_rows(8) + [row("bad@x.com", "Bad", "intern")] * 2
        result = DirectoryImportService(max_error_rate=0.25).load(write_directory(tmp_path, rows))
        assert len(result.errors) == 2

    def test_duplicate_email_later_row_wins(self, tmp_path):
        path = write_directory(tmp_path, [
            row("dev@x.com", "Dev", "staff", "HQ", "D1", "P1", "G1"),
            row("DEV@x.com", "Dev Promoted", "manager", "HQ", "D1", "P1", "G1"),
        ])
        result = DirectoryImportService().load(path)
        assert result.duplicate_emails == ("dev@x.com",)
        assert result.snapshot["dev@x.com"].position is Position.MANAGER
        assert result.total_rows == 2

    def test_headerless_file(self, tmp_path):
        path = write_directory(
            tmp_path, [row("dev@x.com", "Dev", "staff", "HQ")], header=False,
        )
        result = DirectoryImportService(options={"has_header": False}).load(path)
        assert list(result.snapshot) == ["dev@x.com"]


class TestFileErrors:

    def test_missing_file(self, tmp_path):
        with pytest.raises(DirectoryFileError) as exc_info:
            DirectoryImportService().load(tmp_path / "absent.csv")
        assert exc_info.value.code == "DIRECTORY_FILE_ERROR"

    def test_header_only(self, tmp_path):
        with pytest.raises(DirectoryFileError):
            DirectoryImportService().load(write_directory(tmp_path, []))

    def test_only_blank_rows(self, tmp_path):
        path = write_directory(tmp_path, [",,,,,,,,,,", ",,,,,,,,,,"])
        with pytest.raises(DirectoryFileError) as exc_info:
            DirectoryImportService().load(path)
        assert "no rows" in str(exc_info.value)

    def test_missing_required_columns(self, tmp_path):
        path = tmp_path / "partial.csv"
        path.write_text("email,name\ndev@x.com,Dev\n", encoding="utf-8")
        with pytest.raises(DirectoryFileError) as exc_info:
            DirectoryImportService().load(path)
        assert "position" in str(exc_info.value)


class TestRecordFromRow:

    def test_whitespace_cells_are_trimmed(self):
        record = record_from_row({
            "email": "  dev@x.com ",
            "name": " Dev ",
            "position": " staff ",
            "level1_code": " HQ ",
        })
        assert record.email == "dev@x.com"
        assert record.code_at(1) == "HQ"

    def test_gap_raises(self):
        with pytest.raises(InvalidEmployeeRecordError):
            record_from_row({
                "email": "dev@x.com", "name": "Dev", "position": "staff",
                "level2_code": "D1",
            })
