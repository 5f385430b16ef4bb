"""Tests for the error taxonomy and structured pipeline errors."""

import logging

import pytest

from ledger_src.core.errors import (
    ColumnValidationError,
    EmptyFileError,
    ErrorPhase,
    ErrorType,
    LedgerError,
    NormalizationFailure,
    PipelineError,
    RowValidationError,
    UploadRejectedError,
)
from ledger_src.ledger_utils.logging_config import LedgerFormatter, PIIFilter


class TestLedgerErrors:
    @pytest.mark.parametrize(
        "exc_class, phase, error_type",
        [
            (UploadRejectedError, ErrorPhase.UPLOAD, ErrorType.FILE_REJECTED),
            (ColumnValidationError, ErrorPhase.COLUMN_VALIDATION, ErrorType.MISSING_COLUMNS),
            (EmptyFileError, ErrorPhase.ROW_VALIDATION, ErrorType.EMPTY_FILE),
            (RowValidationError, ErrorPhase.ROW_VALIDATION, ErrorType.INVALID_ROWS),
            (NormalizationFailure, ErrorPhase.NORMALIZATION, ErrorType.PARSE_ERROR),
        ],
    )
    def test_taxonomy(self, exc_class, phase, error_type) -> None:
        exc = exc_class("boom")
        assert isinstance(exc, LedgerError)
        assert exc.phase == phase
        assert exc.error_type == error_type
        assert exc.errors == ["boom"]

    def test_errors_list_kept(self) -> None:
        exc = RowValidationError("2 row error(s) found", ["Row 1: a", "Row 2: b"], row_count=2)
        assert exc.errors == ["Row 1: a", "Row 2: b"]
        assert exc.row_count == 2
        assert str(exc) == "2 row error(s) found"


class TestPipelineError:
    def test_from_exception_and_to_dict(self) -> None:
        exc = ColumnValidationError("Missing required columns: Total")
        error = PipelineError.from_exception(exc, "export.csv")
        data = error.to_dict()
        assert data["phase"] == "COLUMN_VALIDATION"
        assert data["error_type"] == "MISSING_COLUMNS"
        assert data["item"] == "export.csv"
        assert data["details"] == ["Missing required columns: Total"]
        assert data["fix_hint"]

    def test_no_hint_for_normalization(self) -> None:
        error = PipelineError.from_exception(NormalizationFailure("failed"), "x.csv")
        assert error.fix_hint is None


class TestPIIFilter:
    def _filtered(self, message: str) -> str:
        record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
        PIIFilter().filter(record)
        return record.msg

    def test_masks_email(self) -> None:
        masked = self._filtered("Export requested by jane@example.com")
        assert masked == "Export requested by [EMAIL]"

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("File not found: /home/jane/exports/t212.csv", "File not found: /home/[USER]/exports/t212.csv"),
            ("File not found: /Users/jane/t212.csv", "File not found: /Users/[USER]/t212.csv"),
            ("File not found: C:\\Users\\jane\\t212.csv", "File not found: C:\\Users\\[USER]\\t212.csv"),
        ],
    )
    def test_masks_home_directory_user(self, message, expected) -> None:
        assert self._filtered(message) == expected

    def test_leaves_isins_and_amounts_alone(self) -> None:
        message = "Normalized 120 transactions to USD, first ISIN US0378331005"
        assert self._filtered(message) == message


class TestLedgerFormatter:
    def test_short_module_name_and_level(self) -> None:
        record = logging.LogRecord(
            "ledger_src.core.loader", logging.WARNING, __file__, 1, "No header row", None, None
        )
        line = LedgerFormatter().format(record)
        assert line.startswith("ledger ")
        assert "WARN" in line
        assert line.endswith("loader: No header row")
