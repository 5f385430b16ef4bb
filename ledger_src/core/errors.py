# core/errors.py
"""
Error types for the upload and analytics pipeline.

Two families live here:
- Exceptions raised at phase boundaries (upload, columns, rows, normalization)
- Structured PipelineError records kept by the session for display and logs
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence


class ErrorPhase(Enum):
    """Phase where error occurred."""
    UPLOAD = "UPLOAD"
    COLUMN_VALIDATION = "COLUMN_VALIDATION"
    ROW_VALIDATION = "ROW_VALIDATION"
    NORMALIZATION = "NORMALIZATION"
    ANALYSIS = "ANALYSIS"


class ErrorType(Enum):
    """Type of error for categorization."""
    FILE_REJECTED = "FILE_REJECTED"
    MISSING_COLUMNS = "MISSING_COLUMNS"
    EMPTY_FILE = "EMPTY_FILE"
    INVALID_ROWS = "INVALID_ROWS"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN = "UNKNOWN"


class LedgerError(Exception):
    """Base class for every error raised by the pipeline."""

    phase: ErrorPhase = ErrorPhase.ANALYSIS
    error_type: ErrorType = ErrorType.UNKNOWN

    def __init__(self, message: str, errors: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors: List[str] = list(errors) if errors else [message]


class UploadRejectedError(LedgerError):
    """File failed the upload boundary checks (extension, size, emptiness)."""

    phase = ErrorPhase.UPLOAD
    error_type = ErrorType.FILE_REJECTED


class ColumnValidationError(LedgerError):
    """Required header columns are missing. Fatal before any row parsing."""

    phase = ErrorPhase.COLUMN_VALIDATION
    error_type = ErrorType.MISSING_COLUMNS


class EmptyFileError(LedgerError):
    """The file carries a header but no data rows."""

    phase = ErrorPhase.ROW_VALIDATION
    error_type = ErrorType.EMPTY_FILE


class RowValidationError(LedgerError):
    """One or more rows failed per-row rules."""

    phase = ErrorPhase.ROW_VALIDATION
    error_type = ErrorType.INVALID_ROWS

    def __init__(
        self, message: str, errors: Optional[Sequence[str]] = None, row_count: int = 0
    ):
        super().__init__(message, errors)
        self.row_count = row_count


class NormalizationFailure(LedgerError):
    """Unexpected failure while converting or analysing validated rows."""

    phase = ErrorPhase.NORMALIZATION
    error_type = ErrorType.PARSE_ERROR


@dataclass
class PipelineError:
    """Structured error for display and debugging."""
    phase: ErrorPhase
    error_type: ErrorType
    item: str  # file name or ticker
    message: str
    details: List[str] = field(default_factory=list)
    fix_hint: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: LedgerError, item: str) -> "PipelineError":
        hints = {
            ErrorType.FILE_REJECTED: "Upload a non-empty .csv export under the size limit",
            ErrorType.MISSING_COLUMNS: "Export the full transaction history CSV from your broker",
            ErrorType.EMPTY_FILE: "The export contains no transactions for the chosen period",
            ErrorType.INVALID_ROWS: "Fix or remove the listed rows and upload again",
        }
        return cls(
            phase=exc.phase,
            error_type=exc.error_type,
            item=item,
            message=exc.message,
            details=list(exc.errors),
            fix_hint=hints.get(exc.error_type),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "phase": self.phase.value,
            "error_type": self.error_type.value,
            "item": self.item,
            "message": self.message,
            "details": list(self.details),
            "fix_hint": self.fix_hint,
        }
