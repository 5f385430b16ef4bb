"""Validation Functions - Check uploaded headers and rows and return issues without raising exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from ledger_src.config import MAX_DISPLAYED_ERRORS
from ledger_src.core.actions import ActionKind, classify_action
from ledger_src.core.errors import (
    ColumnValidationError,
    EmptyFileError,
    RowValidationError,
)
from ledger_src.core.utils import clean_text, to_number
from ledger_src.ledger_utils.logging_config import get_logger

from .quality import IssueCategory, IssueSeverity, ValidationIssue

logger = get_logger(__name__)

# Only these are universally required; ticker/shares/price depend on the action
REQUIRED_COLUMNS = ("Action", "Total", "Currency (Total)")

EXPECTED_COLUMNS = (
    "Action",
    "Time",
    "ISIN",
    "Ticker",
    "Name",
    "Notes",
    "ID",
    "No. of shares",
    "Price / share",
    "Currency (Price / share)",
    "Exchange rate",
    "Result",
    "Currency (Result)",
    "Total",
    "Currency (Total)",
    "Withholding tax",
    "Currency (Withholding tax)",
    "Currency conversion fee",
    "Currency (Currency conversion fee)",
)

NO_HEADERS_MESSAGE = (
    "CSV file has no headers. Please ensure you are uploading a valid "
    "Trading 212 export."
)
EMPTY_FILE_MESSAGE = "CSV file contains no transaction data."


@dataclass
class CSVValidationResult:
    """Outcome of a header or row validation pass."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    row_count: Optional[int] = None
    issues: List[ValidationIssue] = field(default_factory=list)


def limit_errors(messages: Sequence[str], limit: int = MAX_DISPLAYED_ERRORS) -> List[str]:
    """Keep the first `limit` messages and summarize the rest in one line."""
    shown = list(messages[:limit])
    if len(messages) > limit:
        shown.append(f"...and {len(messages) - limit} more errors")
    return shown


def validate_csv_columns(headers: Optional[Sequence[str]]) -> CSVValidationResult:
    """Check that every universally required column is present."""
    if not headers:
        issue = ValidationIssue(
            severity=IssueSeverity.CRITICAL,
            category=IssueCategory.SCHEMA,
            code="NO_HEADERS",
            message=NO_HEADERS_MESSAGE,
        )
        return CSVValidationResult(
            is_valid=False, errors=[issue.message], issues=[issue]
        )

    present = {str(h).strip() for h in headers}
    missing = [column for column in REQUIRED_COLUMNS if column not in present]
    if not missing:
        return CSVValidationResult(is_valid=True)

    issue = ValidationIssue(
        severity=IssueSeverity.CRITICAL,
        category=IssueCategory.SCHEMA,
        code="MISSING_COLUMNS",
        message=(
            f"Missing required columns: {', '.join(missing)}. "
            "Please ensure you are uploading a Trading 212 CSV export."
        ),
        field=", ".join(missing),
    )
    return CSVValidationResult(is_valid=False, errors=[issue.message], issues=[issue])


def _issue(
    row: int,
    code: str,
    category: IssueCategory,
    column: str,
    text: str,
) -> ValidationIssue:
    return ValidationIssue(
        severity=IssueSeverity.HIGH,
        category=category,
        code=code,
        message=f"Row {row}: {text}",
        row=row,
        field=column,
    )


def validate_transaction(
    transaction: Mapping[str, Any], row_index: int
) -> List[ValidationIssue]:
    """
    Validate a single parsed row.

    Buy/sell rows must carry ticker, a positive share count and a price.
    Every row needs a numeric total. A row without an action is not
    checked any further.

    Args:
        transaction: Row keyed by CSV header
        row_index: 0-based index of the row in the file

    Returns:
        Issues for this row, empty when valid
    """
    row = row_index + 1
    issues: List[ValidationIssue] = []

    action = transaction.get("Action")
    if not isinstance(action, str) or not action.strip():
        issues.append(
            _issue(
                row,
                "INVALID_ACTION",
                IssueCategory.ACTION,
                "Action",
                "Missing or invalid Action",
            )
        )
        return issues

    if classify_action(action) in (ActionKind.BUY, ActionKind.SELL):
        ticker = transaction.get("Ticker")
        if not isinstance(ticker, str) or clean_text(ticker) is None:
            issues.append(
                _issue(
                    row,
                    "INVALID_TICKER",
                    IssueCategory.TRADE,
                    "Ticker",
                    "Missing or invalid Ticker",
                )
            )

        shares = to_number(transaction.get("No. of shares"))
        if shares is None or shares <= 0:
            issues.append(
                _issue(
                    row,
                    "INVALID_SHARES",
                    IssueCategory.TRADE,
                    "No. of shares",
                    "Invalid number of shares (must be positive number)",
                )
            )

        if to_number(transaction.get("Price / share")) is None:
            issues.append(
                _issue(
                    row,
                    "INVALID_PRICE",
                    IssueCategory.TRADE,
                    "Price / share",
                    "Invalid price per share",
                )
            )

    if to_number(transaction.get("Total")) is None:
        issues.append(
            _issue(
                row,
                "INVALID_TOTAL",
                IssueCategory.VALUE,
                "Total",
                "Invalid total amount",
            )
        )

    return issues


def validate_transactions(
    transactions: Sequence[Mapping[str, Any]],
) -> CSVValidationResult:
    """Validate every row and report all problems in one pass."""
    if len(transactions) == 0:
        issue = ValidationIssue(
            severity=IssueSeverity.CRITICAL,
            category=IssueCategory.SCHEMA,
            code="EMPTY_FILE",
            message=EMPTY_FILE_MESSAGE,
        )
        return CSVValidationResult(
            is_valid=False, errors=[issue.message], row_count=0, issues=[issue]
        )

    issues: List[ValidationIssue] = []
    for index, transaction in enumerate(transactions):
        issues.extend(validate_transaction(transaction, index))

    if issues:
        logger.info(f"Row validation found {len(issues)} issue(s) in {len(transactions)} rows")

    return CSVValidationResult(
        is_valid=not issues,
        errors=limit_errors([i.message for i in issues]),
        row_count=len(transactions),
        issues=issues,
    )


def ensure_valid_columns(headers: Optional[Sequence[str]]) -> CSVValidationResult:
    """Raise ColumnValidationError when required headers are missing."""
    result = validate_csv_columns(headers)
    if not result.is_valid:
        raise ColumnValidationError(result.errors[0], result.errors)
    return result


def ensure_valid_transactions(
    transactions: Sequence[Mapping[str, Any]],
) -> CSVValidationResult:
    """Raise EmptyFileError / RowValidationError unless every row passes."""
    result = validate_transactions(transactions)
    if result.row_count == 0:
        raise EmptyFileError(EMPTY_FILE_MESSAGE)
    if not result.is_valid:
        raise RowValidationError(
            f"{len(result.issues)} row error(s) found",
            result.errors,
            row_count=result.row_count or 0,
        )
    return result
