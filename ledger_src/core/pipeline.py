# core/pipeline.py
"""
Analytics Pipeline Orchestrator.

Thin coordinator that:
- Validates headers and rows
- Converts rows into transactions
- Calls the analyzer services over one normalized snapshot
- Turns failures into typed errors the session can keep

Contains NO business logic; that lives in the services.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ledger_src.config import DEFAULT_BASE_CURRENCY
from ledger_src.core.contracts.converters import rows_to_transactions
from ledger_src.core.contracts.schemas import AnalysisResult, RawTransaction
from ledger_src.core.contracts.validation import (
    ensure_valid_columns,
    ensure_valid_transactions,
    limit_errors,
)
from ledger_src.core.currency import normalize_all_transactions
from ledger_src.core.errors import (
    LedgerError,
    NormalizationFailure,
    PipelineError,
    RowValidationError,
)
from ledger_src.core.loader import read_transactions_csv
from ledger_src.core.services.activity import calculate_trading_metrics
from ledger_src.core.services.aggregator import (
    aggregate_positions,
    calculate_portfolio_metrics,
)
from ledger_src.core.services.dividends import (
    calculate_dividend_summary,
    calculate_dividend_yields,
    calculate_growth_rate,
    project_annual_income,
)
from ledger_src.core.services.partial_data import detect_partial_data
from ledger_src.ledger_utils.logging_config import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[str, float], None]

VIEWS = ("portfolio", "dividends", "activity")


def run_analysis(transactions: Sequence[RawTransaction]) -> AnalysisResult:
    """
    Normalize once, then run every analyzer over the same snapshot.

    Pure: identical input gives an identical result.
    """
    normalized = tuple(normalize_all_transactions(transactions))
    base_currency = (
        normalized[0].detected_base_currency if normalized else DEFAULT_BASE_CURRENCY
    )

    positions = aggregate_positions(normalized)
    dividends = calculate_dividend_summary(normalized)

    return AnalysisResult(
        base_currency=base_currency,
        row_count=len(normalized),
        positions=positions,
        portfolio=calculate_portfolio_metrics(normalized),
        dividends=dividends,
        dividend_yields=calculate_dividend_yields(dividends, positions),
        income_projection=project_annual_income(dividends),
        dividend_growth=calculate_growth_rate(dividends.by_year),
        trading=calculate_trading_metrics(normalized),
        partial_data=detect_partial_data(normalized),
    )


class Pipeline:
    """
    Validate, convert and analyse one upload.

    Validation problems raise the matching LedgerError subclass; anything
    unexpected after validation is wrapped in NormalizationFailure.
    """

    def __init__(self, progress_callback: Optional[ProgressCallback] = None):
        # Default progress callback if none provided
        self.progress_callback = progress_callback or (
            lambda msg, pct: logger.debug(f"[{pct * 100:.0f}%] {msg}")
        )
        self.transactions: List[RawTransaction] = []

    def run(
        self, headers: Optional[Sequence[str]], rows: Sequence[Mapping[str, Any]]
    ) -> AnalysisResult:
        """
        Run the full pipeline on parsed CSV content.

        Args:
            headers: CSV header names
            rows: Rows keyed by header

        Returns:
            AnalysisResult for the upload

        Raises:
            ColumnValidationError, EmptyFileError, RowValidationError,
            NormalizationFailure
        """
        self.progress_callback("Checking columns...", 0.1)
        ensure_valid_columns(headers)

        self.progress_callback("Validating rows...", 0.3)
        ensure_valid_transactions(rows)

        self.progress_callback("Converting rows...", 0.5)
        transactions, issues = rows_to_transactions(rows)
        if issues:
            messages = [issue.message for issue in issues]
            raise RowValidationError(
                f"{len(issues)} row error(s) found",
                limit_errors(messages),
                row_count=len(rows),
            )

        self.progress_callback("Analysing transactions...", 0.7)
        try:
            result = run_analysis(transactions)
        except Exception as e:
            logger.error(f"Analysis failed: {e}", exc_info=True)
            raise NormalizationFailure(
                "Failed to normalize transactions. Please check the file and try again."
            ) from e

        self.transactions = transactions
        self.progress_callback("Complete!", 1.0)
        logger.info(
            f"Analysis complete: {result.row_count} rows, {len(result.positions)} positions, "
            f"base currency {result.base_currency}"
        )
        return result

    def run_file(self, path) -> AnalysisResult:
        """Load a CSV from disk and run the pipeline on it."""
        self.progress_callback("Reading file...", 0.05)
        headers, rows = read_transactions_csv(path)
        return self.run(headers, rows)


@dataclass
class UploadInfo:
    file_name: str
    row_count: int


@dataclass
class AnalysisSession:
    """
    Explicit dashboard state for one user.

    A failed upload records the error but keeps the last successful
    result and transactions untouched.
    """

    base_currency: str = DEFAULT_BASE_CURRENCY
    upload_info: Optional[UploadInfo] = None
    transactions: List[RawTransaction] = field(default_factory=list)
    result: Optional[AnalysisResult] = None
    selected_ticker: Optional[str] = None
    current_view: str = "portfolio"
    show_upload: bool = True
    is_alert_dismissed: bool = False
    error: Optional[PipelineError] = None

    def handle_upload(
        self,
        file_name: str,
        headers: Optional[Sequence[str]],
        rows: Sequence[Mapping[str, Any]],
    ) -> Optional[AnalysisResult]:
        """Analyse an upload; on failure return None and keep the previous result."""
        pipeline = Pipeline()
        try:
            result = pipeline.run(headers, rows)
        except LedgerError as e:
            logger.warning(f"Upload {file_name} rejected: {e.message}")
            self.error = PipelineError.from_exception(e, file_name)
            return None

        self.transactions = pipeline.transactions
        self.result = result
        self.base_currency = result.base_currency
        self.upload_info = UploadInfo(file_name=file_name, row_count=result.row_count)
        self.selected_ticker = None
        self.show_upload = False
        self.is_alert_dismissed = False
        self.error = None
        return result

    def handle_file(self, path) -> Optional[AnalysisResult]:
        """Read a CSV from disk and analyse it like an upload."""
        name = Path(path).name
        try:
            headers, rows = read_transactions_csv(path)
        except LedgerError as e:
            logger.warning(f"Upload {name} rejected: {e.message}")
            self.error = PipelineError.from_exception(e, name)
            return None
        return self.handle_upload(name, headers, rows)

    def upload_another(self) -> None:
        self.show_upload = True
        self.transactions = []
        self.result = None
        self.upload_info = None
        self.selected_ticker = None
        self.is_alert_dismissed = False

    def dismiss_alert(self) -> None:
        self.is_alert_dismissed = True

    def select_ticker(self, ticker: Optional[str]) -> None:
        self.selected_ticker = ticker

    def navigate(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view '{view}', expected one of {VIEWS}")
        self.current_view = view
        self.selected_ticker = None

    def back_to_overview(self) -> None:
        self.navigate("portfolio")

    def reset(self) -> None:
        """Return every field to its initial value."""
        fresh = AnalysisSession()
        self.__dict__.update(fresh.__dict__)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_currency": self.base_currency,
            "upload_info": (
                {"file_name": self.upload_info.file_name, "row_count": self.upload_info.row_count}
                if self.upload_info
                else None
            ),
            "selected_ticker": self.selected_ticker,
            "current_view": self.current_view,
            "show_upload": self.show_upload,
            "error": self.error.to_dict() if self.error else None,
        }
