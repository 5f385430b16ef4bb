"""Pipeline Contracts - Data shapes and validation at the upload boundary."""

from .quality import (
    IssueCategory,
    IssueSeverity,
    ValidationIssue,
)
from .schemas import (
    AnalysisResult,
    Confidence,
    DateRange,
    DividendRecord,
    DividendSummary,
    Heatmap,
    HeatmapCell,
    IncomeProjection,
    MonthLabel,
    MostTradedStock,
    NormalizedTransaction,
    PartialDataWarning,
    PeriodPoint,
    PortfolioMetrics,
    PositionStatus,
    RawTransaction,
    StockDividendSummary,
    StockMetrics,
    StockPosition,
    TradingMetrics,
    YearComparison,
)
from .validation import (
    CSVValidationResult,
    ensure_valid_columns,
    ensure_valid_transactions,
    limit_errors,
    validate_csv_columns,
    validate_transaction,
    validate_transactions,
)
from .converters import (
    dataframe_to_rows,
    rows_to_transactions,
    safe_convert_row,
    transactions_to_dataframe,
)

__all__ = [
    "IssueSeverity",
    "IssueCategory",
    "ValidationIssue",
    "PositionStatus",
    "Confidence",
    "RawTransaction",
    "NormalizedTransaction",
    "DateRange",
    "StockPosition",
    "StockMetrics",
    "PortfolioMetrics",
    "DividendRecord",
    "StockDividendSummary",
    "DividendSummary",
    "PeriodPoint",
    "YearComparison",
    "IncomeProjection",
    "MostTradedStock",
    "TradingMetrics",
    "HeatmapCell",
    "MonthLabel",
    "Heatmap",
    "PartialDataWarning",
    "AnalysisResult",
    "CSVValidationResult",
    "validate_csv_columns",
    "validate_transaction",
    "validate_transactions",
    "ensure_valid_columns",
    "ensure_valid_transactions",
    "limit_errors",
    "safe_convert_row",
    "rows_to_transactions",
    "dataframe_to_rows",
    "transactions_to_dataframe",
]
