"""Row and DataFrame Converters - Utilities for moving between parsed CSV rows, Pydantic models and pandas DataFrames."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

import pandas as pd
from pydantic import BaseModel, ValidationError

from .quality import IssueCategory, IssueSeverity, ValidationIssue
from .schemas import NormalizedTransaction, RawTransaction

T = TypeVar("T", bound=BaseModel)

TRANSACTION_FRAME_COLUMNS = [
    "action",
    "kind",
    "time",
    "ticker",
    "name",
    "isin",
    "shares",
    "price_per_share",
    "exchange_rate",
    "result",
    "total",
    "total_currency",
    "withholding_tax",
    "conversion_fee",
    "total_in_base_currency",
    "detected_base_currency",
]

_NUMERIC_COLUMNS = [
    "shares",
    "price_per_share",
    "exchange_rate",
    "result",
    "total",
    "withholding_tax",
    "conversion_fee",
    "total_in_base_currency",
]


def safe_convert_row(
    row: Mapping[str, Any],
    model_class: Type[T],
    row_index: int,
) -> Tuple[Optional[T], Optional[ValidationIssue]]:
    """Safely convert a row dict to a Pydantic model, returning an issue on failure."""
    try:
        return model_class.model_validate(dict(row)), None
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else None
        column = str(first["loc"][0]) if first and first.get("loc") else None
        detail = first["msg"] if first else str(e)
        return None, ValidationIssue(
            severity=IssueSeverity.HIGH,
            category=IssueCategory.SCHEMA,
            code="CONVERSION_ERROR",
            message=f"Row {row_index + 1}: Failed to convert row: {detail}",
            row=row_index + 1,
            field=column,
        )


def rows_to_transactions(
    rows: Sequence[Mapping[str, Any]],
) -> Tuple[List[RawTransaction], List[ValidationIssue]]:
    """Convert parsed CSV rows (keyed by header) into RawTransactions."""
    transactions: List[RawTransaction] = []
    issues: List[ValidationIssue] = []

    for index, row in enumerate(rows):
        transaction, issue = safe_convert_row(row, RawTransaction, index)
        if transaction is not None:
            transactions.append(transaction)
        if issue is not None:
            issues.append(issue)

    return transactions, issues


def dataframe_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Turn a parsed CSV frame into plain row dicts with NaN cells as None."""
    if df.empty:
        return []
    cleaned = df.astype(object).where(pd.notna(df), None)
    return cleaned.to_dict(orient="records")


def transactions_to_dataframe(
    transactions: Sequence[NormalizedTransaction],
) -> pd.DataFrame:
    """
    Build an analysis frame from normalized transactions.

    `kind` holds the ActionKind value, `time` is datetime64 with NaT for
    unparseable timestamps, and numeric columns are float with NaN for
    missing cells.
    """
    if not transactions:
        return pd.DataFrame(columns=TRANSACTION_FRAME_COLUMNS).astype(
            {col: "float64" for col in _NUMERIC_COLUMNS}
        ).astype({"time": "datetime64[ns]"})

    records = [
        {
            "action": t.action,
            "kind": t.kind.value,
            "time": t.timestamp,
            "ticker": t.ticker,
            "name": t.name,
            "isin": t.isin,
            "shares": t.shares,
            "price_per_share": t.price_per_share,
            "exchange_rate": t.exchange_rate,
            "result": t.result,
            "total": t.total,
            "total_currency": t.total_currency,
            "withholding_tax": t.withholding_tax,
            "conversion_fee": t.conversion_fee,
            "total_in_base_currency": t.total_in_base_currency,
            "detected_base_currency": t.detected_base_currency,
        }
        for t in transactions
    ]
    df = pd.DataFrame.from_records(records, columns=TRANSACTION_FRAME_COLUMNS)
    df["time"] = pd.to_datetime(df["time"], errors="coerce")
    for col in _NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")
    return df
