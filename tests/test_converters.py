"""Tests for row, model and DataFrame converters."""

import math

import pandas as pd

from ledger_src.core.actions import ActionKind
from ledger_src.core.contracts import RawTransaction
from ledger_src.core.contracts.converters import (
    TRANSACTION_FRAME_COLUMNS,
    dataframe_to_rows,
    rows_to_transactions,
    safe_convert_row,
    transactions_to_dataframe,
)
from tests.factories import buy, deposit, make_row, normalize


class TestSafeConvertRow:
    def test_valid_row(self) -> None:
        tx, issue = safe_convert_row(make_row(), RawTransaction, 0)
        assert issue is None
        assert tx.action == "Market buy"
        assert tx.shares == 10.0
        assert tx.total_currency == "USD"

    def test_numeric_strings_coerced(self) -> None:
        tx, _ = safe_convert_row(make_row(Total="1.5", **{"Exchange rate": "0.5"}), RawTransaction, 0)
        assert tx.total == 1.5
        assert tx.exchange_rate == 0.5

    def test_blank_cells_become_none(self) -> None:
        tx, _ = safe_convert_row(make_row(Ticker="  ", **{"Exchange rate": ""}), RawTransaction, 0)
        assert tx.ticker is None
        assert tx.exchange_rate is None

    def test_invalid_total_reports_issue(self) -> None:
        tx, issue = safe_convert_row(make_row(Total="n/a"), RawTransaction, 4)
        assert tx is None
        assert issue.code == "CONVERSION_ERROR"
        assert issue.row == 5
        assert issue.message.startswith("Row 5:")

    def test_unknown_columns_ignored(self) -> None:
        row = make_row()
        row["Merchant name"] = "Coffee"
        tx, issue = safe_convert_row(row, RawTransaction, 0)
        assert issue is None
        assert tx.kind is ActionKind.BUY


class TestRowsToTransactions:
    def test_collects_models_and_issues(self) -> None:
        transactions, issues = rows_to_transactions([make_row(), make_row(Total=None), make_row()])
        assert len(transactions) == 2
        assert len(issues) == 1
        assert issues[0].row == 2


class TestDataFrames:
    def test_dataframe_to_rows_nan_to_none(self) -> None:
        df = pd.DataFrame({"Action": ["Deposit"], "Ticker": [math.nan], "Total": [10.0]})
        rows = dataframe_to_rows(df)
        assert rows == [{"Action": "Deposit", "Ticker": None, "Total": 10.0}]

    def test_empty_frame_has_typed_columns(self) -> None:
        df = transactions_to_dataframe([])
        assert list(df.columns) == TRANSACTION_FRAME_COLUMNS
        assert df.empty
        assert df["total"].dtype == "float64"

    def test_transactions_frame(self) -> None:
        df = transactions_to_dataframe(normalize([deposit(), buy("AAPL", shares=2, total=300.0)]))
        assert list(df["kind"]) == ["deposit", "buy"]
        assert pd.api.types.is_datetime64_any_dtype(df["time"])
        assert math.isnan(df.loc[0, "shares"])
        assert df.loc[1, "total_in_base_currency"] == 300.0
