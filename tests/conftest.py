"""Shared pytest fixtures for the ledger analytics tests."""

import pytest

from tests.factories import buy, deposit, dividend, make_row, sell, write_csv


@pytest.fixture
def mixed_transactions():
    """A small export: deposit, two tickers, a dividend and one closed trade."""
    return [
        deposit(time="2024-01-02 09:00:00"),
        buy("AAPL", shares=10, total=1000.0, time="2024-01-15 10:00:00"),
        buy("MSFT", shares=5, total=1500.0, time="2024-01-20 10:00:00"),
        dividend("AAPL", total=12.0, withholding_tax=1.8, time="2024-02-15 10:00:00"),
        sell("MSFT", shares=5, total=1700.0, result=200.0, time="2024-03-10 10:00:00"),
    ]


@pytest.fixture
def sample_rows():
    return [
        make_row(Action="Deposit", Ticker=None, Name=None, **{"No. of shares": None, "Price / share": None, "Total": 5000.0}),
        make_row(),
        make_row(
            Action="Market sell",
            Time="2024-03-15 10:00:00",
            Total=1200.0,
            Result=200.0,
            **{"Price / share": 120.0},
        ),
    ]


@pytest.fixture
def sample_csv(tmp_path, sample_rows):
    path = tmp_path / "export.csv"
    write_csv(path, sample_rows)
    return path
