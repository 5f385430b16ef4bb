"""Tests for position aggregation and per-stock / portfolio metrics."""

import itertools

import pytest

from ledger_src.core.contracts import PositionStatus, StockPosition
from ledger_src.core.services.aggregator import (
    aggregate_positions,
    calculate_portfolio_metrics,
    calculate_stock_metrics,
    sort_positions,
    summarize_positions,
)
from tests.factories import buy, deposit, dividend, make_transaction, normalize, sell


def _by_ticker(positions):
    return {p.ticker: p for p in positions}


class TestAggregatePositions:
    def test_empty(self) -> None:
        assert aggregate_positions([]) == []

    def test_round_trip_trade(self) -> None:
        txs = normalize(
            [
                buy("AAPL", shares=10, total=1000.0),
                sell("AAPL", shares=10, total=1200.0, result=200.0),
            ]
        )
        [position] = aggregate_positions(txs)
        assert position.total_shares == 0
        assert position.status == PositionStatus.SOLD
        assert position.realized_result == 200.0
        assert position.total_invested == -200.0

    def test_rows_without_ticker_excluded(self) -> None:
        txs = normalize([deposit(), buy("AAPL")])
        positions = aggregate_positions(txs)
        assert [p.ticker for p in positions] == ["AAPL"]

    def test_dividends_move_no_shares_or_cash(self) -> None:
        txs = normalize([buy("KO", shares=4, total=240.0), dividend("KO", total=7.5)])
        [position] = aggregate_positions(txs)
        assert position.total_shares == 4
        assert position.total_invested == 240.0

    def test_sell_only_ticker(self) -> None:
        txs = normalize([sell("TSLA", shares=3, total=600.0, result=50.0)])
        [position] = aggregate_positions(txs)
        assert position.total_shares == -3
        assert position.total_invested == -600.0
        assert position.status == PositionStatus.SOLD

    def test_negative_totals_use_absolute_value(self) -> None:
        txs = normalize([buy("AAPL", shares=1, total=-150.0)])
        [position] = aggregate_positions(txs)
        assert position.total_invested == 150.0

    def test_tiny_remainder_counts_as_sold(self) -> None:
        txs = normalize([buy("AAPL", shares=1.00005, total=100.0), sell("AAPL", shares=1.0, total=100.0)])
        [position] = aggregate_positions(txs)
        assert position.status == PositionStatus.SOLD

    def test_name_falls_back_to_ticker(self) -> None:
        txs = normalize([make_transaction(ticker="XYZ", name=None)])
        [position] = aggregate_positions(txs)
        assert position.name == "XYZ"

    def test_name_is_latest_non_empty(self) -> None:
        txs = normalize(
            [
                buy("FB", name="Facebook", time="2021-01-04"),
                buy("FB", name="Meta Platforms", time="2022-06-01"),
                sell("FB", shares=1, name=None, time="2023-03-01"),
            ]
        )
        [position] = aggregate_positions(txs)
        assert position.name == "Meta Platforms"

    def test_converted_amounts_used(self) -> None:
        txs = normalize(
            [
                buy("AAPL", total=100.0, total_currency="USD"),
                buy("AAPL", total=100.0, total_currency="USD"),
                buy("SAP", shares=1, total=100.0, total_currency="EUR", exchange_rate=1.1),
            ]
        )
        positions = _by_ticker(aggregate_positions(txs))
        assert positions["SAP"].total_invested == pytest.approx(110.0)
        assert positions["SAP"].base_currency == "USD"

    def test_order_independent(self) -> None:
        rows = [
            buy("AAPL", shares=5, total=500.0, time="2024-01-01"),
            buy("AAPL", shares=2.5, total=260.0, time="2024-02-01"),
            sell("AAPL", shares=3, total=330.0, result=30.0, time="2024-03-01"),
            buy("MSFT", shares=1, total=300.0, time="2024-01-05"),
        ]
        expected = _by_ticker(aggregate_positions(normalize(rows)))
        for permutation in itertools.permutations(rows):
            result = _by_ticker(aggregate_positions(normalize(list(permutation))))
            for ticker, position in expected.items():
                assert result[ticker].total_shares == pytest.approx(position.total_shares)
                assert result[ticker].total_invested == pytest.approx(position.total_invested)
        assert expected["AAPL"].total_shares == pytest.approx(5 + 2.5 - 3)


class TestSortPositions:
    def test_holdings_first_then_abs_invested(self) -> None:
        def make(ticker, status, invested):
            return StockPosition(
                ticker=ticker,
                name=ticker,
                total_shares=1.0 if status == PositionStatus.HOLDING else 0.0,
                total_invested=invested,
                base_currency="USD",
                status=status,
            )

        positions = [
            make("A", PositionStatus.SOLD, -900.0),
            make("B", PositionStatus.HOLDING, 100.0),
            make("C", PositionStatus.HOLDING, 500.0),
            make("D", PositionStatus.SOLD, 50.0),
        ]
        assert [p.ticker for p in sort_positions(positions)] == ["C", "B", "A", "D"]


class TestStockMetrics:
    def test_breakdown(self) -> None:
        txs = normalize(
            [
                buy("AAPL", shares=10, total=1000.0, time="2024-01-10"),
                buy("AAPL", shares=10, total=1200.0, time="2024-02-10"),
                sell("AAPL", shares=5, total=650.0, result=100.0, time="2024-03-10"),
            ]
        )
        metrics = calculate_stock_metrics(txs, "AAPL")
        assert metrics.buy_transaction_count == 2
        assert metrics.avg_buy_price == pytest.approx(110.0)
        assert metrics.avg_sell_price == pytest.approx(130.0)
        assert metrics.net_share_flow == 15
        assert metrics.net_cash_flow == pytest.approx(1550.0)
        assert metrics.position_status == "net-buying"
        assert not metrics.is_partial_data
        assert metrics.date_range.start == "2024-01-10"
        assert metrics.date_range.end == "2024-03-10"

    def test_sell_only_is_partial(self) -> None:
        metrics = calculate_stock_metrics(normalize([sell("TSLA", shares=2, total=400.0)]), "TSLA")
        assert metrics.is_partial_data
        assert metrics.position_status == "net-selling"
        assert metrics.avg_buy_price == 0.0

    def test_unknown_ticker(self) -> None:
        metrics = calculate_stock_metrics(normalize([buy("AAPL")]), "NOPE")
        assert metrics.company_name == "NOPE"
        assert metrics.position_status == "flat"


class TestPortfolioMetrics:
    def test_headline_totals(self, mixed_transactions) -> None:
        metrics = calculate_portfolio_metrics(normalize(mixed_transactions))
        assert metrics.total_invested == 2500.0
        assert metrics.total_sold == 1700.0
        assert metrics.net_invested == 800.0
        assert metrics.realized_pnl == 200.0
        assert metrics.total_dividends == 12.0
        assert metrics.total_taxes == pytest.approx(1.8)
        assert metrics.holdings_count == 1
        assert metrics.sold_count == 1

    def test_fees_absolute(self) -> None:
        txs = normalize([buy("AAPL", conversion_fee=-0.15), buy("AAPL", conversion_fee=0.10)])
        assert calculate_portfolio_metrics(txs).total_fees == pytest.approx(0.25)

    def test_empty(self) -> None:
        metrics = calculate_portfolio_metrics([])
        assert metrics.total_invested == 0.0
        assert metrics.holdings_count == 0


class TestSummarizePositions:
    def test_frame_columns(self) -> None:
        df = summarize_positions(aggregate_positions(normalize([buy("AAPL")])))
        assert df.loc[0, "ticker"] == "AAPL"
        assert df.loc[0, "status"] == "holding"

    def test_empty(self) -> None:
        assert summarize_positions([]).empty
