# core/services/aggregator.py
"""
Aggregator Service - Folds normalized transactions into per-ticker positions.

Also builds the per-ticker detail metrics and the portfolio headline totals.
UI-agnostic; every function returns fresh models.
"""

from typing import List, Sequence

import numpy as np
import pandas as pd

from ledger_src.config import DEFAULT_BASE_CURRENCY, SHARE_EPSILON
from ledger_src.core.actions import ActionKind
from ledger_src.core.contracts.converters import transactions_to_dataframe
from ledger_src.core.contracts.schemas import (
    DateRange,
    NormalizedTransaction,
    PortfolioMetrics,
    PositionStatus,
    StockMetrics,
    StockPosition,
)
from ledger_src.core.utils import sanitize_rate
from ledger_src.ledger_utils.logging_config import get_logger

logger = get_logger(__name__)


def _base_currency(transactions: Sequence[NormalizedTransaction]) -> str:
    return transactions[0].detected_base_currency if transactions else DEFAULT_BASE_CURRENCY


def _status(total_shares: float) -> PositionStatus:
    return PositionStatus.HOLDING if total_shares > SHARE_EPSILON else PositionStatus.SOLD


def sort_positions(positions: Sequence[StockPosition]) -> List[StockPosition]:
    """Holdings first, then by absolute net cash flow, largest first."""
    return sorted(
        positions,
        key=lambda p: (p.status != PositionStatus.HOLDING, -abs(p.total_invested)),
    )


def aggregate_positions(
    transactions: Sequence[NormalizedTransaction],
) -> List[StockPosition]:
    """
    Aggregate normalized transactions into stock positions.

    Rows without a ticker (deposits, interest, fees) are ignored. Per
    ticker, buys add shares and |total| to invested cash, sells subtract
    both and add the broker-reported result. Dividends and other actions
    keep the ticker listed but move no shares or cash.

    Args:
        transactions: Normalized transactions of one upload

    Returns:
        Positions sorted holdings-first, then by |total_invested| descending
    """
    df = transactions_to_dataframe(transactions)
    if df.empty:
        return []

    base_currency = _base_currency(transactions)

    df["ticker"] = df["ticker"].fillna("").astype(str).str.strip()
    scoped = df[df["ticker"] != ""].copy()
    if scoped.empty:
        return []

    is_buy = scoped["kind"] == ActionKind.BUY.value
    is_sell = scoped["kind"] == ActionKind.SELL.value
    shares = scoped["shares"].fillna(0.0)
    amount = scoped["total_in_base_currency"].fillna(0.0).abs()

    scoped["share_delta"] = np.where(is_buy, shares, np.where(is_sell, -shares, 0.0))
    scoped["cash_delta"] = np.where(is_buy, amount, np.where(is_sell, -amount, 0.0))
    scoped["realized"] = np.where(is_sell, scoped["result"].fillna(0.0), 0.0)

    grouped = scoped.groupby("ticker", sort=False).agg(
        name=("name", "last"),
        total_shares=("share_delta", "sum"),
        total_invested=("cash_delta", "sum"),
        realized_result=("realized", "sum"),
    )

    positions = []
    for ticker, row in grouped.iterrows():
        name = row["name"] if isinstance(row["name"], str) and row["name"] else ticker
        total_shares = float(row["total_shares"])
        positions.append(
            StockPosition(
                ticker=str(ticker),
                name=name,
                total_shares=total_shares,
                total_invested=float(row["total_invested"]),
                base_currency=base_currency,
                status=_status(total_shares),
                realized_result=float(row["realized_result"]),
            )
        )

    holding = sum(1 for p in positions if p.status == PositionStatus.HOLDING)
    logger.info(
        f"Aggregation complete: {len(positions)} positions "
        f"({holding} holding, {len(positions) - holding} sold)"
    )
    return sort_positions(positions)


def calculate_stock_metrics(
    transactions: Sequence[NormalizedTransaction], ticker: str
) -> StockMetrics:
    """Buy/sell breakdown for one ticker. Net flows may be negative for partial data."""
    ticker_rows = [t for t in transactions if t.ticker == ticker]
    first = ticker_rows[0] if ticker_rows else None

    buys = [t for t in ticker_rows if t.is_buy]
    sells = [t for t in ticker_rows if t.is_sell]

    buy_shares = sum(t.shares or 0.0 for t in buys)
    buy_volume = sum(abs(t.total_in_base_currency) for t in buys)
    sell_shares = sum(t.shares or 0.0 for t in sells)
    sell_volume = sum(abs(t.total_in_base_currency) for t in sells)

    net_share_flow = buy_shares - sell_shares
    if net_share_flow > SHARE_EPSILON:
        position_status = "net-buying"
    elif net_share_flow < -SHARE_EPSILON:
        position_status = "net-selling"
    else:
        position_status = "flat"

    dated = sorted(ts for ts in (t.timestamp for t in ticker_rows) if ts is not None)
    date_range = (
        DateRange(start=dated[0].date().isoformat(), end=dated[-1].date().isoformat())
        if dated
        else DateRange()
    )

    return StockMetrics(
        ticker=ticker,
        company_name=(first.name if first and first.name else ticker),
        isin=(first.isin if first and first.isin else ""),
        base_currency=_base_currency(transactions),
        buy_volume=buy_volume,
        buy_shares=buy_shares,
        buy_transaction_count=len(buys),
        avg_buy_price=buy_volume / buy_shares if buy_shares > 0 else 0.0,
        sell_volume=sell_volume,
        sell_shares=sell_shares,
        sell_transaction_count=len(sells),
        avg_sell_price=sell_volume / sell_shares if sell_shares > 0 else 0.0,
        net_cash_flow=buy_volume - sell_volume,
        net_share_flow=net_share_flow,
        realized_result=sum(t.result or 0.0 for t in sells),
        is_partial_data=net_share_flow < -SHARE_EPSILON or (bool(sells) and not buys),
        position_status=position_status,
        date_range=date_range,
    )


def calculate_portfolio_metrics(
    transactions: Sequence[NormalizedTransaction],
) -> PortfolioMetrics:
    """Headline totals: volumes, realized P&L, dividends, fees and taxes."""
    total_invested = 0.0
    total_sold = 0.0
    realized_pnl = 0.0
    total_dividends = 0.0
    total_fees = 0.0
    total_taxes = 0.0
    ticker_shares: dict = {}

    for t in transactions:
        total_fees += abs(t.conversion_fee or 0.0)

        if t.is_buy:
            total_invested += abs(t.total_in_base_currency)
            if t.ticker:
                ticker_shares[t.ticker] = ticker_shares.get(t.ticker, 0.0) + (t.shares or 0.0)
        elif t.is_sell:
            total_sold += abs(t.total_in_base_currency)
            realized_pnl += t.result or 0.0
            if t.ticker:
                ticker_shares[t.ticker] = ticker_shares.get(t.ticker, 0.0) - (t.shares or 0.0)
        elif t.kind is ActionKind.DIVIDEND:
            rate = sanitize_rate(t.exchange_rate)
            total_dividends += t.total * rate
            total_taxes += abs((t.withholding_tax or 0.0) * rate)

    holdings_count = sum(1 for s in ticker_shares.values() if s > SHARE_EPSILON)

    return PortfolioMetrics(
        total_invested=total_invested,
        total_sold=total_sold,
        net_invested=total_invested - total_sold,
        realized_pnl=realized_pnl,
        total_dividends=total_dividends,
        total_fees=total_fees,
        total_taxes=total_taxes,
        holdings_count=holdings_count,
        sold_count=len(ticker_shares) - holdings_count,
        base_currency=_base_currency(transactions),
    )


def summarize_positions(positions: Sequence[StockPosition]) -> pd.DataFrame:
    """Tabular view of positions for display and export."""
    columns = [
        "ticker",
        "name",
        "status",
        "total_shares",
        "total_invested",
        "realized_result",
        "base_currency",
    ]
    if not positions:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([p.model_dump(mode="json") for p in positions], columns=columns)
