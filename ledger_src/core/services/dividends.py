# core/services/dividends.py
"""
Dividend Service - Dividend income, per-stock run rates and cost-basis yields.

Dividends are converted with each row's own exchange rate, independent of
the base-currency pass, because dividend rows carry their own rate.
"""

from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from ledger_src.core.contracts.schemas import (
    DividendRecord,
    DividendSummary,
    IncomeProjection,
    NormalizedTransaction,
    PeriodPoint,
    PositionStatus,
    StockDividendSummary,
    StockPosition,
    YearComparison,
)
from ledger_src.core.utils import sanitize_rate
from ledger_src.ledger_utils.logging_config import get_logger

logger = get_logger(__name__)

PERIODS = ("month", "quarter", "year")


def month_key(value: datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def quarter_key(value: datetime) -> str:
    return f"{value.year:04d}-Q{(value.month - 1) // 3 + 1}"


def year_key(value: datetime) -> str:
    return f"{value.year:04d}"


_PERIOD_KEYS = {
    "month": month_key,
    "quarter": quarter_key,
    "year": year_key,
}


def extract_dividend_records(
    transactions: Sequence[NormalizedTransaction],
) -> List[DividendRecord]:
    """Turn dividend rows with a ticker into gross/tax/net records."""
    records = []
    for t in transactions:
        if not t.is_dividend or not t.ticker:
            continue
        rate = sanitize_rate(t.exchange_rate)
        gross = (t.total or 0.0) * rate
        tax = (t.withholding_tax or 0.0) * rate
        records.append(
            DividendRecord(
                date=t.timestamp,
                ticker=t.ticker,
                name=t.name or t.ticker,
                gross_in_base_currency=gross,
                tax_in_base_currency=tax,
                net_in_base_currency=gross - tax,
                shares=t.shares or 0.0,
            )
        )
    return records


def _bucket(records: Iterable[DividendRecord], key_fn) -> Dict[str, float]:
    buckets: Dict[str, float] = {}
    for record in records:
        if record.date is None:
            continue
        key = key_fn(record.date)
        buckets[key] = buckets.get(key, 0.0) + record.net_in_base_currency
    # Zero-padded keys sort chronologically
    return dict(sorted(buckets.items()))


def _annualize(net_total: float, months_with_payment: int) -> float:
    if months_with_payment == 0:
        return net_total
    return net_total / months_with_payment * 12


def calculate_dividend_summary(
    transactions: Sequence[NormalizedTransaction],
) -> DividendSummary:
    """
    Aggregate dividend income globally and per ticker.

    Records with an unparseable date count toward every total but are
    left out of the month/quarter/year buckets.

    Args:
        transactions: Normalized transactions of one upload

    Returns:
        DividendSummary with totals, records, per-ticker summaries and buckets
    """
    records = extract_dividend_records(transactions)

    per_ticker: "OrderedDict[str, List[DividendRecord]]" = OrderedDict()
    for record in records:
        per_ticker.setdefault(record.ticker, []).append(record)

    by_stock: Dict[str, StockDividendSummary] = {}
    for ticker, ticker_records in per_ticker.items():
        net_total = sum(r.net_in_base_currency for r in ticker_records)
        months = {month_key(r.date) for r in ticker_records if r.date is not None}
        by_stock[ticker] = StockDividendSummary(
            ticker=ticker,
            name=ticker_records[0].name,
            total_dividends=net_total,
            payment_count=len(ticker_records),
            annualized_dividends=_annualize(net_total, len(months)),
        )

    summary = DividendSummary(
        total_gross=sum(r.gross_in_base_currency for r in records),
        total_tax=sum(r.tax_in_base_currency for r in records),
        total_net=sum(r.net_in_base_currency for r in records),
        payment_count=len(records),
        records=records,
        by_stock=by_stock,
        by_month=_bucket(records, month_key),
        by_quarter=_bucket(records, quarter_key),
        by_year=_bucket(records, year_key),
    )

    if records:
        logger.info(
            f"Dividends: {len(records)} payments from {len(by_stock)} stocks, "
            f"net {summary.total_net:.2f}"
        )
    else:
        logger.debug("No dividend rows found")
    return summary


def calculate_dividend_yields(
    summary: DividendSummary, positions: Sequence[StockPosition]
) -> List[StockDividendSummary]:
    """
    Cost-basis yield for currently held positions that paid dividends.

    Positions that are sold or have a cost basis <= 0 are skipped, so no
    division by zero or negative-basis yield can appear.
    """
    yields = []
    for position in positions:
        if position.status != PositionStatus.HOLDING or position.total_invested <= 0:
            continue
        stock = summary.by_stock.get(position.ticker)
        if stock is None:
            continue
        yields.append(
            stock.model_copy(
                update={
                    "dividend_yield": stock.annualized_dividends
                    / position.total_invested
                    * 100,
                    "current_shares": position.total_shares,
                    "total_invested": position.total_invested,
                }
            )
        )
    return sorted(yields, key=lambda s: s.dividend_yield, reverse=True)


def project_annual_income(summary: DividendSummary) -> IncomeProjection:
    """
    Project annual dividend income.

    Uses the most recent calendar year's total when positive, otherwise
    the monthly average times twelve.
    """
    if summary.payment_count == 0:
        return IncomeProjection(projected=0.0, method="No data")

    if summary.by_year:
        latest_year = max(summary.by_year)
        latest_total = summary.by_year[latest_year]
        if latest_total > 0:
            return IncomeProjection(
                projected=latest_total,
                method=f"Based on {latest_year} dividends",
                basis_year=latest_year,
            )

    projected = _annualize(summary.total_net, len(summary.by_month))
    return IncomeProjection(projected=projected, method="Based on monthly average")


def group_dividends_by_period(
    records: Sequence[DividendRecord], period: str = "month"
) -> List[PeriodPoint]:
    """Chronological chart points with a running cumulative total."""
    if period not in _PERIOD_KEYS:
        raise ValueError(f"Unknown period '{period}', expected one of {PERIODS}")
    key_fn = _PERIOD_KEYS[period]

    dated = sorted((r for r in records if r.date is not None), key=lambda r: r.date)

    amounts: "OrderedDict[str, float]" = OrderedDict()
    for record in dated:
        key = key_fn(record.date)
        amounts[key] = amounts.get(key, 0.0) + record.net_in_base_currency

    points = []
    running = 0.0
    for key, amount in amounts.items():
        running += amount
        points.append(PeriodPoint(period=key, amount=amount, cumulative=running))
    return points


def calculate_growth_rate(by_year: Dict[str, float]) -> List[YearComparison]:
    """Year-over-year growth in percent; None when the prior year has no income."""
    comparisons = []
    previous: Optional[float] = None
    for year in sorted(by_year):
        total = by_year[year]
        growth = None
        if previous is not None and previous > 0:
            growth = (total - previous) / previous * 100
        comparisons.append(YearComparison(year=year, total=total, growth=growth))
        previous = total
    return comparisons
