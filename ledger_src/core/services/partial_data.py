# core/services/partial_data.py
"""
Partial Data Detection - Flags tickers whose trading history looks incomplete.

Heuristic and annotation-only: results never block aggregation, and any
input the detector cannot characterize yields a non-partial warning.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from ledger_src.config import (
    EARLY_SELL_WINDOW_DAYS,
    PARTIAL_MIN_SPAN_DAYS,
    SHARE_EPSILON,
)
from ledger_src.core.contracts.schemas import (
    Confidence,
    DateRange,
    NormalizedTransaction,
    PartialDataWarning,
)
from ledger_src.core.utils import format_short_date
from ledger_src.ledger_utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class TickerAnalysis:
    """Share balance and ordering facts for one ticker's trades."""

    ticker: str
    trade_count: int = 0
    net_shares: float = 0.0
    has_sell_before_buy: bool = False
    early_selling_activity: bool = False


def _file_bounds(
    transactions: Sequence[NormalizedTransaction],
) -> Optional[tuple]:
    stamps = [t.timestamp for t in transactions if t.timestamp is not None]
    if not stamps:
        return None
    return min(stamps), max(stamps)


def _span_days(start: datetime, end: datetime) -> int:
    return abs((end.date() - start.date()).days)


def analyze_ticker(
    transactions: Sequence[NormalizedTransaction],
    ticker: str,
    file_start: Optional[datetime] = None,
) -> TickerAnalysis:
    """
    Walk one ticker's trades in time order.

    Undated trades sort last. Early selling is measured from `file_start`,
    the first timestamp of the whole upload.
    """
    trades = [t for t in transactions if t.ticker == ticker and t.is_trade]
    trades.sort(key=lambda t: (t.timestamp is None, t.timestamp or datetime.min))

    analysis = TickerAnalysis(ticker=ticker, trade_count=len(trades))
    if not trades:
        return analysis

    window_end = (
        file_start + timedelta(days=EARLY_SELL_WINDOW_DAYS) if file_start else None
    )
    seen_buy = False
    for trade in trades:
        shares = trade.shares or 0.0
        if trade.is_buy:
            analysis.net_shares += shares
            seen_buy = True
            continue

        if not seen_buy:
            analysis.has_sell_before_buy = True
        analysis.net_shares -= shares
        if window_end is not None and trade.timestamp is not None and trade.timestamp <= window_end:
            analysis.early_selling_activity = True

    return analysis


def _empty_warning() -> PartialDataWarning:
    return PartialDataWarning()


def detect_partial_data(
    transactions: Sequence[NormalizedTransaction],
) -> PartialDataWarning:
    """
    Detect whether the upload misses part of some tickers' history.

    Signals per ticker:
    1. Net shares below zero (high confidence)
    2. A sell before any buy (high confidence)
    3. A sell in the first days of the file, only for files spanning
       more than the minimum span (medium confidence)

    Returns:
        PartialDataWarning; confidence is the strongest signal found
    """
    try:
        return _detect(transactions)
    except Exception as e:
        logger.warning(f"Partial data detection failed, reporting no warning: {e}")
        return _empty_warning()


def _detect(transactions: Sequence[NormalizedTransaction]) -> PartialDataWarning:
    if not transactions:
        return _empty_warning()

    bounds = _file_bounds(transactions)
    if bounds is None:
        file_start = None
        date_range = DateRange()
        days_covered = 0
    else:
        file_start, file_end = bounds
        date_range = DateRange(
            start=file_start.date().isoformat(), end=file_end.date().isoformat()
        )
        days_covered = _span_days(file_start, file_end)

    trades_by_ticker: Dict[str, List[NormalizedTransaction]] = {}
    for t in transactions:
        if t.ticker and t.is_trade:
            trades_by_ticker.setdefault(t.ticker, []).append(t)

    affected: List[str] = []
    reasons: List[str] = []
    confidence = Confidence.LOW

    for ticker, trades in trades_by_ticker.items():
        analysis = analyze_ticker(trades, ticker, file_start)
        ticker_reasons = []
        ticker_confidence = Confidence.LOW

        if analysis.net_shares < -SHARE_EPSILON:
            ticker_reasons.append(
                f"{ticker}: Sold more shares than bought (net: {analysis.net_shares:.2f})"
            )
            ticker_confidence = Confidence.HIGH

        if analysis.has_sell_before_buy:
            ticker_reasons.append(f"{ticker}: Sell transaction before any buy transactions")
            ticker_confidence = Confidence.HIGH

        if analysis.early_selling_activity and days_covered > PARTIAL_MIN_SPAN_DAYS:
            ticker_reasons.append(f"{ticker}: Early selling activity suggests prior holdings")
            if ticker_confidence.rank < Confidence.MEDIUM.rank:
                ticker_confidence = Confidence.MEDIUM

        if ticker_reasons:
            affected.append(ticker)
            reasons.extend(ticker_reasons)
            if ticker_confidence.rank > confidence.rank:
                confidence = ticker_confidence

    if affected:
        logger.info(
            f"Partial data detected for {len(affected)} ticker(s), confidence {confidence.value}"
        )

    return PartialDataWarning(
        is_partial_data=bool(affected),
        affected_tickers=affected,
        reasons=reasons,
        confidence=confidence,
        date_range=date_range,
    )


def is_ticker_partial_data(ticker: str, warning: PartialDataWarning) -> bool:
    return ticker in warning.affected_tickers


def format_date_range(date_range: DateRange) -> str:
    """'Jan 5, 2024 - Mar 1, 2024' for an ISO date range."""
    if not date_range.start or not date_range.end:
        return ""
    start = datetime.fromisoformat(date_range.start)
    end = datetime.fromisoformat(date_range.end)
    return f"{format_short_date(start)} - {format_short_date(end)}"


def get_partial_data_explanation(warning: PartialDataWarning) -> str:
    """Human-readable summary of a partial-data warning; empty when not partial."""
    if not warning.is_partial_data:
        return ""

    count = len(warning.affected_tickers)
    noun = "stock" if count == 1 else "stocks"
    return (
        f"This CSV contains transactions from {format_date_range(warning.date_range)} only. "
        f"{count} {noun} show activity patterns suggesting prior holdings or "
        "transactions outside this period are not included."
    )


def get_ticker_partial_data_explanation(
    ticker: str, transactions: Sequence[NormalizedTransaction]
) -> str:
    """Explanation for the per-ticker detail view."""
    bounds = _file_bounds(transactions)
    analysis = analyze_ticker(transactions, ticker, bounds[0] if bounds else None)

    if analysis.net_shares < -SHARE_EPSILON:
        return (
            f"You sold {abs(analysis.net_shares):.2f} more shares than you bought in "
            "this period, indicating you held shares from before."
        )
    if analysis.has_sell_before_buy:
        return (
            "Sell transactions appear before any buy transactions, indicating prior "
            "holdings not shown in this data."
        )
    if analysis.early_selling_activity:
        return (
            "Early selling activity suggests you held shares from before the start "
            "of this data period."
        )
    return "Metrics show activity within the uploaded timeframe only."
