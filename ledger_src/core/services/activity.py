# core/services/activity.py
"""
Trading Activity Service - Trade counts, volumes, win rate and a daily calendar heatmap.

Only buy and sell rows are considered trades. Year filters treat an empty
selection as "no filter".
"""

import calendar
import math
from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set

import pandas as pd

from ledger_src.config import DEFAULT_BASE_CURRENCY
from ledger_src.core.contracts.schemas import (
    Heatmap,
    HeatmapCell,
    MonthLabel,
    MostTradedStock,
    NormalizedTransaction,
    TradingMetrics,
)
from ledger_src.ledger_utils.logging_config import get_logger

logger = get_logger(__name__)

DAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def filter_trades(
    transactions: Sequence[NormalizedTransaction],
) -> List[NormalizedTransaction]:
    return [t for t in transactions if t.is_trade]


def get_available_years(transactions: Sequence[NormalizedTransaction]) -> List[int]:
    """Distinct years with at least one dated trade, most recent first."""
    years = {t.timestamp.year for t in filter_trades(transactions) if t.timestamp is not None}
    return sorted(years, reverse=True)


def filter_by_years(
    trades: Sequence[NormalizedTransaction], years: Optional[Iterable[int]]
) -> List[NormalizedTransaction]:
    """Keep trades in the selected years. An empty or missing selection keeps everything."""
    selected = set(years) if years else set()
    if not selected:
        return list(trades)
    return [t for t in trades if t.timestamp is not None and t.timestamp.year in selected]


def toggle_year(selected: Iterable[int], year: int, available: Iterable[int]) -> Set[int]:
    """
    Toggle a year in a multi-select filter.

    Deselecting the last year resets the filter to every available year
    instead of leaving nothing selected.
    """
    updated = set(selected)
    if year in updated:
        updated.discard(year)
    else:
        updated.add(year)
    if not updated:
        return set(available)
    return updated


def calculate_trading_metrics(
    transactions: Sequence[NormalizedTransaction],
) -> TradingMetrics:
    """
    Summarize trading activity.

    Volumes use abs(total_in_base_currency). A sell with result > 0 is a
    win, < 0 a loss; zero is neither. Win rate is 0 when there are no sells.

    Args:
        transactions: Normalized transactions, any action type

    Returns:
        TradingMetrics for the buy/sell rows
    """
    base_currency = (
        transactions[0].detected_base_currency if transactions else DEFAULT_BASE_CURRENCY
    )
    trades = filter_trades(transactions)
    if not trades:
        return TradingMetrics(base_currency=base_currency)

    buy_count = sell_count = win_count = loss_count = 0
    total_buy_volume = total_sell_volume = 0.0
    stock_counts: "OrderedDict[str, MostTradedStock]" = OrderedDict()

    for trade in trades:
        volume = abs(trade.total_in_base_currency)
        if trade.is_buy:
            buy_count += 1
            total_buy_volume += volume
        else:
            sell_count += 1
            total_sell_volume += volume
            result = trade.result or 0.0
            if result > 0:
                win_count += 1
            elif result < 0:
                loss_count += 1

        if trade.ticker:
            existing = stock_counts.get(trade.ticker)
            if existing is None:
                stock_counts[trade.ticker] = MostTradedStock(
                    ticker=trade.ticker, name=trade.name or trade.ticker, count=1
                )
            else:
                stock_counts[trade.ticker] = existing.model_copy(
                    update={"count": existing.count + 1}
                )

    # max() keeps the first ticker among equal counts
    most_traded = max(stock_counts.values(), key=lambda s: s.count) if stock_counts else None
    total_transactions = buy_count + sell_count

    return TradingMetrics(
        total_transactions=total_transactions,
        buy_count=buy_count,
        sell_count=sell_count,
        total_buy_volume=total_buy_volume,
        total_sell_volume=total_sell_volume,
        net_volume=total_buy_volume - total_sell_volume,
        average_transaction_size=(total_buy_volume + total_sell_volume) / total_transactions,
        win_count=win_count,
        loss_count=loss_count,
        win_rate=(win_count / sell_count * 100) if sell_count > 0 else 0.0,
        most_traded_stock=most_traded,
        base_currency=base_currency,
    )


def activity_level(count: int) -> int:
    """Map a daily trade count onto intensity levels 0-4."""
    if count <= 0:
        return 0
    if count == 1:
        return 1
    if count <= 3:
        return 2
    if count <= 5:
        return 3
    return 4


def daily_trade_counts(
    transactions: Sequence[NormalizedTransaction], year: int
) -> Dict[date, int]:
    """Trades per calendar day within one year."""
    stamps = [
        t.timestamp
        for t in filter_trades(transactions)
        if t.timestamp is not None and t.timestamp.year == year
    ]
    if not stamps:
        return {}
    counts = pd.Series(pd.to_datetime(stamps)).dt.date.value_counts()
    return {day: int(count) for day, count in counts.items()}


def _sunday_first_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def build_heatmap(transactions: Sequence[NormalizedTransaction], year: int) -> Heatmap:
    """
    Build a Sunday-first calendar grid of daily trade counts for `year`.

    Jan 1 sits at its real weekday row in week 0; week columns follow
    (first_weekday + day_index) // 7, so Dec 31 always lands in the last
    week, leap years included.
    """
    counts = daily_trade_counts(transactions, year)

    first_day = date(year, 1, 1)
    first_weekday = _sunday_first_weekday(first_day)
    days_in_year = 366 if calendar.isleap(year) else 365
    weeks = math.ceil((first_weekday + days_in_year) / 7)

    cells = [[HeatmapCell() for _ in range(weeks)] for _ in range(7)]
    month_labels: List[MonthLabel] = []

    for index in range(days_in_year):
        current = first_day + timedelta(days=index)
        week = (first_weekday + index) // 7
        if current.day == 1:
            month_labels.append(MonthLabel(month=current.month - 1, week=week))

        count = counts.get(current, 0)
        cells[_sunday_first_weekday(current)][week] = HeatmapCell(
            date=current, count=count, level=activity_level(count)
        )

    total_trades = sum(counts.values())
    logger.debug(f"Heatmap {year}: {total_trades} trades over {len(counts)} active days")

    return Heatmap(
        year=year,
        weeks=weeks,
        cells=cells,
        month_labels=month_labels,
        total_trades=total_trades,
    )
