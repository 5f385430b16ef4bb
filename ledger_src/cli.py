"""Ledger Insights CLI - Analyse a broker transactions CSV in the terminal."""

import argparse
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ledger_src.config import LOG_LEVEL
from ledger_src.core.contracts.schemas import AnalysisResult, PositionStatus
from ledger_src.core.currency import normalize_all_transactions
from ledger_src.core.errors import ErrorPhase
from ledger_src.core.pipeline import AnalysisSession
from ledger_src.core.services.activity import (
    DAYS,
    MONTHS,
    build_heatmap,
    calculate_trading_metrics,
    filter_by_years,
    filter_trades,
    get_available_years,
)
from ledger_src.core.services.aggregator import calculate_stock_metrics
from ledger_src.core.services.partial_data import (
    get_partial_data_explanation,
    get_ticker_partial_data_explanation,
    is_ticker_partial_data,
)
from ledger_src.ledger_utils.logging_config import configure_root_logger, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ANALYSIS_FAILED = 1
EXIT_INVALID_INPUT = 2


def _money(amount: float, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def _print_positions(console: Console, result: AnalysisResult) -> None:
    table = Table(title="Positions", show_header=True, header_style="bold cyan", box=None)
    table.add_column("Ticker", style="bold")
    table.add_column("Name", style="dim")
    table.add_column("Status")
    table.add_column("Shares", justify="right")
    table.add_column("Net invested", justify="right")
    table.add_column("Realized", justify="right")

    for position in result.positions:
        status = (
            "[green]holding[/green]"
            if position.status == PositionStatus.HOLDING
            else "[dim]sold[/dim]"
        )
        flag = " [yellow]![/yellow]" if is_ticker_partial_data(position.ticker, result.partial_data) else ""
        table.add_row(
            position.ticker + flag,
            position.name,
            status,
            f"{position.total_shares:,.4f}",
            _money(position.total_invested, position.base_currency),
            _money(position.realized_result, position.base_currency),
        )
    console.print(table)

    p = result.portfolio
    console.print(
        f"Bought {_money(p.total_invested, p.base_currency)} | "
        f"Sold {_money(p.total_sold, p.base_currency)} | "
        f"Realized P&L {_money(p.realized_pnl, p.base_currency)} | "
        f"Fees {_money(p.total_fees, p.base_currency)} | "
        f"{p.holdings_count} holding, {p.sold_count} sold\n"
    )


def _print_dividends(console: Console, result: AnalysisResult) -> None:
    summary = result.dividends
    currency = result.base_currency
    if summary.payment_count == 0:
        console.print("[dim]No dividend payments found.[/dim]\n")
        return

    console.print(
        f"[bold]Dividends[/bold]: {summary.payment_count} payments, "
        f"gross {_money(summary.total_gross, currency)}, "
        f"tax {_money(summary.total_tax, currency)}, "
        f"net {_money(summary.total_net, currency)}"
    )
    console.print(
        f"Projected annual income: {_money(result.income_projection.projected, currency)} "
        f"({result.income_projection.method})"
    )

    if result.dividend_yields:
        table = Table(title="Dividend yield on cost", header_style="bold cyan", box=None)
        table.add_column("Ticker", style="bold")
        table.add_column("Payments", justify="right")
        table.add_column("Annualized", justify="right")
        table.add_column("Yield", justify="right")
        for stock in result.dividend_yields:
            table.add_row(
                stock.ticker,
                str(stock.payment_count),
                _money(stock.annualized_dividends, currency),
                f"{stock.dividend_yield:.2f}%",
            )
        console.print(table)

    for comparison in result.dividend_growth:
        growth = f" ({comparison.growth:+.1f}%)" if comparison.growth is not None else ""
        console.print(f"  {comparison.year}: {_money(comparison.total, currency)}{growth}")
    console.print("")


def _print_activity(console: Console, session: AnalysisSession, years: Optional[List[int]]) -> None:
    normalized = normalize_all_transactions(session.transactions)
    trades = filter_by_years(filter_trades(normalized), years)
    metrics = calculate_trading_metrics(trades)
    currency = session.base_currency

    table = Table(title="Trading activity", show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")
    table.add_row("Transactions", str(metrics.total_transactions))
    table.add_row("Buys / Sells", f"{metrics.buy_count} / {metrics.sell_count}")
    table.add_row("Buy volume", _money(metrics.total_buy_volume, currency))
    table.add_row("Sell volume", _money(metrics.total_sell_volume, currency))
    table.add_row("Average size", _money(metrics.average_transaction_size, currency))
    table.add_row("Win rate", f"{metrics.win_rate:.1f}%")
    if metrics.most_traded_stock:
        table.add_row(
            "Most traded",
            f"{metrics.most_traded_stock.ticker} ({metrics.most_traded_stock.count})",
        )
    console.print(table)

    available = get_available_years(normalized)
    if not available:
        return
    year = max(years) if years else available[0]
    heatmap = build_heatmap(normalized, year)

    busiest = [0] * 7
    by_month = [0] * 12
    for weekday, row in enumerate(heatmap.cells):
        for cell in row:
            if cell.date is None:
                continue
            busiest[weekday] += cell.count
            by_month[cell.date.month - 1] += cell.count

    console.print(f"\n[bold]{year}[/bold]: {heatmap.total_trades} trades over {heatmap.weeks} weeks")
    console.print(
        "  " + "  ".join(f"{MONTHS[i]} {count}" for i, count in enumerate(by_month) if count)
    )
    console.print(
        "  " + "  ".join(f"{DAYS[i]} {count}" for i, count in enumerate(busiest) if count)
    )
    console.print("")


def _print_ticker(console: Console, session: AnalysisSession, ticker: str) -> None:
    normalized = normalize_all_transactions(session.transactions)
    metrics = calculate_stock_metrics(normalized, ticker)
    currency = metrics.base_currency

    table = Table(title=f"{metrics.company_name} ({ticker})", show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")
    table.add_row("Bought", f"{metrics.buy_shares:,.4f} for {_money(metrics.buy_volume, currency)}")
    table.add_row("Sold", f"{metrics.sell_shares:,.4f} for {_money(metrics.sell_volume, currency)}")
    table.add_row("Avg buy price", _money(metrics.avg_buy_price, currency))
    table.add_row("Avg sell price", _money(metrics.avg_sell_price, currency))
    table.add_row("Net cash flow", _money(metrics.net_cash_flow, currency))
    table.add_row("Realized", _money(metrics.realized_result, currency))
    table.add_row("Status", metrics.position_status)
    console.print(table)

    if session.result and is_ticker_partial_data(ticker, session.result.partial_data):
        console.print(f"[yellow]{get_ticker_partial_data_explanation(ticker, normalized)}[/yellow]")
    console.print("")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-insights",
        description="Analyse a Trading 212 transaction export locally.",
    )
    parser.add_argument("file", help="Path to the exported CSV file")
    parser.add_argument("--json", action="store_true", help="Print the analysis as JSON")
    parser.add_argument(
        "--year",
        type=int,
        action="append",
        help="Limit trading activity to this year (repeatable)",
    )
    parser.add_argument("--ticker", help="Show the detail view for one ticker")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()
    configure_root_logger(level=args.log_level.upper(), rich_output=True)

    session = AnalysisSession()
    result = session.handle_file(args.file)

    if result is None:
        error = session.error
        if args.json:
            print(json.dumps({"error": error.to_dict() if error else None}, indent=2))
        elif error is not None:
            body = "\n".join(error.details or [error.message])
            if error.fix_hint:
                body += f"\n\n[dim]{error.fix_hint}[/dim]"
            console.print(Panel.fit(body, title="[bold red]Upload failed[/bold red]"))
        if error is not None and error.phase == ErrorPhase.NORMALIZATION:
            return EXIT_ANALYSIS_FAILED
        return EXIT_INVALID_INPUT

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
        return EXIT_OK

    console.print(
        Panel.fit(
            f"[bold blue]{session.upload_info.file_name}[/bold blue]: "
            f"{result.row_count} rows, base currency {result.base_currency}"
        )
    )
    if result.partial_data.is_partial_data:
        console.print(f"[yellow]{get_partial_data_explanation(result.partial_data)}[/yellow]\n")

    _print_positions(console, result)
    _print_dividends(console, result)
    _print_activity(console, session, args.year)
    if args.ticker:
        session.select_ticker(args.ticker)
        _print_ticker(console, session, args.ticker)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
