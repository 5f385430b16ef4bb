"""Pipeline Contracts - Pydantic models defining exact data shapes at each pipeline boundary."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ledger_src.core.actions import ActionKind, classify_action
from ledger_src.core.utils import clean_text, parse_timestamp, to_number

_TEXT_FIELDS = (
    "time",
    "isin",
    "ticker",
    "name",
    "notes",
    "id",
    "price_currency",
    "result_currency",
    "total_currency",
    "withholding_tax_currency",
    "conversion_fee_currency",
)

_NUMBER_FIELDS = (
    "shares",
    "price_per_share",
    "exchange_rate",
    "result",
    "withholding_tax",
    "conversion_fee",
)


class PositionStatus(str, Enum):
    """Whether a ticker still has shares on the books."""

    HOLDING = "holding"
    SOLD = "sold"


class Confidence(str, Enum):
    """Confidence of a partial-data finding."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


class RawTransaction(BaseModel):
    """A single exported row. Field aliases are the CSV header names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    action: str = Field(..., alias="Action", min_length=1)
    time: Optional[str] = Field(default=None, alias="Time")
    isin: Optional[str] = Field(default=None, alias="ISIN")
    ticker: Optional[str] = Field(default=None, alias="Ticker")
    name: Optional[str] = Field(default=None, alias="Name")
    notes: Optional[str] = Field(default=None, alias="Notes")
    id: Optional[str] = Field(default=None, alias="ID")
    shares: Optional[float] = Field(default=None, alias="No. of shares")
    price_per_share: Optional[float] = Field(default=None, alias="Price / share")
    price_currency: Optional[str] = Field(
        default=None, alias="Currency (Price / share)"
    )
    exchange_rate: Optional[float] = Field(default=None, alias="Exchange rate")
    result: Optional[float] = Field(default=None, alias="Result")
    result_currency: Optional[str] = Field(default=None, alias="Currency (Result)")
    total: float = Field(..., alias="Total")
    total_currency: Optional[str] = Field(default=None, alias="Currency (Total)")
    withholding_tax: Optional[float] = Field(default=None, alias="Withholding tax")
    withholding_tax_currency: Optional[str] = Field(
        default=None, alias="Currency (Withholding tax)"
    )
    conversion_fee: Optional[float] = Field(
        default=None, alias="Currency conversion fee"
    )
    conversion_fee_currency: Optional[str] = Field(
        default=None, alias="Currency (Currency conversion fee)"
    )

    _timestamp: Optional[dt.datetime] = PrivateAttr(default=None)

    @field_validator("action", mode="before")
    @classmethod
    def strip_action(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def normalize_text(cls, v: Any) -> Optional[str]:
        return clean_text(v)

    @field_validator(*_NUMBER_FIELDS, mode="before")
    @classmethod
    def normalize_number(cls, v: Any) -> Optional[float]:
        return to_number(v)

    @field_validator("total", mode="before")
    @classmethod
    def require_numeric_total(cls, v: Any) -> float:
        number = to_number(v)
        if number is None:
            raise ValueError("Total must be a finite number")
        return number

    def model_post_init(self, __context: Any) -> None:
        # Parsed once, when the row is built.
        self._timestamp = parse_timestamp(self.time)

    @property
    def kind(self) -> ActionKind:
        return classify_action(self.action)

    @property
    def is_buy(self) -> bool:
        return self.kind is ActionKind.BUY

    @property
    def is_sell(self) -> bool:
        return self.kind is ActionKind.SELL

    @property
    def is_trade(self) -> bool:
        return self.kind in (ActionKind.BUY, ActionKind.SELL)

    @property
    def is_dividend(self) -> bool:
        return self.kind is ActionKind.DIVIDEND

    @property
    def timestamp(self) -> Optional[dt.datetime]:
        return self._timestamp


class NormalizedTransaction(RawTransaction):
    """RawTransaction with its total converted into the batch base currency."""

    total_in_base_currency: float
    detected_base_currency: str


class DateRange(BaseModel):
    start: str = ""
    end: str = ""


class StockPosition(BaseModel):
    """Aggregated holding or closed trade for one ticker."""

    ticker: str
    name: str
    total_shares: float
    # Net cash flow: buy volume minus sell volume. Negative for net sellers.
    total_invested: float
    base_currency: str
    status: PositionStatus
    realized_result: float = 0.0


class StockMetrics(BaseModel):
    """Buy/sell breakdown for a single ticker's detail view."""

    ticker: str
    company_name: str
    isin: str = ""
    base_currency: str

    buy_volume: float = 0.0
    buy_shares: float = 0.0
    buy_transaction_count: int = 0
    avg_buy_price: float = 0.0

    sell_volume: float = 0.0
    sell_shares: float = 0.0
    sell_transaction_count: int = 0
    avg_sell_price: float = 0.0

    net_cash_flow: float = 0.0
    net_share_flow: float = 0.0
    realized_result: float = 0.0

    is_partial_data: bool = False
    position_status: str = "flat"
    date_range: DateRange = Field(default_factory=DateRange)


class PortfolioMetrics(BaseModel):
    """Headline totals across the whole export."""

    total_invested: float = 0.0
    total_sold: float = 0.0
    net_invested: float = 0.0
    realized_pnl: float = 0.0
    total_dividends: float = 0.0
    total_fees: float = 0.0
    total_taxes: float = 0.0
    holdings_count: int = 0
    sold_count: int = 0
    base_currency: str


class DividendRecord(BaseModel):
    date: Optional[dt.datetime] = None
    ticker: str
    name: str
    gross_in_base_currency: float
    tax_in_base_currency: float
    net_in_base_currency: float
    shares: float = 0.0


class StockDividendSummary(BaseModel):
    ticker: str
    name: str
    total_dividends: float
    payment_count: int
    annualized_dividends: float
    dividend_yield: Optional[float] = None
    current_shares: float = 0.0
    total_invested: float = 0.0


class DividendSummary(BaseModel):
    total_gross: float = 0.0
    total_tax: float = 0.0
    total_net: float = 0.0
    payment_count: int = 0
    records: List[DividendRecord] = Field(default_factory=list)
    by_stock: Dict[str, StockDividendSummary] = Field(default_factory=dict)
    by_month: Dict[str, float] = Field(default_factory=dict)
    by_quarter: Dict[str, float] = Field(default_factory=dict)
    by_year: Dict[str, float] = Field(default_factory=dict)


class PeriodPoint(BaseModel):
    period: str
    amount: float
    cumulative: float


class YearComparison(BaseModel):
    year: str
    total: float
    growth: Optional[float] = None


class IncomeProjection(BaseModel):
    projected: float
    method: str
    basis_year: Optional[str] = None


class MostTradedStock(BaseModel):
    ticker: str
    name: str
    count: int


class TradingMetrics(BaseModel):
    total_transactions: int = 0
    buy_count: int = 0
    sell_count: int = 0
    total_buy_volume: float = 0.0
    total_sell_volume: float = 0.0
    net_volume: float = 0.0
    average_transaction_size: float = 0.0
    win_count: int = 0
    loss_count: int = 0
    win_rate: float = 0.0
    most_traded_stock: Optional[MostTradedStock] = None
    base_currency: str


class HeatmapCell(BaseModel):
    date: Optional[dt.date] = None
    count: int = 0
    level: int = 0


class MonthLabel(BaseModel):
    month: int  # 0 = January
    week: int


class Heatmap(BaseModel):
    year: int
    weeks: int
    # cells[weekday][week], weekday 0 = Sunday
    cells: List[List[HeatmapCell]]
    month_labels: List[MonthLabel] = Field(default_factory=list)
    total_trades: int = 0


class PartialDataWarning(BaseModel):
    is_partial_data: bool = False
    affected_tickers: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    confidence: Confidence = Confidence.LOW
    date_range: DateRange = Field(default_factory=DateRange)


class AnalysisResult(BaseModel):
    """Everything the presentation layer renders for one upload."""

    base_currency: str
    row_count: int
    positions: List[StockPosition] = Field(default_factory=list)
    portfolio: PortfolioMetrics
    dividends: DividendSummary
    dividend_yields: List[StockDividendSummary] = Field(default_factory=list)
    income_projection: IncomeProjection
    dividend_growth: List[YearComparison] = Field(default_factory=list)
    trading: TradingMetrics
    partial_data: PartialDataWarning
