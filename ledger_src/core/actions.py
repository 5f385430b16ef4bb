"""Transaction action vocabulary - single source of truth for action type checks."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class ActionKind(str, Enum):
    """Recognized categories of broker actions."""

    BUY = "buy"
    SELL = "sell"
    DIVIDEND = "dividend"
    DEPOSIT = "deposit"
    INTEREST = "interest"
    OTHER = "other"


# Exact action texts as they appear in the export
MARKET_BUY = "Market buy"
LIMIT_BUY = "Limit buy"
MARKET_SELL = "Market sell"
LIMIT_SELL = "Limit sell"
DEPOSIT = "Deposit"
DIVIDEND = "Dividend (Dividend)"
INTEREST = "Interest on cash"

_EXACT_ACTIONS: Dict[str, ActionKind] = {
    MARKET_BUY: ActionKind.BUY,
    LIMIT_BUY: ActionKind.BUY,
    MARKET_SELL: ActionKind.SELL,
    LIMIT_SELL: ActionKind.SELL,
    DEPOSIT: ActionKind.DEPOSIT,
    INTEREST: ActionKind.INTEREST,
}


def classify_action(action: Optional[str]) -> ActionKind:
    """Map a free-text action to its ActionKind.

    Buy/sell variants must match exactly. Anything mentioning "dividend"
    (case-insensitive) is a dividend. Unknown text maps to OTHER.
    """
    if not action or not isinstance(action, str):
        return ActionKind.OTHER

    text = action.strip()
    kind = _EXACT_ACTIONS.get(text)
    if kind is not None:
        return kind
    if "dividend" in text.lower():
        return ActionKind.DIVIDEND
    return ActionKind.OTHER


def is_buy_action(action: Optional[str]) -> bool:
    return classify_action(action) is ActionKind.BUY


def is_sell_action(action: Optional[str]) -> bool:
    return classify_action(action) is ActionKind.SELL


def is_trade_action(action: Optional[str]) -> bool:
    return classify_action(action) in (ActionKind.BUY, ActionKind.SELL)


def is_dividend_action(action: Optional[str]) -> bool:
    return classify_action(action) is ActionKind.DIVIDEND
