"""
Currency Normalization.

Detects the dominant transaction currency of an upload and converts every
row's total into it using the row's own exchange rate. No rates are looked
up anywhere; a row without a usable rate keeps its amount unchanged.
"""

from collections import Counter
from typing import Dict, List, Optional, Sequence

from ledger_src.config import DEFAULT_BASE_CURRENCY
from ledger_src.core.contracts.schemas import NormalizedTransaction, RawTransaction
from ledger_src.core.utils import sanitize_rate
from ledger_src.ledger_utils.logging_config import get_logger

logger = get_logger(__name__)


def _normalize_code(currency: Optional[str]) -> Optional[str]:
    if not currency or not isinstance(currency, str):
        return None
    code = currency.strip().upper()
    return code or None


def detect_base_currency(transactions: Sequence[RawTransaction]) -> str:
    """
    Return the most frequent "Currency (Total)" value.

    Ties go to the currency seen first. Empty input, or input without any
    currency, returns the configured default.

    Example:
        >>> detect_base_currency(txs)  # 2x USD, 1x EUR
        'USD'
    """
    counts: Counter = Counter()
    for transaction in transactions:
        code = _normalize_code(transaction.total_currency)
        if code:
            counts[code] += 1

    if not counts:
        return DEFAULT_BASE_CURRENCY

    # most_common keeps first-seen order among equal counts
    return counts.most_common(1)[0][0]


def normalize_to_base_currency(transaction: RawTransaction, base_currency: str) -> float:
    """
    Convert a single row's total into the base currency.

    Same currency returns the total untouched. Otherwise the total is
    multiplied by the row's exchange rate; a missing, non-finite or
    non-positive rate leaves the total as is.
    """
    total = transaction.total if transaction.total is not None else 0.0

    if _normalize_code(transaction.total_currency) == _normalize_code(base_currency):
        return total

    return total * sanitize_rate(transaction.exchange_rate)


def normalize_all_transactions(
    transactions: Sequence[RawTransaction],
) -> List[NormalizedTransaction]:
    """Detect the base currency once and normalize every row against it."""
    if not transactions:
        return []

    base_currency = detect_base_currency(transactions)
    normalized = [
        NormalizedTransaction(
            **transaction.model_dump(),
            total_in_base_currency=normalize_to_base_currency(transaction, base_currency),
            detected_base_currency=base_currency,
        )
        for transaction in transactions
    ]

    converted = sum(
        1
        for t in transactions
        if _normalize_code(t.total_currency) != base_currency
    )
    logger.info(
        f"Normalized {len(normalized)} transactions to {base_currency} "
        f"({converted} converted)"
    )
    return normalized


def get_currency_summary(transactions: Sequence[RawTransaction]) -> Dict[str, int]:
    """Count rows per total currency, for display."""
    summary: Dict[str, int] = {}
    for transaction in transactions:
        code = _normalize_code(transaction.total_currency)
        if code:
            summary[code] = summary.get(code, 0) + 1
    return summary
