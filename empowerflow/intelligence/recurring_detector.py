"""Recurring transaction detector using merchant grouping and date gaps."""
import logging
from typing import Any, Callable, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from empowerflow.config import (
    RECURRING_MIN_GAP_DAYS,
    RECURRING_MAX_GAP_DAYS,
    RECURRING_AMOUNT_TOLERANCE,
)
from empowerflow.models import RecurringTransaction, Transaction, coerce_transactions

logger = logging.getLogger(__name__)


def first_token(description: str) -> str:
    """Default merchant key: the first whitespace-delimited word."""
    parts = description.split()
    return parts[0] if parts else ""


class RecurringDetector:
    """Detect monthly charges (subscriptions, bills) from expense history."""

    def __init__(self, merchant_key: Optional[Callable[[str], str]] = None):
        """Initialize the detector.

        Args:
            merchant_key: Maps a description to its merchant group name.
                Defaults to the first word of the description.
        """
        self.merchant_key = merchant_key or first_token

    def detect(self, transactions: List[Any]) -> List[RecurringTransaction]:
        """Detect recurring monthly expenses.

        Each merchant group is sorted by date and scanned for the first
        adjacent pair roughly a month apart with a similar amount.

        Args:
            transactions: Transaction objects or dicts

        Returns:
            One RecurringTransaction per merchant, in first-seen order
        """
        groups: Dict[str, List[Transaction]] = {}
        for txn in coerce_transactions(transactions):
            if not txn.is_expense:
                continue
            groups.setdefault(self.merchant_key(txn.description), []).append(txn)

        recurring: Dict[str, RecurringTransaction] = {}
        for name, group in groups.items():
            if len(group) < 2:
                continue
            group = sorted(group, key=lambda t: t.posted_date)

            for t1, t2 in zip(group, group[1:]):
                days_apart = (t2.posted_date - t1.posted_date).days
                amount_diff = abs(t1.amount - t2.amount)
                if (RECURRING_MIN_GAP_DAYS <= days_apart <= RECURRING_MAX_GAP_DAYS
                        and amount_diff < abs(t1.amount) * RECURRING_AMOUNT_TOLERANCE):
                    recurring[name] = RecurringTransaction(
                        name=name,
                        amount=abs(t2.amount),
                        last_date=t2.posted_date,
                        next_date=t2.posted_date + relativedelta(months=1),
                    )
                    break

        logger.debug(f"Found {len(recurring)} recurring charges across {len(groups)} merchants")
        return list(recurring.values())


def monthly_total(recurring: List[RecurringTransaction]) -> float:
    """Total monthly cost of the detected recurring charges."""
    return round(sum(r.amount for r in recurring), 2)
