"""Weekly spending anomaly detector (this week vs trailing weekly average)."""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from empowerflow.config import ANOMALY_TRAILING_WEEKS, DEFAULT_CATEGORY
from empowerflow.models import DISCRETIONARY, SpendingAnomaly, Transaction, coerce_transactions

logger = logging.getLogger(__name__)


def week_start(day: date) -> date:
    """Return the Sunday that starts the calendar week containing day."""
    # weekday(): Monday=0 .. Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def get_weekly_spending(transactions: List[Any], start: date) -> float:
    """Discretionary spend within [start, start + 6 days].

    Args:
        transactions: Transaction objects or dicts
        start: First day of the week

    Returns:
        Sum of absolute expense amounts tagged discretionary
    """
    end = start + timedelta(days=6)
    return round(sum(
        abs(t.amount)
        for t in coerce_transactions(transactions)
        if t.is_expense and t.tag == DISCRETIONARY and start <= t.posted_date <= end
    ), 2)


class AnomalyDetector:
    """Flag categories whose spend this week beats their recent weekly average."""

    def __init__(self, trailing_weeks: int = ANOMALY_TRAILING_WEEKS):
        """Initialize the detector.

        Args:
            trailing_weeks: Number of prior calendar weeks in the average
        """
        self.trailing_weeks = trailing_weeks

    def analyze_transactions(
        self,
        transactions: List[Any],
        today: Optional[date] = None
    ) -> List[SpendingAnomaly]:
        """Detect per-category spending anomalies for the current week.

        Args:
            transactions: Transaction objects or dicts
            today: Reference day, defaults to date.today()

        Returns:
            One SpendingAnomaly per category whose current-week spend is
            strictly greater than its trailing weekly average
        """
        today = today or date.today()
        current_start = week_start(today)
        current_end = current_start + timedelta(days=6)
        trailing_start = current_start - timedelta(weeks=self.trailing_weeks)

        this_week: Dict[str, float] = {}
        trailing: Dict[str, float] = {}

        for txn in coerce_transactions(transactions):
            if not txn.is_expense:
                continue
            category = txn.category or DEFAULT_CATEGORY
            if current_start <= txn.posted_date <= current_end:
                this_week[category] = this_week.get(category, 0.0) + abs(txn.amount)
            elif trailing_start <= txn.posted_date < current_start:
                trailing[category] = trailing.get(category, 0.0) + abs(txn.amount)

        anomalies = []
        for category, spent in this_week.items():
            average = trailing.get(category, 0.0) / self.trailing_weeks
            if spent > average:
                anomalies.append(self._build_anomaly(category, round(spent, 2), round(average, 2)))

        logger.debug(f"Week of {current_start}: {len(anomalies)} spending anomalies")
        return anomalies

    def _build_anomaly(self, category: str, spent: float, average: float) -> SpendingAnomaly:
        if average > 0:
            insight = (
                f"You've spent ${spent:.2f} on {category} this week, "
                f"{spent / average:.1f}x your weekly average of ${average:.2f}."
            )
        else:
            insight = f"You've spent ${spent:.2f} on {category} this week, which is new for you."
        advice = f"Keep an eye on {category} for the rest of the week to stay on track."
        return SpendingAnomaly(
            category=category,
            this_week=spent,
            weekly_average=average,
            insight=insight,
            advice=advice,
        )
