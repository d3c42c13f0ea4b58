"""Spending aggregation helpers and category-level spending insights."""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from empowerflow.config import (
    DEFAULT_CATEGORY,
    ESSENTIAL_WINDOW_DAYS,
    SUBCATEGORY_WINDOW_DAYS,
    HIGH_DISCRETIONARY_PERCENT,
    BALANCED_DISCRETIONARY_RANGE,
    EMERGENCY_FUND_MONTHS,
    SUBCATEGORY_MONTHLY_THRESHOLD,
    TREND_INCREASE_RATIO,
    INSIGHT_CONFIDENCE_THRESHOLD,
)
from empowerflow.models import (
    ESSENTIAL,
    DISCRETIONARY,
    PersonalizedInsight,
    Transaction,
    coerce_transactions,
)

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Categories where rising spend is worth monitoring rather than cutting
ESSENTIAL_TREND_CATEGORIES = ["Bills & Utilities", "Health & Medical", "Transportation", "Income"]


def day_of_week(day: date) -> int:
    """Day index with Sunday = 0."""
    return (day.weekday() + 1) % 7


def spending_by_category(
    transactions: List[Any],
    start: Optional[date] = None,
    end: Optional[date] = None
) -> Dict[str, float]:
    """Total expense per category, optionally within [start, end]."""
    totals: Dict[str, float] = {}
    for t in coerce_transactions(transactions):
        if not t.is_expense or not t.category:
            continue
        if start is not None and t.posted_date < start:
            continue
        if end is not None and t.posted_date > end:
            continue
        totals[t.category] = totals.get(t.category, 0.0) + abs(t.amount)
    return totals


def monthly_spending_by_category(transactions: List[Any]) -> Dict[str, List[float]]:
    """Per category, expense totals per calendar month in chronological order."""
    monthly: Dict[str, Dict[str, float]] = {}
    for t in coerce_transactions(transactions):
        if not t.is_expense or not t.category:
            continue
        month = t.posted_date.strftime("%Y-%m")
        months = monthly.setdefault(t.category, {})
        months[month] = months.get(month, 0.0) + abs(t.amount)

    return {
        category: [months[m] for m in sorted(months)]
        for category, months in monthly.items()
    }


def spending_by_day_of_week(transactions: List[Any]) -> Dict[int, float]:
    """Expense totals keyed by day of week (Sunday = 0)."""
    totals: Dict[int, float] = {}
    for t in coerce_transactions(transactions):
        if t.is_expense:
            dow = day_of_week(t.posted_date)
            totals[dow] = totals.get(dow, 0.0) + abs(t.amount)
    return totals


def weekend_vs_weekday(transactions: List[Any]) -> Dict[str, float]:
    """Expense totals split into weekend (Sat/Sun) and weekday buckets."""
    split = {"weekend": 0.0, "weekday": 0.0}
    for dow, total in spending_by_day_of_week(transactions).items():
        split["weekend" if dow in (0, 6) else "weekday"] += total
    return split


def monthly_income(transactions: List[Any], today: Optional[date] = None) -> float:
    """Average monthly income over the last 3 months."""
    cutoff = (today or date.today()) - relativedelta(months=3)
    income = sum(
        t.amount for t in coerce_transactions(transactions)
        if t.is_income and t.posted_date > cutoff
    )
    return income / 3


def monthly_expenses(transactions: List[Any], today: Optional[date] = None) -> float:
    """Average monthly spend over the last 3 months."""
    cutoff = (today or date.today()) - relativedelta(months=3)
    spent = sum(
        abs(t.amount) for t in coerce_transactions(transactions)
        if t.is_expense and t.posted_date > cutoff
    )
    return spent / 3


def filter_confident(insights: List[PersonalizedInsight]) -> List[PersonalizedInsight]:
    return [i for i in insights if i.confidence_score > INSIGHT_CONFIDENCE_THRESHOLD]


class SpendingAnalyzer:
    """Category, tag and subcategory spending insights for one user."""

    def __init__(self, transactions: List[Any], today: Optional[date] = None):
        """Initialize with the user's transactions.

        Args:
            transactions: Transaction objects or dicts
            today: Reference day for the analysis windows
        """
        self.transactions = coerce_transactions(transactions)
        self.today = today or date.today()

    def _recent_expenses(self, days: int) -> List[Transaction]:
        start = self.today - timedelta(days=days)
        return [t for t in self.transactions if t.is_expense and t.posted_date > start]

    def analyze_essential_vs_discretionary(self) -> List[PersonalizedInsight]:
        """Balance of essential and discretionary spend over the last 30 days."""
        recent = self._recent_expenses(ESSENTIAL_WINDOW_DAYS)
        essential = sum(abs(t.amount) for t in recent if t.tag == ESSENTIAL)
        discretionary = sum(abs(t.amount) for t in recent if t.tag == DISCRETIONARY)
        total = essential + discretionary
        if total <= 0:
            return []

        insights = []
        percent = discretionary / total * 100

        if percent > HIGH_DISCRETIONARY_PERCENT:
            insights.append(PersonalizedInsight.create(
                "discretionary_high",
                type="spending_pattern",
                title="High Discretionary Spending Alert",
                message=(
                    f"{percent:.1f}% of your spending this month was discretionary "
                    f"(${discretionary:.2f} out of ${total:.2f})."
                ),
                actionable_advice=[
                    "Consider reducing optional purchases to increase savings",
                    f"You could save ${discretionary * 0.2:.2f} by cutting discretionary spending by 20%",
                    "Review your discretionary purchases to identify patterns",
                ],
                confidence_score=0.8,
            ))

        low, high = BALANCED_DISCRETIONARY_RANGE
        if low <= percent <= high:
            insights.append(PersonalizedInsight.create(
                "balance_good",
                type="positive_feedback",
                title="Great Spending Balance! 🎯",
                message=(
                    f"You're maintaining a healthy balance with {percent:.1f}% discretionary "
                    f"spending. Your essential expenses are well-controlled."
                ),
                actionable_advice=[
                    "Keep up this balanced approach to spending",
                    "Consider allocating some of your savings to long-term goals",
                    "You have good financial discipline",
                ],
                confidence_score=0.9,
            ))

        if essential > 0:
            fund = essential * EMERGENCY_FUND_MONTHS
            insights.append(PersonalizedInsight.create(
                "emergency_fund",
                type="financial_planning",
                title="Emergency Fund Recommendation",
                message=(
                    f"Based on your essential expenses of ${essential:.2f}/month, "
                    f"you should have ${fund:.2f} in emergency savings."
                ),
                actionable_advice=[
                    f"Aim for {EMERGENCY_FUND_MONTHS} months of essential expenses (${fund:.2f})",
                    "Start with a smaller goal like 1-2 months if needed",
                    "Automate savings to build this fund gradually",
                ],
                confidence_score=0.85,
            ))

        return filter_confident(insights)

    def subcategory_spending(self) -> Dict[str, Dict[str, Any]]:
        """Spend per 'category > subcategory' over the last 60 days."""
        spending: Dict[str, Dict[str, Any]] = {}
        for t in self._recent_expenses(SUBCATEGORY_WINDOW_DAYS):
            if not t.subcategory:
                continue
            category = t.category or DEFAULT_CATEGORY
            key = f"{category} > {t.subcategory}"
            entry = spending.setdefault(key, {"amount": 0.0, "count": 0, "category": category})
            entry["amount"] += abs(t.amount)
            entry["count"] += 1
        return spending

    def analyze_subcategory_patterns(self) -> List[PersonalizedInsight]:
        """Top subcategories plus coffee, fast food and streaming checks."""
        spending = self.subcategory_spending()
        months = SUBCATEGORY_WINDOW_DAYS / 30
        insights = []

        top = sorted(spending.items(), key=lambda item: item[1]["amount"], reverse=True)[:3]
        for index, (key, data) in enumerate(top):
            monthly = data["amount"] / months
            if monthly <= SUBCATEGORY_MONTHLY_THRESHOLD:
                continue
            insights.append(PersonalizedInsight.create(
                "subcategory",
                type="spending_pattern",
                title=f"{key} Spending Analysis",
                message=(
                    f"You spent ${data['amount']:.2f} on {key} over the last 2 months "
                    f"({data['count']} transactions, avg ${monthly:.2f}/month)."
                ),
                actionable_advice=[
                    f"Track if this {key.lower()} spending aligns with your priorities",
                    f"Consider setting a monthly budget of ${monthly * 1.1:.2f} for {key.lower()}",
                    "This is your top spending subcategory" if index == 0
                    else "Look for optimization opportunities",
                ],
                confidence_score=0.75,
            ))

        coffee = spending.get("Food & Drink > Coffee & Tea")
        if coffee and coffee["amount"] > 60:
            monthly = coffee["amount"] / months
            insights.append(PersonalizedInsight.create(
                "coffee_analysis",
                type="saving_opportunity",
                title="Coffee & Tea Spending Analysis ☕",
                message=(
                    f"You're spending about ${monthly:.2f}/month on coffee & tea "
                    f"(${monthly * 12:.2f}/year projected)."
                ),
                actionable_advice=[
                    "Consider making coffee at home some days",
                    f"Making coffee at home 2 days/week could save ~${monthly * 0.3:.2f}/month",
                    "Look for loyalty programs at your favorite coffee shops",
                ],
                confidence_score=0.8,
            ))

        fast_food = spending.get("Food & Drink > Fast Food")
        groceries = spending.get("Food & Drink > Groceries & Supermarkets")
        if fast_food and groceries:
            fast_monthly = fast_food["amount"] / months
            grocery_monthly = groceries["amount"] / months
            if fast_monthly > grocery_monthly * 0.5:
                insights.append(PersonalizedInsight.create(
                    "fastfood_vs_grocery",
                    type="saving_opportunity",
                    title="Fast Food vs Grocery Analysis 🍔📊",
                    message=(
                        f"Fast food spending (${fast_monthly:.2f}/month) is "
                        f"{fast_monthly / grocery_monthly * 100:.0f}% of your grocery "
                        f"spending (${grocery_monthly:.2f}/month)."
                    ),
                    actionable_advice=[
                        "Consider meal prep to reduce fast food dependency",
                        f"Reducing fast food by 30% could save ${fast_monthly * 0.3:.2f}/month",
                        "Try cooking 1-2 more meals at home per week",
                    ],
                    confidence_score=0.85,
                ))

        streaming = spending.get("Entertainment > Streaming Services")
        if streaming and streaming["count"] > 3:
            monthly = streaming["amount"] / months
            insights.append(PersonalizedInsight.create(
                "streaming_analysis",
                type="saving_opportunity",
                title="Multiple Streaming Subscriptions 📺",
                message=(
                    f"You have {streaming['count']} streaming-related transactions "
                    f"totaling ${monthly:.2f}/month."
                ),
                actionable_advice=[
                    "Review which streaming services you actively use",
                    "Consider rotating subscriptions based on content you want to watch",
                    f"Could potentially save ${monthly * 0.3:.2f}/month by consolidating",
                ],
                confidence_score=0.7,
            ))

        return filter_confident(insights)

    def analyze_spending_trends(self) -> List[PersonalizedInsight]:
        """Categories whose last two months run 25% above the earlier months."""
        insights = []
        for category, monthly in monthly_spending_by_category(self.transactions).items():
            if len(monthly) < 3:
                continue
            recent_avg = sum(monthly[-2:]) / 2
            older_avg = sum(monthly[:-2]) / (len(monthly) - 2)
            if older_avg <= 0 or recent_avg <= older_avg * TREND_INCREASE_RATIO:
                continue

            essential = category in ESSENTIAL_TREND_CATEGORIES
            increase = round((recent_avg - older_avg) / older_avg * 100)
            insights.append(PersonalizedInsight.create(
                "pattern",
                type="spending_pattern",
                title=f"{category} Spending Trending Up",
                message=(
                    f"Your {category.lower()} spending has increased by {increase}% recently."
                    + (" This appears to be essential spending." if essential
                       else " This is discretionary spending.")
                ),
                actionable_advice=[
                    f"{'Monitor' if essential else 'Review'} your recent {category.lower()} purchases",
                    f"Set a monthly budget limit for {category.lower()}",
                    "Look for more cost-effective alternatives" if essential
                    else "Consider reducing this discretionary spending",
                ],
                confidence_score=0.7 if essential else 0.8,
            ))

        return filter_confident(insights)
