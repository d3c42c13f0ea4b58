"""Goal feasibility, spending-cut recommendations and weekly challenges."""
import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from empowerflow.config import (
    GOAL_ANALYSIS_WINDOW_DAYS,
    OPTIONAL_CATEGORIES,
    OPTIONAL_REDUCTION_LIMIT,
    RECOMMENDATION_MAX_REDUCTION,
    RECOMMENDATION_MIN_SPENDING,
    WEEKS_PER_MONTH,
)
from empowerflow.intelligence.anomaly_detector import week_start
from empowerflow.intelligence.spending_analyzer import day_of_week
from empowerflow.models import Goal, coerce_transactions

logger = logging.getLogger(__name__)

CHALLENGE_ACTIVE = "ACTIVE"
CHALLENGE_COMPLETED = "COMPLETED"
CHALLENGE_FAILED = "FAILED"


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end (negative if end is earlier)."""
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


class GoalNavigator:
    """Plan savings goals against a user's recent spending."""

    def __init__(
        self,
        transactions: List[Any],
        goals: Optional[List[Any]] = None,
        today: Optional[date] = None
    ):
        """Initialize the navigator.

        Args:
            transactions: Transaction objects or dicts
            goals: Goal objects or dicts
            today: Reference day, defaults to date.today()
        """
        self.transactions = coerce_transactions(transactions)
        self.goals = [g if isinstance(g, Goal) else Goal.from_dict(g) for g in goals or []]
        self.goals = [g for g in self.goals if g is not None]
        self.today = today or date.today()
        self._analysis = None

    def analyze_spending_patterns(self) -> Dict[str, Any]:
        """Monthly averages over the last 90 days.

        Returns:
            Dict with category_spending, total_income, total_expenses and
            monthly_surplus, all per month
        """
        if self._analysis is not None:
            return self._analysis

        start = self.today - timedelta(days=GOAL_ANALYSIS_WINDOW_DAYS)
        months = GOAL_ANALYSIS_WINDOW_DAYS / 30
        category_spending: Dict[str, float] = {}
        income = 0.0

        for t in self.transactions:
            if t.posted_date <= start:
                continue
            if t.is_expense:
                category = t.category or "Uncategorized"
                category_spending[category] = category_spending.get(category, 0.0) + abs(t.amount)
            elif t.is_income:
                income += t.amount

        category_spending = {c: total / months for c, total in category_spending.items()}
        total_income = income / months
        total_expenses = sum(category_spending.values())

        self._analysis = {
            "category_spending": category_spending,
            "total_income": total_income,
            "total_expenses": total_expenses,
            "monthly_surplus": total_income - total_expenses,
        }
        return self._analysis

    def _monthly_required(self, goal: Goal) -> Dict[str, float]:
        months_remaining = max(months_between(self.today, goal.target_date), 1)
        remaining = goal.target_amount - goal.current_amount_saved
        return {
            "months_remaining": months_remaining,
            "monthly_required": remaining / months_remaining,
        }

    def optional_spending(self) -> float:
        """Monthly spend across categories a user can reasonably cut."""
        spending = self.analyze_spending_patterns()["category_spending"]
        return sum(spending.get(c, 0.0) for c in OPTIONAL_CATEGORIES)

    def calculate_goal_feasibility(self, goal: Goal) -> Dict[str, Any]:
        """Decide whether a goal is reachable on the current budget.

        Three outcomes: feasible from surplus, feasible with a cut in
        optional spending no larger than half of it, or infeasible.
        """
        analysis = self.analyze_spending_patterns()
        surplus = analysis["monthly_surplus"]
        monthly_required = self._monthly_required(goal)["monthly_required"]

        if monthly_required <= surplus:
            return {
                "feasible": True,
                "reason": "Goal is achievable with current surplus",
                "monthly_required": monthly_required,
                "current_surplus": surplus,
            }

        shortfall = monthly_required - surplus
        if shortfall <= self.optional_spending() * OPTIONAL_REDUCTION_LIMIT:
            return {
                "feasible": True,
                "reason": "Goal is achievable by reducing discretionary spending",
                "monthly_required": monthly_required,
                "current_surplus": surplus,
                "required_reduction": shortfall,
            }

        return {
            "feasible": False,
            "reason": "Goal requires significant lifestyle changes or timeline extension",
            "monthly_required": monthly_required,
            "current_surplus": surplus,
            "shortfall": shortfall,
        }

    def generate_recommendations(self, goal: Goal) -> List[Dict[str, Any]]:
        """Suggest cuts in optional categories to close a goal's shortfall.

        Returns:
            Up to 3 reduce_spending recommendations, largest saving first
        """
        analysis = self.analyze_spending_patterns()
        required = self._monthly_required(goal)
        monthly_required = required["monthly_required"]
        shortfall = monthly_required - analysis["monthly_surplus"]
        if shortfall <= 0:
            return []

        recommendations = []
        for category in OPTIONAL_CATEGORIES:
            spending = analysis["category_spending"].get(category, 0.0)
            if spending <= RECOMMENDATION_MIN_SPENDING:
                continue
            reduction = min(spending * RECOMMENDATION_MAX_REDUCTION, shortfall)
            recommendations.append({
                "id": f"rec_{goal.goal_id}_{category}",
                "goal_id": goal.goal_id,
                "type": "reduce_spending",
                "category": category,
                "current_monthly_spending": spending,
                "suggested_reduction": reduction,
                "potential_monthly_savings": reduction,
                "impact_description": self._impact_description(
                    reduction, monthly_required, required["months_remaining"], goal.name
                ),
                "confidence_score": 0.8 if spending > 200 else 0.6,
                "created_at": datetime.now().isoformat(),
            })

        recommendations.sort(key=lambda r: r["potential_monthly_savings"], reverse=True)
        return recommendations[:3]

    def _impact_description(
        self,
        savings: float,
        monthly_required: float,
        months_remaining: int,
        goal_name: str
    ) -> str:
        if monthly_required <= 0:
            return f"Every dollar saved brings you closer to your {goal_name} goal."
        time_reduction = round(savings / monthly_required * months_remaining)
        percentage = round(savings / monthly_required * 100)
        if time_reduction >= 1:
            plural = "s" if time_reduction > 1 else ""
            return f"This could help you reach your {goal_name} goal {time_reduction} month{plural} faster!"
        if percentage > 0:
            return f"This reduces your monthly savings gap by {percentage}% for your {goal_name} goal."
        return f"Every dollar saved brings you closer to your {goal_name} goal."

    def generate_weekly_challenge(
        self,
        goal: Goal,
        recommendations: List[Dict[str, Any]]
    ) -> Optional[Dict[str, Any]]:
        """Turn the top recommendation into a weekly spend limit."""
        if not recommendations:
            return None

        top = recommendations[0]
        weekly_limit = (top["current_monthly_spending"] - top["suggested_reduction"]) / WEEKS_PER_MONTH
        week = int(self.today.strftime("%U"))
        year = self.today.year

        return {
            "challenge_id": f"challenge_{goal.goal_id}_{week}_{year}",
            "goal_id": goal.goal_id,
            "week_of_year": week,
            "year": year,
            "description": f"Spend less than ${weekly_limit:.2f} on {top['category'].lower()} this week",
            "category_to_track": top["category"],
            "spend_limit": weekly_limit,
            "current_spending": 0.0,
            "status": CHALLENGE_ACTIVE,
            "created_at": datetime.now().isoformat(),
        }

    def track_challenge_progress(self, challenge: Dict[str, Any]) -> Dict[str, Any]:
        """Recompute a challenge's spend for the current week and its status."""
        start = week_start(self.today)
        end = start + timedelta(days=6)
        spent = sum(
            abs(t.amount) for t in self.transactions
            if t.is_expense
            and t.category == challenge["category_to_track"]
            and start <= t.posted_date <= end
        )

        updated = dict(challenge)
        updated["current_spending"] = spent
        updated["status"] = self._challenge_status(spent, challenge["spend_limit"])
        return updated

    def _challenge_status(self, spent: float, limit: float) -> str:
        # Saturday is the last day of a Sunday-started week
        week_progress = (day_of_week(self.today) + 1) / 7
        if week_progress >= 0.9:
            return CHALLENGE_COMPLETED if spent <= limit else CHALLENGE_FAILED
        return CHALLENGE_FAILED if spent > limit else CHALLENGE_ACTIVE

    def generate_goal_suggestions(self) -> List[Dict[str, Any]]:
        """Suggest new goals from the user's surplus and transfer spending."""
        analysis = self.analyze_spending_patterns()
        surplus = analysis["monthly_surplus"]
        suggestions = []

        if surplus > 200:
            target = analysis["total_expenses"] * 3
            suggestions.append({
                "id": "suggestion_emergency",
                "type": "savings",
                "title": "Build Emergency Fund",
                "description": "Create a financial safety net for unexpected expenses",
                "suggested_amount": target,
                "timeframe_months": math.ceil(target / (surplus * 0.5)),
                "reasoning": (
                    f"Based on your monthly expenses of ${analysis['total_expenses']:.2f}, an "
                    f"emergency fund of ${target:.2f} would provide 3 months of coverage."
                ),
                "based_on_data": ["monthly_expenses", "surplus_analysis"],
                "confidence": 0.9,
            })

        transfers = analysis["category_spending"].get("Financial & Transfers", 0.0)
        if transfers > 100:
            suggestions.append({
                "id": "suggestion_debt",
                "type": "debt_payoff",
                "title": "Accelerate Debt Payoff",
                "description": "Pay off high-interest debt faster to save on interest",
                "suggested_amount": transfers * 12,
                "timeframe_months": 18,
                "reasoning": (
                    f"Your monthly financial transfers of ${transfers:.2f} suggest debt "
                    f"payments that could be accelerated."
                ),
                "based_on_data": ["financial_transfers", "interest_analysis"],
                "confidence": 0.7,
            })

        return suggestions

    def plan_goals(self) -> List[Dict[str, Any]]:
        """Feasibility, recommendations and weekly challenge for each goal."""
        plans = []
        for goal in self.goals:
            recommendations = self.generate_recommendations(goal)
            plans.append({
                "goal": goal.to_dict(),
                "feasibility": self.calculate_goal_feasibility(goal),
                "recommendations": recommendations,
                "challenge": self.generate_weekly_challenge(goal, recommendations),
            })
        return plans
