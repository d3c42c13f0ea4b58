"""Personalized insight generation with feedback-driven confidence scaling."""
import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from empowerflow.config import (
    DEFAULT_ACCEPTANCE_RATE,
    EMERGENCY_FUND_MONTHS,
    GOAL_ANALYSIS_WINDOW_DAYS,
)
from empowerflow.intelligence.anomaly_detector import AnomalyDetector
from empowerflow.intelligence.debt_calculator import compare_strategies
from empowerflow.intelligence.goal_navigator import GoalNavigator
from empowerflow.intelligence.recurring_detector import RecurringDetector, first_token, monthly_total
from empowerflow.intelligence.spending_analyzer import (
    DAY_NAMES,
    SpendingAnalyzer,
    day_of_week,
    filter_confident,
    monthly_expenses,
    monthly_income,
    weekend_vs_weekday,
)
from empowerflow.intelligence.tag_predictor import TagPredictor
from empowerflow.models import (
    DISCRETIONARY,
    ESSENTIAL,
    Debt,
    Goal,
    PersonalizedInsight,
    coerce_transactions,
)

logger = logging.getLogger(__name__)

MOTIVATION_KEYWORDS = [
    ("necessity", ["need", "essential", "required"]),
    ("convenience", ["convenient", "save time", "easier"]),
    ("pleasure", ["enjoy", "like", "fun"]),
    ("social", ["friend", "social", "together"]),
    ("investment", ["future", "invest", "long-term"]),
]

ACCEPTED_STEP = 0.05
DISMISSED_STEP = 0.02
HIGH_INTEREST_RATE = 10.0


def infer_spending_motivation(reasoning: str) -> str:
    """Classify a user's free-text reason for a purchase. Defaults to necessity."""
    text = (reasoning or "").lower()
    for motivation, keywords in MOTIVATION_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return motivation
    return "necessity"


def rank_insights(insights: List[PersonalizedInsight]) -> List[PersonalizedInsight]:
    """Order by confidence, highest first. Ties keep generation order."""
    return sorted(insights, key=lambda i: i.confidence_score, reverse=True)


class PersonalizedInsightGenerator:
    """Compose ranked insights from a user's transactions, goals and debts."""

    def __init__(
        self,
        transactions: List[Any],
        goals: Optional[List[Any]] = None,
        debts: Optional[List[Any]] = None,
        today: Optional[date] = None,
        tag_predictor: Optional[TagPredictor] = None
    ):
        """Initialize the generator.

        Untagged expenses are tagged with the TagPredictor on copies, so
        the caller's transactions are left untouched.

        Args:
            transactions: Transaction objects or dicts
            goals: Goal objects or dicts
            debts: Debt objects or dicts
            today: Reference day for every analysis window
            tag_predictor: Optional predictor, a default one is built otherwise
        """
        self.today = today or date.today()
        self.tag_predictor = tag_predictor or TagPredictor()
        self.transactions = self._enrich(coerce_transactions(transactions))

        goal_list = [g if isinstance(g, Goal) else Goal.from_dict(g) for g in goals or []]
        self.goals = [g for g in goal_list if g is not None]
        debt_list = [d if isinstance(d, Debt) else Debt.from_dict(d) for d in debts or []]
        self.debts = [d for d in debt_list if d is not None]

        self.acceptance_rate = DEFAULT_ACCEPTANCE_RATE
        self.learning_data: Dict[str, List[Dict[str, Any]]] = {
            "user_corrections": [],
            "suggestion_feedback": [],
            "spending_motivations": [],
        }

    def _enrich(self, transactions):
        enriched = []
        for txn in transactions:
            if txn.is_expense and not txn.tag:
                txn = replace(txn, tag=self.tag_predictor.predict_tag(txn))
            enriched.append(txn)
        return enriched

    # ------------------------------------------------------------------
    # Insight generation
    # ------------------------------------------------------------------

    def generate_personalized_insights(self) -> List[PersonalizedInsight]:
        """Run every analysis and return confident insights, best first."""
        analyzer = SpendingAnalyzer(self.transactions, today=self.today)

        insights: List[PersonalizedInsight] = []
        insights.extend(analyzer.analyze_essential_vs_discretionary())
        insights.extend(analyzer.analyze_subcategory_patterns())
        insights.extend(analyzer.analyze_spending_trends())
        insights.extend(self._anomaly_insights())
        insights.extend(self._saving_opportunities())
        insights.extend(self._behavioral_nudges())
        insights.extend(self._goal_insights())
        insights.extend(self._debt_insights())

        logger.debug(f"Generated {len(insights)} raw insights")
        return rank_insights(filter_confident(insights))

    def _anomaly_insights(self) -> List[PersonalizedInsight]:
        anomalies = AnomalyDetector().analyze_transactions(self.transactions, today=self.today)
        return [
            PersonalizedInsight.create(
                "budget_alert",
                type="budget_alert",
                title=f"{a.category} Spending Above Average",
                message=a.insight,
                actionable_advice=[a.advice] if a.advice else [],
                confidence_score=0.75,
            )
            for a in anomalies
        ]

    def _saving_opportunities(self) -> List[PersonalizedInsight]:
        insights = []

        recurring = RecurringDetector().detect(self.transactions)
        if recurring:
            total = monthly_total(recurring)
            names = ", ".join(r.name for r in recurring)
            insights.append(PersonalizedInsight.create(
                "recurring_charges",
                type="saving_opportunity",
                title="Review Your Recurring Charges",
                message=(
                    f"You have {len(recurring)} recurring charges ({names}) "
                    f"costing ${total:.2f}/month."
                ),
                actionable_advice=[
                    "Review if you still need each subscription",
                    "Cancel the ones you rarely use",
                    f"Cutting them all would save ${total * 12:.2f} per year",
                ],
                confidence_score=0.7,
            ))

        for merchant in self._frequent_merchants():
            if merchant["frequency"] <= 10 or merchant["average_amount"] >= 15:
                continue
            total = merchant["frequency"] * merchant["average_amount"]
            if total <= 50:
                continue
            insights.append(PersonalizedInsight.create(
                "small_purchases",
                type="saving_opportunity",
                title="Small Purchases Adding Up",
                message=f"You spend about ${total:.2f}/month on small purchases at {merchant['name']}.",
                actionable_advice=[
                    "Consider bulk buying to save money",
                    "Set a weekly limit for small purchases",
                    "Look for loyalty programs or discounts",
                ],
                confidence_score=0.65,
            ))

        return insights

    def _frequent_merchants(self) -> List[Dict[str, Any]]:
        merchants: Dict[str, Dict[str, float]] = {}
        for t in self.transactions:
            if not t.is_expense:
                continue
            entry = merchants.setdefault(first_token(t.description), {"total": 0.0, "count": 0})
            entry["total"] += abs(t.amount)
            entry["count"] += 1

        return [
            {"name": name, "frequency": data["count"], "average_amount": data["total"] / data["count"]}
            for name, data in merchants.items()
            if data["count"] > 3
        ]

    def _behavioral_nudges(self) -> List[PersonalizedInsight]:
        split = weekend_vs_weekday(self.transactions)
        if split["weekend"] <= split["weekday"] * 1.5:
            return []
        return [PersonalizedInsight.create(
            "behavioral_weekend",
            type="behavioral_nudge",
            title="Weekend Spending Pattern",
            message=(
                f"You tend to spend significantly more on weekends (${split['weekend']:.2f}) "
                f"compared to weekdays (${split['weekday']:.2f})."
            ),
            actionable_advice=[
                "Set a weekend spending budget",
                "Plan weekend activities in advance",
                "Consider free or low-cost weekend alternatives",
            ],
            confidence_score=0.7,
        )]

    def _goal_insights(self) -> List[PersonalizedInsight]:
        if not self.goals:
            return []

        navigator = GoalNavigator(self.transactions, self.goals, today=self.today)
        insights = []
        for goal in self.goals:
            feasibility = navigator.calculate_goal_feasibility(goal)
            recommendations = navigator.generate_recommendations(goal)
            advice = [r["impact_description"] for r in recommendations]

            if feasibility["feasible"] and "required_reduction" not in feasibility:
                title = f"{goal.name} Is On Track"
                advice = advice or ["Automate your monthly contribution to stay on track"]
            elif feasibility["feasible"]:
                title = f"{goal.name} Is Within Reach"
                advice = advice or ["Trim optional spending to close the gap"]
            else:
                title = f"{goal.name} Needs Attention"
                advice = advice or ["Consider extending your target date"]

            insights.append(PersonalizedInsight.create(
                "goal",
                type="goal_optimization",
                title=title,
                message=(
                    f"{feasibility['reason']}. You need ${feasibility['monthly_required']:.2f}/month "
                    f"and your current surplus is ${feasibility['current_surplus']:.2f}/month."
                ),
                actionable_advice=advice,
                confidence_score=0.8,
            ))
        return insights

    def _debt_insights(self) -> List[PersonalizedInsight]:
        if not self.debts:
            return []

        comparison = compare_strategies(self.debts)
        snowball = comparison["snowball"]["totals"]
        avalanche = comparison["avalanche"]["totals"]

        if snowball["never_pays_off"] and avalanche["never_pays_off"]:
            return [PersonalizedInsight.create(
                "debt_strategy",
                type="financial_planning",
                title="Minimum Payments Won't Clear Your Debt",
                message="At least one debt's minimum payment doesn't cover its monthly interest.",
                actionable_advice=[
                    "Increase payments on the highest-interest debt first",
                    "Ask your lender about a lower rate or a hardship plan",
                ],
                confidence_score=0.8,
            )]

        best, other = ("avalanche", "snowball")
        if snowball["total_interest"] < avalanche["total_interest"]:
            best, other = ("snowball", "avalanche")
        savings = comparison[other]["totals"]["total_interest"] - comparison[best]["totals"]["total_interest"]

        return [PersonalizedInsight.create(
            "debt_strategy",
            type="financial_planning",
            title=f"The {best.title()} Method Saves You the Most",
            message=(
                f"Paying your debts with the {best} method saves ${savings:.2f} in interest "
                f"compared to the {other} method."
            ),
            actionable_advice=[
                f"Order your debt payments using the {best} method",
                "Put any extra money toward the first debt in that order",
            ],
            confidence_score=0.8,
        )]

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def generate_personalized_insights_with_learning(self) -> List[PersonalizedInsight]:
        """Scale insights by the user's acceptance rate and add behavior insights."""
        factor = 0.5 + self.acceptance_rate * 0.5
        insights = [
            replace(i, confidence_score=i.confidence_score * factor)
            for i in self.generate_personalized_insights()
        ]
        insights.extend(self._behavior_based_insights())
        return rank_insights(filter_confident(insights))

    def analyze_behavior_patterns(self) -> Dict[str, Any]:
        """Activity and discipline metrics over the last 90 days."""
        start = self.today - timedelta(days=GOAL_ANALYSIS_WINDOW_DAYS)
        recent = [t for t in self.transactions if t.posted_date > start]

        category_counts: Dict[str, int] = {}
        day_counts = [0] * 7
        for t in recent:
            if t.category:
                category_counts[t.category] = category_counts.get(t.category, 0) + 1
            day_counts[day_of_week(t.posted_date)] += 1

        preferred = sorted(category_counts, key=lambda c: category_counts[c], reverse=True)[:5]
        active_days = [d for d in sorted(range(7), key=lambda d: day_counts[d], reverse=True) if day_counts[d] > 0][:3]

        spent = sum(abs(t.amount) for t in recent if t.is_expense)
        discretionary = sum(abs(t.amount) for t in recent if t.is_expense and t.tag == DISCRETIONARY)
        impulse = min(10.0, max(1.0, discretionary / spent * 10)) if spent else 1.0

        return {
            "preferred_categories": preferred,
            "most_active_days": active_days,
            "accepts_ai_suggestions": self.acceptance_rate,
            "uses_tags": any(t.tag in (ESSENTIAL, DISCRETIONARY) for t in recent),
            "impulse_spending_score": impulse,
        }

    def _behavior_based_insights(self) -> List[PersonalizedInsight]:
        insights = []

        active_days = self.analyze_behavior_patterns()["most_active_days"]
        if active_days:
            day = DAY_NAMES[active_days[0]]
            insights.append(PersonalizedInsight.create(
                "spending_timing",
                type="behavioral_insight",
                title=f"You spend most on {day}s",
                message=(
                    f"Your spending pattern shows you're most active on {day}s. "
                    f"This might be a good day to review your budget."
                ),
                actionable_advice=[
                    f"Consider planning purchases on {day}s",
                    "Use this day to review your weekly spending",
                    "Set spending limits for your most active day",
                ],
                confidence_score=0.7,
            ))

        counts: Dict[str, int] = {}
        for entry in self.learning_data["spending_motivations"]:
            counts[entry["motivation"]] = counts.get(entry["motivation"], 0) + 1
        if counts:
            motivation = max(counts, key=counts.get)
            insights.append(PersonalizedInsight.create(
                "motivation_pattern",
                type="behavioral_insight",
                title=f"Your spending is primarily driven by {motivation}",
                message=(
                    f"Based on your corrections and explanations, most of your spending is "
                    f"motivated by {motivation}. Understanding this helps create better budgets."
                ),
                actionable_advice=[
                    f"Allocate budget specifically for {motivation}-based purchases",
                    "Track if this motivation aligns with your financial goals",
                    "Consider if this spending pattern supports your long-term objectives",
                ],
                confidence_score=0.8,
            ))

        return insights

    def track_suggestion_feedback(
        self,
        suggestion_id: str,
        action: str,
        modification: Optional[str] = None
    ) -> float:
        """Record feedback on an insight and update the acceptance rate.

        Args:
            suggestion_id: Insight id
            action: 'accepted', 'dismissed' or 'modified'

        Returns:
            The updated acceptance rate
        """
        self.learning_data["suggestion_feedback"].append({
            "suggestion_id": suggestion_id,
            "action": action,
            "user_modification": modification,
            "timestamp": datetime.now().isoformat(),
        })

        if action == "accepted":
            self.acceptance_rate += ACCEPTED_STEP
        elif action == "dismissed":
            self.acceptance_rate -= DISMISSED_STEP
        self.acceptance_rate = max(0.0, min(1.0, round(self.acceptance_rate, 4)))
        return self.acceptance_rate

    def learn_from_user_behavior(self, correction: Dict[str, Any]) -> Optional[str]:
        """Record a category correction and the motivation behind it.

        Returns:
            The inferred motivation when reasoning text was given
        """
        entry = dict(correction)
        entry["timestamp"] = datetime.now().isoformat()
        self.learning_data["user_corrections"].append(entry)

        reasoning = correction.get("reasoning")
        if not reasoning:
            return None

        motivation = infer_spending_motivation(reasoning)
        self.learning_data["spending_motivations"].append({
            "category": correction.get("corrected_category"),
            "subcategory": correction.get("corrected_subcategory"),
            "motivation": motivation,
            "context": reasoning,
            "timestamp": entry["timestamp"],
        })
        return motivation

    def load_learning_history(
        self,
        feedback: Optional[List[Dict[str, Any]]] = None,
        corrections: Optional[List[Dict[str, Any]]] = None
    ) -> float:
        """Replay stored feedback and corrections, oldest first.

        Returns:
            The acceptance rate after replay
        """
        for entry in feedback or []:
            self.track_suggestion_feedback(
                entry["suggestion_id"], entry["action"], entry.get("modification")
            )
        for entry in corrections or []:
            self.learn_from_user_behavior(entry)
        return self.acceptance_rate

    def generate_smart_goal_suggestions(self) -> List[Dict[str, Any]]:
        """Goal ideas sized from income, expenses and high-interest debt."""
        income = monthly_income(self.transactions, today=self.today)
        spent = monthly_expenses(self.transactions, today=self.today)
        suggestions = []

        if income - spent > 0:
            target = spent * EMERGENCY_FUND_MONTHS
            suggestions.append({
                "id": "smart_goal_emergency",
                "type": "savings",
                "title": "Build Emergency Fund",
                "description": f"{EMERGENCY_FUND_MONTHS} months of expenses for financial security",
                "suggested_amount": target,
                "timeframe_months": 24,
                "reasoning": (
                    f"Based on your monthly expenses of ${spent:.2f}, you should have "
                    f"${target:.2f} in emergency savings."
                ),
                "based_on_data": ["monthly expenses", "income stability"],
                "confidence": 0.9,
            })

        high_interest = [d for d in self.debts if d.interest_rate > HIGH_INTEREST_RATE]
        if high_interest:
            suggestions.append({
                "id": "smart_goal_debt",
                "type": "debt_payoff",
                "title": "Pay Off High-Interest Debt",
                "description": "Focus on credit cards and high-interest loans first",
                "suggested_amount": sum(d.balance for d in high_interest),
                "timeframe_months": 18,
                "reasoning": "Paying off high-interest debt first saves money on interest charges.",
                "based_on_data": ["debt balances", "interest rates"],
                "confidence": 0.8,
            })

        return suggestions

    def get_learning_statistics(self) -> Dict[str, Any]:
        return {
            "total_corrections": len(self.learning_data["user_corrections"]),
            "suggestion_acceptance_rate": self.acceptance_rate,
            "spending_motivations": len(self.learning_data["spending_motivations"]),
            "behavior_pattern": self.analyze_behavior_patterns(),
        }
