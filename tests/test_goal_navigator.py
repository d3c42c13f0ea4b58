"""Tests for goal feasibility, recommendations and weekly challenges."""
from datetime import date, timedelta

import pytest

TODAY = date(2025, 1, 15)


def budget_history():
    """Three months of $3000 income, $300 food and $1500 bills."""
    transactions = []
    for days in (5, 35, 65):
        day = (TODAY - timedelta(days=days)).isoformat()
        transactions.extend([
            {"posted_date": day, "amount": 3000, "description": "DIRECT DEP ACME PAYROLL",
             "category": "Income"},
            {"posted_date": day, "amount": -300, "description": "KEY FOOD",
             "category": "Food & Drink"},
            {"posted_date": day, "amount": -1500, "description": "RENT PAYMENT",
             "category": "Bills & Utilities"},
        ])
    return transactions


def make_goal(target, goal_id="g1", name="Vacation", target_date=date(2025, 11, 15), saved=0):
    from empowerflow.models import Goal

    return Goal(
        goal_id=goal_id,
        name=name,
        target_amount=target,
        current_amount_saved=saved,
        target_date=target_date,
    )


class TestMonthsBetween:
    """months_between."""

    def test_whole_months(self):
        from empowerflow.intelligence.goal_navigator import months_between

        assert months_between(TODAY, date(2025, 11, 15)) == 10
        assert months_between(TODAY, date(2025, 11, 14)) == 9

    def test_past_date_is_negative(self):
        from empowerflow.intelligence.goal_navigator import months_between

        assert months_between(TODAY, date(2024, 10, 15)) == -3


class TestSpendingAnalysis:
    """GoalNavigator.analyze_spending_patterns."""

    def test_monthly_averages(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        analysis = GoalNavigator(budget_history(), today=TODAY).analyze_spending_patterns()

        assert analysis["total_income"] == pytest.approx(3000)
        assert analysis["category_spending"]["Food & Drink"] == pytest.approx(300)
        assert analysis["total_expenses"] == pytest.approx(1800)
        assert analysis["monthly_surplus"] == pytest.approx(1200)

    def test_uncategorized_bucket(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        transactions = [{"posted_date": "2025-01-10", "amount": -30, "description": "XQZ"}]

        analysis = GoalNavigator(transactions, today=TODAY).analyze_spending_patterns()

        assert analysis["category_spending"] == {"Uncategorized": pytest.approx(10)}

    def test_old_transactions_are_ignored(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        transactions = [{"posted_date": "2024-06-01", "amount": -300, "description": "KEY FOOD",
                         "category": "Food & Drink"}]

        analysis = GoalNavigator(transactions, today=TODAY).analyze_spending_patterns()

        assert analysis["total_expenses"] == 0


class TestFeasibility:
    """GoalNavigator.calculate_goal_feasibility."""

    def test_feasible_from_surplus(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        result = GoalNavigator(budget_history(), today=TODAY).calculate_goal_feasibility(make_goal(10000))

        assert result["feasible"] is True
        assert result["monthly_required"] == pytest.approx(1000)
        assert "required_reduction" not in result

    def test_feasible_with_cuts(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        result = GoalNavigator(budget_history(), today=TODAY).calculate_goal_feasibility(make_goal(13000))

        assert result["feasible"] is True
        assert result["required_reduction"] == pytest.approx(100)

    def test_infeasible(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        result = GoalNavigator(budget_history(), today=TODAY).calculate_goal_feasibility(make_goal(20000))

        assert result["feasible"] is False
        assert result["shortfall"] == pytest.approx(800)

    def test_past_target_date_uses_one_month(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        goal = make_goal(500, target_date=date(2024, 12, 1))

        result = GoalNavigator(budget_history(), today=TODAY).calculate_goal_feasibility(goal)

        assert result["monthly_required"] == pytest.approx(500)

    def test_saved_amount_reduces_requirement(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        goal = make_goal(20000, saved=10000)

        result = GoalNavigator(budget_history(), today=TODAY).calculate_goal_feasibility(goal)

        assert result["monthly_required"] == pytest.approx(1000)


class TestRecommendations:
    """Recommendations and weekly challenges."""

    def test_reduce_optional_spending(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        recommendations = GoalNavigator(budget_history(), today=TODAY).generate_recommendations(
            make_goal(13000, goal_id="g3")
        )

        assert len(recommendations) == 1
        rec = recommendations[0]
        assert rec["category"] == "Food & Drink"
        assert rec["type"] == "reduce_spending"
        assert rec["suggested_reduction"] == pytest.approx(90)
        assert rec["confidence_score"] == 0.8
        assert rec["id"] == "rec_g3_Food & Drink"
        assert rec["impact_description"] == "This could help you reach your Vacation goal 1 month faster!"

    def test_no_recommendations_without_shortfall(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        navigator = GoalNavigator(budget_history(), today=TODAY)

        assert navigator.generate_recommendations(make_goal(10000)) == []

    def test_weekly_challenge(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        navigator = GoalNavigator(budget_history(), today=TODAY)
        goal = make_goal(13000, goal_id="g3")

        challenge = navigator.generate_weekly_challenge(goal, navigator.generate_recommendations(goal))

        assert challenge["challenge_id"] == "challenge_g3_2_2025"
        assert challenge["week_of_year"] == 2
        assert challenge["spend_limit"] == pytest.approx(210 / 4.33)
        assert challenge["status"] == "ACTIVE"
        assert challenge["description"] == "Spend less than $48.50 on food & drink this week"

    def test_no_challenge_without_recommendations(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        navigator = GoalNavigator(budget_history(), today=TODAY)

        assert navigator.generate_weekly_challenge(make_goal(10000), []) is None

    def test_plan_goals(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        goals = [
            {"goal_id": "g1", "name": "Vacation", "target_amount": 13000, "target_date": "2025-11-15"},
            {"goal_id": "bad", "name": "Broken", "target_amount": 100, "target_date": "someday"},
        ]

        plans = GoalNavigator(budget_history(), goals, today=TODAY).plan_goals()

        assert len(plans) == 1
        assert plans[0]["goal"]["target_date"] == "2025-11-15"
        assert plans[0]["challenge"] is not None


class TestChallengeProgress:
    """GoalNavigator.track_challenge_progress."""

    def challenge(self):
        return {"challenge_id": "c1", "category_to_track": "Food & Drink", "spend_limit": 50.0,
                "current_spending": 0.0, "status": "ACTIVE"}

    def test_over_limit_midweek_fails(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        transactions = [{"posted_date": "2025-01-13", "amount": -60, "description": "KEY FOOD",
                         "category": "Food & Drink"}]

        updated = GoalNavigator(transactions, today=TODAY).track_challenge_progress(self.challenge())

        assert updated["current_spending"] == 60
        assert updated["status"] == "FAILED"

    def test_under_limit_midweek_stays_active(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        transactions = [{"posted_date": "2025-01-13", "amount": -20, "description": "KEY FOOD",
                         "category": "Food & Drink"}]

        updated = GoalNavigator(transactions, today=TODAY).track_challenge_progress(self.challenge())

        assert updated["status"] == "ACTIVE"

    def test_under_limit_on_saturday_completes(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        transactions = [
            {"posted_date": "2025-01-13", "amount": -20, "description": "KEY FOOD", "category": "Food & Drink"},
            {"posted_date": "2025-01-10", "amount": -90, "description": "KEY FOOD", "category": "Food & Drink"},
        ]

        updated = GoalNavigator(transactions, today=date(2025, 1, 18)).track_challenge_progress(
            self.challenge()
        )

        assert updated["current_spending"] == 20
        assert updated["status"] == "COMPLETED"


class TestGoalSuggestions:
    """GoalNavigator.generate_goal_suggestions."""

    def test_emergency_fund_from_surplus(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        suggestions = GoalNavigator(budget_history(), today=TODAY).generate_goal_suggestions()

        assert [s["id"] for s in suggestions] == ["suggestion_emergency"]
        assert suggestions[0]["suggested_amount"] == pytest.approx(5400)
        assert suggestions[0]["timeframe_months"] == 9

    def test_debt_payoff_from_transfers(self):
        from empowerflow.intelligence.goal_navigator import GoalNavigator

        transactions = [{"posted_date": "2025-01-10", "amount": -600, "description": "PAYMENT TO CHASE CARD",
                         "category": "Financial & Transfers"}]

        suggestions = GoalNavigator(transactions, today=TODAY).generate_goal_suggestions()

        assert [s["id"] for s in suggestions] == ["suggestion_debt"]
        assert suggestions[0]["suggested_amount"] == pytest.approx(2400)
