"""Tests for spending aggregation and category-level insights."""
from datetime import date, timedelta


TODAY = date(2025, 1, 15)


def txn(days_before, amount, category=None, subcategory=None, tag=None, description="PURCHASE"):
    return {
        "posted_date": (TODAY - timedelta(days=days_before)).isoformat(),
        "amount": amount,
        "description": description,
        "category": category,
        "subcategory": subcategory,
        "tag": tag,
    }


class TestAggregation:
    """Module-level spending helpers."""

    def test_day_of_week_starts_sunday(self):
        from empowerflow.intelligence.spending_analyzer import day_of_week

        assert day_of_week(date(2025, 1, 12)) == 0
        assert day_of_week(date(2025, 1, 18)) == 6

    def test_spending_by_category(self, sample_transactions):
        from empowerflow.intelligence.spending_analyzer import spending_by_category

        totals = spending_by_category(sample_transactions)

        assert totals["Entertainment"] == 31.98
        assert totals["Food & Drink"] == 92.25
        assert "Income" not in totals

    def test_spending_by_category_window(self, sample_transactions):
        from empowerflow.intelligence.spending_analyzer import spending_by_category

        totals = spending_by_category(sample_transactions, start=TODAY - timedelta(days=30))

        assert totals["Entertainment"] == 15.99

    def test_monthly_spending_is_chronological(self):
        from empowerflow.intelligence.spending_analyzer import monthly_spending_by_category

        transactions = [
            {"posted_date": "2024-12-05", "amount": -200, "description": "AMAZON", "category": "Shopping"},
            {"posted_date": "2024-10-05", "amount": -50, "description": "AMAZON", "category": "Shopping"},
            {"posted_date": "2024-11-05", "amount": -100, "description": "AMAZON", "category": "Shopping"},
        ]

        assert monthly_spending_by_category(transactions) == {"Shopping": [50, 100, 200]}

    def test_weekend_vs_weekday(self):
        from empowerflow.intelligence.spending_analyzer import weekend_vs_weekday

        transactions = [
            {"posted_date": "2025-01-11", "amount": -40, "description": "BAR"},   # Saturday
            {"posted_date": "2025-01-12", "amount": -60, "description": "BAR"},   # Sunday
            {"posted_date": "2025-01-13", "amount": -25, "description": "DELI"},  # Monday
        ]

        assert weekend_vs_weekday(transactions) == {"weekend": 100, "weekday": 25}

    def test_monthly_income_and_expenses(self, sample_transactions):
        from empowerflow.intelligence.spending_analyzer import monthly_expenses, monthly_income

        assert monthly_income(sample_transactions, today=TODAY) == 3500 / 3
        assert round(monthly_expenses(sample_transactions, today=TODAY), 2) == round(244.23 / 3, 2)


class TestEssentialVsDiscretionary:
    """SpendingAnalyzer.analyze_essential_vs_discretionary."""

    def test_high_discretionary_alert(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [
            txn(2, -600, tag="essential"),
            txn(3, -600, tag="discretionary"),
        ]

        insights = SpendingAnalyzer(transactions, today=TODAY).analyze_essential_vs_discretionary()
        titles = [i.title for i in insights]

        assert "High Discretionary Spending Alert" in titles
        assert "Emergency Fund Recommendation" in titles
        alert = insights[titles.index("High Discretionary Spending Alert")]
        assert "50.0%" in alert.message
        assert alert.type == "spending_pattern"

    def test_balanced_spending_praised(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [
            txn(2, -800, tag="essential"),
            txn(3, -200, tag="discretionary"),
        ]

        insights = SpendingAnalyzer(transactions, today=TODAY).analyze_essential_vs_discretionary()
        types = [i.type for i in insights]

        assert "positive_feedback" in types
        assert "spending_pattern" not in types
        fund = next(i for i in insights if i.type == "financial_planning")
        assert "$4800.00" in fund.message

    def test_untagged_spending_yields_nothing(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [txn(2, -600), txn(3, -600)]

        assert SpendingAnalyzer(transactions, today=TODAY).analyze_essential_vs_discretionary() == []

    def test_old_spending_outside_window(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [txn(45, -600, tag="discretionary")]

        assert SpendingAnalyzer(transactions, today=TODAY).analyze_essential_vs_discretionary() == []


class TestSubcategoryPatterns:
    """SpendingAnalyzer.analyze_subcategory_patterns."""

    def test_coffee_habit(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [txn(d, -7, "Food & Drink", "Coffee & Tea") for d in range(1, 11)]

        insights = SpendingAnalyzer(transactions, today=TODAY).analyze_subcategory_patterns()

        assert [i.type for i in insights] == ["saving_opportunity"]
        assert "$35.00/month" in insights[0].message

    def test_top_subcategory_over_threshold(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [txn(d, -150, "Shopping", "Online Shopping") for d in (5, 20, 35)]

        insights = SpendingAnalyzer(transactions, today=TODAY).analyze_subcategory_patterns()

        assert len(insights) == 1
        assert insights[0].title == "Shopping > Online Shopping Spending Analysis"
        assert insights[0].actionable_advice[2] == "This is your top spending subcategory"

    def test_missing_category_uses_default(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [txn(d, -150, None, "Online Shopping") for d in (5, 20, 35)]
        analyzer = SpendingAnalyzer(transactions, today=TODAY)

        assert list(analyzer.subcategory_spending()) == ["General > Online Shopping"]
        insights = analyzer.analyze_subcategory_patterns()
        assert insights[0].title == "General > Online Shopping Spending Analysis"
        assert "none" not in insights[0].message.lower()

    def test_many_streaming_charges(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [
            txn(d, -12, "Entertainment", "Streaming Services") for d in (2, 9, 16, 23)
        ]

        insights = SpendingAnalyzer(transactions, today=TODAY).analyze_subcategory_patterns()

        assert any(i.title.startswith("Multiple Streaming Subscriptions") for i in insights)

    def test_fast_food_compared_to_groceries(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [
            txn(3, -80, "Food & Drink", "Fast Food"),
            txn(4, -100, "Food & Drink", "Groceries & Supermarkets"),
        ]

        insights = SpendingAnalyzer(transactions, today=TODAY).analyze_subcategory_patterns()

        assert len(insights) == 1
        assert "80% of your grocery" in insights[0].message


class TestSpendingTrends:
    """SpendingAnalyzer.analyze_spending_trends."""

    def test_discretionary_increase(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [
            {"posted_date": f"2024-{month:02d}-10", "amount": -amount, "description": "AMAZON",
             "category": "Shopping"}
            for month, amount in ((9, 100), (10, 100), (11, 200), (12, 200))
        ]

        insights = SpendingAnalyzer(transactions, today=TODAY).analyze_spending_trends()

        assert len(insights) == 1
        assert insights[0].title == "Shopping Spending Trending Up"
        assert "increased by 100%" in insights[0].message
        assert insights[0].confidence_score == 0.8

    def test_essential_increase_is_monitored(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [
            {"posted_date": f"2024-{month:02d}-10", "amount": -amount, "description": "CON ED",
             "category": "Bills & Utilities"}
            for month, amount in ((10, 100), (11, 200), (12, 200))
        ]

        insights = SpendingAnalyzer(transactions, today=TODAY).analyze_spending_trends()

        assert insights[0].actionable_advice[0].startswith("Monitor")
        assert "essential spending" in insights[0].message

    def test_needs_three_months(self):
        from empowerflow.intelligence.spending_analyzer import SpendingAnalyzer

        transactions = [
            {"posted_date": "2024-11-10", "amount": -100, "description": "AMAZON", "category": "Shopping"},
            {"posted_date": "2024-12-10", "amount": -900, "description": "AMAZON", "category": "Shopping"},
        ]

        assert SpendingAnalyzer(transactions, today=TODAY).analyze_spending_trends() == []
