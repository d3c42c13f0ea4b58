"""Tests for recurring transaction detector."""
from datetime import date


class TestRecurringDetector:
    """Test cases for RecurringDetector class."""

    def test_detect_monthly_subscription(self):
        """Should detect charges about a month apart with the same amount."""
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"id": 1, "posted_date": "2024-01-15", "amount": -15.99, "description": "NETFLIX.COM"},
            {"id": 2, "posted_date": "2024-02-14", "amount": -15.99, "description": "NETFLIX.COM"},
        ]

        recurring = RecurringDetector().detect(transactions)

        assert len(recurring) == 1
        assert recurring[0].name == "NETFLIX.COM"
        assert recurring[0].amount == 15.99
        assert recurring[0].last_date == date(2024, 2, 14)
        assert recurring[0].next_date == date(2024, 3, 14)

    def test_tolerates_small_amount_changes(self):
        """A utility bill that moves less than 15% still counts."""
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"posted_date": "2024-01-03", "amount": -100.00, "description": "CONED BILL"},
            {"posted_date": "2024-02-02", "amount": -110.00, "description": "CONED BILL"},
        ]

        recurring = RecurringDetector().detect(transactions)

        assert [r.name for r in recurring] == ["CONED"]
        assert recurring[0].amount == 110.00

    def test_rejects_large_amount_changes(self):
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"posted_date": "2024-01-03", "amount": -100.00, "description": "AMAZON MKTPLACE"},
            {"posted_date": "2024-02-02", "amount": -160.00, "description": "AMAZON MKTPLACE"},
        ]

        assert RecurringDetector().detect(transactions) == []

    def test_ignores_weekly_charges(self):
        """Gaps outside 28-32 days are not monthly."""
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"posted_date": "2024-01-07", "amount": -100.00, "description": "KEY FOOD"},
            {"posted_date": "2024-01-14", "amount": -100.00, "description": "KEY FOOD"},
            {"posted_date": "2024-01-24", "amount": -100.00, "description": "KEY FOOD"},
        ]

        assert RecurringDetector().detect(transactions) == []

    def test_single_transaction_is_never_recurring(self):
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"posted_date": "2024-01-15", "amount": -15.99, "description": "NETFLIX.COM"},
        ]

        assert RecurringDetector().detect(transactions) == []

    def test_income_is_ignored(self):
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"posted_date": "2024-01-01", "amount": 3500.00, "description": "DIRECT DEP ACME PAYROLL"},
            {"posted_date": "2024-01-31", "amount": 3500.00, "description": "DIRECT DEP ACME PAYROLL"},
        ]

        assert RecurringDetector().detect(transactions) == []

    def test_unsorted_input(self):
        """Groups are sorted by date before gaps are measured."""
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"posted_date": "2024-02-14", "amount": -9.99, "description": "SPOTIFY USA"},
            {"posted_date": "2024-01-15", "amount": -9.99, "description": "SPOTIFY USA"},
        ]

        recurring = RecurringDetector().detect(transactions)

        assert len(recurring) == 1
        assert recurring[0].last_date == date(2024, 2, 14)

    def test_one_result_per_merchant(self):
        """Only the first qualifying pair of each merchant is reported."""
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"posted_date": "2024-01-15", "amount": -15.99, "description": "NETFLIX.COM"},
            {"posted_date": "2024-02-15", "amount": -15.99, "description": "NETFLIX.COM"},
            {"posted_date": "2024-03-15", "amount": -15.99, "description": "NETFLIX.COM"},
        ]

        recurring = RecurringDetector().detect(transactions)

        assert len(recurring) == 1
        assert recurring[0].last_date == date(2024, 2, 15)

    def test_custom_merchant_key(self):
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        transactions = [
            {"posted_date": "2024-01-15", "amount": -15.99, "description": "SQ *GYM ONE"},
            {"posted_date": "2024-02-14", "amount": -15.99, "description": "SQ *GYM TWO"},
        ]

        by_full_description = RecurringDetector(merchant_key=lambda d: d)

        assert RecurringDetector().detect(transactions)[0].name == "SQ"
        assert by_full_description.detect(transactions) == []

    def test_handles_empty_input(self):
        from empowerflow.intelligence.recurring_detector import RecurringDetector

        assert RecurringDetector().detect([]) == []

    def test_monthly_total(self):
        from empowerflow.intelligence.recurring_detector import RecurringDetector, monthly_total

        transactions = [
            {"posted_date": "2024-01-15", "amount": -15.99, "description": "NETFLIX.COM"},
            {"posted_date": "2024-02-14", "amount": -15.99, "description": "NETFLIX.COM"},
            {"posted_date": "2024-01-20", "amount": -9.99, "description": "SPOTIFY USA"},
            {"posted_date": "2024-02-19", "amount": -9.99, "description": "SPOTIFY USA"},
        ]

        assert monthly_total(RecurringDetector().detect(transactions)) == 25.98
