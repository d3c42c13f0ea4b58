"""Shared pytest fixtures."""
from datetime import date, timedelta
from pathlib import Path

import pytest

# Wednesday; its calendar week starts Sunday 2025-01-12
REFERENCE_DAY = date(2025, 1, 15)


@pytest.fixture
def temp_db_path(tmp_path) -> Path:
    """Path to a fresh SQLite database file."""
    return tmp_path / "test.db"


@pytest.fixture
def store(temp_db_path):
    """An open SQLiteStore on a temporary database."""
    from empowerflow.db.sqlite_store import SQLiteStore

    with SQLiteStore(temp_db_path) as s:
        yield s


@pytest.fixture
def today() -> date:
    return REFERENCE_DAY


def days_ago(n: int) -> str:
    return (REFERENCE_DAY - timedelta(days=n)).isoformat()


@pytest.fixture
def sample_transactions() -> list:
    """A small month of categorized bank activity relative to REFERENCE_DAY."""
    return [
        {"id": 1, "posted_date": days_ago(1), "amount": -15.99, "description": "NETFLIX.COM",
         "category": "Entertainment", "subcategory": "Streaming Services"},
        {"id": 2, "posted_date": days_ago(3), "amount": -85.50, "description": "KEY FOOD #123",
         "category": "Food & Drink", "subcategory": "Groceries & Supermarkets"},
        {"id": 3, "posted_date": days_ago(5), "amount": -120.00, "description": "CON ED ELECTRIC",
         "category": "Bills & Utilities", "subcategory": "Electricity & Gas"},
        {"id": 4, "posted_date": days_ago(7), "amount": 3500.00, "description": "DIRECT DEP ACME PAYROLL",
         "category": "Income", "subcategory": "Salary"},
        {"id": 5, "posted_date": days_ago(9), "amount": -6.75, "description": "SQ *BLUE BOTTLE COFFEE",
         "category": "Food & Drink", "subcategory": "Coffee & Tea"},
        {"id": 6, "posted_date": days_ago(31), "amount": -15.99, "description": "NETFLIX.COM",
         "category": "Entertainment", "subcategory": "Streaming Services"},
    ]


@pytest.fixture
def two_debts() -> list:
    return [
        {"id": 1, "name": "Credit Card", "balance": 4200, "min_payment": 105,
         "interest_rate": 18.9, "payoff_date": "2027-03-15"},
        {"id": 2, "name": "Student Loan", "balance": 12500, "min_payment": 180,
         "interest_rate": 4.5, "payoff_date": "2030-08-20"},
    ]
