#!/usr/bin/env python3
"""MCP Server for EmpowerFlow - exposes transaction insights as tools."""
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from empowerflow.config import DEFAULT_USER_ID
from empowerflow.intelligence.debt_calculator import (
    calculate_debt_payoff_months,
    calculate_goal_progress,
    calculate_loan_payment,
    calculate_raise_impact,
    compare_strategies,
    distribute_savings,
)

# Initialize MCP server
mcp = FastMCP(
    name="empowerflow",
    instructions="""You have access to a user's categorized bank transactions.

Use these tools to help the user understand their finances:
- get_summary: Overview of income, expenses, and net
- get_transactions: Recent transactions with categories and tags
- analyze: Recurring charges and this week's spending anomalies
- get_insights: Ranked personalized insights
- categorize: Category for a transaction description
- record_feedback: Teach the categorizer a correction
- loan_payment, debt_payoff_months, compare_debt_strategies, goal_progress,
  raise_impact, split_savings: calculators

When discussing finances, be helpful and ground advice in the user's data."""
)

# Lazy-load the insight service to avoid opening the database at import
_service = None


def get_service():
    """Get or create the insight service instance."""
    global _service
    if _service is None:
        from empowerflow.api.insight_service import InsightService
        _service = InsightService()
        _service.__enter__()
    return _service


@mcp.tool()
def get_summary(user_id: str = DEFAULT_USER_ID) -> dict:
    """Get spending summary with income, expenses, net, and category breakdown."""
    return get_service().get_summary(user_id)


@mcp.tool()
def get_transactions(
    user_id: str = DEFAULT_USER_ID,
    limit: int = 50,
    category: Optional[str] = None
) -> list:
    """Get a user's most recent transactions.

    Args:
        user_id: User whose transactions to list
        limit: Max transactions to return (default 50)
        category: Filter by category name (e.g., "Food & Drink")
    """
    transactions = get_service().get_transactions(user_id)
    if category:
        transactions = [t for t in transactions if t.category == category]
    return [t.to_dict() for t in transactions[:limit]]


@mcp.tool()
def analyze(user_id: str = DEFAULT_USER_ID) -> dict:
    """Detect recurring monthly charges and this week's spending anomalies."""
    return get_service().analyze(user_id)


@mcp.tool()
def get_insights(user_id: str = DEFAULT_USER_ID, with_learning: bool = False) -> list:
    """Ranked personalized insights from the user's transactions, goals and debts."""
    return get_service().get_insights(user_id, with_learning=with_learning)


@mcp.tool()
def categorize(description: str) -> dict:
    """Categorize a bank transaction description."""
    return get_service().categorizer.categorize(description).to_dict()


@mcp.tool()
def record_feedback(
    description: str,
    category: str,
    subcategory: Optional[str] = None,
    transaction_id: Optional[int] = None
) -> dict:
    """Teach the categorizer that a description belongs to a category."""
    patterns = get_service().record_feedback(description, category, subcategory, txn_id=transaction_id)
    return {"patterns": patterns}


@mcp.tool()
def record_insight_feedback(
    insight_id: str,
    action: str,
    modification: Optional[str] = None,
    user_id: str = DEFAULT_USER_ID
) -> dict:
    """Accept, dismiss or modify an insight. Returns the updated acceptance rate."""
    rate = get_service().record_insight_feedback(user_id, insight_id, action, modification)
    return {"acceptance_rate": rate}


@mcp.tool()
def predict_tags(user_id: str = DEFAULT_USER_ID) -> dict:
    """Predict essential/discretionary tags for untagged expenses."""
    return get_service().predict_tags(user_id)


@mcp.tool()
def loan_payment(principal: float, annual_rate: float, term_years: float) -> float:
    """Monthly payment on an amortized loan."""
    return calculate_loan_payment(principal, annual_rate, term_years)


@mcp.tool()
def debt_payoff_months(balance: float, payment: float, rate: float) -> float:
    """Months to pay off a debt. 999 means the payment never covers the interest."""
    return calculate_debt_payoff_months(balance, payment, rate)


@mcp.tool()
def compare_debt_strategies(
    debts: Optional[List[Dict[str, Any]]] = None,
    extra: float = 0,
    user_id: str = DEFAULT_USER_ID
) -> dict:
    """Compare current, snowball and avalanche payoff strategies.

    Uses the given debts, or the user's stored debts when none are given.
    """
    if debts is None:
        debts = get_service().store.get_debts(user_id)
    return compare_strategies(debts, extra)


@mcp.tool()
def goal_progress(current: float, contribution: float, target: float) -> int:
    """Percent of a goal reached after a contribution."""
    return calculate_goal_progress(current, contribution, target)


@mcp.tool()
def raise_impact(raise_amount: float) -> float:
    """Monthly take-home impact of a gross annual raise."""
    return calculate_raise_impact(raise_amount)


@mcp.tool()
def split_savings(total: float, goal_ids: List[str]) -> dict:
    """Split a savings amount evenly across goals."""
    return distribute_savings(total, goal_ids)


if __name__ == "__main__":
    mcp.run()
