"""Prompt builder for the external spending-profile generator."""
from typing import Any, Dict, List

from empowerflow.intelligence.recurring_detector import first_token
from empowerflow.models import coerce_transactions


def top_categories(transactions: List[Any], n: int = 2) -> List[Dict[str, Any]]:
    totals: Dict[str, float] = {}
    for t in coerce_transactions(transactions):
        if t.category:
            totals[t.category] = totals.get(t.category, 0.0) + abs(t.amount)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)[:n]
    return [{"category": category, "total": total} for category, total in ranked]


def frequent_merchants(transactions: List[Any], n: int = 3) -> List[Dict[str, Any]]:
    counts: Dict[str, Dict[str, Any]] = {}
    for t in coerce_transactions(transactions):
        merchant = first_token(t.description)
        entry = counts.setdefault(merchant, {"count": 0, "category": t.category})
        entry["count"] += 1
    ranked = sorted(counts.items(), key=lambda item: item[1]["count"], reverse=True)[:n]
    return [
        {"merchant": merchant, "count": data["count"], "category": data["category"]}
        for merchant, data in ranked
    ]


def build_spending_profile_prompt(transactions: List[Any]) -> str:
    """Build the prompt describing a user's spending for an LLM profile writer.

    Args:
        transactions: Transaction objects or dicts, most recent first

    Returns:
        Prompt text with the top 2 categories, top 3 merchants and the
        5 most recent transactions
    """
    txns = coerce_transactions(transactions)
    categories = top_categories(txns, 2)
    merchants = frequent_merchants(txns, 3)
    food_merchant = next(
        (m["merchant"] for m in merchants if m["category"] and "food" in m["category"].lower()),
        "N/A",
    )

    category_text = ", ".join(f"{c['category']} (${c['total']:.2f})" for c in categories)
    merchant_text = ", ".join(f"{m['merchant']} ({m['count']}x)" for m in merchants)
    recent_text = "\n".join(
        f"- {t.description} (${t.amount}) [{t.category}]" for t in txns[:5]
    )

    return (
        "Analyze the following user's recent spending data and generate a personalized, "
        "purpose-driven spending profile. Include:\n"
        "- What their top spending categories say about them (e.g., crypto investor, foodie, etc.)\n"
        "- A whimsical remark about a merchant they frequent\n"
        "- Make it insightful, fun, and motivating.\n"
        "\n"
        f"Top categories: {category_text}\n"
        f"Frequent merchants: {merchant_text}\n"
        f"Example food merchant: {food_merchant}\n"
        "\n"
        "Recent transactions:\n"
        f"{recent_text}\n"
        "\n"
        "End with a motivating or whimsical remark."
    )
