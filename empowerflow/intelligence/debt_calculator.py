"""Loan, debt payoff and savings scenario calculators.

Every function here tolerates bad numeric input: it returns 0 or the
NEVER_PAYS_OFF_MONTHS sentinel instead of raising.
"""
import logging
import math
from typing import Any, Dict, List

from empowerflow.config import NEVER_PAYS_OFF_MONTHS, NEVER_PAYS_OFF_INTEREST_FACTOR
from empowerflow.models import Debt, parse_amount

logger = logging.getLogger(__name__)

STRATEGIES = ("current", "snowball", "avalanche")

# Share of a gross raise assumed to survive taxes
RAISE_NET_RATIO = 0.7


def calculate_loan_payment(principal: Any, annual_rate_pct: Any, term_years: Any) -> float:
    """Monthly payment on an amortized loan.

    Args:
        principal: Loan amount (number or numeric string)
        annual_rate_pct: Annual interest rate in percent
        term_years: Loan term in years

    Returns:
        Monthly payment, or 0 when any input is missing, zero or unparseable
    """
    amount = parse_amount(principal)
    rate = parse_amount(annual_rate_pct)
    years = parse_amount(term_years)
    if not amount or not rate or not years:
        return 0

    monthly_rate = rate / 100 / 12
    months = years * 12
    growth = math.pow(1 + monthly_rate, months)
    if growth == 1:
        return 0
    return amount * monthly_rate * growth / (growth - 1)


def calculate_raise_impact(raise_amount: Any) -> float:
    """Monthly take-home impact of a gross annual raise, 0 for bad input."""
    amount = parse_amount(raise_amount)
    if not amount:
        return 0
    return amount * RAISE_NET_RATIO / 12


def calculate_debt_payoff_months(balance: Any, payment: Any, rate: Any) -> float:
    """Months until a debt is paid off with a fixed monthly payment.

    Returns NEVER_PAYS_OFF_MONTHS when the payment does not exceed the
    monthly interest.
    """
    balance = parse_amount(balance) or 0.0
    payment = parse_amount(payment) or 0.0
    rate = parse_amount(rate) or 0.0

    if payment <= 0 or payment <= balance * rate / 100 / 12:
        return NEVER_PAYS_OFF_MONTHS
    if balance <= 0:
        return 0.0

    monthly_rate = rate / 100 / 12
    if monthly_rate == 0:
        return balance / payment
    return math.log(1 + balance * monthly_rate / payment) / math.log(1 + monthly_rate)


def calculate_total_interest(balance: Any, payment: Any, rate: Any) -> float:
    """Interest paid over the life of a debt.

    For debts that never pay off a placeholder of balance times
    NEVER_PAYS_OFF_INTEREST_FACTOR is returned.
    """
    months = calculate_debt_payoff_months(balance, payment, rate)
    balance = parse_amount(balance) or 0.0
    if months >= NEVER_PAYS_OFF_MONTHS:
        return balance * NEVER_PAYS_OFF_INTEREST_FACTOR
    return (parse_amount(payment) or 0.0) * months - balance


def coerce_debts(debts: List[Any]) -> List[Debt]:
    """Normalize Debt objects and dicts, dropping malformed records."""
    debt_list = [d if isinstance(d, Debt) else Debt.from_dict(d) for d in debts or []]
    return [d for d in debt_list if d is not None]


def order_debts(debts: List[Any], strategy: str) -> List[Debt]:
    """Order debts for a payoff strategy.

    snowball: smallest balance first. avalanche: highest rate first.
    Anything else keeps the given order. Sorts are stable.
    """
    debts = coerce_debts(debts)
    if strategy == "snowball":
        return sorted(debts, key=lambda d: d.balance)
    if strategy == "avalanche":
        return sorted(debts, key=lambda d: d.interest_rate, reverse=True)
    return list(debts)


def _debt_result(debt: Debt, payment: float, months: float) -> Dict[str, Any]:
    result = debt.to_dict()
    result.update({
        "payment": payment,
        "months": months,
        "total_interest": calculate_total_interest(debt.balance, payment, debt.interest_rate),
    })
    return result


def calculate_debt_sequence(sorted_debts: List[Any], extra: Any) -> List[Dict[str, Any]]:
    """Cascade payments through debts in the given order.

    The first debt gets its minimum plus the extra. Each paid-off debt's
    minimum rolls into the extra for the rest, and months accumulate.
    Once a debt never pays off, every later debt reports the sentinel.
    """
    sorted_debts = coerce_debts(sorted_debts)
    remaining_extra = parse_amount(extra) or 0.0
    cumulative = 0.0
    results = []

    for index, debt in enumerate(sorted_debts):
        payment = debt.min_payment + (remaining_extra if index == 0 else 0)
        months = calculate_debt_payoff_months(debt.balance, payment, debt.interest_rate)

        if cumulative >= NEVER_PAYS_OFF_MONTHS or months >= NEVER_PAYS_OFF_MONTHS:
            cumulative = NEVER_PAYS_OFF_MONTHS
        else:
            cumulative += months

        results.append(_debt_result(debt, payment, cumulative))
        remaining_extra += debt.min_payment

    return results


def calculate_totals(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Summarize a strategy's per-debt results."""
    if not results:
        return {"total_months": 0, "total_interest": 0, "total_paid": 0, "never_pays_off": False}
    return {
        "total_months": max(r["months"] for r in results),
        "total_interest": sum(r["total_interest"] for r in results),
        "total_paid": sum(r["payment"] * r["months"] for r in results),
        "never_pays_off": any(r["months"] >= NEVER_PAYS_OFF_MONTHS for r in results),
    }


def compare_strategies(debts: List[Any], extra: Any = 0) -> Dict[str, Dict[str, Any]]:
    """Compare current, snowball and avalanche payoff strategies.

    Args:
        debts: Debt objects or dicts
        extra: Extra monthly amount on top of the minimum payments

    Returns:
        Dict keyed by strategy with per-debt results and totals
    """
    debt_list = coerce_debts(debts)
    extra_amount = parse_amount(extra) or 0.0

    comparison = {}
    if debt_list:
        share = extra_amount / len(debt_list)
        current = [
            _debt_result(
                d,
                d.min_payment + share,
                calculate_debt_payoff_months(d.balance, d.min_payment + share, d.interest_rate),
            )
            for d in debt_list
        ]
    else:
        current = []
    comparison["current"] = {"debts": current, "totals": calculate_totals(current)}

    for strategy in ("snowball", "avalanche"):
        results = calculate_debt_sequence(order_debts(debt_list, strategy), extra_amount)
        comparison[strategy] = {"debts": results, "totals": calculate_totals(results)}

    logger.debug(f"Compared {len(STRATEGIES)} strategies for {len(debt_list)} debts")
    return comparison


def calculate_goal_progress(current: Any, contribution: Any, target: Any) -> int:
    """Percent of a goal reached after a contribution. May exceed 100."""
    target = parse_amount(target) or 0.0
    if target == 0:
        return 0
    saved = (parse_amount(current) or 0.0) + (parse_amount(contribution) or 0.0)
    return round(saved / target * 100)


def months_to_goal(current: Any, target: Any, monthly_contribution: Any) -> float:
    """Months to reach a goal at a fixed contribution.

    Returns 0 when already reached, NEVER_PAYS_OFF_MONTHS when the
    contribution is not positive.
    """
    remaining = (parse_amount(target) or 0.0) - (parse_amount(current) or 0.0)
    if remaining <= 0:
        return 0.0
    monthly = parse_amount(monthly_contribution) or 0.0
    if monthly <= 0:
        return NEVER_PAYS_OFF_MONTHS
    return remaining / monthly


def contribution_time_saved(
    current: Any,
    target: Any,
    monthly_contribution: Any,
    extra_contribution: Any
) -> Dict[str, Any]:
    """Time saved on a goal by adding an extra monthly contribution.

    Returns:
        Dict with months at the current rate, months with the extra,
        months saved and the saving expressed in days
    """
    base = months_to_goal(current, target, monthly_contribution)
    monthly = (parse_amount(monthly_contribution) or 0.0) + (parse_amount(extra_contribution) or 0.0)
    faster = months_to_goal(current, target, monthly)
    if base >= NEVER_PAYS_OFF_MONTHS or faster >= NEVER_PAYS_OFF_MONTHS:
        saved = 0.0
    else:
        saved = base - faster
    return {
        "months_at_current_rate": base,
        "months_with_extra": faster,
        "months_saved": saved,
        "days_saved": round(saved * 30),
    }


def distribute_savings(total: Any, goal_ids: List[Any]) -> Dict[Any, float]:
    """Split a savings amount evenly across goals."""
    if not goal_ids:
        return {}
    share = (parse_amount(total) or 0.0) / len(goal_ids)
    return {goal_id: share for goal_id in goal_ids}
