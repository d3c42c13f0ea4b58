"""Domain records shared by the insight pipeline."""
import math
import uuid
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Iterable

from dateutil import parser as date_parser


ESSENTIAL = "essential"
DISCRETIONARY = "discretionary"
VALID_TAGS = (ESSENTIAL, DISCRETIONARY)

INSIGHT_TYPES = (
    "spending_pattern",
    "goal_optimization",
    "saving_opportunity",
    "budget_alert",
    "behavioral_nudge",
    "positive_feedback",
    "financial_planning",
    "behavioral_insight",
)


def parse_date(value: Any) -> Optional[date]:
    """Parse a calendar date from a date, datetime or string. None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date_parser.isoparse(text).date()
    except ValueError:
        pass
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def parse_amount(value: Any) -> Optional[float]:
    """Parse a finite float. None for missing, non-numeric or NaN values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(amount) or math.isinf(amount):
        return None
    return amount


@dataclass
class Transaction:
    """A single bank transaction. Negative amounts are expenses."""
    id: Any
    amount: float
    description: str
    posted_date: date
    user_id: Optional[str] = None
    account_id: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    tag: Optional[str] = None
    balance: Optional[float] = None

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> Optional["Transaction"]:
        """Build a transaction from a loose mapping.

        Returns None when the record is missing a description, a posted
        date or a numeric amount.
        """
        description = record.get("description")
        if description is None or not str(description).strip():
            return None

        posted = parse_date(record.get("posted_date", record.get("date")))
        if posted is None:
            return None

        amount = parse_amount(record.get("amount"))
        if amount is None:
            return None

        tag = record.get("tag")
        if tag not in VALID_TAGS:
            tag = None

        return cls(
            id=record.get("id"),
            amount=amount,
            description=str(description),
            posted_date=posted,
            user_id=record.get("user_id"),
            account_id=record.get("account_id"),
            category=record.get("category") or None,
            subcategory=record.get("subcategory") or None,
            tag=tag,
            balance=parse_amount(record.get("balance")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["posted_date"] = self.posted_date.isoformat()
        return data


def coerce_transactions(records: Iterable[Any]) -> List[Transaction]:
    """Normalize a mixed list of dicts/Transactions, dropping malformed records."""
    transactions = []
    for record in records or []:
        if isinstance(record, Transaction):
            transactions.append(record)
        elif isinstance(record, dict):
            txn = Transaction.from_dict(record)
            if txn is not None:
                transactions.append(txn)
    return transactions


class PatternPolarity(str, Enum):
    """Whether a learned pattern votes for a category or suppresses it."""
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass
class LearnedPattern:
    """A (token, category) association adjusted by user feedback."""
    pattern: str
    category: str
    subcategory: str
    confidence: float
    occurrences: int = 1
    last_seen: str = field(default_factory=lambda: datetime.now().isoformat())
    polarity: PatternPolarity = PatternPolarity.POSITIVE

    @property
    def is_negative(self) -> bool:
        return self.polarity is PatternPolarity.NEGATIVE

    @property
    def key(self) -> tuple:
        return (self.polarity.value, self.pattern, self.category, self.subcategory)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["polarity"] = self.polarity.value
        return data


@dataclass
class CategoryMatch:
    """Outcome of categorizing one description."""
    category: str
    subcategory: str
    confidence: float
    source: str  # "rule", "learned" or "default"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RecurringTransaction:
    """A monthly charge inferred from transaction history."""
    name: str
    amount: float
    last_date: date
    next_date: date
    confidence: str = "high"
    period: str = "monthly"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_date"] = self.last_date.isoformat()
        data["next_date"] = self.next_date.isoformat()
        return data


@dataclass
class SpendingAnomaly:
    """A category whose spend this week exceeds its trailing weekly average."""
    category: str
    this_week: float
    weekly_average: float
    insight: str
    advice: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Goal:
    """A savings goal entered by the user."""
    goal_id: str
    name: str
    target_amount: float
    current_amount_saved: float
    target_date: date
    monthly_contribution: float = 0.0
    priority: str = "medium"
    category: str = "CUSTOM"

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> Optional["Goal"]:
        target_date = parse_date(record.get("target_date"))
        target = parse_amount(record.get("target_amount"))
        if target_date is None or target is None:
            return None
        metadata = record.get("metadata") or {}
        return cls(
            goal_id=str(record.get("goal_id", record.get("id", ""))),
            name=record.get("name") or "Goal",
            target_amount=target,
            current_amount_saved=parse_amount(record.get("current_amount_saved")) or 0.0,
            target_date=target_date,
            monthly_contribution=parse_amount(
                record.get("monthly_contribution", metadata.get("monthly_contribution"))
            ) or 0.0,
            priority=record.get("priority", metadata.get("priority", "medium")),
            category=record.get("category", metadata.get("category", "CUSTOM")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["target_date"] = self.target_date.isoformat()
        return data


@dataclass
class Debt:
    """A debt the user is paying down. Rates are annual percentages."""
    id: Any
    name: str
    balance: float
    min_payment: float
    interest_rate: float
    payoff_date: Optional[str] = None

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> Optional["Debt"]:
        balance = parse_amount(record.get("balance"))
        min_payment = parse_amount(record.get("min_payment", record.get("minPayment")))
        rate = parse_amount(record.get("interest_rate", record.get("interestRate")))
        if balance is None or min_payment is None or rate is None:
            return None
        return cls(
            id=record.get("id"),
            name=record.get("name") or "Debt",
            balance=balance,
            min_payment=min_payment,
            interest_rate=rate,
            payoff_date=record.get("payoff_date", record.get("payoffDate")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PersonalizedInsight:
    """A ranked, human-readable insight surfaced to the user."""
    id: str
    type: str
    title: str
    message: str
    actionable_advice: List[str]
    confidence_score: float
    dismissed: bool = False
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    relevant_transactions: List[Any] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        slug: str,
        type: str,
        title: str,
        message: str,
        actionable_advice: List[str],
        confidence_score: float,
        relevant_transactions: Optional[List[Any]] = None
    ) -> "PersonalizedInsight":
        """Build an insight with a fresh unique id prefixed by slug."""
        return cls(
            id=f"{slug}_{uuid.uuid4().hex[:12]}",
            type=type,
            title=title,
            message=message,
            actionable_advice=actionable_advice,
            confidence_score=confidence_score,
            relevant_transactions=relevant_transactions or [],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
