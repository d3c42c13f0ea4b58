"""Predict whether an expense is essential or discretionary."""
import logging
from typing import Any, Dict, List

from empowerflow.config import SMALL_PURCHASE_LIMIT, LARGE_PURCHASE_LIMIT
from empowerflow.models import ESSENTIAL, DISCRETIONARY, Transaction, coerce_transactions

logger = logging.getLogger(__name__)

ESSENTIAL_CATEGORIES = [
    "Bills & Utilities",
    "Health & Medical",
    "Groceries",
    "Rent",
    "Mortgage",
    "Insurance",
    "Transportation",
    "Education",
    "Childcare",
    "Debt Payments",
]

DISCRETIONARY_CATEGORIES = [
    "Entertainment",
    "Shopping",
    "Dining Out",
    "Travel",
    "Personal Care",
    "Gifts & Donations",
    "Hobbies",
    "Subscriptions",
]

ESSENTIAL_KEYWORDS = [
    "rent", "mortgage", "electric", "water", "gas", "utility", "utilities",
    "insurance", "medical", "doctor", "hospital", "pharmacy", "prescription",
    "grocery", "groceries", "supermarket", "transit", "bus", "subway", "train",
    "commute", "tuition", "student loan", "daycare", "childcare", "internet",
    "phone", "cell", "mobile", "tax", "healthcare",
]

DISCRETIONARY_KEYWORDS = [
    "restaurant", "cafe", "coffee", "bar", "pub", "cinema", "movie", "theater",
    "concert", "netflix", "spotify", "subscription", "amazon", "shopping",
    "clothing", "shoes", "electronics", "game", "vacation", "hotel", "flight",
    "travel", "salon", "spa", "gift", "donation", "charity", "hobby", "gym",
    "fitness", "entertainment", "dining", "takeout", "fast food", "alcohol",
]


class TagPredictor:
    """Heuristic essential/discretionary tagger.

    Checks run in a fixed order and the first hit wins: an existing tag,
    the category name, description keywords, then the amount.
    """

    def predict_tag(self, transaction: Transaction) -> str:
        """Predict the tag for one transaction.

        Args:
            transaction: Transaction to tag

        Returns:
            'essential' or 'discretionary'
        """
        if transaction.tag:
            return transaction.tag

        if transaction.category:
            category = transaction.category.lower()
            if any(c.lower() in category for c in ESSENTIAL_CATEGORIES):
                return ESSENTIAL
            if any(c.lower() in category for c in DISCRETIONARY_CATEGORIES):
                return DISCRETIONARY

        description = (transaction.description or "").lower()
        if any(keyword in description for keyword in ESSENTIAL_KEYWORDS):
            return ESSENTIAL
        if any(keyword in description for keyword in DISCRETIONARY_KEYWORDS):
            return DISCRETIONARY

        amount = abs(transaction.amount)
        if amount < SMALL_PURCHASE_LIMIT:
            return DISCRETIONARY
        if amount > LARGE_PURCHASE_LIMIT:
            return ESSENTIAL

        return DISCRETIONARY

    def predict_tags(self, transactions: List[Any]) -> Dict[Any, str]:
        """Predict tags for the expenses in a batch, keyed by transaction id.

        Income is never tagged.
        """
        return {
            txn.id: self.predict_tag(txn)
            for txn in coerce_transactions(transactions)
            if txn.is_expense
        }

    def tag_transactions(self, transactions: List[Transaction]) -> List[Transaction]:
        """Set a predicted tag on every untagged expense, in place."""
        for txn in transactions:
            if txn.is_expense and not txn.tag:
                txn.tag = self.predict_tag(txn)
        return transactions

    def learn_from_correction(self, transaction: Transaction, tag: str):
        """Record a user correction. There is no model to update yet."""
        logger.info(f"Learning from correction: {transaction.description} is {tag}")
