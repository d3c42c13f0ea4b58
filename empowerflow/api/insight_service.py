"""Insight service - main orchestration layer."""
from datetime import date
from pathlib import Path
from typing import List, Dict, Any, Optional
import logging

from empowerflow.config import (
    DB_PATH,
    DEFAULT_USER_ID,
    PATTERN_LOAD_MIN_CONFIDENCE,
    ensure_data_dir
)
from empowerflow.db.sqlite_store import SQLiteStore
from empowerflow.ingestion.csv_parser import CSVParser
from empowerflow.intelligence.anomaly_detector import AnomalyDetector
from empowerflow.intelligence.categorizer import Categorizer
from empowerflow.intelligence.insight_generator import PersonalizedInsightGenerator
from empowerflow.intelligence.profile_prompt import build_spending_profile_prompt
from empowerflow.intelligence.recurring_detector import RecurringDetector, monthly_total
from empowerflow.intelligence.tag_predictor import TagPredictor
from empowerflow.models import Transaction, coerce_transactions


logger = logging.getLogger(__name__)


class InsightService:
    """Main service for the insight pipeline.

    Orchestrates importing, enriching and analyzing a user's transactions.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the insight service.

        Args:
            db_path: Path to SQLite database (default: ~/.empowerflow/empowerflow.db)
        """
        if db_path is None:
            ensure_data_dir()
        self.db_path = db_path or DB_PATH

        self.store = SQLiteStore(self.db_path)
        self.categorizer = Categorizer(self.store)
        self.tag_predictor = TagPredictor()
        self.recurring_detector = RecurringDetector()
        self.anomaly_detector = AnomalyDetector()
        self.parser = CSVParser()

    def close(self):
        """Close all connections."""
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def import_file(
        self,
        file_path: Path,
        user_id: str = DEFAULT_USER_ID,
        account_id: Optional[str] = None,
        auto_enrich: bool = True
    ) -> Dict[str, Any]:
        """Import transactions from a CSV/Excel bank export.

        Args:
            file_path: Path to the file
            user_id: Owner of the imported transactions
            account_id: Optional account the export belongs to
            auto_enrich: Whether to categorize and tag the new transactions

        Returns:
            Dict with import statistics
        """
        logger.info(f"Importing file: {file_path}")

        transactions = self.parser.parse(file_path)
        if account_id:
            for txn in transactions:
                txn["account_id"] = account_id
        total = len(transactions)

        added_ids = self.store.add_transactions(transactions, user_id=user_id)
        added_count = len(added_ids)
        duplicate_count = total - added_count
        logger.info(f"Added {added_count} transactions, {duplicate_count} duplicates skipped")

        enriched = {"categorized": 0, "tagged": 0}
        if auto_enrich and added_ids:
            enriched = self.enrich_transactions(user_id)

        return {
            "total_parsed": total,
            "added": added_count,
            "duplicates": duplicate_count,
            "categorized": enriched["categorized"],
            "tagged": enriched["tagged"],
        }

    def enrich_transactions(self, user_id: str = DEFAULT_USER_ID) -> Dict[str, int]:
        """Categorize uncategorized transactions and tag untagged expenses.

        Returns:
            Counts of categorized and tagged transactions
        """
        categorized = 0
        tagged = 0

        for txn in self.get_transactions(user_id):
            updates = {}
            if not txn.category:
                match = self.categorizer.categorize(txn.description)
                updates["category"] = match.category
                updates["subcategory"] = match.subcategory
                categorized += 1
            if txn.is_expense and not txn.tag:
                updates["tag"] = self.tag_predictor.predict_tag(txn)
                tagged += 1
            if updates:
                self.store.update_transaction(txn.id, **updates)

        logger.info(f"Enriched transactions for {user_id}: {categorized} categorized, {tagged} tagged")
        return {"categorized": categorized, "tagged": tagged}

    def get_transactions(
        self,
        user_id: str = DEFAULT_USER_ID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Transaction]:
        """Fetch a user's transactions, most recent first. Empty on store failure."""
        try:
            rows = self.store.list_transactions(user_id, start_date=start_date, end_date=end_date)
        except Exception as e:
            logger.warning(f"Failed to fetch transactions for {user_id}: {e}")
            return []
        return coerce_transactions(rows)

    def get_transaction(self, txn_id: int) -> Optional[Dict[str, Any]]:
        """Get a specific transaction."""
        return self.store.get_transaction(txn_id)

    def analyze(self, user_id: str = DEFAULT_USER_ID, today: Optional[date] = None) -> Dict[str, Any]:
        """Detect recurring charges and this week's spending anomalies.

        Returns:
            Dict with recurring charges, their monthly total and anomalies
        """
        logger.info(f"Running transaction analysis for {user_id}")
        transactions = self.get_transactions(user_id)

        recurring = self.recurring_detector.detect(transactions)
        logger.info(f"Found {len(recurring)} recurring charges")

        anomalies = self.anomaly_detector.analyze_transactions(transactions, today=today)
        logger.info(f"Found {len(anomalies)} anomalies")

        return {
            "recurring": [r.to_dict() for r in recurring],
            "monthly_recurring_total": monthly_total(recurring),
            "anomalies": [a.to_dict() for a in anomalies],
        }

    def _generator(self, user_id: str, today: Optional[date] = None) -> PersonalizedInsightGenerator:
        generator = PersonalizedInsightGenerator(
            self.get_transactions(user_id),
            goals=self.store.get_goals(user_id),
            debts=self.store.get_debts(user_id),
            today=today,
            tag_predictor=self.tag_predictor,
        )
        generator.load_learning_history(
            self.store.get_insight_feedback(user_id),
            self.store.get_spending_corrections(user_id),
        )
        return generator

    def get_insights(
        self,
        user_id: str = DEFAULT_USER_ID,
        today: Optional[date] = None,
        with_learning: bool = False
    ) -> List[Dict[str, Any]]:
        """Ranked personalized insights built from stored transactions, goals and debts."""
        generator = self._generator(user_id, today)
        if with_learning:
            insights = generator.generate_personalized_insights_with_learning()
        else:
            insights = generator.generate_personalized_insights()
        return [i.to_dict() for i in insights]

    def get_goal_suggestions(
        self,
        user_id: str = DEFAULT_USER_ID,
        today: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        return self._generator(user_id, today).generate_smart_goal_suggestions()

    def record_feedback(
        self,
        description: str,
        category: str,
        subcategory: Optional[str] = None,
        txn_id: Optional[int] = None,
        user_id: str = DEFAULT_USER_ID,
        reasoning: Optional[str] = None
    ) -> List[str]:
        """Learn from a manual categorization and apply it to the transaction.

        When the user explains the purchase, the correction is kept for the
        insight generator's motivation insights.

        Returns:
            The patterns that were reinforced
        """
        patterns = self.categorizer.learn_from_user_feedback(description, category, subcategory)
        if txn_id is not None:
            self.store.update_transaction(txn_id, category=category, subcategory=subcategory)
        if reasoning:
            self.store.add_spending_correction(
                user_id, category, reasoning,
                transaction_id=txn_id, corrected_subcategory=subcategory
            )
        return patterns

    def record_insight_feedback(
        self,
        user_id: str,
        insight_id: str,
        action: str,
        modification: Optional[str] = None
    ) -> float:
        """Store a reaction to an insight.

        Returns:
            The user's acceptance rate including this feedback

        Raises:
            ValueError: If action is not accepted, dismissed or modified
        """
        self.store.add_insight_feedback(user_id, insight_id, action, modification)
        rate = PersonalizedInsightGenerator([]).load_learning_history(
            self.store.get_insight_feedback(user_id)
        )
        logger.info(f"Insight {insight_id} {action} by {user_id}, acceptance rate {rate:.2f}")
        return rate

    def get_learning_statistics(
        self,
        user_id: str = DEFAULT_USER_ID,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        return self._generator(user_id, today).get_learning_statistics()

    def record_negative_feedback(
        self,
        selected_description: str,
        deselected_description: str,
        category: str,
        subcategory: Optional[str] = None
    ) -> Dict[str, int]:
        """Learn from a deselected look-alike transaction."""
        return self.categorizer.learn_from_negative_feedback(
            selected_description, deselected_description, category, subcategory
        )

    def update_tag(self, txn_id: int, user_id: str, tag: str) -> Optional[Dict[str, Any]]:
        """Set a transaction's tag.

        Returns:
            The updated transaction, or None if the user owns no such transaction

        Raises:
            ValueError: If tag is not 'essential' or 'discretionary'
        """
        if not self.store.update_transaction_tag(txn_id, user_id, tag):
            return None
        txn = self.store.get_transaction(txn_id)
        record = coerce_transactions([txn])
        if record:
            self.tag_predictor.learn_from_correction(record[0], tag)
        return txn

    def predict_tags(self, user_id: str = DEFAULT_USER_ID) -> Dict[Any, str]:
        """Predict tags for a user's untagged expenses, keyed by transaction id."""
        untagged = [t for t in self.get_transactions(user_id) if not t.tag]
        predictions = self.tag_predictor.predict_tags(untagged)
        logger.info(f"Predicted tags for {len(predictions)} transactions")
        return predictions

    def get_summary(self, user_id: str = DEFAULT_USER_ID) -> Dict[str, Any]:
        """Get summary of a user's transactions.

        Returns:
            Dict with totals, category breakdown and recurring charges
        """
        transactions = self.get_transactions(user_id)

        total_income = sum(t.amount for t in transactions if t.is_income)
        total_expenses = sum(abs(t.amount) for t in transactions if t.is_expense)

        category_totals: Dict[str, Dict[str, Any]] = {}
        for t in transactions:
            if not t.is_expense or not t.category:
                continue
            entry = category_totals.setdefault(t.category, {"count": 0, "total": 0.0})
            entry["count"] += 1
            entry["total"] += abs(t.amount)
        for entry in category_totals.values():
            entry["average"] = entry["total"] / entry["count"]

        recurring = self.recurring_detector.detect(transactions)

        return {
            "total_transactions": len(transactions),
            "total_income": total_income,
            "total_expenses": total_expenses,
            "net": total_income - total_expenses,
            "category_breakdown": category_totals,
            "recurring_transactions": len(recurring),
            "estimated_monthly_recurring": monthly_total(recurring),
            "uncategorized": len([t for t in transactions if not t.category]),
            "untagged_expenses": len([t for t in transactions if t.is_expense and not t.tag]),
            "learned_patterns": len(self.store.get_learned_patterns(PATTERN_LOAD_MIN_CONFIDENCE)),
        }

    def get_profile_prompt(self, user_id: str = DEFAULT_USER_ID) -> str:
        """Build the spending-profile prompt from a user's transactions."""
        return build_spending_profile_prompt(self.get_transactions(user_id))
