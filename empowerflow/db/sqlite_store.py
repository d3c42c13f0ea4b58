"""SQLite store for transactions, learned patterns, goals and debts."""
import logging
import sqlite3
from datetime import date
from pathlib import Path
from typing import List, Dict, Any, Optional

from empowerflow.config import INSIGHT_FEEDBACK_ACTIONS
from empowerflow.models import (
    VALID_TAGS,
    LearnedPattern,
    PatternPolarity,
    parse_amount,
    parse_date,
)

from .schema import SCHEMA_SQL

logger = logging.getLogger(__name__)


class SQLiteStore:
    """SQLite storage for transactions and the categorizer's learned patterns."""

    def __init__(self, db_path: Path):
        """Initialize the store with database path."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        # Enable WAL mode for better concurrency
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def get_tables(self) -> List[str]:
        """Get list of tables in the database."""
        cursor = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        )
        return [row[0] for row in cursor.fetchall()]

    # === Transactions ===

    def _transaction_exists(
        self,
        user_id: str,
        posted_date: str,
        amount: float,
        description: str
    ) -> bool:
        """Check if transaction already exists (for deduplication)."""
        cursor = self.conn.execute(
            """SELECT id FROM transactions
               WHERE user_id = ? AND posted_date = ? AND amount = ? AND description = ?""",
            (user_id, posted_date, amount, description)
        )
        return cursor.fetchone() is not None

    def add_transaction(
        self,
        user_id: str,
        posted_date: Any,
        amount: float,
        description: str,
        account_id: Optional[str] = None,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        tag: Optional[str] = None,
        balance: Optional[float] = None
    ) -> Optional[int]:
        """Add a transaction, returns ID or None if duplicate.

        Raises:
            ValueError: If the date or amount cannot be parsed
        """
        parsed_date = parse_date(posted_date)
        parsed_amount = parse_amount(amount)
        if parsed_date is None or parsed_amount is None:
            raise ValueError(f"Invalid transaction: date={posted_date!r} amount={amount!r}")
        if tag not in VALID_TAGS:
            tag = None

        iso_date = parsed_date.isoformat()
        if self._transaction_exists(user_id, iso_date, parsed_amount, description):
            return None

        cursor = self.conn.execute(
            """INSERT INTO transactions
               (user_id, account_id, posted_date, amount, description,
                category, subcategory, tag, balance)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, account_id, iso_date, parsed_amount, description,
             category, subcategory, tag, parse_amount(balance))
        )
        self.conn.commit()
        return cursor.lastrowid

    def add_transactions(
        self,
        transactions: List[Dict[str, Any]],
        user_id: str
    ) -> List[int]:
        """Add multiple transactions, returns list of IDs (skips duplicates and malformed rows)."""
        ids = []
        for txn in transactions:
            try:
                txn_id = self.add_transaction(
                    user_id=user_id,
                    posted_date=txn.get("posted_date", txn.get("date")),
                    amount=txn.get("amount"),
                    description=txn.get("description", ""),
                    account_id=txn.get("account_id"),
                    category=txn.get("category"),
                    subcategory=txn.get("subcategory"),
                    tag=txn.get("tag"),
                    balance=txn.get("balance"),
                )
            except ValueError as e:
                logger.warning(f"Skipping transaction: {e}")
                continue
            if txn_id is not None:
                ids.append(txn_id)
        return ids

    def get_transaction(self, txn_id: int) -> Optional[Dict[str, Any]]:
        """Get a transaction by ID."""
        cursor = self.conn.execute(
            "SELECT * FROM transactions WHERE id = ?", (txn_id,)
        )
        row = cursor.fetchone()
        return dict(row) if row else None

    def list_transactions(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List a user's transactions, most recent first."""
        query = "SELECT * FROM transactions WHERE user_id = ?"
        params: List[Any] = [user_id]

        if start_date:
            query += " AND posted_date >= ?"
            params.append(start_date.isoformat())
        if end_date:
            query += " AND posted_date <= ?"
            params.append(end_date.isoformat())
        if category:
            query += " AND category = ?"
            params.append(category)

        query += " ORDER BY posted_date DESC, id DESC"
        cursor = self.conn.execute(query, params)
        return [dict(row) for row in cursor.fetchall()]

    def get_uncategorized_transactions(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's transactions without a category."""
        cursor = self.conn.execute(
            """SELECT * FROM transactions
               WHERE user_id = ? AND (category IS NULL OR category = '')
               ORDER BY posted_date""",
            (user_id,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def update_transaction(self, txn_id: int, **kwargs) -> bool:
        """Update a transaction's category, subcategory or tag."""
        allowed = {"category", "subcategory", "tag"}
        updates = {k: v for k, v in kwargs.items() if k in allowed}
        if "tag" in updates and updates["tag"] not in VALID_TAGS:
            raise ValueError(f"Invalid tag: {updates['tag']!r}")
        if not updates:
            return False

        set_clause = ", ".join(f"{k} = ?" for k in updates.keys())
        params = list(updates.values()) + [txn_id]
        cursor = self.conn.execute(f"UPDATE transactions SET {set_clause} WHERE id = ?", params)
        self.conn.commit()
        return cursor.rowcount > 0

    def update_transaction_tag(self, txn_id: int, user_id: str, tag: str) -> bool:
        """Set a transaction's tag, scoped to its owner.

        Returns:
            True if a row owned by user_id was updated

        Raises:
            ValueError: If tag is not 'essential' or 'discretionary'
        """
        if tag not in VALID_TAGS:
            raise ValueError(f"Invalid tag: {tag!r}")
        cursor = self.conn.execute(
            "UPDATE transactions SET tag = ? WHERE id = ? AND user_id = ?",
            (tag, txn_id, user_id)
        )
        self.conn.commit()
        return cursor.rowcount > 0

    # === Learned patterns ===

    def _row_to_pattern(self, row: sqlite3.Row) -> LearnedPattern:
        return LearnedPattern(
            pattern=row["pattern"],
            category=row["category"],
            subcategory=row["subcategory"],
            confidence=row["confidence"],
            occurrences=row["occurrences"],
            last_seen=row["last_seen"],
            polarity=PatternPolarity(row["polarity"]),
        )

    def get_learned_patterns(self, min_confidence: float = 0.0) -> List[LearnedPattern]:
        """Positive patterns at or above min_confidence plus every negative pattern."""
        cursor = self.conn.execute(
            """SELECT * FROM learned_patterns
               WHERE polarity = ? OR confidence >= ?
               ORDER BY confidence DESC, pattern""",
            (PatternPolarity.NEGATIVE.value, min_confidence)
        )
        return [self._row_to_pattern(row) for row in cursor.fetchall()]

    def upsert_learned_pattern(self, pattern: LearnedPattern) -> None:
        """Insert a pattern or overwrite the stored one with the same key."""
        self.conn.execute(
            """INSERT INTO learned_patterns
               (pattern, category, subcategory, polarity, confidence, occurrences, last_seen)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT (pattern, category, subcategory, polarity) DO UPDATE SET
                   confidence = excluded.confidence,
                   occurrences = excluded.occurrences,
                   last_seen = excluded.last_seen""",
            (pattern.pattern, pattern.category, pattern.subcategory, pattern.polarity.value,
             pattern.confidence, pattern.occurrences, pattern.last_seen)
        )
        self.conn.commit()

    def delete_learned_pattern(self, pattern: LearnedPattern) -> bool:
        """Delete a stored pattern by key."""
        cursor = self.conn.execute(
            """DELETE FROM learned_patterns
               WHERE pattern = ? AND category = ? AND subcategory = ? AND polarity = ?""",
            (pattern.pattern, pattern.category, pattern.subcategory, pattern.polarity.value)
        )
        self.conn.commit()
        return cursor.rowcount > 0

    # === Goals ===

    def add_goal(
        self,
        user_id: str,
        name: str,
        target_amount: float,
        target_date: Any,
        current_amount_saved: float = 0,
        monthly_contribution: float = 0,
        priority: str = "medium",
        category: str = "CUSTOM"
    ) -> int:
        """Add a savings goal. Returns the new goal ID."""
        parsed_date = parse_date(target_date)
        if parsed_date is None:
            raise ValueError(f"Invalid target date: {target_date!r}")
        cursor = self.conn.execute(
            """INSERT INTO goals
               (user_id, name, target_amount, current_amount_saved, target_date,
                monthly_contribution, priority, category)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, name, target_amount, current_amount_saved, parsed_date.isoformat(),
             monthly_contribution, priority, category)
        )
        self.conn.commit()
        return cursor.lastrowid

    def get_goals(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's goals, nearest target date first."""
        cursor = self.conn.execute(
            "SELECT * FROM goals WHERE user_id = ? ORDER BY target_date", (user_id,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def delete_goal(self, goal_id: int) -> bool:
        cursor = self.conn.execute("DELETE FROM goals WHERE id = ?", (goal_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    # === Debts ===

    def add_debt(
        self,
        user_id: str,
        name: str,
        balance: float,
        min_payment: float,
        interest_rate: float,
        payoff_date: Optional[str] = None
    ) -> int:
        """Add a debt. Returns the new debt ID."""
        cursor = self.conn.execute(
            """INSERT INTO debts (user_id, name, balance, min_payment, interest_rate, payoff_date)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (user_id, name, balance, min_payment, interest_rate, payoff_date)
        )
        self.conn.commit()
        return cursor.lastrowid

    def get_debts(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's debts in the order they were added."""
        cursor = self.conn.execute(
            "SELECT * FROM debts WHERE user_id = ? ORDER BY id", (user_id,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def delete_debt(self, debt_id: int) -> bool:
        cursor = self.conn.execute("DELETE FROM debts WHERE id = ?", (debt_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    # === Insight feedback ===

    def add_insight_feedback(
        self,
        user_id: str,
        suggestion_id: str,
        action: str,
        modification: Optional[str] = None
    ) -> int:
        """Record a user's reaction to an insight. Returns the new row ID.

        Raises:
            ValueError: If action is not accepted, dismissed or modified
        """
        if action not in INSIGHT_FEEDBACK_ACTIONS:
            raise ValueError(f"Invalid feedback action: {action!r}")
        cursor = self.conn.execute(
            """INSERT INTO insight_feedback (user_id, suggestion_id, action, modification)
               VALUES (?, ?, ?, ?)""",
            (user_id, suggestion_id, action, modification)
        )
        self.conn.commit()
        return cursor.lastrowid

    def get_insight_feedback(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's insight feedback, oldest first."""
        cursor = self.conn.execute(
            "SELECT * FROM insight_feedback WHERE user_id = ? ORDER BY id", (user_id,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def add_spending_correction(
        self,
        user_id: str,
        corrected_category: str,
        reasoning: Optional[str] = None,
        transaction_id: Optional[int] = None,
        corrected_subcategory: Optional[str] = None
    ) -> int:
        """Record a category correction and the reason behind the purchase."""
        cursor = self.conn.execute(
            """INSERT INTO spending_corrections
               (user_id, transaction_id, corrected_category, corrected_subcategory, reasoning)
               VALUES (?, ?, ?, ?, ?)""",
            (user_id, transaction_id, corrected_category, corrected_subcategory, reasoning)
        )
        self.conn.commit()
        return cursor.lastrowid

    def get_spending_corrections(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.conn.execute(
            "SELECT * FROM spending_corrections WHERE user_id = ? ORDER BY id", (user_id,)
        )
        return [dict(row) for row in cursor.fetchall()]

    # === Maintenance ===

    def reset_all_data(self) -> Dict[str, int]:
        """Reset all data: completely clear all tables.

        Returns counts of deleted items.
        """
        counts = {}
        for table in (
            "transactions", "learned_patterns", "goals", "debts",
            "insight_feedback", "spending_corrections",
        ):
            counts[table] = self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            self.conn.execute(f"DELETE FROM {table}")
        self.conn.commit()
        logger.info(f"Reset database: {counts}")
        return counts
