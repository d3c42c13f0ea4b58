"""Rule-based categorizer with a learned-pattern layer fed by user feedback."""
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Protocol

from empowerflow.config import (
    DEFAULT_CATEGORY,
    DEFAULT_SUBCATEGORY,
    RULE_MATCH_CONFIDENCE,
    LEARNED_MATCH_MIN_CONFIDENCE,
    PATTERN_LOAD_MIN_CONFIDENCE,
    PATTERN_INITIAL_CONFIDENCE,
    PATTERN_REINFORCE_STEP,
    PATTERN_WEAKEN_STEP,
    PATTERN_CONFIDENCE_FLOOR,
    PATTERN_DROP_BELOW,
    NEGATIVE_PATTERN_CONFIDENCE,
    PATTERN_STALE_DAYS,
)
from empowerflow.intelligence.category_rules import (
    CATEGORY_RULES,
    SUBCATEGORY_RULES,
    BUSINESS_INDICATORS,
    MERCHANT_SUFFIXES,
    P2P_COUNTERPARTY_MARKERS,
    P2P_SERVICES,
    BUSINESS_PHRASES,
    brand_tokens,
)
from empowerflow.models import (
    CategoryMatch,
    LearnedPattern,
    PatternPolarity,
    Transaction,
    coerce_transactions,
)

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^A-Z0-9\s]")


def _strip_counterparty(words: List[str]) -> List[str]:
    """Drop the words after TO/FROM in a P2P transfer description."""
    if not P2P_SERVICES.intersection(words):
        return words
    for i, word in enumerate(words):
        if word in P2P_COUNTERPARTY_MARKERS:
            return words[:i]
    return words


class PatternRepository(Protocol):
    """Storage for learned patterns (SQLiteStore implements this)."""

    def get_learned_patterns(self, min_confidence: float = 0.0) -> List[LearnedPattern]:
        ...

    def upsert_learned_pattern(self, pattern: LearnedPattern) -> None:
        ...

    def delete_learned_pattern(self, pattern: LearnedPattern) -> None:
        ...


class Categorizer:
    """Assign category and subcategory to transaction descriptions."""

    def __init__(self, pattern_store: Optional[PatternRepository] = None):
        """Initialize the categorizer.

        Args:
            pattern_store: Optional repository for learned patterns. When
                given, confident positive patterns and all negative patterns
                are loaded once here and every change is written through.
        """
        self.pattern_store = pattern_store
        self._patterns: Dict[tuple, LearnedPattern] = {}
        self._brand_tokens = brand_tokens()
        self._load_patterns()

    def _load_patterns(self):
        if self.pattern_store is None:
            return
        try:
            loaded = self.pattern_store.get_learned_patterns(
                min_confidence=PATTERN_LOAD_MIN_CONFIDENCE
            )
        except Exception as e:
            logger.warning(f"Could not load learned patterns, starting fresh: {e}")
            return

        for pattern in loaded:
            self._patterns[pattern.key] = pattern
        logger.info(f"Loaded {len(self._patterns)} learned patterns")

    # ------------------------------------------------------------------
    # Categorization
    # ------------------------------------------------------------------

    def categorize(self, description: Optional[str]) -> CategoryMatch:
        """Categorize a single description.

        Static rules win first (in table order), then the best learned
        pattern, then the General/Other default.

        Args:
            description: Raw bank description

        Returns:
            CategoryMatch with category, subcategory, confidence and source
        """
        if not description or not description.strip():
            return self._default_match()

        upper = description.upper()

        rule_match = self._match_rules(upper)
        if rule_match is not None:
            return rule_match

        learned_match = self._match_learned(upper)
        if learned_match is not None:
            return learned_match

        return self._default_match()

    def _default_match(self) -> CategoryMatch:
        return CategoryMatch(DEFAULT_CATEGORY, DEFAULT_SUBCATEGORY, 0.0, "default")

    def _match_rules(self, upper: str) -> Optional[CategoryMatch]:
        for category, keywords in CATEGORY_RULES:
            if not any(keyword in upper for keyword in keywords):
                continue
            if self._is_suppressed(upper, category):
                logger.debug(f"Rule match for {category} suppressed by negative pattern")
                continue
            return CategoryMatch(
                category=category,
                subcategory=self._match_subcategory(upper, category),
                confidence=RULE_MATCH_CONFIDENCE,
                source="rule",
            )
        return None

    def _match_subcategory(self, upper: str, category: str) -> str:
        for subcategory, keywords in SUBCATEGORY_RULES.get(category, []):
            if any(keyword in upper for keyword in keywords):
                return subcategory
        return DEFAULT_SUBCATEGORY

    def _match_learned(self, upper: str) -> Optional[CategoryMatch]:
        best = None
        for pattern in self._patterns.values():
            if pattern.is_negative or pattern.confidence < LEARNED_MATCH_MIN_CONFIDENCE:
                continue
            if pattern.pattern not in upper:
                continue
            if best is not None and pattern.confidence <= best.confidence:
                continue
            if self._is_suppressed(upper, pattern.category):
                continue
            best = pattern

        if best is None:
            return None
        return CategoryMatch(best.category, best.subcategory, best.confidence, "learned")

    def _is_suppressed(self, upper: str, category: str) -> bool:
        """True when a negative pattern for category occurs in the description."""
        return any(
            p.is_negative and p.category == category and p.pattern in upper
            for p in self._patterns.values()
        )

    def categorize_transactions(self, transactions: List[Any]) -> Dict[str, Any]:
        """Categorize a batch of transactions in place.

        Args:
            transactions: Transaction objects or dicts

        Returns:
            Dict with the categorized transactions and batch statistics
        """
        txns = coerce_transactions(transactions)
        stats = {
            "total": len(txns),
            "categorized": {},
            "subcategorized": {},
            "uncategorized": 0,
        }

        for txn in txns:
            match = self.categorize(txn.description)
            txn.category = match.category
            txn.subcategory = match.subcategory

            if match.source == "default":
                stats["uncategorized"] += 1
                continue
            stats["categorized"][match.category] = stats["categorized"].get(match.category, 0) + 1
            key = f"{match.category} > {match.subcategory}"
            stats["subcategorized"][key] = stats["subcategorized"].get(key, 0) + 1

        logger.info(
            f"Categorized {stats['total'] - stats['uncategorized']}/{stats['total']} transactions"
        )
        return {"transactions": txns, "stats": stats}

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def extract_generic_patterns(self, description: str) -> List[str]:
        """Pull merchant-like tokens and known business phrases from a description.

        Words are kept only when they look like a business. Indicators
        match whole words or the ending of a compound word, and the
        counterparty of a P2P transfer is dropped, so personal names are
        never learned.
        """
        if not description:
            return []
        normalized = _NON_ALNUM.sub(" ", description.upper())

        patterns = []
        for word in _strip_counterparty(normalized.split()):
            if len(word) <= 3 or word in patterns:
                continue
            if self._is_business_word(word):
                patterns.append(word)

        for phrase in BUSINESS_PHRASES:
            if phrase in normalized and phrase not in patterns:
                patterns.append(phrase)

        return patterns

    def _is_business_word(self, word: str) -> bool:
        if word in self._brand_tokens or word in BUSINESS_INDICATORS:
            return True
        return any(
            word.endswith(suffix) and len(word) > len(suffix)
            for suffix in MERCHANT_SUFFIXES
        )

    def learn_from_user_feedback(
        self,
        description: str,
        category: str,
        subcategory: Optional[str] = None
    ) -> List[str]:
        """Reinforce patterns from a user's manual categorization.

        Returns:
            The patterns that were reinforced
        """
        patterns = self.extract_generic_patterns(description)
        for pattern in patterns:
            self._reinforce(pattern, category, subcategory)
        return patterns

    def learn_from_negative_feedback(
        self,
        selected_description: str,
        deselected_description: str,
        category: str,
        subcategory: Optional[str] = None
    ) -> Dict[str, int]:
        """Learn from a user deselecting a look-alike transaction.

        Patterns shared by both descriptions caused the false match and
        are weakened. Patterns unique to the selected description are
        reinforced; those unique to the deselected one become negative
        patterns for the category.

        Returns:
            Counts of weakened, strengthened and negative patterns
        """
        selected = self.extract_generic_patterns(selected_description)
        deselected = self.extract_generic_patterns(deselected_description)

        common = [p for p in selected if p in deselected]
        unique_selected = [p for p in selected if p not in deselected]
        unique_deselected = [p for p in deselected if p not in selected]

        for pattern in common:
            self._weaken(pattern, category, subcategory)
        for pattern in unique_selected:
            self._reinforce(pattern, category, subcategory)
        for pattern in unique_deselected:
            self._store_negative(pattern, category, subcategory)

        result = {
            "weakened": len(common),
            "strengthened": len(unique_selected),
            "negative": len(unique_deselected),
        }
        logger.info(
            f"Learned from negative feedback: {result['weakened']} weakened, "
            f"{result['strengthened']} strengthened, {result['negative']} negative patterns"
        )
        return result

    def _reinforce(self, pattern: str, category: str, subcategory: Optional[str]):
        subcategory = subcategory or DEFAULT_SUBCATEGORY
        key = (PatternPolarity.POSITIVE.value, pattern, category, subcategory)
        now = datetime.now().isoformat()

        existing = self._patterns.get(key)
        if existing is not None:
            existing.occurrences += 1
            existing.confidence = min(1.0, round(existing.confidence + PATTERN_REINFORCE_STEP, 4))
            existing.last_seen = now
        else:
            existing = LearnedPattern(
                pattern=pattern,
                category=category,
                subcategory=subcategory,
                confidence=PATTERN_INITIAL_CONFIDENCE,
                last_seen=now,
            )
            self._patterns[key] = existing

        self._save(existing)

    def _weaken(self, pattern: str, category: str, subcategory: Optional[str]):
        subcategory = subcategory or DEFAULT_SUBCATEGORY
        key = (PatternPolarity.POSITIVE.value, pattern, category, subcategory)
        existing = self._patterns.get(key)
        if existing is None:
            return

        existing.confidence = max(
            PATTERN_CONFIDENCE_FLOOR, round(existing.confidence - PATTERN_WEAKEN_STEP, 4)
        )
        existing.last_seen = datetime.now().isoformat()

        if existing.confidence < PATTERN_DROP_BELOW:
            del self._patterns[key]
            self._delete(existing)
            logger.info(f"Removed low-confidence pattern: {pattern} -> {category}")
        else:
            self._save(existing)
            logger.debug(f"Weakened pattern: {pattern} -> {category} ({existing.confidence:.2f})")

    def _store_negative(self, pattern: str, category: str, subcategory: Optional[str]):
        negative = LearnedPattern(
            pattern=pattern,
            category=category,
            subcategory=subcategory or DEFAULT_SUBCATEGORY,
            confidence=NEGATIVE_PATTERN_CONFIDENCE,
            polarity=PatternPolarity.NEGATIVE,
        )
        self._patterns[negative.key] = negative
        self._save(negative)
        logger.info(f"Stored negative pattern: {pattern} should not match {category}")

    def _save(self, pattern: LearnedPattern):
        if self.pattern_store is None:
            return
        try:
            self.pattern_store.upsert_learned_pattern(pattern)
        except Exception as e:
            logger.warning(f"Could not save learned pattern {pattern.pattern}: {e}")

    def _delete(self, pattern: LearnedPattern):
        if self.pattern_store is None:
            return
        try:
            self.pattern_store.delete_learned_pattern(pattern)
        except Exception as e:
            logger.warning(f"Could not delete learned pattern {pattern.pattern}: {e}")

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_low_confidence_patterns(self, now: Optional[datetime] = None) -> int:
        """Drop weak positive patterns that have not been seen recently.

        Returns:
            Number of patterns removed
        """
        cutoff = (now or datetime.now()) - timedelta(days=PATTERN_STALE_DAYS)
        removed = 0

        for key, pattern in list(self._patterns.items()):
            if pattern.is_negative or pattern.confidence >= PATTERN_DROP_BELOW:
                continue
            try:
                last_seen = datetime.fromisoformat(pattern.last_seen)
            except (TypeError, ValueError):
                continue
            if last_seen < cutoff:
                del self._patterns[key]
                self._delete(pattern)
                removed += 1

        if removed:
            logger.info(f"Cleaned up {removed} stale learned patterns")
        return removed

    def get_learning_stats(self) -> Dict[str, Any]:
        """Total learned patterns and a per-category count."""
        categories: Dict[str, int] = {}
        for pattern in self._patterns.values():
            categories[pattern.category] = categories.get(pattern.category, 0) + 1
        return {"total_patterns": len(self._patterns), "categories": categories}

    def get_patterns(self) -> List[LearnedPattern]:
        """Snapshot of the in-memory pattern cache."""
        return list(self._patterns.values())


def categorize_transaction(txn: Transaction, categorizer: Categorizer) -> Transaction:
    """Fill in category and subcategory on a transaction that has none."""
    if txn.category:
        return txn
    match = categorizer.categorize(txn.description)
    txn.category = match.category
    txn.subcategory = match.subcategory
    return txn
