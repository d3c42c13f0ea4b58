"""Configuration settings for the EmpowerFlow insight pipeline."""
from pathlib import Path

# Paths
DATA_DIR = Path.home() / ".empowerflow"
DB_PATH = DATA_DIR / "empowerflow.db"

DEFAULT_USER_ID = "dev_user_2025"

# Categorization
DEFAULT_CATEGORY = "General"
DEFAULT_SUBCATEGORY = "Other"
RULE_MATCH_CONFIDENCE = 0.8
LEARNED_MATCH_MIN_CONFIDENCE = 0.5  # Learned patterns below this never categorize
PATTERN_LOAD_MIN_CONFIDENCE = 0.7  # Only confident positive patterns are loaded at startup
PATTERN_INITIAL_CONFIDENCE = 0.6
PATTERN_REINFORCE_STEP = 0.1
PATTERN_WEAKEN_STEP = 0.15
PATTERN_CONFIDENCE_FLOOR = 0.1
PATTERN_DROP_BELOW = 0.3
NEGATIVE_PATTERN_CONFIDENCE = -0.8
PATTERN_STALE_DAYS = 30

# Tag prediction
SMALL_PURCHASE_LIMIT = 20  # Below this is discretionary
LARGE_PURCHASE_LIMIT = 200  # Above this is essential

# Recurring detection
RECURRING_MIN_GAP_DAYS = 28
RECURRING_MAX_GAP_DAYS = 32
RECURRING_AMOUNT_TOLERANCE = 0.15

# Anomaly detection
ANOMALY_TRAILING_WEEKS = 4

# Spending analysis windows (days)
ESSENTIAL_WINDOW_DAYS = 30
SUBCATEGORY_WINDOW_DAYS = 60
GOAL_ANALYSIS_WINDOW_DAYS = 90
HIGH_DISCRETIONARY_PERCENT = 40
BALANCED_DISCRETIONARY_RANGE = (15, 30)
EMERGENCY_FUND_MONTHS = 6
SUBCATEGORY_MONTHLY_THRESHOLD = 100
TREND_INCREASE_RATIO = 1.25

# Insights
INSIGHT_CONFIDENCE_THRESHOLD = 0.6  # Insights must score strictly above this
DEFAULT_ACCEPTANCE_RATE = 0.5
INSIGHT_FEEDBACK_ACTIONS = ("accepted", "dismissed", "modified")

# Debt calculators
NEVER_PAYS_OFF_MONTHS = 999
NEVER_PAYS_OFF_INTEREST_FACTOR = 10  # Placeholder interest = balance * factor

# Goals
OPTIONAL_CATEGORIES = [
    "Food & Drink",
    "Entertainment",
    "Shopping",
    "Personal Care",
    "Subscriptions"
]
OPTIONAL_REDUCTION_LIMIT = 0.5  # Share of optional spend a user can reasonably cut
RECOMMENDATION_MAX_REDUCTION = 0.3
RECOMMENDATION_MIN_SPENDING = 50
WEEKS_PER_MONTH = 4.33

# Default categories
DEFAULT_CATEGORIES = [
    "Income",
    "Food & Drink",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Financial & Transfers",
    "Health & Medical",
    "Personal Care",
    "General"
]


def ensure_data_dir() -> Path:
    """Ensure the data directory exists."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return DATA_DIR
