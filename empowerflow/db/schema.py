"""SQLite schema definitions for the EmpowerFlow insight pipeline."""

SCHEMA_SQL = """
-- Transactions table, one row per bank transaction
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    account_id TEXT,
    posted_date TEXT NOT NULL,  -- ISO date
    amount REAL NOT NULL,  -- Negative = expense
    description TEXT NOT NULL,
    category TEXT,
    subcategory TEXT,
    tag TEXT CHECK (tag IN ('essential', 'discretionary')),
    balance REAL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Learned categorization patterns (no personal names are ever stored)
CREATE TABLE IF NOT EXISTS learned_patterns (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    pattern TEXT NOT NULL,
    category TEXT NOT NULL,
    subcategory TEXT NOT NULL DEFAULT 'Other',
    polarity TEXT NOT NULL DEFAULT 'positive',  -- positive, negative
    confidence REAL NOT NULL,
    occurrences INTEGER DEFAULT 1,
    last_seen TEXT NOT NULL,
    UNIQUE (pattern, category, subcategory, polarity)
);

-- Savings goals
CREATE TABLE IF NOT EXISTS goals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    target_amount REAL NOT NULL,
    current_amount_saved REAL DEFAULT 0,
    target_date TEXT NOT NULL,
    monthly_contribution REAL DEFAULT 0,
    priority TEXT DEFAULT 'medium',
    category TEXT DEFAULT 'CUSTOM',
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Debts being paid down
CREATE TABLE IF NOT EXISTS debts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    balance REAL NOT NULL,
    min_payment REAL NOT NULL,
    interest_rate REAL NOT NULL,  -- Annual percent
    payoff_date TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Feedback on generated insights, replayed into the acceptance rate
CREATE TABLE IF NOT EXISTS insight_feedback (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    suggestion_id TEXT NOT NULL,
    action TEXT NOT NULL CHECK (action IN ('accepted', 'dismissed', 'modified')),
    modification TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Category corrections with the user's reason for the purchase
CREATE TABLE IF NOT EXISTS spending_corrections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    transaction_id INTEGER,
    corrected_category TEXT NOT NULL,
    corrected_subcategory TEXT,
    reasoning TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_transactions_user ON transactions(user_id);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(posted_date);
CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category);
CREATE INDEX IF NOT EXISTS idx_patterns_confidence ON learned_patterns(confidence);
CREATE INDEX IF NOT EXISTS idx_goals_user ON goals(user_id);
CREATE INDEX IF NOT EXISTS idx_debts_user ON debts(user_id);
CREATE INDEX IF NOT EXISTS idx_feedback_user ON insight_feedback(user_id);
CREATE INDEX IF NOT EXISTS idx_corrections_user ON spending_corrections(user_id);
"""
