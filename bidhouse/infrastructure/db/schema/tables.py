from __future__ import annotations

SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);
"""

# Amounts are canonical two-decimal text so conditional updates can compare
# the stored highest bid exactly.
SCHEMA_AUCTIONS_SQL = """
CREATE TABLE IF NOT EXISTS auctions (
    id TEXT PRIMARY KEY,
    seller_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    starting_price TEXT NOT NULL,
    bid_increment TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    duration_hours REAL NOT NULL,
    state TEXT NOT NULL DEFAULT 'pending'
        CHECK (state IN ('pending', 'active', 'ended')),
    current_highest_bid TEXT,
    current_highest_bidder_id TEXT,
    seller_decision TEXT NOT NULL DEFAULT 'undecided'
        CHECK (seller_decision IN ('undecided', 'accepted', 'rejected')),
    created_at TEXT NOT NULL,
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_auctions_state ON auctions (state);
CREATE INDEX IF NOT EXISTS idx_auctions_end_time ON auctions (end_time);
"""

SCHEMA_BIDS_SQL = """
CREATE TABLE IF NOT EXISTS bids (
    id TEXT PRIMARY KEY,
    auction_id TEXT NOT NULL,
    bidder_id TEXT NOT NULL,
    amount TEXT NOT NULL,
    created_at TEXT NOT NULL,
    seq INTEGER NOT NULL,
    FOREIGN KEY (auction_id) REFERENCES auctions (id) ON DELETE CASCADE,
    UNIQUE (auction_id, seq)
);
CREATE INDEX IF NOT EXISTS idx_bids_auction ON bids (auction_id, seq);
"""

SCHEMA_NOTIFICATIONS_SQL = """
CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    auction_id TEXT NOT NULL,
    type TEXT NOT NULL,
    message TEXT NOT NULL,
    read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY (auction_id) REFERENCES auctions (id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_notifications_user
    ON notifications (user_id, created_at);
"""
