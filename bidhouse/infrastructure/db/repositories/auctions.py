from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..connection import iso_utcnow
from .base import BaseRepository

_COLUMNS = """
    id, seller_id, title, description, starting_price, bid_increment,
    start_time, end_time, duration_hours, state, current_highest_bid,
    current_highest_bidder_id, seller_decision, created_at
"""


class AuctionRepository(BaseRepository):
    """Row-level access to the ``auctions`` table.

    Every mutating method is a conditional ``UPDATE`` and reports whether a
    row matched, so callers can detect that another writer got there first.
    """

    def insert(self, row: Dict[str, Any]) -> None:
        self._execute(
            """
            INSERT INTO auctions (
                id, seller_id, title, description, starting_price,
                bid_increment, start_time, end_time, duration_hours, state,
                seller_decision, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                row["id"],
                row["seller_id"],
                row["title"],
                row.get("description"),
                row["starting_price"],
                row["bid_increment"],
                row["start_time"],
                row["end_time"],
                row["duration_hours"],
                row["state"],
                row.get("seller_decision", "undecided"),
                row["created_at"],
                row["created_at"],
            ),
        )

    def get(self, auction_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one_as_dict(
            f"SELECT {_COLUMNS} FROM auctions WHERE id = ?", (auction_id,)
        )

    def exists(self, auction_id: str) -> bool:
        return self._fetch_scalar(
            "SELECT 1 FROM auctions WHERE id = ?", (auction_id,)
        ) is not None

    def list(self, state: str | None = None) -> List[Dict[str, Any]]:
        """List auctions newest first, optionally filtered by stored state."""
        if state is None:
            return self._fetch_all_as_dicts(
                f"SELECT {_COLUMNS} FROM auctions ORDER BY created_at DESC, rowid DESC"
            )
        return self._fetch_all_as_dicts(
            f"""
            SELECT {_COLUMNS} FROM auctions
            WHERE state = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (state,),
        )

    def update_state(self, auction_id: str, from_state: str, to_state: str) -> bool:
        cur = self._execute(
            """
            UPDATE auctions SET state = ?, updated_at = ?
            WHERE id = ? AND state = ?
            """,
            (to_state, iso_utcnow(), auction_id, from_state),
        )
        return cur.rowcount == 1

    def apply_bid(
        self,
        auction_id: str,
        bidder_id: str,
        amount: str,
        expected_prior_highest: str | None,
    ) -> bool:
        """Swap in a new highest bid if the prior one is still ``expected_prior_highest``.

        ``IS`` compares NULL to NULL as equal, which covers the first bid.
        """
        cur = self._execute(
            """
            UPDATE auctions
            SET current_highest_bid = ?, current_highest_bidder_id = ?, updated_at = ?
            WHERE id = ? AND state = 'active' AND current_highest_bid IS ?
            """,
            (amount, bidder_id, iso_utcnow(), auction_id, expected_prior_highest),
        )
        return cur.rowcount == 1

    def record_decision(self, auction_id: str, decision: str) -> bool:
        cur = self._execute(
            """
            UPDATE auctions SET seller_decision = ?, updated_at = ?
            WHERE id = ?
              AND state = 'ended'
              AND seller_decision = 'undecided'
              AND current_highest_bid IS NOT NULL
            """,
            (decision, iso_utcnow(), auction_id),
        )
        return cur.rowcount == 1
