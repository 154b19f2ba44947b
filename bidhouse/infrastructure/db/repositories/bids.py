from __future__ import annotations

from typing import Any, Dict, List

from .base import BaseRepository


class BidRepository(BaseRepository):
    """Append-only access to the ``bids`` table.

    ``seq`` numbers bids per auction in admission order; it breaks ties
    between bids stored within the same timestamp.
    """

    def insert(
        self,
        bid_id: str,
        auction_id: str,
        bidder_id: str,
        amount: str,
        created_at: str,
    ) -> int:
        seq = int(
            self._fetch_scalar(
                "SELECT COALESCE(MAX(seq), 0) + 1 FROM bids WHERE auction_id = ?",
                (auction_id,),
            )
        )
        self._execute(
            """
            INSERT INTO bids (id, auction_id, bidder_id, amount, created_at, seq)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (bid_id, auction_id, bidder_id, amount, created_at, seq),
        )
        return seq

    def list_for_auction(self, auction_id: str) -> List[Dict[str, Any]]:
        """Bids of one auction, newest first."""
        return self._fetch_all_as_dicts(
            """
            SELECT id, auction_id, bidder_id, amount, created_at
            FROM bids
            WHERE auction_id = ?
            ORDER BY seq DESC
            """,
            (auction_id,),
        )
