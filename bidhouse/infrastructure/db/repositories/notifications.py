from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .base import BaseRepository


class NotificationRepository(BaseRepository):
    def insert(self, row: Dict[str, Any]) -> bool:
        """Store a notification. Returns False if its id was already stored."""
        cur = self._execute(
            """
            INSERT OR IGNORE INTO notifications
                (id, user_id, auction_id, type, message, read, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                row["id"],
                row["user_id"],
                row["auction_id"],
                row["type"],
                row["message"],
                1 if row.get("read") else 0,
                row["created_at"],
            ),
        )
        return cur.rowcount == 1

    def list_for_user(
        self, user_id: str, unread_only: bool = False
    ) -> List[Dict[str, Any]]:
        query = """
            SELECT id, user_id, auction_id, type, message, read, created_at
            FROM notifications
            WHERE user_id = ?
        """
        if unread_only:
            query += " AND read = 0"
        query += " ORDER BY created_at DESC, rowid DESC"
        return self._fetch_all_as_dicts(query, (user_id,))

    def mark_read(self, ids: Iterable[str]) -> int:
        """Mark the given notifications read; returns how many changed."""
        id_list = list(dict.fromkeys(ids))
        if not id_list:
            return 0
        placeholders = ",".join("?" for _ in id_list)
        cur = self._execute(
            f"UPDATE notifications SET read = 1 WHERE read = 0 AND id IN ({placeholders})",
            tuple(id_list),
        )
        return cur.rowcount
