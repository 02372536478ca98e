"""Persistent storage for users, auction rooms, items, bids and transactions."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

MIN_BID_INCREMENT = 10000

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    email TEXT NOT NULL,
    balance INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS "AuctionRoom" (
    room_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    start_time INTEGER,
    end_time INTEGER,
    creator_id INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'active'
);
CREATE TABLE IF NOT EXISTS "Item" (
    item_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    starting_price INTEGER NOT NULL,
    current_price INTEGER NOT NULL,
    buy_now_price INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'pending',
    room_id INTEGER NOT NULL,
    seller_id INTEGER NOT NULL,
    queue_position INTEGER NOT NULL,
    winner_id INTEGER,
    win_amount INTEGER,
    win_type TEXT
);
CREATE TABLE IF NOT EXISTS "Bid" (
    bid_id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id INTEGER NOT NULL,
    bidder_id INTEGER NOT NULL,
    bid_amount INTEGER NOT NULL,
    bid_time TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS "Transaction" (
    transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    amount INTEGER NOT NULL,
    type TEXT NOT NULL,
    related_item_id INTEGER,
    status TEXT NOT NULL,
    timestamp TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


class DatabaseError(Exception):
    """Raised when the store cannot carry out an operation."""


class Database:
    """An auction store kept in an SQLite file, safe to share between threads."""

    def __init__(self, path: str = ":memory:") -> None:
        try:
            self._connection: sqlite3.Connection | None = sqlite3.connect(
                path, isolation_level=None, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise DatabaseError(f"connection failed: {exc}") from exc
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        try:
            self._connection.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            self._connection.close()
            self._connection = None
            raise DatabaseError(f"cannot create schema: {exc}") from exc

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            raise DatabaseError("database is closed")
        return self._connection

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params))
            except sqlite3.Error as exc:
                raise DatabaseError(str(exc)) from exc

    def _rows(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(row) for row in self._execute(sql, params).fetchall()]

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._conn
            self._execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")

    def close(self) -> None:
        """Close the connection; later calls raise DatabaseError."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    # Users

    def register_user(self, username: str, password_hash: str, email: str) -> int:
        """Create a user with a zero balance and return the new user id."""
        if username is None or password_hash is None or email is None:
            raise ValueError("username, password hash and email are required")
        cursor = self._execute(
            "INSERT INTO users (username, password_hash, email, balance) "
            "VALUES (?, ?, ?, 0)",
            (username, password_hash, email),
        )
        return int(cursor.lastrowid)

    def login_user(self, username: str, password_hash: str) -> tuple[int, int] | None:
        """Return (user_id, balance) for matching credentials, else None."""
        if username is None or password_hash is None:
            return None
        row = self._execute(
            "SELECT user_id, balance FROM users WHERE username = ? AND password_hash = ?",
            (username, password_hash),
        ).fetchone()
        if row is None:
            return None
        return int(row["user_id"]), int(row["balance"])

    def update_balance(self, user_id: int, amount_change: int) -> bool:
        """Add amount_change to a balance unless the result would be negative."""
        if user_id <= 0:
            return False
        cursor = self._execute(
            "UPDATE users SET balance = balance + ? "
            "WHERE user_id = ? AND balance + ? >= 0",
            (amount_change, user_id, amount_change),
        )
        return cursor.rowcount > 0

    def get_user_balance(self, user_id: int) -> int | None:
        """Return the user's balance, or None if there is no such user."""
        if user_id <= 0:
            return None
        row = self._execute(
            "SELECT balance FROM users WHERE user_id = ?", (user_id,)
        ).fetchone()
        return None if row is None else int(row["balance"])

    # Rooms

    def create_room(
        self,
        name: str,
        desc: str | None,
        creator_id: int,
        start_time: int,
        end_time: int,
    ) -> int:
        """Create an active room and return its id; times are Unix seconds."""
        if name is None or creator_id <= 0:
            raise ValueError("a room needs a name and a valid creator")
        cursor = self._execute(
            'INSERT INTO "AuctionRoom" '
            "(name, description, start_time, end_time, creator_id, status) "
            "VALUES (?, ?, ?, ?, ?, 'active')",
            (name, desc or "", start_time, end_time, creator_id),
        )
        return int(cursor.lastrowid)

    def get_active_rooms(self) -> list[dict[str, Any]]:
        """Active rooms ordered by id, with room_id, name and description."""
        return self._rows(
            'SELECT room_id, name, description FROM "AuctionRoom" '
            "WHERE status = 'active' ORDER BY room_id"
        )

    def get_room_items(self, room_id: int) -> list[dict[str, Any]]:
        """Items of a room in queue order."""
        if room_id <= 0:
            return []
        return self._rows(
            "SELECT item_id, name, starting_price, current_price, buy_now_price, "
            'status, seller_id, queue_position FROM "Item" '
            "WHERE room_id = ? ORDER BY queue_position",
            (room_id,),
        )

    # Items

    def create_item(
        self,
        room_id: int,
        seller_id: int,
        name: str,
        desc: str | None,
        start_price: int,
        buy_now_price: int,
        duration_sec: int,
    ) -> int:
        """Queue a pending item at the end of a room and return its id.

        duration_sec is accepted from the request but is not stored.
        """
        if room_id <= 0 or seller_id <= 0 or name is None or start_price < 0:
            raise ValueError("invalid item: room, seller, name or start price")
        with self._transaction():
            row = self._execute(
                'SELECT COALESCE(MAX(queue_position), 0) + 1 FROM "Item" '
                "WHERE room_id = ?",
                (room_id,),
            ).fetchone()
            queue_position = int(row[0]) if row is not None else 0
            cursor = self._execute(
                'INSERT INTO "Item" (name, description, starting_price, current_price, '
                "buy_now_price, status, room_id, seller_id, queue_position) "
                "VALUES (?, ?, ?, ?, ?, 'pending', ?, ?, ?)",
                (
                    name,
                    desc or "",
                    start_price,
                    start_price,
                    buy_now_price,
                    room_id,
                    seller_id,
                    queue_position,
                ),
            )
            return int(cursor.lastrowid)

    def delete_item(self, item_id: int) -> bool:
        """Mark an item deleted."""
        if item_id <= 0:
            return False
        self._execute("UPDATE \"Item\" SET status = 'deleted' WHERE item_id = ?", (item_id,))
        return True

    def get_item_details(self, item_id: int) -> dict[str, Any] | None:
        """Return an item's details, or None if there is no such item."""
        if item_id <= 0:
            return None
        rows = self._rows(
            "SELECT item_id, name, description, starting_price, current_price, "
            'buy_now_price, status, seller_id, room_id FROM "Item" WHERE item_id = ?',
            (item_id,),
        )
        return rows[0] if rows else None

    # Bidding

    def place_bid(self, item_id: int, bidder_id: int, bid_amount: int) -> int | None:
        """Record a bid at least MIN_BID_INCREMENT above the current price.

        Returns the new current price, or None when the bid is rejected.
        """
        if item_id <= 0 or bidder_id <= 0 or bid_amount <= 0:
            return None
        with self._transaction():
            row = self._execute(
                'SELECT current_price FROM "Item" WHERE item_id = ?', (item_id,)
            ).fetchone()
            if row is None:
                return None
            current = int(row["current_price"])
            if bid_amount <= current or bid_amount - current < MIN_BID_INCREMENT:
                return None
            self._execute(
                'UPDATE "Item" SET current_price = ? WHERE item_id = ?',
                (bid_amount, item_id),
            )
            self._execute(
                'INSERT INTO "Bid" (item_id, bidder_id, bid_amount) VALUES (?, ?, ?)',
                (item_id, bidder_id, bid_amount),
            )
        return bid_amount

    def buy_now(self, item_id: int, buyer_id: int, buy_now_price: int) -> bool:
        """Sell a pending or bidding item outright; False if it is not for sale."""
        if item_id <= 0 or buyer_id <= 0:
            return False
        cursor = self._execute(
            "UPDATE \"Item\" SET status = 'sold', winner_id = ?, win_amount = ?, "
            "win_type = 'buy_now' WHERE item_id = ? AND status IN ('pending', 'bidding')",
            (buyer_id, buy_now_price, item_id),
        )
        return cursor.rowcount > 0

    def update_item_winner(
        self, item_id: int, winner_id: int, final_price: int, win_type: str
    ) -> bool:
        """Mark an item sold to winner_id at final_price."""
        if item_id <= 0 or winner_id <= 0 or win_type is None:
            return False
        self._execute(
            "UPDATE \"Item\" SET status = 'sold', winner_id = ?, win_amount = ?, "
            "win_type = ? WHERE item_id = ?",
            (winner_id, final_price, win_type, item_id),
        )
        return True

    # Transactions and history

    def add_transaction(
        self,
        user_id: int,
        amount: int,
        kind: str,
        related_item_id: int,
        status: str,
    ) -> bool:
        """Record a money movement; related_item_id <= 0 means none."""
        if user_id <= 0 or kind is None or status is None:
            return False
        item = related_item_id if related_item_id > 0 else None
        self._execute(
            'INSERT INTO "Transaction" (user_id, amount, type, related_item_id, status) '
            "VALUES (?, ?, ?, ?, ?)",
            (user_id, amount, kind, item, status),
        )
        return True

    def get_user_history(self, user_id: int) -> list[dict[str, Any]]:
        """The user's latest 50 transactions, newest first."""
        if user_id <= 0:
            return []
        return self._rows(
            "SELECT t.transaction_id, t.timestamp, t.type, t.amount, "
            "COALESCE(i.name, 'N/A') AS item_name, t.status "
            'FROM "Transaction" t '
            'LEFT JOIN "Item" i ON t.related_item_id = i.item_id '
            "WHERE t.user_id = ? "
            "ORDER BY t.timestamp DESC, t.transaction_id DESC LIMIT 50",
            (user_id,),
        )

    # Search

    def search_items(self, search_term: str | None) -> list[dict[str, Any]]:
        """Open items whose name or description contains the term, newest first."""
        columns = (
            "SELECT item_id, name, description, starting_price, current_price, "
            'buy_now_price, status, room_id FROM "Item" '
        )
        if search_term:
            return self._rows(
                columns
                + "WHERE (name LIKE '%' || ? || '%' OR description LIKE '%' || ? || '%') "
                "AND status IN ('pending', 'bidding') ORDER BY item_id DESC",
                (search_term, search_term),
            )
        return self._rows(
            columns + "WHERE status IN ('pending', 'bidding') ORDER BY item_id DESC"
        )