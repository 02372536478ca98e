# auctionhouse

Building blocks for a live auction house. The package has three modules:

- `auctionhouse.database` stores users, balances, rooms, items, bids and
  transactions in SQLite.
- `auctionhouse.logger` writes timestamped log lines from any thread.
- `auctionhouse.netio` reads and writes exact byte counts on stream sockets.

It has no third-party dependencies.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Storage

`Database(path=":memory:")` opens an SQLite file, or an in-memory store if
you give no path, and creates the tables it needs. You can share one instance
between threads. You can also use it as a context manager, and it closes when
the block ends.

```python
from auctionhouse.database import Database

password_hash = "placeholder"
with Database() as db:
    alice = db.register_user("alice", password_hash, "alice@example.com")
    db.update_balance(alice, 500000)
    room = db.create_room("Antiques", "Old things", alice, 0, 3600)
    item = db.create_item(room, alice, "Clock", "Brass", 100000, 300000, 600)
    assert db.place_bid(item, alice, 110000) == 110000
```

These methods are available:

- Users: `register_user`, `login_user`, `update_balance` and
  `get_user_balance`. `login_user` returns `(user_id, balance)`, or `None`
  if the credentials do not match.
- Rooms: `create_room`, `get_active_rooms` and `get_room_items`.
- Items: `create_item`, `delete_item`, `get_item_details`, `place_bid`,
  `buy_now` and `update_item_winner`.
- History: `add_transaction`, `get_user_history` and `search_items`.

The store enforces these rules:

- `update_balance` refuses any change that would leave a balance below zero,
  and returns `False`.
- A bid must beat the current price by at least `MIN_BID_INCREMENT` (10,000).
  If it does not, `place_bid` returns `None`.
- `create_item` puts a new item, as pending, at the end of its room's queue.
  It takes `duration_sec` but does not store it.
- Only pending or bidding items can be bought with `buy_now`.
- `delete_item` does not remove an item. It marks the item as deleted.
- `get_user_history` returns the latest 50 transactions, newest first.
- `search_items` matches the term against item names and descriptions. It
  returns only open items, newest first.

The query methods return lists of dictionaries keyed by column name.
`register_user`, `create_room` and `create_item` raise `ValueError` when a
required argument is missing or invalid. An SQLite failure, or any use after
`close()`, raises `DatabaseError`.

## Logging

`auctionhouse.logger` writes lines of this form:

```
[2024-01-01 12:00:00] [INFO] message text
```

The levels are `LogLevel.DEBUG`, `INFO`, `WARN` and `ERROR`.
`log_init(filename)` opens a file in append mode, and later lines go there.
`log_cleanup()` closes the file, and later lines go to standard error.
`log_message(level, fmt, *args)` writes one line. It %-formats `fmt` with
`args`.

If you want a separate log, create an `EventLog`. It has `open`, `close` and
`log`, plus the shortcuts `debug`, `info`, `warn` and `error`, and it works as
a context manager.

## Socket helpers

`recv_all(sock, length)` reads exactly `length` bytes. If the peer closes the
connection first, it raises `ConnectionClosed`. The exception's `received`
attribute holds the bytes that arrived before the close.
`send_all(sock, data)` sends the whole buffer and returns its length.

## What this package does not do

This package has no network server and no command to start one. It does not
encode or decode auction messages or their payloads. A program that accepts
clients and speaks a wire protocol has to supply those parts itself, and can
use `Database`, `EventLog` and the socket helpers to build them.