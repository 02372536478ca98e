import pytest

from auctionhouse.database import MIN_BID_INCREMENT, Database, DatabaseError


@pytest.fixture
def db():
    with Database() as database:
        yield database


@pytest.fixture
def seller(db):
    return db.register_user("seller", "hash-s", "seller@example.com")


@pytest.fixture
def room(db, seller):
    return db.create_room("Antiques", "Old things", seller, 1000, 2000)


@pytest.fixture
def item(db, room, seller):
    return db.create_item(room, seller, "Vase", "Blue porcelain", 50000, 200000, 60)


def test_register_and_login_round_trip(db):
    user_id = db.register_user("alice", "hash-a", "alice@example.com")
    assert db.login_user("alice", "hash-a") == (user_id, 0)


def test_login_with_wrong_hash_fails(db):
    db.register_user("alice", "hash-a", "alice@example.com")
    assert db.login_user("alice", "other") is None
    assert db.login_user("nobody", "hash-a") is None


def test_duplicate_username_raises(db):
    db.register_user("alice", "hash-a", "alice@example.com")
    with pytest.raises(DatabaseError):
        db.register_user("alice", "hash-b", "alice2@example.com")


def test_register_requires_fields(db):
    with pytest.raises(ValueError):
        db.register_user(None, "hash", "x@example.com")


def test_balance_updates_and_never_goes_negative(db):
    user_id = db.register_user("bob", "hash-b", "bob@example.com")
    assert db.update_balance(user_id, 500) is True
    assert db.get_user_balance(user_id) == 500
    assert db.update_balance(user_id, -600) is False
    assert db.get_user_balance(user_id) == 500
    assert db.update_balance(user_id, -500) is True
    assert db.get_user_balance(user_id) == 0


def test_balance_for_invalid_or_missing_user(db):
    assert db.update_balance(0, 100) is False
    assert db.update_balance(99, 100) is False
    assert db.get_user_balance(99) is None
    assert db.get_user_balance(-1) is None


def test_created_room_is_listed_active(db, seller):
    first = db.create_room("A", "first", seller, 0, 10)
    second = db.create_room("B", None, seller, 0, 10)
    rooms = db.get_active_rooms()
    assert [r["room_id"] for r in rooms] == [first, second]
    assert rooms[1]["description"] == ""


def test_create_room_rejects_bad_creator(db):
    with pytest.raises(ValueError):
        db.create_room("A", "x", 0, 0, 10)


def test_items_are_queued_in_order(db, room, seller):
    a = db.create_item(room, seller, "A", "", 100, 0, 10)
    b = db.create_item(room, seller, "B", "", 200, 0, 10)
    items = db.get_room_items(room)
    assert [i["item_id"] for i in items] == [a, b]
    assert [i["queue_position"] for i in items] == [1, 2]
    assert items[0]["current_price"] == items[0]["starting_price"] == 100
    assert items[0]["status"] == "pending"


def test_create_item_rejects_negative_price(db, room, seller):
    with pytest.raises(ValueError):
        db.create_item(room, seller, "X", "", -1, 0, 10)


def test_item_details(db, item, room, seller):
    details = db.get_item_details(item)
    assert details["name"] == "Vase"
    assert details["room_id"] == room
    assert details["seller_id"] == seller
    assert details["buy_now_price"] == 200000
    assert db.get_item_details(999) is None


def test_bid_must_exceed_by_minimum_increment(db, item):
    bidder = db.register_user("carol", "hash-c", "carol@example.com")
    assert db.place_bid(item, bidder, 50000 + MIN_BID_INCREMENT - 1) is None
    assert db.place_bid(item, bidder, 50000) is None
    new_price = db.place_bid(item, bidder, 50000 + MIN_BID_INCREMENT)
    assert new_price == 50000 + MIN_BID_INCREMENT
    assert db.get_item_details(item)["current_price"] == new_price


def test_bid_on_missing_item_or_invalid_args(db):
    assert db.place_bid(42, 1, 100000) is None
    assert db.place_bid(1, 1, 0) is None


def test_buy_now_only_once(db, item):
    buyer = db.register_user("dave", "hash-d", "dave@example.com")
    assert db.buy_now(item, buyer, 200000) is True
    assert db.get_item_details(item)["status"] == "sold"
    assert db.buy_now(item, buyer, 200000) is False


def test_update_item_winner_marks_sold(db, item):
    winner = db.register_user("erin", "hash-e", "erin@example.com")
    assert db.update_item_winner(item, winner, 90000, "auction") is True
    assert db.get_item_details(item)["status"] == "sold"
    assert db.update_item_winner(item, 0, 90000, "auction") is False


def test_deleted_item_drops_out_of_search(db, item):
    assert len(db.search_items("vase")) == 1
    assert db.delete_item(item) is True
    assert db.get_item_details(item)["status"] == "deleted"
    assert db.search_items("vase") == []


def test_search_matches_name_or_description(db, room, seller):
    vase = db.create_item(room, seller, "Vase", "Blue porcelain", 1, 0, 1)
    clock = db.create_item(room, seller, "Clock", "porcelain face", 1, 0, 1)
    assert [r["item_id"] for r in db.search_items("PORCELAIN")] == [clock, vase]
    assert [r["item_id"] for r in db.search_items("clock")] == [clock]
    assert [r["item_id"] for r in db.search_items("")] == [clock, vase]


def test_history_newest_first_with_item_names(db, item):
    user = db.register_user("frank", "hash-f", "frank@example.com")
    assert db.add_transaction(user, 1000, "deposit", 0, "completed") is True
    assert db.add_transaction(user, -50000, "purchase", item, "completed") is True
    history = db.get_user_history(user)
    assert [h["type"] for h in history] == ["purchase", "deposit"]
    assert [h["item_name"] for h in history] == ["Vase", "N/A"]
    assert history[0]["amount"] == -50000


def test_add_transaction_rejects_invalid_user(db):
    assert db.add_transaction(0, 1, "deposit", 0, "completed") is False
    assert db.get_user_history(0) == []


def test_closed_database_raises(db):
    db.close()
    with pytest.raises(DatabaseError):
        db.get_active_rooms()


def test_data_persists_in_file(tmp_path):
    path = str(tmp_path / "auction.db")
    with Database(path) as first:
        user_id = first.register_user("gina", "hash-g", "gina@example.com")
        first.update_balance(user_id, 700)
    with Database(path) as second:
        assert second.login_user("gina", "hash-g") == (user_id, 700)