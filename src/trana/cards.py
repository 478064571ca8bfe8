"""Card administration: creation, direct edits and deletion."""
import math
import sqlite3

from trana.db import Store
from trana.decks import require_deck
from trana.errors import ConflictError, NotFoundError, ValidationError
from trana.models import COMFORT_MAX, COMFORT_MIN, COMFORT_UNSET, Card, normalize_text, to_epoch

CARD_COLUMNS = "id, deck, front, back, last_practiced, comfort"


def check_comfort(comfort: float) -> float:
    """Accept the unset sentinel or a value in [COMFORT_MIN, COMFORT_MAX]."""
    if isinstance(comfort, bool) or not isinstance(comfort, (int, float)):
        raise ValidationError(f"comfort must be a number, got {comfort!r}")
    if comfort == COMFORT_UNSET:
        return float(comfort)
    if math.isnan(comfort) or not COMFORT_MIN <= comfort <= COMFORT_MAX:
        raise ValidationError(
            f"comfort must be {COMFORT_UNSET:g} or from {COMFORT_MIN:g} to {COMFORT_MAX:g}, got {comfort}"
        )
    return float(comfort)


def clean_side(value: str, side: str) -> str:
    value = normalize_text(value)
    if not value:
        raise ValidationError(f"card {side} must not be empty")
    return value


def require_card(conn: sqlite3.Connection, card_id: int) -> Card:
    row = conn.execute(f"SELECT {CARD_COLUMNS} FROM cards WHERE id = ?", (card_id,)).fetchone()
    if row is None:
        raise NotFoundError(f"no card with id {card_id}")
    return Card.from_row(row)


def require_unique_front(conn: sqlite3.Connection, deck_id: int, card: Card) -> None:
    """Raise ConflictError if another card in the deck already has ``card.front``."""
    existing = conn.execute(
        "SELECT id FROM cards WHERE deck = ? AND front = ? AND id != ? LIMIT 1",
        (deck_id, card.front, card.id or 0),
    ).fetchone()
    if existing is not None:
        raise ConflictError(card, existing["id"])


def create_card(store: Store, deck_id: int, front: str, back: str) -> Card:
    front = clean_side(front, "front")
    back = clean_side(back, "back")

    def insert(conn):
        require_deck(conn, deck_id)
        require_unique_front(conn, deck_id, Card(id=0, front=front, back=back, deck_id=deck_id))
        cursor = conn.execute(
            "INSERT INTO cards (deck, front, back) VALUES (?, ?, ?)",
            (deck_id, front, back),
        )
        return require_card(conn, cursor.lastrowid)

    return store.run_in_transaction(insert)


def get_card(store: Store, card_id: int) -> Card:
    return store.run_in_transaction(lambda conn: require_card(conn, card_id))


def update_card(store: Store, card: Card) -> Card:
    """Overwrite front, back, last practiced and comfort as given.

    No jitter is applied; use COMFORT_UNSET to mark the card as never practiced.
    A front already used by another card in the deck raises ConflictError.
    """
    comfort = check_comfort(card.comfort)
    front = clean_side(card.front, "front")
    back = clean_side(card.back, "back")

    def update(conn):
        stored = require_card(conn, card.id)
        require_unique_front(
            conn, stored.deck_id, Card(id=card.id, front=front, back=back, deck_id=stored.deck_id)
        )
        conn.execute(
            """UPDATE cards SET front = ?, back = ?, last_practiced = ?, comfort = ?
            WHERE id = ?""",
            (front, back, to_epoch(card.last_practiced), comfort, card.id),
        )
        return require_card(conn, card.id)

    return store.run_in_transaction(update)


def delete_card(store: Store, card_id: int) -> None:
    def delete(conn):
        cursor = conn.execute("DELETE FROM cards WHERE id = ?", (card_id,))
        if cursor.rowcount == 0:
            raise NotFoundError(f"no card with id {card_id}")

    store.run_in_transaction(delete)


def list_cards(store: Store, deck_id: int) -> list[Card]:
    rows = store.run_in_transaction(
        lambda conn: conn.execute(
            f"SELECT {CARD_COLUMNS} FROM cards WHERE deck = ? ORDER BY id ASC", (deck_id,)
        ).fetchall()
    )
    return [Card.from_row(r) for r in rows]
