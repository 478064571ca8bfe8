"""Deck administration."""
import sqlite3

from trana.db import Store
from trana.errors import NotFoundError, ValidationError
from trana.models import Deck, normalize_text


def _clean_name(name: str) -> str:
    name = normalize_text(name)
    if not name:
        raise ValidationError("deck name must not be empty")
    return name


def require_deck(conn: sqlite3.Connection, deck_id: int) -> Deck:
    row = conn.execute("SELECT id, name FROM decks WHERE id = ?", (deck_id,)).fetchone()
    if row is None:
        raise NotFoundError(f"no deck with id {deck_id}")
    return Deck.from_row(row)


def create_deck(store: Store, name: str) -> Deck:
    name = _clean_name(name)

    def insert(conn):
        cursor = conn.execute("INSERT INTO decks (name) VALUES (?)", (name,))
        return Deck(id=cursor.lastrowid, name=name)

    return store.run_in_transaction(insert)


def get_deck(store: Store, deck_id: int) -> Deck:
    return store.run_in_transaction(lambda conn: require_deck(conn, deck_id))


def update_deck(store: Store, deck: Deck) -> Deck:
    name = _clean_name(deck.name)

    def update(conn):
        cursor = conn.execute("UPDATE decks SET name = ? WHERE id = ?", (name, deck.id))
        if cursor.rowcount == 0:
            raise NotFoundError(f"no deck with id {deck.id}")
        return Deck(id=deck.id, name=name)

    return store.run_in_transaction(update)


def delete_deck(store: Store, deck_id: int) -> None:
    """Delete a deck; its cards go with it (ON DELETE CASCADE)."""
    def delete(conn):
        cursor = conn.execute("DELETE FROM decks WHERE id = ?", (deck_id,))
        if cursor.rowcount == 0:
            raise NotFoundError(f"no deck with id {deck_id}")

    store.run_in_transaction(delete)


def list_decks(store: Store) -> list[Deck]:
    rows = store.run_in_transaction(
        lambda conn: conn.execute("SELECT id, name FROM decks ORDER BY id ASC").fetchall()
    )
    return [Deck.from_row(r) for r in rows]


def count_cards(store: Store, deck_id: int) -> int:
    return store.run_in_transaction(
        lambda conn: conn.execute("SELECT COUNT(*) FROM cards WHERE deck = ?", (deck_id,)).fetchone()[0]
    )
