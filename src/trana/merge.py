"""Merge an externally supplied card set into a deck."""
import logging
import sqlite3
import threading
from typing import Iterable, Optional

from trana.cards import check_comfort, clean_side
from trana.db import Store
from trana.decks import require_deck
from trana.errors import ConflictError
from trana.models import Card, ImportResult, to_epoch

logger = logging.getLogger(__name__)


def merge_card(conn: sqlite3.Connection, deck_id: int, card: Card) -> bool:
    """Insert ``card`` or refresh the matching card. Returns True if a row was inserted.

    Cards match on normalized front within the deck. A match with the same
    back only takes the incoming last practiced and comfort; a match with a
    different back raises ConflictError.
    """
    front = clean_side(card.front, "front")
    back = clean_side(card.back, "back")
    comfort = check_comfort(card.comfort)
    last_practiced = to_epoch(card.last_practiced)

    existing = conn.execute(
        "SELECT id, back FROM cards WHERE deck = ? AND front = ? LIMIT 1",
        (deck_id, front),
    ).fetchone()
    if existing is None:
        conn.execute(
            """INSERT INTO cards (deck, front, back, last_practiced, comfort)
            VALUES (?, ?, ?, ?, ?)""",
            (deck_id, front, back, last_practiced, comfort),
        )
        return True
    if existing["back"] != back:
        raise ConflictError(card, existing["id"])
    conn.execute(
        "UPDATE cards SET last_practiced = ?, comfort = ? WHERE id = ?",
        (last_practiced, comfort, existing["id"]),
    )
    return False


def import_cards(
    store: Store,
    deck_id: int,
    cards: Iterable[Card],
    cancel: Optional[threading.Event] = None,
) -> ImportResult:
    """Merge ``cards`` into a deck in input order, all or nothing."""
    def run(conn):
        require_deck(conn, deck_id)
        result = ImportResult()
        for card in cards:
            if merge_card(conn, deck_id, card):
                result.inserted += 1
            else:
                result.updated += 1
        return result

    try:
        result = store.run_in_transaction(run, cancel=cancel)
    except ConflictError as exc:
        logger.warning("import into deck %d aborted: %s", deck_id, exc)
        raise
    logger.info("imported into deck %d: %d new, %d updated", deck_id, result.inserted, result.updated)
    return result
