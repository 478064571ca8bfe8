"""Comfort-ordered review scheduling with jittered scores."""
import logging
import math
import random
from datetime import datetime, timezone
from typing import Optional

from trana.cards import CARD_COLUMNS
from trana.db import Store
from trana.errors import NotFoundError, ValidationError
from trana.models import (
    COMFORT_MAX,
    COMFORT_MIN,
    COMFORT_REVIEW_MAX,
    COMFORT_REVIEW_MIN,
    Card,
    to_epoch,
)

logger = logging.getLogger(__name__)

COMFORT_STDDEV = 0.25
# Draws before truncated_normal gives up and clamps the mean
MAX_DRAWS = 10_000


def truncated_normal(
    low: float,
    high: float,
    mean: float,
    stddev: float,
    rng=random,
    max_draws: int = MAX_DRAWS,
) -> float:
    """Draw from N(mean, stddev) restricted to [low, high) by rejection sampling.

    Args:
        low: Inclusive lower bound.
        high: Exclusive upper bound; must be greater than ``low``.
        mean: Centre of the normal distribution.
        stddev: Standard deviation of the normal distribution.
        rng: Anything with a ``gauss`` method (``random`` or a ``random.Random``).
        max_draws: Rejected draws tolerated before falling back to the mean
            clamped into the interval.

    Returns:
        A float x with low <= x < high.
    """
    if low >= high:
        raise ValueError(f"low {low} >= high {high}")
    for _ in range(max_draws):
        x = rng.gauss(mean, stddev)
        if low <= x < high:
            return x
    fallback = min(max(mean, low), math.nextafter(high, low))
    logger.warning(
        "no draw from N(%s, %s) landed in [%s, %s) after %d tries; using %s",
        mean, stddev, low, high, max_draws, fallback,
    )
    return fallback


def jitter(comfort: float, rng=random) -> float:
    """Perturb a reported comfort so equal reports do not replay the same order."""
    return truncated_normal(COMFORT_MIN, COMFORT_MAX, comfort, COMFORT_STDDEV, rng)


def next_card(store: Store, deck_id: int, rng=random) -> Card:
    """Return the least comfortable card in the deck, breaking ties uniformly at random."""
    def pick(conn):
        rows = conn.execute(
            f"""SELECT {CARD_COLUMNS} FROM cards
            WHERE deck = ? AND comfort = (SELECT MIN(comfort) FROM cards WHERE deck = ?)
            ORDER BY id ASC""",
            (deck_id, deck_id),
        ).fetchall()
        if not rows:
            raise NotFoundError(f"deck {deck_id} has no cards")
        return rng.choice(rows)

    return Card.from_row(store.run_in_transaction(pick))


def review_card(
    store: Store,
    card_id: int,
    comfort: float,
    rng=random,
    now: Optional[datetime] = None,
) -> Card:
    """Record a review: store a jittered comfort and stamp last practiced.

    ``comfort`` must lie in [COMFORT_REVIEW_MIN, COMFORT_REVIEW_MAX]; the stored
    value lies in [COMFORT_MIN, COMFORT_MAX).
    """
    if isinstance(comfort, bool) or not isinstance(comfort, (int, float)) or not (
        COMFORT_REVIEW_MIN <= comfort <= COMFORT_REVIEW_MAX
    ):
        raise ValidationError(
            f"comfort must be from {COMFORT_REVIEW_MIN} to {COMFORT_REVIEW_MAX}, got {comfort!r}"
        )
    stored = jitter(comfort, rng)
    practiced = to_epoch(now or datetime.now(timezone.utc))

    def update(conn):
        cursor = conn.execute(
            "UPDATE cards SET comfort = ?, last_practiced = ? WHERE id = ?",
            (stored, practiced, card_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"no card with id {card_id}")
        row = conn.execute(f"SELECT {CARD_COLUMNS} FROM cards WHERE id = ?", (card_id,)).fetchone()
        return Card.from_row(row)

    return store.run_in_transaction(update)
