"""Data classes for decks and cards."""
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

COMFORT_REVIEW_MIN = 1
COMFORT_REVIEW_MAX = 3
# Jittered review scores land in [COMFORT_MIN, COMFORT_MAX)
COMFORT_MIN = COMFORT_REVIEW_MIN - 1
COMFORT_MAX = COMFORT_REVIEW_MAX + 1
# Never practiced
COMFORT_UNSET = -1.0


def normalize_text(value: str) -> str:
    """Trim surrounding whitespace and compose to NFC so equal-looking text compares equal."""
    return unicodedata.normalize("NFC", value.strip())


def to_epoch(moment: Optional[datetime]) -> Optional[int]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def from_epoch(seconds: Optional[int]) -> Optional[datetime]:
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


@dataclass
class Deck:
    id: int
    name: str

    @classmethod
    def from_row(cls, row) -> "Deck":
        return cls(id=row["id"], name=row["name"])


@dataclass
class Card:
    id: int
    front: str
    back: str
    deck_id: Optional[int] = None
    last_practiced: Optional[datetime] = None
    comfort: float = COMFORT_UNSET

    @classmethod
    def from_row(cls, row) -> "Card":
        return cls(
            id=row["id"],
            deck_id=row["deck"],
            front=row["front"],
            back=row["back"],
            last_practiced=from_epoch(row["last_practiced"]),
            comfort=row["comfort"],
        )

    @property
    def practiced(self) -> bool:
        return self.last_practiced is not None


@dataclass
class ImportResult:
    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.updated
