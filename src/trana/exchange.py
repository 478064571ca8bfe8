"""Card import and export files (JSON, or YAML for hand-written decks)."""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from trana.cards import CARD_COLUMNS
from trana.db import Store
from trana.decks import require_deck
from trana.errors import ValidationError
from trana.merge import import_cards
from trana.models import COMFORT_UNSET, Card, ImportResult

FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def format_timestamp(moment: Optional[datetime]) -> Optional[str]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def parse_timestamp(value) -> Optional[datetime]:
    """Accept null, an RFC 3339 string, epoch seconds, or a datetime (YAML parses those itself)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            moment = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValidationError(f"last_practiced timestamp {value!r} is out of range") from exc
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value)
        except ValueError as exc:
            raise ValidationError(f"bad last_practiced timestamp {value!r}") from exc
    else:
        raise ValidationError(f"bad last_practiced timestamp {value!r}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def card_to_dict(card: Card) -> dict:
    return {
        "id": card.id,
        "deck": card.deck_id,
        "front": card.front,
        "back": card.back,
        "last_practiced": format_timestamp(card.last_practiced),
        "comfort": card.comfort,
    }


def card_from_dict(data, position: int = 0) -> Card:
    if not isinstance(data, dict):
        raise ValidationError(f"card #{position} is not an object")
    front, back = data.get("front"), data.get("back")
    if not isinstance(front, str) or not isinstance(back, str):
        raise ValidationError(f"card #{position} needs string front and back")
    comfort = data.get("comfort")
    if comfort is None:
        comfort = COMFORT_UNSET
    elif isinstance(comfort, bool) or not isinstance(comfort, (int, float)):
        raise ValidationError(f"card #{position} has non-numeric comfort {comfort!r}")
    return Card(
        id=data.get("id") or 0,
        deck_id=data.get("deck"),
        front=front,
        back=back,
        last_practiced=parse_timestamp(data.get("last_practiced")),
        comfort=float(comfort),
    )


def dump_cards(cards: list[Card]) -> str:
    return json.dumps([card_to_dict(c) for c in cards], indent=2, ensure_ascii=False)


def load_cards(text: str, fmt: str = "json") -> list[Card]:
    if fmt == "json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"invalid JSON: {exc}") from exc
    elif fmt == "yaml":
        import yaml
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValidationError(f"invalid YAML: {exc}") from exc
    else:
        raise ValidationError(f"unsupported format {fmt!r}")
    if not isinstance(data, list):
        raise ValidationError("expected a list of cards")
    return [card_from_dict(item, i) for i, item in enumerate(data)]


def read_cards(file_path: str) -> list[Card]:
    path = Path(file_path)
    fmt = FORMATS.get(path.suffix.lower())
    if fmt is None:
        raise ValidationError(f"unsupported file type {path.suffix or path.name!r}; use .json or .yaml")
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError(f"{path.name} is not UTF-8 text") from exc
    except OSError as exc:
        raise ValidationError(f"cannot read {file_path}: {exc.strerror or exc}") from exc
    return load_cards(text, fmt)


def import_file(store: Store, deck_id: int, file_path: str) -> ImportResult:
    """Read a card file and merge it into the deck."""
    return import_cards(store, deck_id, read_cards(file_path))


def export_deck(store: Store, deck_id: int, file_path: Optional[str] = None) -> str:
    """Return the deck's cards as pretty-printed JSON, writing it to ``file_path`` if given."""
    def collect(conn):
        require_deck(conn, deck_id)
        return conn.execute(
            f"SELECT {CARD_COLUMNS} FROM cards WHERE deck = ? ORDER BY id ASC", (deck_id,)
        ).fetchall()

    text = dump_cards([Card.from_row(r) for r in store.run_in_transaction(collect)])
    if file_path is not None:
        try:
            Path(file_path).write_text(text + "\n", encoding="utf-8")
        except OSError as exc:
            raise ValidationError(f"cannot write {file_path}: {exc.strerror or exc}") from exc
    return text
