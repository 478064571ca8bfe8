"""Tests for reading and writing card files."""
import json
from datetime import datetime, timezone

import pytest

from trana.cards import create_card, list_cards, update_card
from trana.errors import ConflictError, NotFoundError, ValidationError
from trana.exchange import (
    card_from_dict, card_to_dict, dump_cards, export_deck, import_file,
    load_cards, parse_timestamp, read_cards,
)
from trana.models import COMFORT_UNSET, Card


def test_card_to_dict_uses_rfc3339():
    card = Card(id=3, deck_id=1, front="f", back="b", comfort=1.5,
                last_practiced=datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc))
    assert card_to_dict(card) == {
        "id": 3, "deck": 1, "front": "f", "back": "b",
        "last_practiced": "2024-02-03T04:05:06Z", "comfort": 1.5,
    }


def test_card_to_dict_never_practiced():
    assert card_to_dict(Card(id=1, front="f", back="b"))["last_practiced"] is None


def test_card_from_dict_defaults():
    card = card_from_dict({"front": "foo", "back": "bar"})
    assert card.comfort == COMFORT_UNSET
    assert card.last_practiced is None


@pytest.mark.parametrize("value", [
    "2024-02-03T04:05:06Z",
    "2024-02-03T04:05:06+00:00",
    1706933106,
    datetime(2024, 2, 3, 4, 5, 6),
])
def test_parse_timestamp(value):
    assert parse_timestamp(value) == datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["yesterday", [], True, 1e20, -1e20])
def test_parse_timestamp_rejects_garbage(value):
    with pytest.raises(ValidationError):
        parse_timestamp(value)


@pytest.mark.parametrize("data", [
    {"front": "foo"},
    {"front": 1, "back": "bar"},
    {"front": "foo", "back": "bar", "comfort": "high"},
    "not an object",
])
def test_card_from_dict_rejects_bad_shapes(data):
    with pytest.raises(ValidationError):
        card_from_dict(data)


def test_load_cards_json():
    text = '[{"front": "foo", "back": "bar", "comfort": 1}]'
    (card,) = load_cards(text)
    assert (card.front, card.back, card.comfort) == ("foo", "bar", 1.0)


def test_load_cards_yaml():
    text = (
        "- front: foo\n"
        "  back: bar\n"
        "  comfort: 2\n"
        "  last_practiced: 2024-02-03T04:05:06Z\n"
        "- front: baz\n"
        "  back: qux\n"
    )
    first, second = load_cards(text, "yaml")
    assert first.last_practiced == datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)
    assert second.comfort == COMFORT_UNSET


@pytest.mark.parametrize("text,fmt", [
    ("{not json", "json"),
    ('{"front": "foo", "back": "bar"}', "json"),
    ("front: [unclosed", "yaml"),
    ("[]", "csv"),
])
def test_load_cards_rejects_bad_input(text, fmt):
    with pytest.raises(ValidationError):
        load_cards(text, fmt)


def test_read_cards_picks_format_by_suffix(tmp_path):
    f = tmp_path / "deck.yml"
    f.write_text("- {front: foo, back: bar}\n")
    assert read_cards(str(f))[0].front == "foo"
    txt = tmp_path / "deck.txt"
    txt.write_text("foo")
    with pytest.raises(ValidationError):
        read_cards(str(txt))


def test_read_cards_rejects_non_utf8(tmp_path):
    f = tmp_path / "deck.json"
    f.write_bytes(b'[{"front": "caf\xe9", "back": "coffee"}]')
    with pytest.raises(ValidationError, match="UTF-8"):
        read_cards(str(f))


def test_read_cards_unreadable_path(tmp_path):
    (tmp_path / "deck.json").mkdir()
    with pytest.raises(ValidationError):
        read_cards(str(tmp_path / "deck.json"))
    with pytest.raises(ValidationError):
        read_cards(str(tmp_path / "missing.json"))


def test_load_cards_out_of_range_epoch():
    with pytest.raises(ValidationError):
        load_cards('[{"front": "a", "back": "b", "last_practiced": 1e20}]')


def test_export_is_pretty_json(store, deck, tmp_path):
    card = create_card(store, deck.id, "foo", "bar")
    card.comfort = 2.0
    card.last_practiced = datetime(2024, 1, 1, tzinfo=timezone.utc)
    update_card(store, card)
    out = tmp_path / "export.json"
    text = export_deck(store, deck.id, str(out))
    assert "\n  {" in text
    data = json.loads(out.read_text())
    assert data == [{
        "id": card.id, "deck": deck.id, "front": "foo", "back": "bar",
        "last_practiced": "2024-01-01T00:00:00Z", "comfort": 2.0,
    }]


def test_export_to_unwritable_path(store, deck, tmp_path):
    with pytest.raises(ValidationError):
        export_deck(store, deck.id, str(tmp_path / "no" / "such" / "dir.json"))


def test_export_unknown_deck(store):
    with pytest.raises(NotFoundError):
        export_deck(store, 77)


def test_export_then_import_is_a_no_op(store, deck, tmp_path):
    create_card(store, deck.id, "foo", "bar")
    create_card(store, deck.id, "baz", "qux")
    out = tmp_path / "deck.json"
    export_deck(store, deck.id, str(out))
    before = list_cards(store, deck.id)
    result = import_file(store, deck.id, str(out))
    assert (result.inserted, result.updated) == (0, 2)
    assert list_cards(store, deck.id) == before


def test_import_file_conflict(store, deck, tmp_path):
    create_card(store, deck.id, "foo", "bar")
    f = tmp_path / "clash.json"
    f.write_text(dump_cards([Card(id=9, front="foo", back="baz")]))
    with pytest.raises(ConflictError):
        import_file(store, deck.id, str(f))
