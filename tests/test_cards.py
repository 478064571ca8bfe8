"""Tests for deck and card administration."""
from datetime import datetime, timezone

import unicodedata

import pytest

from trana.cards import create_card, delete_card, get_card, list_cards, update_card
from trana.decks import count_cards, create_deck, delete_deck, get_deck, list_decks, update_deck
from trana.errors import ConflictError, NotFoundError, ValidationError
from trana.models import COMFORT_UNSET, Deck


def test_create_and_list_decks(store):
    a = create_deck(store, "  Spanish ")
    b = create_deck(store, "Kanji")
    assert a.name == "Spanish"
    assert list_decks(store) == [a, b]
    assert get_deck(store, b.id) == b


def test_empty_deck_name_rejected(store):
    with pytest.raises(ValidationError):
        create_deck(store, "   ")


def test_update_deck(store, deck):
    update_deck(store, Deck(id=deck.id, name="Español"))
    assert get_deck(store, deck.id).name == "Español"


def test_missing_deck(store):
    with pytest.raises(NotFoundError):
        get_deck(store, 42)
    with pytest.raises(NotFoundError):
        update_deck(store, Deck(id=42, name="x"))
    with pytest.raises(NotFoundError):
        delete_deck(store, 42)


def test_delete_deck_cascades_to_cards(store, deck):
    create_card(store, deck.id, "uno", "one")
    create_card(store, deck.id, "dos", "two")
    delete_deck(store, deck.id)
    assert list_decks(store) == []
    assert store.connection.execute("SELECT COUNT(*) FROM cards").fetchone()[0] == 0


def test_create_card_defaults(store, deck):
    card = create_card(store, deck.id, " uno ", "one")
    assert card.front == "uno"
    assert card.deck_id == deck.id
    assert card.comfort == COMFORT_UNSET
    assert card.last_practiced is None
    assert not card.practiced


def test_create_card_in_missing_deck(store):
    with pytest.raises(NotFoundError):
        create_card(store, 99, "uno", "one")


def test_create_card_rejects_blank_sides(store, deck):
    with pytest.raises(ValidationError):
        create_card(store, deck.id, "", "one")
    with pytest.raises(ValidationError):
        create_card(store, deck.id, "uno", " \t")


def test_update_card_overwrites_without_jitter(store, deck):
    card = create_card(store, deck.id, "uno", "one")
    when = datetime(2023, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    card.front, card.back, card.comfort, card.last_practiced = "dos", "two", 3.25, when
    updated = update_card(store, card)
    assert (updated.front, updated.back, updated.comfort) == ("dos", "two", 3.25)
    assert updated.last_practiced == when


def test_update_card_accepts_unset_sentinel(store, deck):
    card = create_card(store, deck.id, "uno", "one")
    card.comfort = 2.0
    update_card(store, card)
    card.comfort = COMFORT_UNSET
    card.last_practiced = None
    assert update_card(store, card).comfort == COMFORT_UNSET


@pytest.mark.parametrize("comfort", [-0.5, 4.5, float("nan")])
def test_update_card_rejects_out_of_range_comfort(store, deck, comfort):
    card = create_card(store, deck.id, "uno", "one")
    card.comfort = comfort
    with pytest.raises(ValidationError):
        update_card(store, card)
    assert get_card(store, card.id).comfort == COMFORT_UNSET


def test_update_missing_card(store, deck):
    card = create_card(store, deck.id, "uno", "one")
    card.id = 1000
    with pytest.raises(NotFoundError):
        update_card(store, card)


def test_delete_card(store, deck):
    card = create_card(store, deck.id, "uno", "one")
    delete_card(store, card.id)
    assert count_cards(store, deck.id) == 0
    with pytest.raises(NotFoundError):
        get_card(store, card.id)
    with pytest.raises(NotFoundError):
        delete_card(store, card.id)


def test_list_cards_in_creation_order(store, deck):
    ids = [create_card(store, deck.id, f"front {i}", f"back {i}").id for i in range(5)]
    assert [c.id for c in list_cards(store, deck.id)] == ids


@pytest.mark.parametrize("front", ["uno", "  uno\n"])
def test_create_card_rejects_duplicate_front(store, deck, front):
    existing = create_card(store, deck.id, "uno", "one")
    with pytest.raises(ConflictError) as excinfo:
        create_card(store, deck.id, front, "another one")
    assert excinfo.value.existing_id == existing.id
    assert count_cards(store, deck.id) == 1


def test_create_card_duplicate_front_after_normalization(store, deck):
    create_card(store, deck.id, unicodedata.normalize("NFD", "café"), "coffee")
    with pytest.raises(ConflictError):
        create_card(store, deck.id, unicodedata.normalize("NFC", "café"), "coffee")


def test_same_front_allowed_in_other_deck(store, deck):
    other = create_deck(store, "Italian")
    create_card(store, deck.id, "uno", "one")
    assert create_card(store, other.id, "uno", "one").deck_id == other.id


def test_update_card_rejects_front_of_another_card(store, deck):
    create_card(store, deck.id, "uno", "one")
    card = create_card(store, deck.id, "dos", "two")
    card.front = "uno"
    with pytest.raises(ConflictError):
        update_card(store, card)
    assert get_card(store, card.id).front == "dos"


def test_update_card_keeps_its_own_front(store, deck):
    card = create_card(store, deck.id, "uno", "one")
    card.back = "1"
    assert update_card(store, card).back == "1"
