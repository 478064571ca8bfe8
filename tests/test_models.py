import unicodedata
from datetime import datetime, timezone

from trana.models import (
    COMFORT_MAX, COMFORT_MIN, COMFORT_REVIEW_MAX, COMFORT_REVIEW_MIN,
    Card, ImportResult, from_epoch, normalize_text, to_epoch,
)


def test_comfort_bounds():
    assert COMFORT_MIN == COMFORT_REVIEW_MIN - 1
    assert COMFORT_MAX == COMFORT_REVIEW_MAX + 1


def test_normalize_text_trims_and_composes():
    decomposed = unicodedata.normalize("NFD", "  café\n")
    assert normalize_text(decomposed) == "café"
    assert normalize_text(decomposed) == unicodedata.normalize("NFC", "café")


def test_epoch_conversion():
    when = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert to_epoch(when) == 1704067200
    assert from_epoch(1704067200) == when
    assert to_epoch(None) is None
    assert from_epoch(None) is None


def test_naive_datetime_treated_as_utc():
    assert to_epoch(datetime(2024, 1, 1)) == 1704067200


def test_card_defaults():
    card = Card(id=1, front="f", back="b")
    assert card.deck_id is None
    assert not card.practiced


def test_import_result_total():
    assert ImportResult(inserted=2, updated=3).total == 5
