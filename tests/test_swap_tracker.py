import pytest

from grimoire.rules.profile import SwapTransaction
from grimoire.rules.types import LEVEL_UP, LONG_REST, NO_WINDOW, SpellRef, SwapWindow

from conftest import make_character, uuid

FIRE_BOLT = SpellRef(uuid("fire-bolt"), 0, "Fire Bolt")
MAGE_HAND = SpellRef(uuid("mage-hand"), 0, "Mage Hand")
RAY = SpellRef(uuid("ray-of-frost"), 0, "Ray of Frost")


def test_unlearn_then_relearn_round_trips(book_for):
    book = book_for(make_character(), "levelUp", "enforced")
    tx = book.tracker.track_change(FIRE_BOLT, False, LEVEL_UP)
    assert tx.has_unlearned and tx.unlearned_uuid == FIRE_BOLT.uuid
    tx = book.tracker.track_change(FIRE_BOLT, True, LEVEL_UP)
    assert not tx.has_unlearned and not tx.has_learned
    assert tx.is_empty


def test_learn_then_uncheck_clears_learned(book_for):
    book = book_for(make_character(), "levelUp", "enforced")
    book.tracker.track_change(FIRE_BOLT, False, LEVEL_UP)
    tx = book.tracker.track_change(RAY, True, LEVEL_UP)
    assert tx.learned_uuid == RAY.uuid
    tx = book.tracker.track_change(RAY, False, LEVEL_UP)
    assert tx.learned_uuid is None
    assert tx.unlearned_uuid == FIRE_BOLT.uuid


def test_one_uuid_per_direction(book_for):
    book = book_for(make_character(), "levelUp", "enforced")
    book.tracker.track_change(FIRE_BOLT, False, LEVEL_UP)
    tx = book.tracker.track_change(MAGE_HAND, False, LEVEL_UP)
    assert tx.unlearned_uuid == MAGE_HAND.uuid


def test_snapshot_taken_once(book_for):
    ch = make_character()
    book = book_for(ch, "levelUp", "enforced")
    tx = book.tracker.track_change(FIRE_BOLT, False, LEVEL_UP)
    assert tx.original_checked == {FIRE_BOLT.uuid, MAGE_HAND.uuid}
    ch.items = [i for i in ch.items if i.id != "mage-hand"]
    tx = book.tracker.track_change(RAY, True, LEVEL_UP)
    assert MAGE_HAND.uuid in tx.original_checked
    with pytest.raises(AttributeError):
        tx.original_checked = frozenset()


def test_windows_have_separate_transactions(book_for):
    ch = make_character(flags={"classRules": {}})
    book = book_for(ch, "levelUp", "enforced")
    book.tracker.track_change(FIRE_BOLT, False, LEVEL_UP)
    assert set(book.tracker.transactions) == {SwapWindow.LEVEL_UP}
    assert book.tracker.transaction(LONG_REST) is None
    assert book.tracker.transaction(NO_WINDOW) is None


@pytest.mark.parametrize(
    "klass,regime,behavior,ctx",
    [
        ("Wizard", "legacy", "enforced", LEVEL_UP),
        ("Wizard", "levelUp", "unenforced", LEVEL_UP),
        ("Wizard", "levelUp", "enforced", LONG_REST),
        ("Wizard", "levelUp", "enforced", NO_WINDOW),
        ("Cleric", "longRest", "enforced", LONG_REST),
    ],
)
def test_tracking_skipped_when_irrelevant(book_for, klass, regime, behavior, ctx):
    book = book_for(make_character(klass), regime, behavior)
    assert book.tracker.track_change(FIRE_BOLT, False, ctx) is None
    assert book.tracker.transactions == {}


def test_non_cantrips_not_tracked(book_for):
    book = book_for(make_character(), "levelUp", "enforced")
    missile = SpellRef(uuid("magic-missile"), 1)
    assert book.tracker.track_change(missile, True, LEVEL_UP) is None


def test_notify_gm_still_tracks(book_for):
    book = book_for(make_character(), "levelUp", "notifyGM")
    assert book.tracker.track_change(FIRE_BOLT, False, LEVEL_UP) is not None


def test_complete_level_up_advances_watermark(book_for):
    ch = make_character(level=4)
    book = book_for(ch, "levelUp", "enforced")
    book.tracker.track_change(FIRE_BOLT, False, LEVEL_UP)
    book.tracker.complete_transaction(LEVEL_UP)
    assert book.tracker.transactions == {}
    assert ch.flags["previousLevel"] == 4
    assert ch.flags["previousCantripMax"] == 3
    assert not book.profile().in_level_up_window


def test_complete_long_rest_clears_pending_flag(book_for):
    ch = make_character(flags={"longRestPending": True, "previousLevel": 1, "previousCantripMax": 3})
    book = book_for(ch, "longRest", "enforced")
    book.tracker.track_change(FIRE_BOLT, False, LONG_REST)
    book.tracker.complete_transaction(LONG_REST)
    assert "longRestPending" not in ch.flags
    assert book.tracker.transactions == {}
    assert ch.flags["previousLevel"] == 1


def test_transaction_as_dict():
    tx = SwapTransaction(original_checked={"a", "b"})
    tx.toggle_unlearned("a")
    assert tx.as_dict() == {
        "hasUnlearned": True,
        "unlearned": "a",
        "hasLearned": False,
        "learned": None,
        "originalChecked": ["a", "b"],
    }
