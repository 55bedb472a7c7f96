import pytest

from grimoire.rules.types import LEVEL_UP, LONG_REST, NO_WINDOW, ReasonCode, SpellRef

from conftest import cantrip, make_character, uuid

RAY = SpellRef(uuid("ray-of-frost"), 0, "Ray of Frost")


def test_exempt_spells_have_fixed_locks(book_for):
    book = book_for(make_character(), "legacy", "unenforced")
    granted = SpellRef(uuid("light"), 0, is_granted=True)
    always = SpellRef(uuid("light"), 0, is_always_prepared=True)
    assert book.locks.get_lock_status(granted, True, NO_WINDOW).reason is ReasonCode.GRANTED
    assert book.locks.get_lock_status(always, True, NO_WINDOW).reason is ReasonCode.ALWAYS_PREPARED


def test_leveled_spells_unlocked(book_for):
    book = book_for(make_character(prepared=("fire-bolt", "mage-hand", "light")), "legacy", "enforced")
    missile = SpellRef(uuid("magic-missile"), 1)
    assert not book.locks.get_lock_status(missile, False, NO_WINDOW).locked


def test_legacy_prepared_cantrip_locked(book_for):
    book = book_for(make_character(), "legacy", "enforced")
    status = book.get_lock_status(uuid("fire-bolt"), NO_WINDOW)
    assert status.locked and status.reason is ReasonCode.LOCKED_LEGACY
    assert not book.get_lock_status(RAY, NO_WINDOW).locked


def test_unchecked_locked_at_cap_only_when_enforced(book_for):
    at_cap = ("fire-bolt", "mage-hand", "light")
    book = book_for(make_character(prepared=at_cap), "legacy", "enforced")
    status = book.get_lock_status(RAY, NO_WINDOW)
    assert status.locked and status.reason is ReasonCode.MAXIMUM_REACHED
    book = book_for(make_character(prepared=at_cap), "legacy", "notifyGM")
    assert not book.get_lock_status(RAY, NO_WINDOW).locked


@pytest.mark.parametrize("regime", ["legacy", "levelUp", "longRest"])
@pytest.mark.parametrize("behavior", ["enforced", "notifyGM", "unenforced"])
@pytest.mark.parametrize("klass", ["Wizard", "Druid"])
def test_locks_agree_with_can_change(book_for, regime, behavior, klass):
    ch = make_character(
        klass,
        prepared=("fire-bolt", "mage-hand"),
        extra=[cantrip("light", always_prepared=True), cantrip("guidance", prepared=False)],
    )
    book = book_for(ch, regime, behavior)
    book.track_change(uuid("fire-bolt"), False, LEVEL_UP)
    for ctx in (NO_WINDOW, LEVEL_UP, LONG_REST):
        statuses = book.lock_statuses(ctx)
        assert statuses
        for ref in book.cantrip_refs():
            status = statuses[ref.uuid]
            if ref.exempt:
                assert status.locked
                continue
            decision = book.can_change(ref, not book.is_checked(ref), ctx)
            assert status.locked is (not decision.allowed)
            if status.locked:
                assert status.reason is decision.reason
