from grimoire.models.character import SpellItem
from grimoire.rules.commit import PreparationEntry
from grimoire.store import MemoryCharacterStore, StoreError

from conftest import cantrip, make_character, uuid


def _entry(is_prepared, was_prepared, always=False):
    return PreparationEntry(is_prepared=is_prepared, was_prepared=was_prepared, is_always_prepared=always)


def _swap_map():
    return {
        uuid("fire-bolt"): _entry(True, True),
        uuid("mage-hand"): _entry(True, True),
        uuid("light"): _entry(False, True),
        uuid("ray-of-frost"): _entry(True, False),
    }


def test_swap_is_one_delete_and_one_create(book_for):
    ch = make_character(prepared=("fire-bolt", "mage-hand", "light"))
    book = book_for(ch, "legacy", "enforced")
    result = book.committer.commit(_swap_map())
    assert result.ok
    assert result.deleted == ["light"]
    assert len(result.created) == 1
    assert result.updated == []
    created = book.store.find_spell(uuid("ray-of-frost"))
    assert created.name == "Ray of Frost"
    assert created.source_id == uuid("ray-of-frost")
    assert created.preparation.prepared
    assert book.store.find_spell(uuid("light")) is None
    assert [c.name for c in result.cantrips_removed] == ["Light"]
    assert [c.name for c in result.cantrips_added] == ["Ray of Frost"]


def test_owned_unprepared_spell_is_updated(book_for):
    ch = make_character(extra=[cantrip("light", prepared=False)])
    book = book_for(ch, "legacy", "enforced")
    result = book.committer.commit({uuid("light"): _entry(True, False)})
    assert result.updated == ["light"]
    assert result.created == [] and result.deleted == []
    assert book.store.find_spell(uuid("light")).preparation.prepared


def test_always_prepared_and_unknown_entries_skipped(book_for):
    ch = make_character(extra=[cantrip("light", always_prepared=True)])
    book = book_for(ch, "legacy", "enforced")
    result = book.committer.commit(
        {
            uuid("light"): _entry(False, True, always=True),
            "Compendium.homebrew.spells.nope": _entry(True, False),
        }
    )
    assert result.ok and not result.changed
    assert book.store.find_spell(uuid("light")) is not None


def test_prepared_list_flag_written(book_for):
    ch = make_character(prepared=("fire-bolt", "mage-hand", "light"))
    book = book_for(ch, "legacy", "enforced")
    book.committer.commit(_swap_map())
    assert set(ch.flags["preparedSpells"]) == {uuid("fire-bolt"), uuid("mage-hand"), uuid("ray-of-frost")}


def test_notify_gm_summary(book_for, sink):
    ch = make_character(prepared=("fire-bolt", "mage-hand", "light"))
    book = book_for(ch, "legacy", "notifyGM")
    book.committer.commit(_swap_map())
    assert len(sink.gm) == 1
    text = sink.gm[0]
    assert "Original cantrips: Fire Bolt, Light, Mage Hand" in text
    assert "Removed: Light" in text
    assert "Added: Ray of Frost" in text
    assert "New cantrips: Fire Bolt, Mage Hand, Ray of Frost" in text


def test_no_summary_when_enforced_or_unchanged(book_for, sink):
    book = book_for(make_character(prepared=("fire-bolt", "mage-hand", "light")), "legacy", "enforced")
    book.committer.commit(_swap_map())
    book = book_for(make_character(), "legacy", "notifyGM")
    book.committer.commit({uuid("fire-bolt"): _entry(True, True)})
    assert sink.gm == []


def test_level_up_regime_counts_unlearned(book_for):
    ch = make_character(prepared=("fire-bolt", "mage-hand", "light"), flags={"unlearnedCantrips": 1})
    book = book_for(ch, "levelUp", "enforced")
    book.committer.commit(_swap_map())
    assert ch.flags["unlearnedCantrips"] == 2


def test_other_regimes_leave_counter_alone(book_for):
    ch = make_character(prepared=("fire-bolt", "mage-hand", "light"))
    book = book_for(ch, "longRest", "enforced")
    book.committer.commit(_swap_map())
    assert "unlearnedCantrips" not in ch.flags


class FailingCreateStore(MemoryCharacterStore):
    def create_items(self, items):
        raise StoreError("disk full")


def test_store_failure_reported_once_without_rollback(compendium, sink):
    from grimoire.config import MemorySettingsStore
    from grimoire.spellbook import Spellbook

    ch = make_character(prepared=("fire-bolt", "mage-hand", "light"))
    book = Spellbook(FailingCreateStore(ch), MemorySettingsStore(), compendium, sink)
    result = book.committer.commit(_swap_map())
    assert not result.ok
    assert result.error == "disk full"
    assert result.deleted == ["light"]
    assert result.created == []
    assert len(sink.warnings) == 1 and "disk full" in sink.warnings[0]
    assert book.store.find_spell(uuid("light")) is None


def test_created_ids_do_not_collide(book_for):
    ch = make_character(prepared=(), extra=[SpellItem(id="ray-of-frost", name="Ray of Frost", level=1)])
    book = book_for(ch, "legacy", "unenforced")
    result = book.committer.commit({uuid("ray-of-frost"): _entry(True, False)})
    assert result.created == ["ray-of-frost-2"]


def test_prepared_pact_cantrip_is_left_alone(book_for):
    ch = make_character(extra=[cantrip("eldritch-blast", mode="pact")])
    book = book_for(ch, "legacy", "enforced")
    result = book.committer.commit({uuid("eldritch-blast"): _entry(True, True)})
    assert result.ok
    assert result.updated == [] and result.created == []
    assert book.store.find_spell(uuid("eldritch-blast")).preparation.mode == "pact"
