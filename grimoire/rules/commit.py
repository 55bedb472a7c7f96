from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from grimoire.compendium import SpellCompendium
from grimoire.config import EngineConfig
from grimoire.logging import get_logger
from grimoire.models.character import PREPARED, Preparation, SpellItem
from grimoire.notify import NotificationSink
from grimoire.store import (
    FLAG_PREPARED_SPELLS,
    FLAG_UNLEARNED_CANTRIPS,
    CharacterStore,
    StoreError,
)

from .settings import RuleConfiguration
from .swap import SwapTracker
from .types import EnforcementBehavior, RuleRegime


@dataclass(frozen=True)
class PreparationEntry:
    is_prepared: bool
    was_prepared: bool = False
    is_always_prepared: bool = False


@dataclass(frozen=True)
class CantripChange:
    uuid: str
    name: str


@dataclass
class CommitPlan:
    delete: List[str] = field(default_factory=list)
    update: List[Dict[str, object]] = field(default_factory=list)
    create: List[SpellItem] = field(default_factory=list)
    cantrips_added: List[CantripChange] = field(default_factory=list)
    cantrips_removed: List[CantripChange] = field(default_factory=list)
    prepared_uuids: List[str] = field(default_factory=list)


@dataclass
class CommitResult:
    ok: bool = True
    deleted: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    created: List[str] = field(default_factory=list)
    cantrips_added: List[CantripChange] = field(default_factory=list)
    cantrips_removed: List[CantripChange] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return bool(self.deleted or self.updated or self.created)


class ChangeCommitter:
    """Turn a submitted preparation map into delete/update/create batches."""

    def __init__(
        self,
        store: CharacterStore,
        rules: RuleConfiguration,
        compendium: SpellCompendium,
        sink: NotificationSink,
        config: EngineConfig | None = None,
    ) -> None:
        self.store = store
        self.rules = rules
        self.compendium = compendium
        self.sink = sink
        self._log = get_logger(__name__, (config or EngineConfig()).log_level)

    def plan(self, preparation_map: Mapping[str, PreparationEntry]) -> CommitPlan:
        plan = CommitPlan()
        for uuid, entry in preparation_map.items():
            if entry.is_prepared:
                plan.prepared_uuids.append(uuid)
            if entry.is_always_prepared:
                continue
            existing = self.store.find_spell(uuid)
            if not entry.is_prepared:
                if entry.was_prepared and existing is not None and _removable(existing):
                    plan.delete.append(existing.id)
                    if existing.is_cantrip:
                        plan.cantrips_removed.append(CantripChange(uuid, existing.name))
                continue
            if existing is not None:
                prep = existing.preparation
                if not prep.prepared:
                    plan.update.append({"id": existing.id, "preparation": {"prepared": True, "mode": PREPARED}})
                    if existing.is_cantrip:
                        plan.cantrips_added.append(CantripChange(uuid, existing.name))
                continue
            source = self.compendium.get(uuid)
            if source is None:
                self._log.warning("No compendium spell for %s; skipping", uuid)
                continue
            item = SpellItem(
                id=self._new_id(source.name, plan),
                name=source.name,
                level=source.level,
                source_id=uuid,
                preparation=Preparation(prepared=True, mode=PREPARED),
            )
            plan.create.append(item)
            if source.is_cantrip:
                plan.cantrips_added.append(CantripChange(uuid, source.name))
        return plan

    def commit(
        self,
        preparation_map: Mapping[str, PreparationEntry],
        tracker: SwapTracker | None = None,
    ) -> CommitResult:
        """Apply ``preparation_map``; ``tracker``'s open swaps are saved with it."""
        character = self.store.character
        settings = self.rules.resolve(self.store)
        before = sorted(s.name for s in character.prepared_cantrips(include_always=False))
        plan = self.plan(preparation_map)
        result = CommitResult(
            cantrips_added=plan.cantrips_added,
            cantrips_removed=plan.cantrips_removed,
        )
        self._log.info("Saving prepared spells for %s", character.name)
        try:
            self.store.set_flag(FLAG_PREPARED_SPELLS, plan.prepared_uuids)
            if plan.delete:
                self._log.info("Removing %d spells from %s", len(plan.delete), character.name)
                self.store.delete_items(plan.delete)
                result.deleted = list(plan.delete)
            if plan.update:
                self._log.info("Updating %d spells on %s", len(plan.update), character.name)
                self.store.update_items(plan.update)
                result.updated = [str(u["id"]) for u in plan.update]
            if plan.create:
                self._log.info("Creating %d spells on %s", len(plan.create), character.name)
                self.store.create_items(plan.create)
                result.created = [i.id for i in plan.create]
            if settings.regime is RuleRegime.MODERN_LEVEL_UP and plan.cantrips_removed:
                count = int(self.store.get_flag(FLAG_UNLEARNED_CANTRIPS) or 0)
                self.store.set_flag(FLAG_UNLEARNED_CANTRIPS, count + len(plan.cantrips_removed))
            if tracker is not None:
                tracker.save()
        except StoreError as e:
            self._log.error("Error saving prepared spells for %s: %s", character.name, e)
            self.sink.warn_user(f"Could not save prepared spells for {character.name}: {e}")
            result.ok = False
            result.error = str(e)
            return result

        if settings.behavior is EnforcementBehavior.NOTIFY_GM and (plan.cantrips_added or plan.cantrips_removed):
            self.sink.post_to_gm(cantrip_summary(character.name, before, plan))
        return result

    def _new_id(self, name: str, plan: CommitPlan) -> str:
        candidate = self.store.next_item_id(name)
        taken = {i.id for i in plan.create}
        n = 1
        base = candidate
        while candidate in taken:
            n += 1
            candidate = f"{base}-{n}"
        return candidate


def _removable(spell: SpellItem) -> bool:
    prep = spell.preparation
    return prep.prepared and prep.mode == PREPARED and not prep.always_prepared


def cantrip_summary(actor_name: str, before: List[str], plan: CommitPlan) -> str:
    removed = [c.name for c in plan.cantrips_removed]
    added = [c.name for c in plan.cantrips_added]
    after = sorted((set(before) - set(removed)) | set(added))
    lines = [f"Cantrip changes for {actor_name}"]
    if before:
        lines.append(f"Original cantrips: {', '.join(before)}")
    if removed:
        lines.append(f"Removed: {', '.join(removed)}")
    if added:
        lines.append(f"Added: {', '.join(added)}")
    if after:
        lines.append(f"New cantrips: {', '.join(after)}")
    return "\n".join(lines)
