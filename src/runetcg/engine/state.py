from __future__ import annotations

import copy
import random
from dataclasses import dataclass, field
from typing import Literal

from .actions import Action, TargetRef
from .types import (
    CardCatalog,
    CardDefinition,
    CardEffect,
    ChoiceOption,
    KeywordEffect,
    TargetingRule,
)

Phase = Literal["DRAW", "MAIN", "BATTLE_DECLARE", "END"]
PendingSource = Literal["SPELL", "ON_PLAY", "TRIGGER"]


def _default_rank_costs() -> dict[int, int]:
    return {2: 2, 3: 4}


def _default_tier_unlocks() -> dict[int, int]:
    return {2: 5, 3: 9, 4: 13}


def _default_overrides() -> dict[str, int]:
    return {"Flame-Wreathed Runemaster": 5, "Grandblade Exemplar": 5}


@dataclass(frozen=True)
class MatchConfig:
    starting_life: int = 20
    max_life: int = 20
    starting_hand: int = 5
    board_slots: int = 3
    deck_size: int | None = None  # exact size enforced when set
    first_player_draws: bool = True
    rank_costs: dict[int, int] = field(default_factory=_default_rank_costs)
    sacrifice_overrides: dict[str, int] = field(default_factory=_default_overrides)
    max_relics_per_slot: int = 2
    location_duration: int = 2
    # First turn (counted globally) on which each rank may be summoned or cast.
    tier_unlock_turns: dict[int, int] = field(default_factory=_default_tier_unlocks)


@dataclass(frozen=True)
class CardInstance:
    uid: str
    card_id: str


@dataclass
class CreatureRuntime:
    temp_atk_buff: int = 0
    perm_atk_buff: int = 0
    surge_buff: int = 0
    hp_bonus: int = 0
    prevented_damage: int = 0
    frozen_turns: int = 0
    stunned_turns: int = 0
    attacks_this_turn: int = 0
    spell_shield: bool = False
    temp_evade: bool = False
    evaded_this_duel: bool = False
    auto_evasion_used: bool = False
    granted_keywords: list[KeywordEffect] = field(default_factory=list)
    satisfied_conditions: set[str] = field(default_factory=set)


@dataclass
class BoardCreature:
    instance: CardInstance
    card: CardDefinition
    current_hp: int
    summoning_sick: bool = True
    runtime: CreatureRuntime = field(default_factory=CreatureRuntime)

    @property
    def name(self) -> str:
        return self.card.name


@dataclass
class AttachedRelic:
    instance: CardInstance
    card: CardDefinition
    slot: int


@dataclass
class ActiveLocation:
    instance: CardInstance
    card: CardDefinition
    turns_remaining: int


@dataclass
class PlayerState:
    name: str
    life: int
    deck: list[CardInstance]
    hand: list[CardInstance]
    board: list[BoardCreature | None]
    graveyard: list[CardInstance] = field(default_factory=list)
    evolution_pool: list[CardInstance] = field(default_factory=list)
    relics: list[AttachedRelic] = field(default_factory=list)
    location: ActiveLocation | None = None
    spells_cast_this_turn: int = 0
    evaded_this_turn: set[int] = field(default_factory=set)
    bounced_this_turn: set[int] = field(default_factory=set)
    enemy_attack_missed_this_turn: bool = False
    location_used_this_turn: set[int] = field(default_factory=set)
    triggers_used_this_turn: set[str] = field(default_factory=set)

    def relics_on(self, slot: int) -> list[AttachedRelic]:
        return [r for r in self.relics if r.slot == slot]

    def find_in_hand(self, uid: str) -> int | None:
        for i, inst in enumerate(self.hand):
            if inst.uid == uid:
                return i
        return None


@dataclass(frozen=True)
class EffectContext:
    """Where an ability fragment comes from and what it is aimed at."""

    controller: int
    source_name: str
    source_slot: int | None = None
    target: TargetRef | None = None
    triggering: TargetRef | None = None
    attacker: TargetRef | None = None
    from_spell: bool = False
    bounced_slot: int | None = None


@dataclass(frozen=True)
class PendingTarget:
    source_name: str
    rule: TargetingRule
    chooser: int
    source_kind: PendingSource
    effects: tuple[CardEffect, ...]
    context: EffectContext
    spell_uid: str | None = None


@dataclass(frozen=True)
class PendingDiscard:
    player: int
    source_name: str
    remaining: int


@dataclass(frozen=True)
class PendingChoice:
    source_name: str
    chooser: int
    options: tuple[ChoiceOption, ...]
    context: EffectContext


@dataclass(frozen=True)
class PendingReveal:
    viewer: int
    owner: int
    source_name: str
    cards: tuple[str, ...]


@dataclass(frozen=True)
class PendingSacrifice:
    player: int
    uid: str
    slot: int
    cost: int


Pending = PendingTarget | PendingDiscard | PendingChoice | PendingReveal | PendingSacrifice


@dataclass
class GameState:
    catalog: CardCatalog
    config: MatchConfig
    seed: int
    rng: random.Random
    players: list[PlayerState]
    active_player: int = 0
    phase: Phase = "MAIN"
    turn: int = 1
    log: list[str] = field(default_factory=list)
    pending: Pending | None = None
    pending_queue: list[Pending] = field(default_factory=list)
    action_log: list[Action] = field(default_factory=list)
    uid_counter: int = 0

    def opponent(self, player: int) -> int:
        return 1 - player


def clone_state(state: GameState) -> GameState:
    """Deep copy of ``state`` that shares the catalog, config and card definitions."""
    memo: dict[int, object] = {id(state.catalog): state.catalog, id(state.config): state.config}
    for card in state.catalog.cards.values():
        memo[id(card)] = card
    return copy.deepcopy(state, memo)


def mint_instance(state: GameState, card_id: str) -> CardInstance:
    state.uid_counter += 1
    return CardInstance(uid=f"{card_id}#{state.uid_counter}", card_id=card_id)
