from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

CardKind = Literal["CREATURE", "FAST_SPELL", "SLOW_SPELL", "RELIC", "LOCATION", "EVOLUTION"]
EvolutionType = Literal["TRANSFORM", "DROP_IN"]

Keyword = Literal[
    "GUARD",
    "ARMOR",
    "REGEN",
    "THORNS",
    "LIFETAP",
    "PIERCING",
    "FIRST_STRIKE",
    "DOUBLE_STRIKE",
    "SPELL_SHIELD",
    "SURGE",
    "SWIFT",
    "AWAKEN",
    "EVASION",
    "CATALYST",
    "CATALYST_ECHO",
]

Timing = Literal[
    "ON_PLAY",
    "ON_ATTACK",
    "ON_DAMAGE",
    "ON_DAMAGED",
    "DEATH",
    "START_OF_TURN",
    "END_OF_TURN",
    "CATALYST",
    "ON_EVADE",
    "ON_BOUNCE",
    "ON_EVOLVE",
    "IMMEDIATE",
]

TargetType = Literal[
    "SELF",
    "TARGET_CREATURE",
    "TARGET_PLAYER",
    "TARGET",
    "SELF_PLAYER",
    "ENEMY_PLAYER",
    "ALL_FRIENDLY",
    "ALL_ENEMY",
    "ALL_CREATURES",
    "TRIGGERING",
    "ATTACKING_CREATURE",
    "RANDOM_FRIENDLY",
    "NONE",
]

RuleType = Literal[
    "FRIENDLY_CREATURES",
    "ENEMY_CREATURES",
    "ANY_CREATURE",
    "ALL_CREATURES",
    "ANY_PLAYER",
    "SELF_PLAYER",
    "ENEMY_PLAYER",
    "ANY_TARGET",
]

ConditionType = Literal[
    "LIFE_BELOW_OPPONENT",
    "LIFE_AT_MOST",
    "CONTROLS_TYPE_COUNT",
    "RELIC_COUNT_ON_SELF",
    "CONTROLS_CREATURE_WITH_RELIC",
    "SPELLS_CAST_THIS_TURN",
    "TARGET_RANK",
    "TRIGGERING_IS_SELF",
    "SELF_HAS_EVADED_THIS_DUEL",
    "TARGET_HAS_EVADED_THIS_DUEL",
    "ANY_FRIENDLY_EVADED_THIS_TURN",
    "FRIENDLY_EVADED_THIS_DUEL",
    "ENEMY_ATTACK_MISSED_THIS_TURN",
    "ANY_FRIENDLY_BOUNCED_THIS_TURN",
]

BuffDuration = Literal["TURN", "PERMANENT"]
SummonDestination = Literal["EMPTY_SLOT", "BOUNCED_SLOT"]
PeekTarget = Literal["OPPONENT", "SELF"]

# Timings that belong to a creature (or the relic grafted onto it) rather than
# to the card being played.
CREATURE_TIMINGS: frozenset[str] = frozenset(
    {
        "ON_ATTACK",
        "ON_DAMAGED",
        "DEATH",
        "START_OF_TURN",
        "END_OF_TURN",
        "CATALYST",
        "ON_EVADE",
        "ON_BOUNCE",
        "ON_EVOLVE",
    }
)


@dataclass(frozen=True)
class KeywordEffect:
    keyword: Keyword
    value: int = 0


@dataclass(frozen=True)
class TargetingRule:
    type: RuleType
    exclude_self: bool = False
    min_rank: int | None = None
    max_rank: int | None = None
    creature_type: str | None = None


@dataclass(frozen=True)
class Condition:
    type: ConditionType
    value: int = 0
    tag: str | None = None


@dataclass(frozen=True)
class ConditionalValue:
    base: int
    bonus: int
    condition: Condition


@dataclass(frozen=True)
class HandPeek:
    target: PeekTarget = "OPPONENT"
    reveal_count: int | None = None


@dataclass(frozen=True)
class TokenSummon:
    card_id: str
    count: int = 1
    to: SummonDestination = "EMPTY_SLOT"


@dataclass(frozen=True)
class ResurrectToField:
    type: Literal["resurrect_to_field"]


@dataclass(frozen=True)
class ResurrectToHand:
    type: Literal["resurrect_to_hand"]


@dataclass(frozen=True)
class HealIfKill:
    type: Literal["heal_if_kill"]
    heal: int


@dataclass(frozen=True)
class SelfDamage:
    type: Literal["self_damage"]
    amount: int


@dataclass(frozen=True)
class SearchDeck:
    type: Literal["search_deck"]
    look: int
    kind: CardKind
    tag: str


@dataclass(frozen=True)
class ReturnFromGraveyard:
    type: Literal["return_from_graveyard"]
    kind: CardKind
    tag: str


@dataclass(frozen=True)
class CopyRelicKeywords:
    type: Literal["copy_relic_keywords"]
    tag: str | None = None


@dataclass(frozen=True)
class AtkBuffOnKill:
    type: Literal["atk_buff_on_kill"]
    amount: int


@dataclass(frozen=True)
class TriggerCatalyst:
    type: Literal["trigger_catalyst"]


@dataclass(frozen=True)
class Unhandled:
    type: Literal["unhandled"]
    tag: str


Script = (
    ResurrectToField
    | ResurrectToHand
    | HealIfKill
    | SelfDamage
    | SearchDeck
    | ReturnFromGraveyard
    | CopyRelicKeywords
    | AtkBuffOnKill
    | TriggerCatalyst
    | Unhandled
)


@dataclass(frozen=True)
class ChoiceOption:
    label: str
    effects: tuple[CardEffect, ...]


@dataclass(frozen=True)
class Choice:
    options: tuple[ChoiceOption, ...]


@dataclass(frozen=True)
class CardEffect:
    """One data-defined ability fragment.

    Every action field is optional; the timing decides how the fields are
    interpreted (see ``runetcg.engine.effects``).
    """

    timing: Timing = "IMMEDIATE"
    target_type: TargetType = "NONE"
    targeting_rule: TargetingRule | None = None
    conditions: tuple[Condition, ...] = ()
    trigger_once_per_condition: bool = False
    once_per_turn: bool = False
    optional: bool = False
    subject_type: str | None = None

    damage: int = 0
    heal: int = 0
    draw: int = 0
    discard: int = 0
    atk_buff: int = 0
    buff_duration: BuffDuration = "TURN"
    hp_buff: int = 0
    stun: int = 0
    freeze: int = 0
    shield: int = 0
    destroy: bool = False
    bounce: bool = False
    grant_evasion: bool = False
    peek_hand: HandPeek | None = None
    summon_token: TokenSummon | None = None

    conditional_damage: ConditionalValue | None = None
    conditional_heal: ConditionalValue | None = None
    conditional_draw: ConditionalValue | None = None
    conditional_atk_buff: ConditionalValue | None = None

    choice: Choice | None = None
    script: Script | None = None


@dataclass(frozen=True)
class CardDefinition:
    id: str
    name: str
    kind: CardKind
    text: str = ""
    rank: int = 0
    atk: int = 0
    hp: int = 0
    creature_type: str | None = None
    token: bool = False
    keywords: tuple[KeywordEffect, ...] = ()
    effects: tuple[CardEffect, ...] = ()

    # Evolutions
    evo_type: EvolutionType | None = None
    base_name: str | None = None
    required_rank: int | None = None
    evolution_conditions: tuple[Condition, ...] = ()

    # Relics
    atk_bonus: int = 0
    hp_bonus: int = 0

    # Locations
    heal_boost: int = 0
    damage_boost: int = 0
    draw_boost: int = 0
    duration: int | None = None

    @property
    def is_spell(self) -> bool:
        return self.kind in ("FAST_SPELL", "SLOW_SPELL")

    @property
    def is_creature(self) -> bool:
        return self.kind in ("CREATURE", "EVOLUTION")

    def effects_for(self, timing: Timing) -> tuple[CardEffect, ...]:
        return tuple(e for e in self.effects if e.timing == timing)


@dataclass(frozen=True)
class CardCatalog:
    """Immutable card catalog injected into every game."""

    cards: dict[str, CardDefinition]

    def get(self, card_id: str) -> CardDefinition:
        return self.cards[card_id]

    def find(self, card_id: str) -> CardDefinition | None:
        return self.cards.get(card_id)

    def all_ids(self) -> Sequence[str]:
        return list(self.cards.keys())
