from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

TargetKind = Literal["player", "creature"]


@dataclass(frozen=True)
class TargetRef:
    kind: TargetKind
    player: int
    slot: int | None = None

    @staticmethod
    def player_target(player: int) -> "TargetRef":
        return TargetRef(kind="player", player=player, slot=None)

    @staticmethod
    def creature_target(player: int, slot: int) -> "TargetRef":
        return TargetRef(kind="creature", player=player, slot=slot)


@dataclass(frozen=True)
class EndPhaseAction:
    pass


@dataclass(frozen=True)
class AttackAction:
    attacker_slot: int
    target: TargetRef


@dataclass(frozen=True)
class PlayCreatureAction:
    uid: str
    slot: int


@dataclass(frozen=True)
class SacrificeSummonAction:
    uid: str
    slot: int
    sacrifice_slots: tuple[int, ...]


@dataclass(frozen=True)
class CastSpellAction:
    uid: str
    target: TargetRef | None = None


@dataclass(frozen=True)
class PlayRelicAction:
    uid: str
    slot: int


@dataclass(frozen=True)
class PlayLocationAction:
    uid: str


@dataclass(frozen=True)
class PlayEvolutionAction:
    uid: str
    slot: int
    overwrite: bool = False


@dataclass(frozen=True)
class ResolveTargetAction:
    target: TargetRef


@dataclass(frozen=True)
class ResolveChoiceAction:
    option_index: int


@dataclass(frozen=True)
class DiscardAction:
    uid: str


@dataclass(frozen=True)
class CancelPendingAction:
    pass


@dataclass(frozen=True)
class AcknowledgeRevealAction:
    pass


Action = (
    EndPhaseAction
    | AttackAction
    | PlayCreatureAction
    | SacrificeSummonAction
    | CastSpellAction
    | PlayRelicAction
    | PlayLocationAction
    | PlayEvolutionAction
    | ResolveTargetAction
    | ResolveChoiceAction
    | DiscardAction
    | CancelPendingAction
    | AcknowledgeRevealAction
)
