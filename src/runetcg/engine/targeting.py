"""Legal target computation.

``legal_targets`` is deterministic and side-effect free; every resolution
re-validates against a freshly computed list.
"""

from __future__ import annotations

from .actions import TargetRef
from .state import GameState
from .types import CardEffect, TargetingRule, TargetType

# Timings under which a TARGET_* fragment waits for the player to pick a target.
TARGETED_TIMINGS: frozenset[str] = frozenset(
    {"IMMEDIATE", "ON_PLAY", "CATALYST", "ON_EVADE", "ON_BOUNCE", "ON_EVOLVE", "ON_DAMAGED"}
)
CHOSEN_TARGET_TYPES: frozenset[str] = frozenset({"TARGET_CREATURE", "TARGET_PLAYER", "TARGET"})


def default_rule(target_type: TargetType) -> TargetingRule:
    if target_type == "TARGET_PLAYER":
        return TargetingRule(type="ANY_PLAYER")
    if target_type == "TARGET":
        return TargetingRule(type="ANY_TARGET")
    return TargetingRule(type="ANY_CREATURE")


def rule_for(effect: CardEffect) -> TargetingRule:
    return effect.targeting_rule or default_rule(effect.target_type)


def needs_chosen_target(effect: CardEffect) -> bool:
    return effect.timing in TARGETED_TIMINGS and effect.target_type in CHOSEN_TARGET_TYPES


def _creature_targets(
    state: GameState, rule: TargetingRule, players: list[int], source_player: int, source_slot: int | None
) -> list[TargetRef]:
    out: list[TargetRef] = []
    for p in players:
        for slot, c in enumerate(state.players[p].board):
            if c is None:
                continue
            if rule.exclude_self and p == source_player and slot == source_slot:
                continue
            if rule.min_rank is not None and c.card.rank < rule.min_rank:
                continue
            if rule.max_rank is not None and c.card.rank > rule.max_rank:
                continue
            if rule.creature_type is not None and c.card.creature_type != rule.creature_type:
                continue
            out.append(TargetRef.creature_target(p, slot))
    return out


def legal_targets(
    state: GameState, rule: TargetingRule, source_player: int, source_slot: int | None = None
) -> list[TargetRef]:
    """Every legal target for ``rule``: players first, then creatures by player and slot."""
    enemy = state.opponent(source_player)
    t = rule.type
    if t == "SELF_PLAYER":
        return [TargetRef.player_target(source_player)]
    if t == "ENEMY_PLAYER":
        return [TargetRef.player_target(enemy)]
    if t == "ANY_PLAYER":
        return [TargetRef.player_target(0), TargetRef.player_target(1)]
    if t == "FRIENDLY_CREATURES":
        return _creature_targets(state, rule, [source_player], source_player, source_slot)
    if t == "ENEMY_CREATURES":
        return _creature_targets(state, rule, [enemy], source_player, source_slot)
    if t == "ANY_TARGET":
        players = [TargetRef.player_target(0), TargetRef.player_target(1)]
        return players + _creature_targets(state, rule, [0, 1], source_player, source_slot)
    # ANY_CREATURE / ALL_CREATURES
    return _creature_targets(state, rule, [0, 1], source_player, source_slot)


def is_legal_target(
    state: GameState,
    rule: TargetingRule,
    source_player: int,
    target: TargetRef,
    source_slot: int | None = None,
) -> bool:
    return target in legal_targets(state, rule, source_player, source_slot)
