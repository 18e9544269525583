"""Sacrifice costs and summoning.

Rank 1 creatures enter an empty slot for free. Higher ranks require
sacrificing friendly creatures whose combined current HP covers the cost.
"""

from __future__ import annotations

from collections.abc import Sequence

from .rules import Rules
from .state import CardInstance, MatchConfig, PlayerState
from .types import CardDefinition


def sacrifice_cost(card: CardDefinition, config: MatchConfig) -> int:
    if card.rank <= 1:
        return 0
    if card.name in config.sacrifice_overrides:
        return config.sacrifice_overrides[card.name]
    # Ranks above the table pay the highest listed cost.
    return config.rank_costs.get(card.rank, max(config.rank_costs.values(), default=0))


def tier_unlock_turn(card: CardDefinition, config: MatchConfig) -> int:
    """First turn a card of this rank may be played; rank 0 counts as tier 1."""
    tier = max(1, card.rank)
    listed = [turn for t, turn in config.tier_unlock_turns.items() if t <= tier]
    return config.tier_unlock_turns.get(tier, max(listed, default=1))


def tier_error(card: CardDefinition, turn: int, config: MatchConfig, verb: str) -> str | None:
    unlock = tier_unlock_turn(card, config)
    if turn >= unlock:
        return None
    return f"Cannot {verb} {card.name}: Tier {max(1, card.rank)} is locked until turn {unlock}."


def auto_select_sacrifices(ps: PlayerState, target_slot: int, cost: int) -> list[int] | None:
    """Greedy pick: the target slot's occupant first, then lowest current HP."""
    candidates: list[int] = []
    if ps.board[target_slot] is not None:
        candidates.append(target_slot)
    others = [
        i for i, c in enumerate(ps.board) if c is not None and i != target_slot
    ]
    others.sort(key=lambda i: (ps.board[i].current_hp, i))  # type: ignore[union-attr]
    candidates.extend(others)

    chosen: list[int] = []
    total = 0
    for slot in candidates:
        if total >= cost:
            break
        c = ps.board[slot]
        assert c is not None
        chosen.append(slot)
        total += c.current_hp
    if total < cost:
        return None
    return chosen


def sacrifice_error(ps: PlayerState, target_slot: int, slots: Sequence[int], cost: int) -> str | None:
    if not slots:
        return "Choose at least one creature to sacrifice."
    if len(set(slots)) != len(slots):
        return "Each creature can only be sacrificed once."
    total = 0
    for slot in slots:
        if slot < 0 or slot >= len(ps.board) or ps.board[slot] is None:
            return "Sacrifices must be your own creatures."
        total += ps.board[slot].current_hp  # type: ignore[union-attr]
    if ps.board[target_slot] is not None and target_slot not in slots:
        return "The creature in the target slot must be sacrificed."
    if total < cost:
        return f"Sacrifices total {total} HP; {cost} is required."
    return None


def summon(rules: Rules, instance: CardInstance, slot: int, sacrifices: Sequence[int]) -> None:
    """Sacrifice (already validated), then place the creature and run its on-play abilities."""
    p = rules.state.active_player
    rules.reserved.add((p, slot))
    for s in sacrifices:
        rules.sacrifice(p, s)
    rules.reserved.discard((p, slot))
    rules.enter_board(p, slot, instance)
