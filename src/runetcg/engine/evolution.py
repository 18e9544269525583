from __future__ import annotations

from . import queries
from .conditions import all_met
from .rules import Rules
from .state import CardInstance, EffectContext, GameState
from .types import CardDefinition


def transform_error(state: GameState, card: CardDefinition, slot: int) -> str | None:
    p = state.active_player
    ps = state.players[p]
    if slot < 0 or slot >= len(ps.board):
        return "Invalid slot."
    c = ps.board[slot]
    if c is None:
        return f"{card.name} needs a creature to evolve."
    if c.card.name != card.base_name or c.card.rank != card.required_rank:
        return f"{card.name} can only evolve {card.base_name} (rank {card.required_rank})."
    if queries.is_stunned(c):
        return f"{c.name} is stunned and cannot evolve."
    ctx = EffectContext(controller=p, source_name=card.name, source_slot=slot)
    if not all_met(state, card.evolution_conditions, ctx):
        return f"The conditions for {card.name} are not met."
    return None


def drop_in_error(state: GameState, card: CardDefinition, slot: int, overwrite: bool) -> str | None:
    ps = state.players[state.active_player]
    if slot < 0 or slot >= len(ps.board):
        return "Invalid slot."
    if ps.board[slot] is not None and not overwrite:
        return f"That slot is occupied; {card.name} needs an empty slot."
    return None


def transform(rules: Rules, instance: CardInstance, card: CardDefinition, slot: int) -> None:
    """Swap the creature's card in place, keeping its relics and proportional HP."""
    p = rules.state.active_player
    ps = rules.state.players[p]
    c = ps.board[slot]
    assert c is not None
    old_name = c.name
    old_max = max(1, queries.max_hp(ps, slot))
    current = c.current_hp

    c.instance = instance
    c.card = card
    new_max = queries.max_hp(ps, slot)
    c.current_hp = max(1, min(new_max, -(-current * new_max // old_max)))
    c.summoning_sick = False
    rules.log(f"{old_name} evolves into {card.name}.")

    ctx = EffectContext(controller=p, source_name=card.name, source_slot=slot)
    rules.executor.execute_all(card.effects_for("ON_EVOLVE"), ctx)


def drop_in(rules: Rules, instance: CardInstance, slot: int) -> None:
    p = rules.state.active_player
    if rules.state.players[p].board[slot] is not None:
        rules.remove_to_graveyard(p, slot)
    rules.enter_board(p, slot, instance)
